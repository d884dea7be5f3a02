"""bulletin-wallet — embed signed bulletins into UTXO ledger transactions."""

__version__ = "0.1.0"
