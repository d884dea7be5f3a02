"""Fee policy — size estimation and minimum-fee computation.

The size model is linear in the number of inputs and outputs and assumes
every input is a compressed-key P2PKH spend. The fee is charged per
started kilobyte at a configured increment.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from bulletin_wallet.btc.transaction import MAX_MONEY, TxOut
from bulletin_wallet.wallet.credits import Credit

# version + locktime + input count varint + output count varint
TX_OVERHEAD_ESTIMATE = 4 + 4 + 1 + 1

# length varint + push(sig) + push(compressed pubkey)
SIG_SCRIPT_ESTIMATE = 1 + 70 + 1 + 33 + 1

# outpoint hash + outpoint index + sequence + signature script
TX_IN_ESTIMATE = 32 + 4 + 4 + SIG_SCRIPT_ESTIMATE

PK_SCRIPT_ESTIMATE = 1 + 1 + 1 + 20 + 1 + 1

# value + script length varint + P2PKH script
TX_OUT_ESTIMATE = 8 + 1 + PK_SCRIPT_ESTIMATE

# Outputs below one bit-cent always pay at least one increment.
BIT_CENT = 1_000_000

# Free-relay threshold: one coin aged one day, per 250 bytes.
MIN_PRIORITY = 100_000_000 * 144 // 250

FREE_TX_SIZE_LIMIT = 1000


def estimate_tx_size(num_inputs: int, num_outputs: int) -> int:
    """Estimated serialized size of a signed transaction."""
    return TX_OVERHEAD_ESTIMATE + TX_IN_ESTIMATE * num_inputs + TX_OUT_ESTIMATE * num_outputs


def input_priority(inputs: Sequence[Credit], size: int, height: int) -> float:
    """Coin-age priority of *inputs* spent in a transaction of *size* bytes."""
    if size <= 0:
        return 0.0
    return sum(c.amount * c.confirmations(height) for c in inputs) / size


@dataclass(frozen=True)
class FeePolicy:
    """Minimum-fee rules.

    Attributes:
        increment: Units charged per started kilobyte; also the bump step
            when a signed transaction turns out larger than estimated.
        allow_free: Let small high-priority transactions go fee-free.
    """

    increment: int
    allow_free: bool = False

    def __post_init__(self) -> None:
        if self.increment <= 0:
            msg = f"fee increment must be positive, got {self.increment}"
            raise ValueError(msg)

    def fee_for_size(self, size: int) -> int:
        """Fee for *size* bytes: one increment per started kilobyte."""
        return (1 + size // 1000) * self.increment

    def minimum_fee(
        self,
        size: int,
        outputs: Sequence[TxOut],
        inputs: Sequence[Credit],
        height: int,
    ) -> int:
        """Minimum fee a transaction of *size* bytes must pay.

        Args:
            size: Serialized (or estimated) size in bytes.
            outputs: Outputs of the transaction.
            inputs: Credits spent by the transaction.
            height: Reference chain height for input priority.

        Returns:
            Fee in minor units, within ``[0, MAX_MONEY]``.
        """
        fee = self.fee_for_size(size)

        if (
            self.allow_free
            and size < FREE_TX_SIZE_LIMIT
            and input_priority(inputs, size, height) > MIN_PRIORITY
        ):
            fee = 0

        if fee < self.increment and any(out.value < BIT_CENT for out in outputs):
            fee = self.increment

        return min(max(fee, 0), MAX_MONEY)
