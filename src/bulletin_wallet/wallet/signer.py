"""Transaction signing and final validation.

Signs and verifies P2PKH and P2PK spends with ``SIGHASH_ALL | FORKID``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from bulletin_wallet.btc.address import address_from_pubkey
from bulletin_wallet.btc.keys import hash160, verify_signature
from bulletin_wallet.btc.network import NetworkParams
from bulletin_wallet.btc.script import (
    ScriptClass,
    p2pk_unlock_script,
    p2pkh_unlock_script,
    parse_pushes,
)
from bulletin_wallet.btc.sighash import SIGHASH_ALL_FORKID, signature_hash
from bulletin_wallet.btc.transaction import MAX_MONEY, MsgTx
from bulletin_wallet.errors.wallet_errors import SignFailedError, ValidationFailedError
from bulletin_wallet.wallet.credits import Credit
from bulletin_wallet.wallet.keystore import Keystore

logger = logging.getLogger(__name__)

# Signs every input of a transaction in place, given the spent credits.
Signer = Callable[[MsgTx, Sequence[Credit]], None]


# ---------------------------------------------------------------------------
# Signing
# ---------------------------------------------------------------------------


def sign_tx(tx: MsgTx, inputs: Sequence[Credit], keystore: Keystore) -> None:
    """Fill in the scriptSig of every input of *tx*.

    Args:
        tx: Transaction whose inputs spend *inputs*, in order.
        inputs: Credits spent by the transaction.
        keystore: Source of signing keys.

    Raises:
        SignFailedError: On a count mismatch, an unsupported script class,
            or a missing key.
    """
    if len(tx.inputs) != len(inputs):
        msg = f"transaction has {len(tx.inputs)} inputs but {len(inputs)} credits were given"
        raise SignFailedError(msg)

    params = keystore.params
    for i, credit in enumerate(inputs):
        script_class = credit.script_class
        if script_class == ScriptClass.P2PKH:
            address = credit.addresses(params)[0]
            key = keystore.key_for(address)
            if key is None:
                msg = f"no key for {address} (input {i})"
                raise SignFailedError(msg)
            signature = _sign_input(tx, i, credit, key.sign)
            tx.inputs[i].script_sig = p2pkh_unlock_script(signature, key.public_key())
        elif script_class == ScriptClass.P2PK:
            pubkey = credit.pk_script[1:-1]
            key = keystore.key_for(address_from_pubkey(pubkey, params))
            if key is None or key.public_key() != pubkey:
                msg = f"no key for pubkey {pubkey.hex()} (input {i})"
                raise SignFailedError(msg)
            signature = _sign_input(tx, i, credit, key.sign)
            tx.inputs[i].script_sig = p2pk_unlock_script(signature)
        else:
            msg = f"cannot sign {script_class} output {credit.outpoint} (input {i})"
            raise SignFailedError(msg)


def _sign_input(
    tx: MsgTx, index: int, credit: Credit, sign: Callable[[bytes], bytes]
) -> bytes:
    digest = signature_hash(tx, index, credit.pk_script, credit.amount)
    return sign(digest) + bytes([SIGHASH_ALL_FORKID])


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_tx(tx: MsgTx, inputs: Sequence[Credit], params: NetworkParams) -> None:
    """Structural and script checks over a finished, signed transaction.

    Raises:
        ValidationFailedError: On the first failed check.
    """
    if not tx.inputs:
        msg = "transaction has no inputs"
        raise ValidationFailedError(msg)
    if not tx.outputs:
        msg = "transaction has no outputs"
        raise ValidationFailedError(msg)
    if len(tx.inputs) != len(inputs):
        msg = f"transaction has {len(tx.inputs)} inputs but {len(inputs)} credits were given"
        raise ValidationFailedError(msg)

    seen = set()
    for i, (txin, credit) in enumerate(zip(tx.inputs, inputs, strict=True)):
        if txin.outpoint != credit.outpoint:
            msg = f"input {i} spends {txin.outpoint}, expected {credit.outpoint}"
            raise ValidationFailedError(msg)
        if txin.outpoint in seen:
            msg = f"duplicate input {txin.outpoint}"
            raise ValidationFailedError(msg)
        seen.add(txin.outpoint)

    total_out = 0
    for i, txout in enumerate(tx.outputs):
        if not 0 <= txout.value <= MAX_MONEY:
            msg = f"output {i} value {txout.value} out of range"
            raise ValidationFailedError(msg)
        total_out += txout.value
    if total_out > MAX_MONEY:
        msg = f"total output value {total_out} out of range"
        raise ValidationFailedError(msg)

    total_in = sum(c.amount for c in inputs)
    if total_out > total_in:
        msg = f"outputs ({total_out}) exceed inputs ({total_in})"
        raise ValidationFailedError(msg)

    for i, credit in enumerate(inputs):
        _verify_input(tx, i, credit)

    logger.debug("Validated %s: %d in, %d out, fee %d", tx.txid(), total_in, total_out, total_in - total_out)


def _verify_input(tx: MsgTx, index: int, credit: Credit) -> None:
    try:
        pushes = parse_pushes(tx.inputs[index].script_sig)
    except ValueError as exc:
        msg = f"input {index}: malformed scriptSig: {exc}"
        raise ValidationFailedError(msg) from exc

    script_class = credit.script_class
    if script_class == ScriptClass.P2PKH and len(pushes) == 2:
        signature, pubkey = pushes
        if hash160(pubkey) != credit.pk_script[3:23]:
            msg = f"input {index}: public key does not match the spent output"
            raise ValidationFailedError(msg)
    elif script_class == ScriptClass.P2PK and len(pushes) == 1:
        signature, pubkey = pushes[0], credit.pk_script[1:-1]
    else:
        msg = f"input {index}: cannot verify {script_class} spend"
        raise ValidationFailedError(msg)

    if not signature or signature[-1] != SIGHASH_ALL_FORKID:
        msg = f"input {index}: unexpected sighash type"
        raise ValidationFailedError(msg)
    digest = signature_hash(tx, index, credit.pk_script, credit.amount)
    if not verify_signature(pubkey, digest, signature[:-1]):
        msg = f"input {index}: signature verification failed"
        raise ValidationFailedError(msg)
