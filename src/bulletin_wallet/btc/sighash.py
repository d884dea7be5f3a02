"""Signature digest — BIP143-style preimage with ``SIGHASH_FORKID``.

Every input commits to the value of the output it spends, so the signer
needs the spent credits alongside the transaction.
"""

from __future__ import annotations

import struct

from bulletin_wallet.btc.keys import sha256d
from bulletin_wallet.btc.transaction import MsgTx, encode_varint

SIGHASH_ALL = 0x01
SIGHASH_FORKID = 0x40
SIGHASH_ALL_FORKID = SIGHASH_ALL | SIGHASH_FORKID


def signature_hash(
    tx: MsgTx,
    input_index: int,
    script_code: bytes,
    value: int,
    sighash_type: int = SIGHASH_ALL_FORKID,
) -> bytes:
    """Digest signed by input *input_index*.

    Args:
        tx: Transaction being signed; script_sigs are not committed to.
        input_index: Input to compute the digest for.
        script_code: Locking script of the spent output.
        value: Value of the spent output.
        sighash_type: Only ``SIGHASH_ALL | SIGHASH_FORKID`` is supported.

    Raises:
        ValueError: On an out-of-range index or unsupported sighash type.
    """
    if not 0 <= input_index < len(tx.inputs):
        msg = f"Input index {input_index} out of range"
        raise ValueError(msg)
    if sighash_type != SIGHASH_ALL_FORKID:
        msg = f"Unsupported sighash type 0x{sighash_type:02x}"
        raise ValueError(msg)

    hash_prevouts = sha256d(b"".join(txin.outpoint.serialize() for txin in tx.inputs))
    hash_sequence = sha256d(b"".join(struct.pack("<I", txin.sequence) for txin in tx.inputs))
    hash_outputs = sha256d(b"".join(txout.serialize() for txout in tx.outputs))

    target = tx.inputs[input_index]
    preimage = (
        struct.pack("<i", tx.version)
        + hash_prevouts
        + hash_sequence
        + target.outpoint.serialize()
        + encode_varint(len(script_code))
        + script_code
        + struct.pack("<q", value)
        + struct.pack("<I", target.sequence)
        + hash_outputs
        + struct.pack("<I", tx.locktime)
        + struct.pack("<I", sighash_type)
    )
    return sha256d(preimage)
