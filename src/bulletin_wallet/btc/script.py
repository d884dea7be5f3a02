"""Script building and classification — P2PKH, P2SH, P2PK, multisig.

Provides construction and parsing of the standard locking/unlocking
scripts the wallet creates or spends:
- P2PKH and P2SH locking scripts, payment script for an :class:`Address`
- P2PKH / P2PK unlocking scripts
- Script class detection and address extraction
"""

from __future__ import annotations

import enum
import struct

from bulletin_wallet.btc.address import Address, AddressKind, address_from_pubkey
from bulletin_wallet.btc.network import NetworkParams

# ---------------------------------------------------------------------------
# Opcodes
# ---------------------------------------------------------------------------


class OpCode(int, enum.Enum):
    """Opcodes used by the standard script templates."""

    OP_0 = 0x00
    OP_PUSHDATA1 = 0x4C
    OP_PUSHDATA2 = 0x4D
    OP_PUSHDATA4 = 0x4E
    OP_1 = 0x51
    OP_16 = 0x60
    OP_RETURN = 0x6A
    OP_DUP = 0x76
    OP_EQUAL = 0x87
    OP_EQUALVERIFY = 0x88
    OP_HASH160 = 0xA9
    OP_CHECKSIG = 0xAC
    OP_CHECKMULTISIG = 0xAE


class ScriptClass(enum.StrEnum):
    """Standard script classes."""

    P2PKH = "pubkeyhash"
    P2SH = "scripthash"
    P2PK = "pubkey"
    MULTISIG = "multisig"
    NULL_DATA = "nulldata"
    NONSTANDARD = "nonstandard"


# ---------------------------------------------------------------------------
# Data pushes
# ---------------------------------------------------------------------------


def push_data(data: bytes) -> bytes:
    """Encode a minimal data push of *data*."""
    length = len(data)
    if length == 0:
        return bytes([OpCode.OP_0])
    if length <= 0x4B:
        return bytes([length]) + data
    if length <= 0xFF:
        return bytes([OpCode.OP_PUSHDATA1, length]) + data
    if length <= 0xFFFF:
        return bytes([OpCode.OP_PUSHDATA2]) + struct.pack("<H", length) + data
    return bytes([OpCode.OP_PUSHDATA4]) + struct.pack("<I", length) + data


_PUSHDATA_WIDTHS = {
    OpCode.OP_PUSHDATA1: (1, "<B"),
    OpCode.OP_PUSHDATA2: (2, "<H"),
    OpCode.OP_PUSHDATA4: (4, "<I"),
}


def parse_pushes(script: bytes) -> list[bytes]:
    """Split a push-only script into its pushed items.

    Raises:
        ValueError: If the script contains a non-push opcode or is truncated.
    """
    items: list[bytes] = []
    i = 0
    while i < len(script):
        op = script[i]
        i += 1
        if op == OpCode.OP_0:
            items.append(b"")
            continue
        if op <= 0x4B:
            length = op
        elif op in _PUSHDATA_WIDTHS:
            width, fmt = _PUSHDATA_WIDTHS[op]
            if i + width > len(script):
                msg = "truncated push length"
                raise ValueError(msg)
            length = struct.unpack(fmt, script[i : i + width])[0]
            i += width
        else:
            msg = f"non-push opcode 0x{op:02x} in push-only script"
            raise ValueError(msg)
        if i + length > len(script):
            msg = "script push exceeds script length"
            raise ValueError(msg)
        items.append(script[i : i + length])
        i += length
    return items


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------


def p2pkh_lock_script(pubkey_hash: bytes) -> bytes:
    """``OP_DUP OP_HASH160 <20 bytes> OP_EQUALVERIFY OP_CHECKSIG``."""
    if len(pubkey_hash) != 20:
        msg = f"pubkey_hash must be 20 bytes, got {len(pubkey_hash)}"
        raise ValueError(msg)
    return (
        bytes([OpCode.OP_DUP, OpCode.OP_HASH160])
        + push_data(pubkey_hash)
        + bytes([OpCode.OP_EQUALVERIFY, OpCode.OP_CHECKSIG])
    )


def p2sh_lock_script(script_hash: bytes) -> bytes:
    """``OP_HASH160 <20 bytes> OP_EQUAL``."""
    if len(script_hash) != 20:
        msg = f"script_hash must be 20 bytes, got {len(script_hash)}"
        raise ValueError(msg)
    return bytes([OpCode.OP_HASH160]) + push_data(script_hash) + bytes([OpCode.OP_EQUAL])


def pay_to_address_script(address: Address) -> bytes:
    """Locking script paying *address*."""
    if address.kind == AddressKind.P2PKH:
        return p2pkh_lock_script(address.hash160)
    return p2sh_lock_script(address.hash160)


def p2pkh_unlock_script(signature: bytes, pubkey: bytes) -> bytes:
    """``<sig> <pubkey>``; *signature* carries its sighash byte."""
    return push_data(signature) + push_data(pubkey)


def p2pk_unlock_script(signature: bytes) -> bytes:
    """``<sig>``."""
    return push_data(signature)


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


def _is_pubkey(data: bytes) -> bool:
    return (len(data) == 33 and data[0] in (0x02, 0x03)) or (len(data) == 65 and data[0] == 0x04)


def _multisig_pubkeys(script: bytes) -> list[bytes] | None:
    """Return the public keys of a bare ``m-of-n`` multisig script, else None."""
    if len(script) < 3 or script[-1] != OpCode.OP_CHECKMULTISIG:
        return None
    m_op, n_op = script[0], script[-2]
    if not (OpCode.OP_1 <= m_op <= OpCode.OP_16 and OpCode.OP_1 <= n_op <= OpCode.OP_16):
        return None
    try:
        pubkeys = parse_pushes(script[1:-2])
    except ValueError:
        return None
    n = n_op - OpCode.OP_1 + 1
    m = m_op - OpCode.OP_1 + 1
    if len(pubkeys) != n or m > n or not all(_is_pubkey(pk) for pk in pubkeys):
        return None
    return pubkeys


def classify_script(script: bytes) -> ScriptClass:
    """Detect the standard class of a locking script."""
    if (
        len(script) == 25
        and script[0] == OpCode.OP_DUP
        and script[1] == OpCode.OP_HASH160
        and script[2] == 0x14
        and script[23] == OpCode.OP_EQUALVERIFY
        and script[24] == OpCode.OP_CHECKSIG
    ):
        return ScriptClass.P2PKH
    if (
        len(script) == 23
        and script[0] == OpCode.OP_HASH160
        and script[1] == 0x14
        and script[22] == OpCode.OP_EQUAL
    ):
        return ScriptClass.P2SH
    if script[:1] == bytes([OpCode.OP_RETURN]) or script[:2] == bytes(
        [OpCode.OP_0, OpCode.OP_RETURN]
    ):
        return ScriptClass.NULL_DATA
    if (
        len(script) in (35, 67)
        and script[0] == len(script) - 2
        and script[-1] == OpCode.OP_CHECKSIG
        and _is_pubkey(script[1:-1])
    ):
        return ScriptClass.P2PK
    if _multisig_pubkeys(script) is not None:
        return ScriptClass.MULTISIG
    return ScriptClass.NONSTANDARD


def extract_addresses(script: bytes, params: NetworkParams) -> list[Address]:
    """Addresses a locking script pays, in script order.

    P2PK and multisig keys are reported as their P2PKH addresses;
    null-data and non-standard scripts pay no address.
    """
    script_class = classify_script(script)
    if script_class == ScriptClass.P2PKH:
        return [Address(AddressKind.P2PKH, script[3:23], params)]
    if script_class == ScriptClass.P2SH:
        return [Address(AddressKind.P2SH, script[2:22], params)]
    if script_class == ScriptClass.P2PK:
        return [address_from_pubkey(script[1:-1], params)]
    if script_class == ScriptClass.MULTISIG:
        return [address_from_pubkey(pk, params) for pk in _multisig_pubkeys(script) or []]
    return []
