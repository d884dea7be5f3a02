"""Transaction wire format — outpoints, inputs, outputs, serialization.

Legacy (non-segwit) serialization:
- VarInt encoding/decoding
- OutPoint / TxIn / TxOut / MsgTx with serialize / deserialize
- txid computation and serialized size (used by the fee check)
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from io import BytesIO

from bulletin_wallet.btc.keys import sha256d

DEFAULT_SEQUENCE = 0xFFFFFFFF

# Largest amount of minor units that can ever exist (21M coins).
MAX_MONEY = 21_000_000 * 100_000_000


def encode_varint(n: int) -> bytes:
    """Encode an integer as a variable-length integer."""
    if n < 0xFD:
        return struct.pack("<B", n)
    if n <= 0xFFFF:
        return b"\xfd" + struct.pack("<H", n)
    if n <= 0xFFFFFFFF:
        return b"\xfe" + struct.pack("<I", n)
    return b"\xff" + struct.pack("<Q", n)


def read_varint(stream: BytesIO) -> int:
    """Read a variable-length integer from *stream*."""
    first = stream.read(1)
    if not first:
        msg = "Unexpected end of stream reading varint"
        raise ValueError(msg)
    prefix = first[0]
    if prefix < 0xFD:
        return prefix
    fmt, width = {0xFD: ("<H", 2), 0xFE: ("<I", 4), 0xFF: ("<Q", 8)}[prefix]
    return struct.unpack(fmt, _read_exact(stream, width))[0]


def _read_exact(stream: BytesIO, n: int) -> bytes:
    data = stream.read(n)
    if len(data) != n:
        msg = f"Unexpected end of stream: wanted {n} bytes, got {len(data)}"
        raise ValueError(msg)
    return data


@dataclass(frozen=True, order=True)
class OutPoint:
    """Reference to an output of a prior transaction.

    Attributes:
        txid: Transaction id in display (reversed) hex.
        index: Output index.
    """

    txid: str
    index: int

    def serialize(self) -> bytes:
        return bytes.fromhex(self.txid)[::-1] + struct.pack("<I", self.index)

    def __str__(self) -> str:
        return f"{self.txid}:{self.index}"


@dataclass
class TxIn:
    """A transaction input spending :attr:`outpoint`."""

    outpoint: OutPoint
    script_sig: bytes = b""
    sequence: int = DEFAULT_SEQUENCE

    def serialize(self) -> bytes:
        return (
            self.outpoint.serialize()
            + encode_varint(len(self.script_sig))
            + self.script_sig
            + struct.pack("<I", self.sequence)
        )

    @classmethod
    def deserialize(cls, stream: BytesIO) -> TxIn:
        txid = _read_exact(stream, 32)[::-1].hex()
        index = struct.unpack("<I", _read_exact(stream, 4))[0]
        script_sig = _read_exact(stream, read_varint(stream))
        sequence = struct.unpack("<I", _read_exact(stream, 4))[0]
        return cls(OutPoint(txid, index), script_sig, sequence)


@dataclass
class TxOut:
    """A transaction output: *value* minor units locked by *script_pubkey*."""

    value: int
    script_pubkey: bytes

    def serialize(self) -> bytes:
        return struct.pack("<q", self.value) + encode_varint(len(self.script_pubkey)) + self.script_pubkey

    @classmethod
    def deserialize(cls, stream: BytesIO) -> TxOut:
        value = struct.unpack("<q", _read_exact(stream, 8))[0]
        script = _read_exact(stream, read_varint(stream))
        return cls(value, script)


@dataclass
class MsgTx:
    """A transaction under construction or on the wire.

    Attributes:
        version: Transaction version (default 1).
        inputs: Transaction inputs.
        outputs: Transaction outputs.
        locktime: Transaction locktime (default 0).
    """

    version: int = 1
    inputs: list[TxIn] = field(default_factory=list)
    outputs: list[TxOut] = field(default_factory=list)
    locktime: int = 0

    def serialize(self) -> bytes:
        """Serialize to raw bytes."""
        parts = [struct.pack("<i", self.version), encode_varint(len(self.inputs))]
        parts.extend(txin.serialize() for txin in self.inputs)
        parts.append(encode_varint(len(self.outputs)))
        parts.extend(txout.serialize() for txout in self.outputs)
        parts.append(struct.pack("<I", self.locktime))
        return b"".join(parts)

    def serialize_size(self) -> int:
        """Serialized size in bytes."""
        return len(self.serialize())

    def to_hex(self) -> str:
        return self.serialize().hex()

    def txid(self) -> str:
        """Transaction id (double-SHA256, display hex)."""
        return sha256d(self.serialize())[::-1].hex()

    @classmethod
    def deserialize(cls, stream: BytesIO) -> MsgTx:
        version = struct.unpack("<i", _read_exact(stream, 4))[0]
        inputs = [TxIn.deserialize(stream) for _ in range(read_varint(stream))]
        outputs = [TxOut.deserialize(stream) for _ in range(read_varint(stream))]
        locktime = struct.unpack("<I", _read_exact(stream, 4))[0]
        return cls(version=version, inputs=inputs, outputs=outputs, locktime=locktime)

    @classmethod
    def from_hex(cls, hex_str: str) -> MsgTx:
        return cls.deserialize(BytesIO(bytes.fromhex(hex_str)))

    def add_input(self, outpoint: OutPoint) -> TxIn:
        """Append an unsigned input."""
        txin = TxIn(outpoint)
        self.inputs.append(txin)
        return txin

    def add_output(self, value: int, script_pubkey: bytes) -> int:
        """Append an output and return its index."""
        self.outputs.append(TxOut(value, script_pubkey))
        return len(self.outputs) - 1

    def remove_output(self, index: int) -> TxOut:
        """Remove the output at *index*, keeping the order of the rest."""
        return self.outputs.pop(index)
