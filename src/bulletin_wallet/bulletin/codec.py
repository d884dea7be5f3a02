"""Bulletin codec — embed a board/message pair in P2PKH-shaped outputs.

Wire payload::

    b"BLTN" || varstr(board) || varstr(message)

zero-padded to a multiple of 20 bytes and split into 20-byte chunks. Each
chunk fills the hash slot of a pay-to-pubkey-hash output carrying the
dust amount, so the whole payload is burned.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from io import BytesIO

from bulletin_wallet.btc.address import decode_address
from bulletin_wallet.btc.network import NetworkParams
from bulletin_wallet.btc.script import ScriptClass, classify_script, p2pkh_lock_script
from bulletin_wallet.btc.transaction import TxOut, encode_varint, read_varint
from bulletin_wallet.errors.wallet_errors import AddressDecodeError, BulletinEncodeError

MAGIC = b"BLTN"
CHUNK_SIZE = 20
MAX_BOARD_LENGTH = 30
MAX_MESSAGE_LENGTH = 500


@dataclass(frozen=True)
class Bulletin:
    """A message posted to a board by *author*."""

    author: str
    board: str
    message: str

    def validate(self, params: NetworkParams) -> None:
        """Check lengths and the author address.

        Raises:
            BulletinEncodeError: On an invalid board, message, or author.
        """
        board_len = len(self.board.encode("utf-8"))
        if board_len > MAX_BOARD_LENGTH:
            msg = f"board is {board_len} bytes, limit is {MAX_BOARD_LENGTH}"
            raise BulletinEncodeError(msg)
        message_len = len(self.message.encode("utf-8"))
        if message_len == 0:
            msg = "message is empty"
            raise BulletinEncodeError(msg)
        if message_len > MAX_MESSAGE_LENGTH:
            msg = f"message is {message_len} bytes, limit is {MAX_MESSAGE_LENGTH}"
            raise BulletinEncodeError(msg)
        try:
            decode_address(self.author, params)
        except AddressDecodeError as exc:
            msg = f"invalid author address: {exc.message}"
            raise BulletinEncodeError(msg) from exc

    def payload(self) -> bytes:
        board = self.board.encode("utf-8")
        message = self.message.encode("utf-8")
        raw = MAGIC + encode_varint(len(board)) + board + encode_varint(len(message)) + message
        padding = -len(raw) % CHUNK_SIZE
        return raw + b"\x00" * padding


def encode_bulletin(bulletin: Bulletin, dust_amount: int, params: NetworkParams) -> list[TxOut]:
    """Encode *bulletin* as burn outputs of *dust_amount* each.

    Raises:
        BulletinEncodeError: If the bulletin is invalid or the amount is not positive.
    """
    if dust_amount <= 0:
        msg = f"dust amount must be positive, got {dust_amount}"
        raise BulletinEncodeError(msg)
    bulletin.validate(params)
    payload = bulletin.payload()
    return [
        TxOut(dust_amount, p2pkh_lock_script(payload[i : i + CHUNK_SIZE]))
        for i in range(0, len(payload), CHUNK_SIZE)
    ]


def decode_bulletin(outputs: Sequence[TxOut]) -> tuple[str, str]:
    """Recover ``(board, message)`` from the leading burn outputs.

    Outputs after the payload (such as change) are ignored.

    Raises:
        BulletinEncodeError: If the outputs do not start with a bulletin.
    """
    chunks = bytearray()
    for out in outputs:
        if classify_script(out.script_pubkey) != ScriptClass.P2PKH:
            break
        chunks += out.script_pubkey[3:23]

    if not chunks.startswith(MAGIC):
        msg = "outputs carry no bulletin"
        raise BulletinEncodeError(msg)

    stream = BytesIO(bytes(chunks[len(MAGIC) :]))
    try:
        board = _read_varstr(stream)
        message = _read_varstr(stream)
        return board.decode("utf-8"), message.decode("utf-8")
    except (ValueError, UnicodeDecodeError) as exc:
        msg = f"malformed bulletin payload: {exc}"
        raise BulletinEncodeError(msg) from exc


def _read_varstr(stream: BytesIO) -> bytes:
    length = read_varint(stream)
    data = stream.read(length)
    if len(data) != length:
        msg = "truncated string"
        raise ValueError(msg)
    return data
