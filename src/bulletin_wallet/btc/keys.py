"""Keys and encodings — hashing, Base58Check, WIF, ECDSA on secp256k1.

Provides the primitives the signer and the keystore build on:
- SHA-256d / Hash160 digests
- Base58 / Base58Check encoding
- WIF private key import / export
- Deterministic (RFC6979), low-S ECDSA signing and DER verification
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass

from ecdsa import SECP256k1, BadSignatureError, SigningKey, VerifyingKey
from ecdsa.errors import MalformedPointError

from bulletin_wallet.btc.network import NetworkParams

_CURVE = SECP256k1
_CURVE_ORDER = _CURVE.order

# ---------------------------------------------------------------------------
# Hashes
# ---------------------------------------------------------------------------


def sha256(data: bytes) -> bytes:
    """Single SHA-256 hash."""
    return hashlib.sha256(data).digest()


def sha256d(data: bytes) -> bytes:
    """Double SHA-256 hash."""
    return sha256(sha256(data))


def hash160(data: bytes) -> bytes:
    """RIPEMD-160(SHA-256(data))."""
    h = hashlib.new("ripemd160")
    h.update(sha256(data))
    return h.digest()


# ---------------------------------------------------------------------------
# Base58Check
# ---------------------------------------------------------------------------

_B58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_B58_INDEX = {char: i for i, char in enumerate(_B58_ALPHABET)}


def base58_encode(payload: bytes) -> str:
    """Encode raw bytes as Base58 (no checksum)."""
    n = int.from_bytes(payload, "big")
    chars: list[str] = []
    while n > 0:
        n, rem = divmod(n, 58)
        chars.append(_B58_ALPHABET[rem])
    leading = len(payload) - len(payload.lstrip(b"\x00"))
    return "1" * leading + "".join(reversed(chars))


def base58_decode(s: str) -> bytes:
    """Decode a Base58 string (no checksum).

    Raises:
        ValueError: On characters outside the Base58 alphabet.
    """
    n = 0
    for char in s:
        if char not in _B58_INDEX:
            msg = f"Invalid Base58 character: {char!r}"
            raise ValueError(msg)
        n = n * 58 + _B58_INDEX[char]
    body = n.to_bytes((n.bit_length() + 7) // 8, "big") if n else b""
    leading = len(s) - len(s.lstrip("1"))
    return b"\x00" * leading + body


def base58check_encode(payload: bytes) -> str:
    """Encode bytes followed by a 4-byte SHA-256d checksum."""
    return base58_encode(payload + sha256d(payload)[:4])


def base58check_decode(s: str) -> bytes:
    """Decode a Base58Check string and verify its checksum.

    Raises:
        ValueError: If the string is malformed or the checksum is wrong.
    """
    raw = base58_decode(s)
    if len(raw) < 5:
        msg = "Base58Check string too short"
        raise ValueError(msg)
    payload, checksum = raw[:-4], raw[-4:]
    if sha256d(payload)[:4] != checksum:
        msg = "Base58Check checksum mismatch"
        raise ValueError(msg)
    return payload


# ---------------------------------------------------------------------------
# DER signatures
# ---------------------------------------------------------------------------


def _der_int(n: int) -> bytes:
    b = n.to_bytes((n.bit_length() + 7) // 8 or 1, "big")
    if b[0] & 0x80:
        b = b"\x00" + b
    return b"\x02" + bytes([len(b)]) + b


def _sigencode_low_s(r: int, s: int, order: int) -> bytes:
    """DER-encode ``(r, s)`` with ``s`` forced into the lower half of the order."""
    if s > order // 2:
        s = order - s
    body = _der_int(r) + _der_int(s)
    return b"\x30" + bytes([len(body)]) + body


def _sigdecode_der(signature: bytes, order: int) -> tuple[int, int]:
    """Decode a DER signature into ``(r, s)``.

    Raises:
        ValueError: If the encoding is malformed.
    """
    if len(signature) < 8 or signature[0] != 0x30 or signature[1] != len(signature) - 2:
        msg = "Invalid DER signature"
        raise ValueError(msg)
    idx = 2
    values: list[int] = []
    for _ in range(2):
        if signature[idx] != 0x02:
            msg = "Invalid DER signature (integer marker)"
            raise ValueError(msg)
        length = signature[idx + 1]
        start = idx + 2
        if length == 0 or start + length > len(signature):
            msg = "Invalid DER signature (integer length)"
            raise ValueError(msg)
        values.append(int.from_bytes(signature[start : start + length], "big"))
        idx = start + length
    if idx != len(signature):
        msg = "Invalid DER signature (trailing bytes)"
        raise ValueError(msg)
    return values[0], values[1]


def verify_signature(pubkey: bytes, digest: bytes, signature: bytes) -> bool:
    """Verify a DER signature over a 32-byte digest.

    Accepts 33-byte compressed and 65-byte uncompressed public keys.
    Returns False on any malformed input instead of raising.
    """
    try:
        vk = VerifyingKey.from_string(pubkey, curve=_CURVE)
        return vk.verify_digest(signature, digest, sigdecode=_sigdecode_der)
    except (BadSignatureError, MalformedPointError, ValueError):
        return False


# ---------------------------------------------------------------------------
# Private keys
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PrivateKey:
    """A secp256k1 private key with its public key encoding preference.

    Attributes:
        secret: 32-byte big-endian scalar.
        compressed: Whether the public key is serialized in 33-byte form.
    """

    secret: bytes
    compressed: bool = True

    def __post_init__(self) -> None:
        if len(self.secret) != 32:
            msg = f"Private key must be 32 bytes, got {len(self.secret)}"
            raise ValueError(msg)
        value = int.from_bytes(self.secret, "big")
        if not 0 < value < _CURVE_ORDER:
            msg = "Private key out of range"
            raise ValueError(msg)

    def public_key(self) -> bytes:
        """Return the SEC-encoded public key (33 or 65 bytes)."""
        vk = SigningKey.from_string(self.secret, curve=_CURVE).get_verifying_key()
        return vk.to_string("compressed" if self.compressed else "uncompressed")

    def sign(self, digest: bytes) -> bytes:
        """Sign a 32-byte digest; returns a low-S DER signature."""
        sk = SigningKey.from_string(self.secret, curve=_CURVE)
        return sk.sign_digest_deterministic(
            digest, hashfunc=hashlib.sha256, sigencode=_sigencode_low_s
        )

    def to_wif(self, params: NetworkParams) -> str:
        """Encode as WIF for the given network."""
        payload = bytes([params.private_key_id]) + self.secret
        if self.compressed:
            payload += b"\x01"
        return base58check_encode(payload)

    @classmethod
    def from_wif(cls, wif: str, params: NetworkParams) -> PrivateKey:
        """Decode a WIF string for the given network.

        Raises:
            ValueError: If the WIF is malformed or belongs to another network.
        """
        payload = base58check_decode(wif)
        if payload[0] != params.private_key_id:
            msg = f"WIF version 0x{payload[0]:02x} does not match network {params.name}"
            raise ValueError(msg)
        if len(payload) == 34 and payload[-1] == 0x01:
            return cls(secret=payload[1:33], compressed=True)
        if len(payload) == 33:
            return cls(secret=payload[1:33], compressed=False)
        msg = f"Invalid WIF payload length: {len(payload)}"
        raise ValueError(msg)
