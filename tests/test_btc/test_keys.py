"""Tests for hashing, Base58Check, WIF and ECDSA helpers."""

from __future__ import annotations

import pytest
from ecdsa import SECP256k1

from bulletin_wallet.btc.keys import (
    PrivateKey,
    base58_decode,
    base58_encode,
    base58check_decode,
    base58check_encode,
    hash160,
    sha256,
    sha256d,
    verify_signature,
)
from bulletin_wallet.btc.network import MAINNET_PARAMS, TESTNET_PARAMS

_ONE = (1).to_bytes(32, "big")
_PUBKEY_ONE = bytes.fromhex(
    "0279be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798"
)

# ---------------------------------------------------------------------------
# Hashes
# ---------------------------------------------------------------------------


class TestHashes:
    def test_sha256_empty(self):
        assert sha256(b"").hex() == (
            "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
        )

    def test_sha256d_is_double(self):
        assert sha256d(b"abc") == sha256(sha256(b"abc"))

    def test_hash160_of_generator(self):
        assert hash160(_PUBKEY_ONE).hex() == "751e76e8199196d454941c45d1b3a323f1433bd6"


# ---------------------------------------------------------------------------
# Base58
# ---------------------------------------------------------------------------


class TestBase58:
    def test_leading_zeros_become_ones(self):
        assert base58_encode(b"\x00\x00\x01") == "112"

    def test_decode_inverts_encode(self):
        data = b"\x00\x10bulletin"
        assert base58_decode(base58_encode(data)) == data

    def test_invalid_character(self):
        with pytest.raises(ValueError, match="Invalid Base58"):
            base58_decode("0OIl")

    def test_checksum_mismatch(self):
        encoded = base58check_encode(b"\x00" + b"\x11" * 20)
        tampered = encoded[:-1] + ("1" if encoded[-1] != "1" else "2")
        with pytest.raises(ValueError):
            base58check_decode(tampered)

    def test_too_short(self):
        with pytest.raises(ValueError, match="too short"):
            base58check_decode("11")


# ---------------------------------------------------------------------------
# Private keys
# ---------------------------------------------------------------------------


class TestPrivateKey:
    def test_compressed_public_key(self):
        assert PrivateKey(_ONE).public_key() == _PUBKEY_ONE

    def test_uncompressed_public_key(self):
        pub = PrivateKey(_ONE, compressed=False).public_key()
        assert len(pub) == 65
        assert pub[0] == 0x04
        assert pub[1:33] == _PUBKEY_ONE[1:]

    def test_wif_compressed(self):
        wif = PrivateKey(_ONE).to_wif(MAINNET_PARAMS)
        assert wif == "KwDiBf89QgGbjEhKnhXJuH7LrciVrZi3qYjgd9M7rFU73sVHnoWn"

    def test_wif_uncompressed(self):
        wif = PrivateKey(_ONE, compressed=False).to_wif(MAINNET_PARAMS)
        assert wif == "5HpHagT65TZzG1PH3CSu63k8DbpvD8s5ip4nEB3kEsreAnchuDf"

    def test_from_wif(self):
        key = PrivateKey.from_wif("5HpHagT65TZzG1PH3CSu63k8DbpvD8s5ip4nEB3kEsreAnchuDf", MAINNET_PARAMS)
        assert key.secret == _ONE
        assert key.compressed is False

    def test_from_wif_wrong_network(self):
        wif = PrivateKey(_ONE).to_wif(TESTNET_PARAMS)
        with pytest.raises(ValueError, match="does not match network"):
            PrivateKey.from_wif(wif, MAINNET_PARAMS)

    def test_zero_secret_rejected(self):
        with pytest.raises(ValueError, match="out of range"):
            PrivateKey(bytes(32))

    def test_short_secret_rejected(self):
        with pytest.raises(ValueError, match="32 bytes"):
            PrivateKey(b"\x01" * 31)


# ---------------------------------------------------------------------------
# Signatures
# ---------------------------------------------------------------------------


def _der_s(signature: bytes) -> int:
    r_len = signature[3]
    s_start = 4 + r_len + 2
    return int.from_bytes(signature[s_start:], "big")


class TestSignatures:
    digest = sha256d(b"bulletin")

    def test_sign_and_verify(self):
        key = PrivateKey(_ONE)
        sig = key.sign(self.digest)
        assert verify_signature(key.public_key(), self.digest, sig)

    def test_deterministic(self):
        key = PrivateKey(_ONE)
        assert key.sign(self.digest) == key.sign(self.digest)

    def test_low_s(self):
        for i in range(1, 9):
            sig = PrivateKey(i.to_bytes(32, "big")).sign(self.digest)
            assert _der_s(sig) <= SECP256k1.order // 2

    def test_uncompressed_key_verifies(self):
        key = PrivateKey(_ONE, compressed=False)
        sig = key.sign(self.digest)
        assert verify_signature(key.public_key(), self.digest, sig)

    def test_wrong_digest_fails(self):
        key = PrivateKey(_ONE)
        sig = key.sign(self.digest)
        assert not verify_signature(key.public_key(), sha256d(b"other"), sig)

    def test_garbage_inputs_return_false(self):
        assert not verify_signature(b"\x02" + b"\x00" * 32, self.digest, b"\x30\x00")
        assert not verify_signature(_PUBKEY_ONE, self.digest, b"not a signature")
