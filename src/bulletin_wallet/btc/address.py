"""Address encoding — Base58Check P2PKH / P2SH addresses.

Addresses are decoded against an explicit :class:`NetworkParams`; an
address of another network is rejected with :class:`AddressDecodeError`.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from bulletin_wallet.btc.keys import base58check_decode, base58check_encode, hash160
from bulletin_wallet.btc.network import NetworkParams
from bulletin_wallet.errors.wallet_errors import AddressDecodeError


class AddressKind(enum.StrEnum):
    """Address types understood by the wallet."""

    P2PKH = "pubkeyhash"
    P2SH = "scripthash"


@dataclass(frozen=True)
class Address:
    """A decoded address.

    Attributes:
        kind: P2PKH or P2SH.
        hash160: The 20-byte hash the address commits to.
        params: Network the address belongs to.
    """

    kind: AddressKind
    hash160: bytes
    params: NetworkParams

    def encode(self) -> str:
        """Return the Base58Check string form."""
        if self.kind == AddressKind.P2PKH:
            version = self.params.pubkey_hash_addr_id
        else:
            version = self.params.script_hash_addr_id
        return base58check_encode(bytes([version]) + self.hash160)

    def __str__(self) -> str:
        return self.encode()


def decode_address(address: str, params: NetworkParams) -> Address:
    """Decode a Base58Check address for the given network.

    Raises:
        AddressDecodeError: If the string is malformed or not for *params*.
    """
    try:
        payload = base58check_decode(address)
    except ValueError as exc:
        raise AddressDecodeError(f"invalid address {address!r}: {exc}") from exc
    if len(payload) != 21:
        raise AddressDecodeError(f"invalid address {address!r}: bad payload length")
    version, digest = payload[0], payload[1:]
    if version == params.pubkey_hash_addr_id:
        return Address(AddressKind.P2PKH, digest, params)
    if version == params.script_hash_addr_id:
        return Address(AddressKind.P2SH, digest, params)
    raise AddressDecodeError(f"address {address!r} is not valid on {params.name}")


def address_from_pubkey(pubkey: bytes, params: NetworkParams) -> Address:
    """P2PKH address of a serialized public key."""
    return Address(AddressKind.P2PKH, hash160(pubkey), params)
