"""Keystore — imported private keys indexed by address."""

from __future__ import annotations

import logging

from bulletin_wallet.btc.address import Address, AddressKind, address_from_pubkey
from bulletin_wallet.btc.keys import PrivateKey
from bulletin_wallet.btc.network import NetworkParams

logger = logging.getLogger(__name__)


class Keystore:
    """In-memory store of the account's signing keys.

    Keys are looked up by the hash160 of their serialized public key, so a
    compressed and an uncompressed import of the same secret are two
    distinct addresses.
    """

    def __init__(self, params: NetworkParams) -> None:
        self._params = params
        self._keys: dict[bytes, PrivateKey] = {}

    @property
    def params(self) -> NetworkParams:
        return self._params

    def __len__(self) -> int:
        return len(self._keys)

    def import_key(self, key: PrivateKey) -> Address:
        """Add *key* and return its P2PKH address."""
        address = address_from_pubkey(key.public_key(), self._params)
        self._keys[address.hash160] = key
        logger.debug("Imported key for %s", address)
        return address

    def import_wif(self, wif: str) -> Address:
        """Decode and import a WIF key.

        Raises:
            ValueError: If the WIF is malformed or for another network.
        """
        return self.import_key(PrivateKey.from_wif(wif, self._params))

    def owns(self, address: Address) -> bool:
        """Whether a key for *address* is held."""
        return address.kind == AddressKind.P2PKH and address.hash160 in self._keys

    def key_for(self, address: Address) -> PrivateKey | None:
        if address.kind != AddressKind.P2PKH:
            return None
        return self._keys.get(address.hash160)

    def addresses(self) -> list[Address]:
        return [Address(AddressKind.P2PKH, h, self._params) for h in self._keys]
