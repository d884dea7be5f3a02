"""Network parameters — address and key version bytes per chain.

Every address/script/key operation takes a :class:`NetworkParams` value
explicitly, so several networks can be used side by side in one process.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass


class Network(enum.StrEnum):
    """Supported networks."""

    MAINNET = "mainnet"
    TESTNET = "testnet"
    REGTEST = "regtest"


@dataclass(frozen=True)
class NetworkParams:
    """Version bytes and API names for one network.

    Attributes:
        name: Network identifier.
        pubkey_hash_addr_id: Base58 version byte of P2PKH addresses.
        script_hash_addr_id: Base58 version byte of P2SH addresses.
        private_key_id: WIF version byte.
        woc_name: Network segment used by the WhatsOnChain API.
    """

    name: Network
    pubkey_hash_addr_id: int
    script_hash_addr_id: int
    private_key_id: int
    woc_name: str


MAINNET_PARAMS = NetworkParams(
    name=Network.MAINNET,
    pubkey_hash_addr_id=0x00,
    script_hash_addr_id=0x05,
    private_key_id=0x80,
    woc_name="main",
)

TESTNET_PARAMS = NetworkParams(
    name=Network.TESTNET,
    pubkey_hash_addr_id=0x6F,
    script_hash_addr_id=0xC4,
    private_key_id=0xEF,
    woc_name="test",
)

REGTEST_PARAMS = NetworkParams(
    name=Network.REGTEST,
    pubkey_hash_addr_id=0x6F,
    script_hash_addr_id=0xC4,
    private_key_id=0xEF,
    woc_name="test",
)

_PARAMS = {
    Network.MAINNET: MAINNET_PARAMS,
    Network.TESTNET: TESTNET_PARAMS,
    Network.REGTEST: REGTEST_PARAMS,
}


def params_for(network: Network | str) -> NetworkParams:
    """Look up the parameters of a network by name.

    Raises:
        ValueError: If the network is unknown.
    """
    return _PARAMS[Network(network)]
