"""Tests for network parameter lookup."""

from __future__ import annotations

import pytest

from bulletin_wallet.btc.network import (
    MAINNET_PARAMS,
    REGTEST_PARAMS,
    TESTNET_PARAMS,
    Network,
    params_for,
)


class TestParamsFor:
    def test_by_enum(self):
        assert params_for(Network.MAINNET) is MAINNET_PARAMS

    def test_by_name(self):
        assert params_for("testnet") is TESTNET_PARAMS
        assert params_for("regtest") is REGTEST_PARAMS

    def test_unknown(self):
        with pytest.raises(ValueError):
            params_for("signet")

    def test_version_bytes(self):
        assert MAINNET_PARAMS.pubkey_hash_addr_id == 0x00
        assert TESTNET_PARAMS.pubkey_hash_addr_id == 0x6F
        assert TESTNET_PARAMS.woc_name == "test"
