"""Tests for the configuration system."""

from __future__ import annotations

import textwrap
from typing import TYPE_CHECKING

import pytest
from pydantic import ValidationError

from bulletin_wallet.btc.network import MAINNET_PARAMS, TESTNET_PARAMS, Network
from bulletin_wallet.config.settings import (
    AppConfig,
    ARCConfig,
    ArcWaitFor,
    DatabaseConfig,
    DatabaseEngine,
    PolicyConfig,
    ServerConfig,
    WoCConfig,
    _load_yaml,
)

if TYPE_CHECKING:
    from pathlib import Path

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------


class TestDefaults:
    """Verify all default values are correct."""

    def test_server_defaults(self) -> None:
        cfg = ServerConfig()
        assert cfg.host == "127.0.0.1"
        assert cfg.port == 3004

    def test_database_defaults(self) -> None:
        cfg = DatabaseConfig()
        assert cfg.engine == DatabaseEngine.SQLITE
        assert cfg.dsn == "sqlite+aiosqlite:///./bulletin_wallet.db"

    def test_arc_defaults(self) -> None:
        cfg = ARCConfig()
        assert cfg.url == "https://arc.taal.com"
        assert cfg.wait_for == ArcWaitFor.SEEN_ON_NETWORK

    def test_woc_defaults(self) -> None:
        assert WoCConfig().url == "https://api.whatsonchain.com/v1/bsv"

    def test_policy_defaults(self) -> None:
        cfg = PolicyConfig()
        assert cfg.dust_amount == 546
        assert cfg.fee_increment == 1000
        assert cfg.min_confirmations == 1
        assert cfg.allow_free is False

    def test_app_defaults(self) -> None:
        cfg = AppConfig()
        assert cfg.network == Network.MAINNET
        assert cfg.account == "default"
        assert cfg.wifs == []
        assert cfg.params is MAINNET_PARAMS


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestValidation:
    def test_dust_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            PolicyConfig(dust_amount=0)

    def test_fee_increment_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            PolicyConfig(fee_increment=-1)

    def test_unknown_network(self) -> None:
        with pytest.raises(ValidationError):
            AppConfig(network="moonnet")


# ---------------------------------------------------------------------------
# Environment overrides
# ---------------------------------------------------------------------------


class TestEnvOverrides:
    """Verify environment variables override defaults."""

    def test_top_level_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("BULLETIN_DEBUG", "true")
        monkeypatch.setenv("BULLETIN_NETWORK", "testnet")
        cfg = AppConfig()
        assert cfg.debug is True
        assert cfg.params is TESTNET_PARAMS

    def test_nested_env_via_delimiter(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("BULLETIN_POLICY__DUST_AMOUNT", "700")
        monkeypatch.setenv("BULLETIN_ARC__TOKEN", "my-token")
        cfg = AppConfig()
        assert cfg.policy.dust_amount == 700
        assert cfg.arc.token == "my-token"

    def test_wifs_from_json_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("BULLETIN_WIFS", '["a", "b"]')
        assert AppConfig().wifs == ["a", "b"]


# ---------------------------------------------------------------------------
# YAML
# ---------------------------------------------------------------------------


class TestYaml:
    def test_load_yaml_nonexistent(self, tmp_path: Path) -> None:
        assert _load_yaml(tmp_path / "nonexistent.yaml") == {}

    def test_load_yaml_non_dict(self, tmp_path: Path) -> None:
        f = tmp_path / "list.yaml"
        f.write_text("- a\n- b\n")
        assert _load_yaml(f) == {}

    def test_from_yaml(self, tmp_path: Path) -> None:
        f = tmp_path / "cfg.yaml"
        f.write_text(
            textwrap.dedent(
                """\
                network: testnet
                account: board-poster
                policy:
                  dust_amount: 600
                  fee_increment: 50
                """
            )
        )
        cfg = AppConfig.from_yaml(f)
        assert cfg.network == Network.TESTNET
        assert cfg.account == "board-poster"
        assert cfg.policy.dust_amount == 600
        assert cfg.policy.fee_increment == 50

    def test_env_beats_yaml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        f = tmp_path / "cfg.yaml"
        f.write_text("network: testnet\npolicy:\n  dust_amount: 600\n  fee_increment: 50\n")
        monkeypatch.setenv("BULLETIN_NETWORK", "regtest")
        monkeypatch.setenv("BULLETIN_POLICY__FEE_INCREMENT", "75")

        cfg = AppConfig.from_yaml(f)
        assert cfg.network == Network.REGTEST
        assert cfg.policy.dust_amount == 600
        assert cfg.policy.fee_increment == 75

    def test_config_path_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        f = tmp_path / "cfg.yaml"
        f.write_text("account: from-file\n")
        monkeypatch.setenv("BULLETIN_CONFIG_PATH", str(f))
        assert AppConfig().account == "from-file"
