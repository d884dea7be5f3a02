"""Application settings loaded from environment variables and config files.

Configuration is loaded from (highest priority first):
1. Environment variables (prefix: ``BULLETIN_``, nested via ``__``)
2. YAML config file (``--config path`` or ``BULLETIN_CONFIG_PATH`` env var)
3. Defaults defined here
"""

from __future__ import annotations

import enum
from pathlib import Path
from typing import Any, Self

import yaml
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from bulletin_wallet.btc.network import Network, NetworkParams, params_for

# ---------------------------------------------------------------------------
# Enums for validated choices
# ---------------------------------------------------------------------------


class DatabaseEngine(enum.StrEnum):
    """Supported database engines."""

    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"


class ArcWaitFor(enum.StrEnum):
    """ARC broadcast wait strategy."""

    SEEN_ON_NETWORK = "SEEN_ON_NETWORK"
    STORED = "STORED"
    ANNOUNCED_TO_NETWORK = "ANNOUNCED_TO_NETWORK"
    SENT_TO_NETWORK = "SENT_TO_NETWORK"


# ---------------------------------------------------------------------------
# Sub-config models
# ---------------------------------------------------------------------------


class ServerConfig(BaseSettings):
    """HTTP server settings."""

    model_config = SettingsConfigDict(
        env_prefix="BULLETIN_SERVER__",
        case_sensitive=False,
    )

    host: str = "127.0.0.1"
    port: int = 3004


class DatabaseConfig(BaseSettings):
    """Database settings."""

    model_config = SettingsConfigDict(
        env_prefix="BULLETIN_DB__",
        case_sensitive=False,
    )

    engine: DatabaseEngine = Field(
        default=DatabaseEngine.SQLITE,
        description="Database backend: sqlite or postgresql",
    )
    dsn: str = Field(
        default="sqlite+aiosqlite:///./bulletin_wallet.db",
        description="Async database connection string",
    )
    max_idle_connections: int = 5
    max_open_connections: int = 10
    debug_sql: bool = False


class ARCConfig(BaseSettings):
    """ARC transaction broadcaster settings."""

    model_config = SettingsConfigDict(
        env_prefix="BULLETIN_ARC__",
        case_sensitive=False,
    )

    url: str = "https://arc.taal.com"
    token: str = ""
    deployment_id: str = ""
    wait_for: ArcWaitFor = ArcWaitFor.SEEN_ON_NETWORK
    timeout: float = 30.0


class WoCConfig(BaseSettings):
    """WhatsOnChain API settings."""

    model_config = SettingsConfigDict(
        env_prefix="BULLETIN_WOC__",
        case_sensitive=False,
    )

    url: str = "https://api.whatsonchain.com/v1/bsv"
    api_key: str = ""
    timeout: float = 30.0


class PolicyConfig(BaseSettings):
    """Bulletin fee and selection policy."""

    model_config = SettingsConfigDict(
        env_prefix="BULLETIN_POLICY__",
        case_sensitive=False,
    )

    dust_amount: int = Field(default=546, gt=0, description="Value of each bulletin output")
    fee_increment: int = Field(default=1000, gt=0, description="Fee per started kilobyte")
    min_confirmations: int = Field(default=1, ge=0)
    allow_free: bool = False


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------


def _load_yaml(path: str | Path) -> dict[str, Any]:
    """Load a YAML configuration file and return its contents as a dict.

    Returns an empty dict if the file doesn't exist or is empty.
    """
    p = Path(path)
    if not p.exists():
        return {}
    text = p.read_text(encoding="utf-8")
    data = yaml.safe_load(text)
    return data if isinstance(data, dict) else {}


class AppConfig(BaseSettings):
    """Top-level application configuration.

    Loads settings from environment variables (``BULLETIN_`` prefix),
    an optional YAML file, and built-in defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="BULLETIN_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    debug: bool = False
    config_path: str = ""
    network: Network = Network.MAINNET
    account: str = "default"
    wifs: list[str] = Field(default_factory=list)

    server: ServerConfig = Field(default_factory=ServerConfig)
    db: DatabaseConfig = Field(default_factory=DatabaseConfig)
    arc: ARCConfig = Field(default_factory=ARCConfig)
    woc: WoCConfig = Field(default_factory=WoCConfig)
    policy: PolicyConfig = Field(default_factory=PolicyConfig)

    @model_validator(mode="before")
    @classmethod
    def _merge_yaml(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Merge YAML config file contents under the env var overrides."""
        config_path = values.get("config_path", "")
        if not config_path:
            return values
        yaml_data = _load_yaml(config_path)
        for key, val in yaml_data.items():
            if key not in values or values[key] is None:
                values[key] = val
            elif isinstance(val, dict) and isinstance(values.get(key), dict):
                values[key] = {**val, **values[key]}
        return values

    @property
    def params(self) -> NetworkParams:
        return params_for(self.network)

    @classmethod
    def from_yaml(cls, path: str | Path) -> Self:
        """Construct ``AppConfig`` loading defaults from a YAML file.

        Environment variables still override YAML values.
        """
        return cls(config_path=str(path))
