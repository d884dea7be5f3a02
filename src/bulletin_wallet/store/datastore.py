"""Database connection for the wallet's credits and sent transactions.

The default DSN is a local SQLite file through aiosqlite; a
``postgresql+asyncpg`` DSN works when the ``postgres`` extra is installed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

if TYPE_CHECKING:
    from sqlalchemy.orm import DeclarativeBase

    from bulletin_wallet.config.settings import DatabaseConfig

_ERR_CLOSED = "wallet database is closed; open() it before use"


def create_engine(config: DatabaseConfig) -> AsyncEngine:
    """Build the engine for ``config.dsn``; pooling applies to server databases only."""
    kwargs: dict = {
        "echo": config.debug_sql,
    }

    # aiosqlite rejects QueuePool sizing
    if "sqlite" not in config.dsn:
        kwargs["pool_size"] = config.max_idle_connections
        kwargs["max_overflow"] = config.max_open_connections - config.max_idle_connections
        kwargs["pool_pre_ping"] = True

    return create_async_engine(config.dsn, **kwargs)


class Datastore:
    """Owns the engine that TxStore reads credits and writes records through.

    The engine opens with :class:`WalletEngine` and is disposed when the
    engine shuts down. Sessions are cheap; TxStore takes a fresh one for
    each query and for each staged send.
    """

    def __init__(self, config: DatabaseConfig) -> None:
        self._config = config
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError(_ERR_CLOSED)
        return self._engine

    async def open(self, *, base: type[DeclarativeBase] | None = None) -> None:
        """Connect, creating the credits and transactions tables from *base* if given."""
        self._engine = create_engine(self._config)
        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        if base is not None:
            async with self._engine.begin() as conn:
                await conn.run_sync(base.metadata.create_all)

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None

    def session(self) -> AsyncSession:
        """A new session; committed rows stay readable after commit."""
        if self._session_factory is None:
            raise RuntimeError(_ERR_CLOSED)
        return self._session_factory()

    @property
    def is_open(self) -> bool:
        return self._engine is not None
