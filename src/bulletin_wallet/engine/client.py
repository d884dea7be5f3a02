"""WalletEngine — central engine client owning all services."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from bulletin_wallet.chain.service import ChainService
    from bulletin_wallet.config.settings import AppConfig
    from bulletin_wallet.engine.services.bulletin_service import BulletinService
    from bulletin_wallet.store.datastore import Datastore
    from bulletin_wallet.store.txstore import TxStore
    from bulletin_wallet.wallet.keystore import Keystore
    from bulletin_wallet.wallet.locking import AccountLocks

logger = logging.getLogger(__name__)

# Error messages
_ERR_NOT_INITIALIZED = "Engine not initialized. Call initialize() first."


class WalletEngine:
    """Central engine that owns the wallet's infrastructure and services.

    Provides lifecycle management and a service registry for the API layer.
    """

    def __init__(self, config: AppConfig) -> None:
        self._config = config
        self._initialized = False

        # Infrastructure components
        self._datastore: Datastore | None = None
        self._chain: ChainService | None = None
        self._keystore: Keystore | None = None
        self._tx_store: TxStore | None = None
        self._locks: AccountLocks | None = None

        # Services
        self._bulletin_service: BulletinService | None = None

    async def initialize(self) -> None:
        """Open the datastore, import keys and connect the chain clients.

        Raises:
            RuntimeError: If already initialized.
            ValueError: If a configured WIF is invalid for the network.
        """
        if self._initialized:
            msg = "Engine already initialized"
            raise RuntimeError(msg)

        # Import here to avoid circular deps
        from bulletin_wallet.chain.service import ChainService
        from bulletin_wallet.engine.services.bulletin_service import BulletinService
        from bulletin_wallet.store.datastore import Datastore
        from bulletin_wallet.store.models import Base
        from bulletin_wallet.store.txstore import TxStore
        from bulletin_wallet.wallet.keystore import Keystore
        from bulletin_wallet.wallet.locking import AccountLocks

        self._keystore = Keystore(self._config.params)
        for wif in self._config.wifs:
            self._keystore.import_wif(wif)

        self._datastore = Datastore(self._config.db)
        await self._datastore.open(base=Base)
        self._tx_store = TxStore(self._datastore)

        self._chain = ChainService(self._config)
        await self._chain.connect()

        self._locks = AccountLocks()
        self._bulletin_service = BulletinService(self)

        self._initialized = True
        logger.info(
            "Engine initialized on %s with %d key(s)", self._config.network, len(self._keystore)
        )

    async def close(self) -> None:
        """Gracefully shut down all services and connections.

        Can be called multiple times (idempotent).
        """
        if not self._initialized:
            return

        if self._chain is not None:
            await self._chain.close()
            self._chain = None

        if self._datastore is not None:
            await self._datastore.close()
            self._datastore = None

        self._tx_store = None
        self._bulletin_service = None
        self._initialized = False

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def config(self) -> AppConfig:
        return self._config

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def datastore(self) -> Datastore:
        if self._datastore is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._datastore

    @property
    def chain(self) -> ChainService:
        if self._chain is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._chain

    @property
    def keystore(self) -> Keystore:
        if self._keystore is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._keystore

    @property
    def tx_store(self) -> TxStore:
        if self._tx_store is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._tx_store

    @property
    def locks(self) -> AccountLocks:
        if self._locks is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._locks

    @property
    def bulletin_service(self) -> BulletinService:
        if self._bulletin_service is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._bulletin_service

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def sync_credits(self) -> int:
        """Reconcile the keystore's credits with the chain.

        Holds the account lock so a sync never interleaves with a send.
        """
        async with self.locks.hold(self._config.account):
            return await self.chain.sync_credits(self.keystore, self.tx_store)

    async def health_check(self) -> dict[str, str]:
        status: dict[str, str] = {
            "engine": "ok" if self._initialized else "not_initialized",
            "datastore": "ok" if self._datastore is not None and self._datastore.is_open else "closed",
        }
        if self._chain is not None:
            status.update(await self._chain.healthcheck())
        return status
