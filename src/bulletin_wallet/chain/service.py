"""Combined ARC + WhatsOnChain chain service.

Composes ARC (transaction broadcasting) and WhatsOnChain (chain tip, UTXO
lookup) into a single service for the engine to consume.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from bulletin_wallet.btc.script import pay_to_address_script
from bulletin_wallet.btc.transaction import OutPoint
from bulletin_wallet.chain.arc import ARCClient
from bulletin_wallet.chain.woc import WoCClient
from bulletin_wallet.wallet.credits import Credit

if TYPE_CHECKING:
    from bulletin_wallet.config.settings import AppConfig
    from bulletin_wallet.store.txstore import TxStore
    from bulletin_wallet.wallet.keystore import Keystore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlockStamp:
    """A chain height and the hash of the block at that height."""

    height: int
    hash: str


class ChainService:
    """Unified chain service composing ARC + WhatsOnChain.

    Usage::

        chain = ChainService(config)
        await chain.connect()
        try:
            stamp = await chain.block_stamp()
            txid = await chain.broadcast(hex)
        finally:
            await chain.close()
    """

    def __init__(self, config: AppConfig) -> None:
        self._arc = ARCClient(config.arc)
        self._woc = WoCClient(config.woc, config.params)

    async def connect(self) -> None:
        """Connect both HTTP clients."""
        await self._arc.connect()
        await self._woc.connect()

    async def close(self) -> None:
        """Close both HTTP clients."""
        await self._arc.close()
        await self._woc.close()

    @property
    def is_connected(self) -> bool:
        return self._arc.is_connected and self._woc.is_connected

    @property
    def arc(self) -> ARCClient:
        return self._arc

    @property
    def woc(self) -> WoCClient:
        return self._woc

    # ------------------------------------------------------------------
    # Chain queries
    # ------------------------------------------------------------------

    async def block_stamp(self) -> BlockStamp:
        """The current chain tip.

        Raises:
            WoCError: If the tip cannot be fetched.
        """
        info = await self._woc.chain_info()
        return BlockStamp(height=info.blocks, hash=info.best_block_hash)

    async def broadcast(self, raw_tx: str) -> str:
        """Relay a signed transaction and return its id.

        Raises:
            ARCError: If ARC does not accept the transaction.
        """
        info = await self._arc.broadcast(raw_tx)
        return info.txid

    async def sync_credits(self, keystore: Keystore, store: TxStore) -> int:
        """Reconcile the credits of every owned address with the chain.

        New unspent outputs are imported, known ones take their reported
        height, and confirmed credits the chain no longer reports are
        marked spent.

        Returns:
            Number of credits not previously known to *store*.

        Raises:
            WoCError: If an address lookup fails.
        """
        imported = 0
        for address in keystore.addresses():
            script = pay_to_address_script(address)
            reported: set[OutPoint] = set()
            for utxo in await self._woc.get_utxos(address.encode()):
                outpoint = OutPoint(utxo.tx_hash, utxo.tx_pos)
                reported.add(outpoint)
                credit = Credit(
                    outpoint=outpoint,
                    amount=utxo.value,
                    pk_script=script,
                    block_height=utxo.height if utxo.height > 0 else -1,
                )
                if await store.add_credit(credit):
                    imported += 1
            await store.prune_credits(script, reported)
        logger.info("Imported %d new credit(s) for %d address(es)", imported, len(keystore))
        return imported

    async def healthcheck(self) -> dict[str, str]:
        return {
            "arc": "ok" if self._arc.is_connected else "not_connected",
            "woc": "ok" if self._woc.is_connected else "not_connected",
        }
