"""TxStore — the wallet's credits and sent transactions.

Credits are read per build; a sent transaction is recorded in a staged
database transaction that is committed only once the broadcast succeeded.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import AsyncIterator, Callable, Sequence
from typing import TYPE_CHECKING

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from bulletin_wallet.btc.transaction import MsgTx, OutPoint
from bulletin_wallet.errors.wallet_errors import StoreInsertError
from bulletin_wallet.store.models import CreditRecord, TransactionRecord
from bulletin_wallet.wallet.credits import Credit, CreditSet

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from bulletin_wallet.bulletin.codec import Bulletin
    from bulletin_wallet.chain.service import BlockStamp
    from bulletin_wallet.store.datastore import Datastore

logger = logging.getLogger(__name__)

# spending_tx_id of credits spent outside this wallet
EXTERNAL_SPEND = "external"


def _to_credit(row: CreditRecord) -> Credit:
    return Credit(
        outpoint=OutPoint(row.transaction_id, row.output_index),
        amount=row.satoshis,
        pk_script=bytes.fromhex(row.script_pub_key),
        block_height=row.block_height,
        is_coinbase=row.is_coinbase,
    )


class TxStore:
    """Persistent credit and transaction bookkeeping for one account."""

    def __init__(self, datastore: Datastore) -> None:
        self._datastore = datastore
        self._balance: int | None = None

    # ------------------------------------------------------------------
    # Credits
    # ------------------------------------------------------------------

    async def add_credit(self, credit: Credit) -> bool:
        """Track *credit*; returns False if its outpoint is already known.

        A known unspent credit takes the block height of *credit*, so a
        change output recorded at send time confirms once the chain
        reports it mined.
        """
        credit_id = str(credit.outpoint)
        async with self._datastore.session() as session:
            row = await session.get(CreditRecord, credit_id)
            if row is not None:
                if not row.is_spent and row.block_height != credit.block_height:
                    logger.debug(
                        "Credit %s moved from height %d to %d",
                        credit_id,
                        row.block_height,
                        credit.block_height,
                    )
                    row.block_height = credit.block_height
                    await session.commit()
                return False
            session.add(
                CreditRecord(
                    id=credit_id,
                    transaction_id=credit.outpoint.txid,
                    output_index=credit.outpoint.index,
                    satoshis=credit.amount,
                    script_pub_key=credit.pk_script.hex(),
                    block_height=credit.block_height,
                    is_coinbase=credit.is_coinbase,
                )
            )
            await session.commit()
        self.mark_dirty()
        return True

    async def prune_credits(self, pk_script: bytes, reported: set[OutPoint]) -> int:
        """Mark confirmed credits locked by *pk_script* that are not in *reported* as spent.

        *reported* is the chain's current unspent set for the script. Only
        confirmed rows are pruned; change recorded at send time stays until
        the chain has seen it.

        Returns:
            Number of credits marked spent.
        """
        stmt = select(CreditRecord).where(
            CreditRecord.script_pub_key == pk_script.hex(),
            CreditRecord.spending_tx_id == "",
            CreditRecord.block_height >= 0,
        )
        pruned = 0
        async with self._datastore.session() as session:
            result = await session.execute(stmt)
            for row in result.scalars().all():
                if OutPoint(row.transaction_id, row.output_index) in reported:
                    continue
                row.spending_tx_id = EXTERNAL_SPEND
                pruned += 1
            if pruned:
                await session.commit()
        if pruned:
            logger.info("Marked %d credit(s) spent outside the wallet", pruned)
            self.mark_dirty()
        return pruned

    async def unspent_credits(self) -> CreditSet:
        """All unspent credits, oldest first."""
        stmt = (
            select(CreditRecord)
            .where(CreditRecord.spending_tx_id == "")
            .order_by(CreditRecord.created_at, CreditRecord.id)
        )
        async with self._datastore.session() as session:
            result = await session.execute(stmt)
            return CreditSet(_to_credit(row) for row in result.scalars().all())

    async def eligible_credits(self, min_confirmations: int, stamp: BlockStamp) -> CreditSet:
        """Unspent credits with enough confirmations at *stamp*."""
        credits = await self.unspent_credits()
        return credits.select(min_confirmations, stamp.height)

    # ------------------------------------------------------------------
    # Balance
    # ------------------------------------------------------------------

    def mark_dirty(self) -> None:
        """Force the next :meth:`balance` call to recompute."""
        self._balance = None

    @property
    def is_dirty(self) -> bool:
        return self._balance is None

    async def balance(self) -> int:
        """Sum of unspent credits, cached until the store changes."""
        if self._balance is None:
            credits = await self.unspent_credits()
            self._balance = credits.total()
        return self._balance

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    async def get_transaction(self, txid: str) -> TransactionRecord | None:
        async with self._datastore.session() as session:
            return await session.get(TransactionRecord, txid)

    @contextlib.asynccontextmanager
    async def staged_record(
        self,
        tx: MsgTx,
        inputs: Sequence[Credit],
        *,
        fee: int,
        total_burn: int,
        bulletin: Bulletin | None = None,
        is_mine: Callable[[bytes], bool] | None = None,
    ) -> AsyncIterator[str]:
        """Record *tx* as sent, pending the outcome of the ``async with`` body.

        The transaction row, the debits of *inputs* and credits for outputs
        accepted by *is_mine* are written before the body runs, so store
        failures abort before anything is relayed. The body (the
        broadcast) decides the outcome: the record is committed if it
        completes and rolled back if it raises.

        Args:
            tx: Signed transaction.
            inputs: Credits spent by *tx*.
            fee: Fee paid.
            total_burn: Value of the bulletin outputs.
            bulletin: Bulletin carried by *tx*, for the record.
            is_mine: Predicate over output scripts selecting new credits.

        Yields:
            The transaction id.

        Raises:
            StoreInsertError: If staging or committing the record fails.
        """
        txid = tx.txid()
        session = self._datastore.session()
        try:
            try:
                await self._stage(session, txid, tx, inputs, fee, total_burn, bulletin, is_mine)
            except SQLAlchemyError as exc:
                logger.exception("Error adding sent tx history for %s", txid)
                raise StoreInsertError() from exc

            try:
                yield txid
            except BaseException:
                await session.rollback()
                raise

            try:
                await session.commit()
            except SQLAlchemyError as exc:
                logger.exception("Transaction %s was relayed but its record failed to commit", txid)
                raise StoreInsertError() from exc
            self.mark_dirty()
        finally:
            await session.close()

    async def _stage(
        self,
        session: AsyncSession,
        txid: str,
        tx: MsgTx,
        inputs: Sequence[Credit],
        fee: int,
        total_burn: int,
        bulletin: Bulletin | None,
        is_mine: Callable[[bytes], bool] | None,
    ) -> None:
        session.add(
            TransactionRecord(
                id=txid,
                hex_body=tx.to_hex(),
                fee=fee,
                total_burn=total_burn,
                num_inputs=len(tx.inputs),
                num_outputs=len(tx.outputs),
                author_address=bulletin.author if bulletin else "",
                board=bulletin.board if bulletin else "",
            )
        )

        ids = [str(c.outpoint) for c in inputs]
        result = await session.execute(
            update(CreditRecord)
            .where(CreditRecord.id.in_(ids), CreditRecord.spending_tx_id == "")
            .values(spending_tx_id=txid)
        )
        if result.rowcount != len(ids):
            logger.error(
                "Error adding sent tx history for %s: %d of %d inputs are not unspent credits",
                txid,
                len(ids) - result.rowcount,
                len(ids),
            )
            raise StoreInsertError()

        if is_mine is not None:
            for index, txout in enumerate(tx.outputs):
                if not is_mine(txout.script_pubkey):
                    continue
                session.add(
                    CreditRecord(
                        id=f"{txid}:{index}",
                        transaction_id=txid,
                        output_index=index,
                        satoshis=txout.value,
                        script_pub_key=txout.script_pubkey.hex(),
                        block_height=-1,
                    )
                )

        await session.flush()
        logger.debug("Staged record of %s spending %d credits", txid, len(ids))
