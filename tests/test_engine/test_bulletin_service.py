"""Tests for BulletinService — the full send path against a fake chain."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from bulletin_wallet.btc.address import address_from_pubkey
from bulletin_wallet.btc.keys import PrivateKey
from bulletin_wallet.btc.transaction import MsgTx
from bulletin_wallet.bulletin.codec import decode_bulletin
from bulletin_wallet.chain.service import BlockStamp, ChainService
from bulletin_wallet.chain.woc import WoCUtxo
from bulletin_wallet.errors.chain_errors import ARCError, WoCError
from bulletin_wallet.errors.wallet_errors import (
    AddressDecodeError,
    AddressNotOwnedError,
    BulletinEncodeError,
    InsufficientFundsError,
    NoEligibleCreditError,
)

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


def _relay(raw_tx: str) -> str:
    return MsgTx.from_hex(raw_tx).txid()


@pytest.fixture
async def chain(engine):
    """Swap the engine's chain service for a mock at height 200."""
    await engine.chain.close()
    fake = AsyncMock()
    fake.block_stamp.return_value = BlockStamp(height=200, hash="00" * 32)
    fake.broadcast.side_effect = _relay
    engine._chain = fake
    return fake


@pytest.fixture
def service(engine, chain):
    return engine.bulletin_service


# ---------------------------------------------------------------------------
# Success
# ---------------------------------------------------------------------------


class TestSendBulletin:
    async def test_sends_and_records(self, engine, service, chain, make_credit, author):
        credit = make_credit(100_000)
        await engine.tx_store.add_credit(credit)

        txid = await service.send_bulletin(author.encode(), "news", "hello")

        chain.broadcast.assert_awaited_once()
        raw = chain.broadcast.await_args.args[0]
        tx = MsgTx.from_hex(raw)
        assert tx.txid() == txid
        assert tx.inputs[0].outpoint == credit.outpoint
        assert decode_bulletin(tx.outputs) == ("news", "hello")

        record = await engine.tx_store.get_transaction(txid)
        assert record is not None
        assert record.hex_body == raw
        assert record.fee == 10
        assert record.total_burn == 1000
        assert record.author_address == author.encode()

    async def test_change_becomes_credit(self, engine, service, make_credit, author):
        await engine.tx_store.add_credit(make_credit(100_000))

        txid = await service.send_bulletin(author.encode(), "", "hi")

        unspent = await engine.tx_store.unspent_credits()
        assert len(unspent) == 1
        assert unspent[0].outpoint.txid == txid
        assert unspent[0].amount == 98_990
        assert await engine.tx_store.balance() == 98_990

    async def test_second_send_spends_change(self, engine, service, make_credit, author):
        await engine.tx_store.add_credit(make_credit(100_000))
        await service.send_bulletin(author.encode(), "", "first")

        # Unconfirmed change is not eligible at one confirmation.
        with pytest.raises(NoEligibleCreditError):
            await service.send_bulletin(author.encode(), "", "second")

        engine.config.policy.min_confirmations = 0
        txid = await service.send_bulletin(author.encode(), "", "second")
        assert (await engine.tx_store.unspent_credits())[0].outpoint.txid == txid

    async def test_send_again_after_change_confirms(self, engine, service, chain, make_credit, author):
        await engine.tx_store.add_credit(make_credit(100_000))
        await service.send_bulletin(author.encode(), "", "first")
        [change] = await engine.tx_store.unspent_credits()

        synced = ChainService(engine.config)

        async def get_utxos(address: str) -> list[WoCUtxo]:
            if address == author.encode():
                return [WoCUtxo(change.outpoint.txid, change.outpoint.index, change.amount, 201)]
            return []

        synced._woc.get_utxos = AsyncMock(side_effect=get_utxos)
        chain.sync_credits.side_effect = synced.sync_credits
        assert await engine.sync_credits() == 0
        chain.block_stamp.return_value = BlockStamp(height=300, hash="11" * 32)

        txid = await service.send_bulletin(author.encode(), "", "second")

        tx = MsgTx.from_hex(chain.broadcast.await_args.args[0])
        assert tx.txid() == txid
        assert [txin.outpoint for txin in tx.inputs] == [change.outpoint]
        assert [c.amount for c in await engine.tx_store.unspent_credits()] == [change.amount - 1010]

    async def test_lock_released(self, engine, service, make_credit, author):
        await engine.tx_store.add_credit(make_credit(100_000))
        await service.send_bulletin(author.encode(), "", "hi")
        assert not engine.locks.is_held(engine.config.account)

    async def test_concurrent_sends_spend_disjoint_credits(
        self, engine, service, chain, make_credit, author
    ):
        await engine.tx_store.add_credit(make_credit(100_000, n=0))
        await engine.tx_store.add_credit(make_credit(50_000, n=1))

        async def relay(raw_tx: str) -> str:
            await asyncio.sleep(0)
            return _relay(raw_tx)

        chain.broadcast.side_effect = relay

        first, second = await asyncio.gather(
            service.send_bulletin(author.encode(), "", "one"),
            service.send_bulletin(author.encode(), "", "two"),
        )

        assert first != second
        spent = [
            {txin.outpoint for txin in MsgTx.from_hex(call.args[0]).inputs}
            for call in chain.broadcast.await_args_list
        ]
        assert len(spent) == 2
        assert spent[0].isdisjoint(spent[1])
        assert sorted(c.amount for c in await engine.tx_store.unspent_credits()) == [48_990, 98_990]
        assert not engine.locks.is_held(engine.config.account)


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


class TestSendBulletinFailures:
    async def test_bad_address(self, service):
        with pytest.raises(AddressDecodeError):
            await service.send_bulletin("not-an-address", "", "hi")

    async def test_address_not_owned(self, service, chain, params):
        stranger = address_from_pubkey(PrivateKey((99).to_bytes(32, "big")).public_key(), params)
        with pytest.raises(AddressNotOwnedError) as exc_info:
            await service.send_bulletin(stranger.encode(), "", "hi")
        assert exc_info.value.details() == {"address": stranger.encode()}
        chain.block_stamp.assert_not_awaited()

    async def test_no_credit(self, service, chain, author):
        with pytest.raises(NoEligibleCreditError):
            await service.send_bulletin(author.encode(), "", "hi")
        chain.broadcast.assert_not_awaited()

    async def test_empty_message(self, engine, service, make_credit, author):
        await engine.tx_store.add_credit(make_credit(100_000))
        with pytest.raises(BulletinEncodeError, match="empty"):
            await service.send_bulletin(author.encode(), "", "")

    async def test_insufficient_funds(self, engine, service, make_credit, author):
        await engine.tx_store.add_credit(make_credit(500))
        with pytest.raises(InsufficientFundsError) as exc_info:
            await service.send_bulletin(author.encode(), "", "hi")
        assert exc_info.value.shortfall == 500

    async def test_chain_tip_failure(self, service, chain, author):
        chain.block_stamp.side_effect = WoCError("tip unavailable")
        with pytest.raises(WoCError):
            await service.send_bulletin(author.encode(), "", "hi")

    async def test_broadcast_failure_rolls_back(self, engine, service, chain, make_credit, author):
        credit = make_credit(100_000)
        await engine.tx_store.add_credit(credit)
        chain.broadcast.side_effect = ARCError("Fee too low", arc_status=465)

        with pytest.raises(ARCError):
            await service.send_bulletin(author.encode(), "", "hi")

        unspent = await engine.tx_store.unspent_credits()
        assert [c.outpoint for c in unspent] == [credit.outpoint]
        raw = chain.broadcast.await_args.args[0]
        assert await engine.tx_store.get_transaction(MsgTx.from_hex(raw).txid()) is None
        assert not engine.locks.is_held(engine.config.account)
