"""Tests for Credit, CreditSet and authoring-credit selection."""

from __future__ import annotations

import pytest

from bulletin_wallet.btc.address import address_from_pubkey
from bulletin_wallet.btc.network import MAINNET_PARAMS
from bulletin_wallet.btc.script import OpCode, ScriptClass, p2sh_lock_script, push_data
from bulletin_wallet.btc.transaction import OutPoint
from bulletin_wallet.errors.wallet_errors import NoEligibleCreditError
from bulletin_wallet.wallet.credits import (
    COINBASE_MATURITY,
    Credit,
    CreditSet,
    find_authoring_credit,
)

# ---------------------------------------------------------------------------
# Credit
# ---------------------------------------------------------------------------


class TestCredit:
    def test_confirmations(self, make_credit):
        credit = make_credit(1, block_height=100)
        assert credit.confirmations(100) == 1
        assert credit.confirmations(105) == 6
        assert credit.confirmations(99) == 0

    def test_unconfirmed(self, make_credit):
        credit = make_credit(1, block_height=-1)
        assert credit.confirmations(500) == 0
        assert not credit.is_eligible(1, 500)
        assert credit.is_eligible(0, 500)

    def test_coinbase_maturity(self, make_credit):
        credit = Credit(
            outpoint=OutPoint("cc" * 32, 0),
            amount=5000,
            pk_script=make_credit(1).pk_script,
            block_height=10,
            is_coinbase=True,
        )
        assert not credit.is_eligible(1, 10 + COINBASE_MATURITY - 2)
        assert credit.is_eligible(1, 10 + COINBASE_MATURITY - 1)

    def test_script_class_and_address(self, make_credit, author):
        credit = make_credit(1)
        assert credit.script_class == ScriptClass.P2PKH
        assert credit.addresses(MAINNET_PARAMS) == [author]


# ---------------------------------------------------------------------------
# CreditSet
# ---------------------------------------------------------------------------


class TestCreditSet:
    def test_select_by_depth(self, make_credit):
        credits = CreditSet(
            [
                make_credit(1, n=0, block_height=100),
                make_credit(2, n=1, block_height=98),
                make_credit(3, n=2, block_height=-1),
            ]
        )
        selected = credits.select(3, 100)
        assert [c.amount for c in selected] == [2]

    def test_remove_preserves_order(self, make_credit):
        a, b, c = make_credit(1, n=0), make_credit(2, n=1), make_credit(3, n=2)
        credits = CreditSet([a, b, c])
        remaining = credits.remove(b)
        assert list(remaining) == [a, c]
        assert len(credits) == 3

    def test_remove_by_outpoint(self, make_credit):
        a = make_credit(1, n=0)
        same_outpoint = Credit(a.outpoint, 999, a.pk_script)
        assert len(CreditSet([a]).remove(same_outpoint)) == 0

    def test_remove_missing(self, make_credit):
        with pytest.raises(KeyError):
            CreditSet([make_credit(1, n=0)]).remove(make_credit(1, n=1))

    def test_sorted_is_stable_descending(self, make_credit):
        credits = CreditSet(
            [
                make_credit(5, n=0),
                make_credit(9, n=1),
                make_credit(5, n=2),
                make_credit(7, n=3),
            ]
        )
        ordered = credits.sorted_by_amount()
        assert [(c.amount, c.outpoint.index) for c in ordered] == [(9, 1), (7, 3), (5, 0), (5, 2)]

    def test_pop_largest(self, make_credit):
        ordered = CreditSet([make_credit(1, n=0), make_credit(3, n=1)]).sorted_by_amount()
        assert ordered.pop_largest().amount == 3
        assert ordered.pop_largest().amount == 1
        assert not ordered

    def test_total(self, make_credit):
        assert CreditSet([make_credit(4, n=0), make_credit(6, n=1)]).total() == 10


# ---------------------------------------------------------------------------
# Authoring credit
# ---------------------------------------------------------------------------


class TestFindAuthoringCredit:
    def test_finds_match(self, make_credit, other_key, author):
        credits = CreditSet([make_credit(10, key=other_key, n=0), make_credit(20, n=1)])
        assert find_authoring_credit(credits, author, MAINNET_PARAMS) == 1

    def test_no_match(self, make_credit, other_key, author):
        credits = CreditSet([make_credit(10, key=other_key)])
        with pytest.raises(NoEligibleCreditError) as exc_info:
            find_authoring_credit(credits, author, MAINNET_PARAMS)
        assert exc_info.value.address == author.encode()

    def test_empty(self, author):
        with pytest.raises(NoEligibleCreditError):
            find_authoring_credit(CreditSet(), author, MAINNET_PARAMS)

    def test_largest_duplicate_wins(self, make_credit, author):
        credits = CreditSet([make_credit(10, n=0), make_credit(30, n=1), make_credit(20, n=2)])
        assert find_authoring_credit(credits, author, MAINNET_PARAMS) == 1

    def test_tie_goes_to_earliest(self, make_credit, author):
        credits = CreditSet([make_credit(30, n=0), make_credit(30, n=1)])
        assert find_authoring_credit(credits, author, MAINNET_PARAMS) == 0

    def test_p2pk_at_same_key_ignored(self, author_key, author):
        p2pk = Credit(
            OutPoint("dd" * 32, 0),
            50_000,
            push_data(author_key.public_key()) + bytes([OpCode.OP_CHECKSIG]),
        )
        assert address_from_pubkey(author_key.public_key(), MAINNET_PARAMS) == author
        with pytest.raises(NoEligibleCreditError):
            find_authoring_credit(CreditSet([p2pk]), author, MAINNET_PARAMS)

    def test_p2sh_with_same_hash_ignored(self, author):
        p2sh = Credit(OutPoint("ee" * 32, 0), 50_000, p2sh_lock_script(author.hash160))
        with pytest.raises(NoEligibleCreditError):
            find_authoring_credit(CreditSet([p2sh]), author, MAINNET_PARAMS)
