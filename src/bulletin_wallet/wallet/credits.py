"""Credits — spendable outputs and the pool a build draws inputs from."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from bulletin_wallet.btc.address import Address
from bulletin_wallet.btc.network import NetworkParams
from bulletin_wallet.btc.script import ScriptClass, classify_script, extract_addresses
from bulletin_wallet.btc.transaction import OutPoint
from bulletin_wallet.errors.wallet_errors import NoEligibleCreditError

COINBASE_MATURITY = 100


@dataclass(frozen=True)
class Credit:
    """A previously received, currently unspent output owned by the wallet.

    Attributes:
        outpoint: Output reference.
        amount: Value in minor units.
        pk_script: Locking script of the output.
        block_height: Height the output was mined at, -1 if unconfirmed.
        is_coinbase: Whether the output comes from a coinbase transaction.
    """

    outpoint: OutPoint
    amount: int
    pk_script: bytes
    block_height: int = -1
    is_coinbase: bool = False

    @property
    def script_class(self) -> ScriptClass:
        return classify_script(self.pk_script)

    def addresses(self, params: NetworkParams) -> list[Address]:
        return extract_addresses(self.pk_script, params)

    def confirmations(self, height: int) -> int:
        """Confirmation depth relative to chain height *height*."""
        if self.block_height < 0 or height < self.block_height:
            return 0
        return height - self.block_height + 1

    def is_eligible(self, min_confirmations: int, height: int) -> bool:
        confs = self.confirmations(height)
        if self.is_coinbase and confs < COINBASE_MATURITY:
            return False
        return confs >= min_confirmations


class CreditSet:
    """An ordered pool of credits.

    ``remove`` and ``sorted_by_amount`` return new sets; ``pop_largest``
    consumes the head of a sorted set in place.
    """

    def __init__(self, credits: Iterable[Credit] = ()) -> None:
        self._credits = list(credits)

    def __len__(self) -> int:
        return len(self._credits)

    def __iter__(self) -> Iterator[Credit]:
        return iter(self._credits)

    def __getitem__(self, index: int) -> Credit:
        return self._credits[index]

    def __repr__(self) -> str:
        return f"<CreditSet n={len(self._credits)} total={self.total()}>"

    def total(self) -> int:
        return sum(c.amount for c in self._credits)

    def select(self, min_confirmations: int, height: int) -> CreditSet:
        """Credits with at least *min_confirmations* at *height*."""
        return CreditSet(c for c in self._credits if c.is_eligible(min_confirmations, height))

    def remove(self, credit: Credit) -> CreditSet:
        """A new set without the credit sharing *credit*'s outpoint.

        Raises:
            KeyError: If no credit has that outpoint.
        """
        for i, candidate in enumerate(self._credits):
            if candidate.outpoint == credit.outpoint:
                return CreditSet(self._credits[:i] + self._credits[i + 1 :])
        raise KeyError(str(credit.outpoint))

    def sorted_by_amount(self) -> CreditSet:
        """Largest amount first; equal amounts keep their relative order."""
        return CreditSet(sorted(self._credits, key=lambda c: c.amount, reverse=True))

    def pop_largest(self) -> Credit:
        """Remove and return the head of a set built by :meth:`sorted_by_amount`."""
        return self._credits.pop(0)


def find_authoring_credit(credits: CreditSet, target: Address, params: NetworkParams) -> int:
    """Index of the P2PKH credit paying *target*.

    Only pay-to-pubkey-hash credits are considered. When several credits
    pay the address the largest one is chosen, the earliest on ties.

    Raises:
        NoEligibleCreditError: If no credit pays *target*.
    """
    best: int | None = None
    for i, credit in enumerate(credits):
        if credit.script_class != ScriptClass.P2PKH:
            continue
        if credit.addresses(params)[0] != target:
            continue
        if best is None or credit.amount > credits[best].amount:
            best = i
    if best is None:
        raise NoEligibleCreditError(target.encode())
    return best
