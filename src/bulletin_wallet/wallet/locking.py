"""Per-account locks serializing builds that spend the same credits."""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterator


class AccountLocks:
    """A registry of one :class:`asyncio.Lock` per account name."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}

    def lock_for(self, account: str) -> asyncio.Lock:
        lock = self._locks.get(account)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[account] = lock
        return lock

    def is_held(self, account: str) -> bool:
        lock = self._locks.get(account)
        return lock is not None and lock.locked()

    @contextlib.asynccontextmanager
    async def hold(self, account: str) -> AsyncIterator[None]:
        """Hold *account*'s lock for the body of an ``async with`` block.

        The lock is released on every exit, including exceptions and
        cancellation.
        """
        lock = self.lock_for(account)
        async with lock:
            yield
