"""Per-account mutual exclusion for balance read-modify-write."""

from __future__ import annotations

import asyncio
from collections import defaultdict
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class AccountLocks:
    """One asyncio.Lock per account id, created on first use.

    Operations on one account are serialised; different accounts never
    contend. Never await the price oracle while holding a lock.
    """

    def __init__(self) -> None:
        self._locks: dict[int, asyncio.Lock] = defaultdict(asyncio.Lock)

    @asynccontextmanager
    async def hold(self, account_id: int) -> AsyncIterator[None]:
        lock = self._locks[account_id]
        async with lock:
            yield

    def is_held(self, account_id: int) -> bool:
        lock = self._locks.get(account_id)
        return lock is not None and lock.locked()

    def discard(self, account_id: int) -> None:
        """Forget the lock of a removed account (no-op while held)."""
        lock = self._locks.get(account_id)
        if lock is not None and not lock.locked():
            del self._locks[account_id]
