"""
Per-sprint serialization of order-changing mutations.

Every read-then-write of a column's ordering runs while holding the lock of
each sprint it touches, so mutations of one sprint are applied strictly in
submission order within this process. transaction() also commits before the
locks are released, so a queued mutation never plans on uncommitted order.
Locks are created on demand and dropped once nobody holds or waits for them.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Hashable
from contextlib import AsyncExitStack, asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

# Key guarding the global ordering of sprints themselves.
SPRINT_ORDER_KEY = "sprints"


class SprintLockRegistry:

    def __init__(self) -> None:
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._users: dict[Hashable, int] = {}

    def _checkout(self, key: Hashable) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        self._users[key] = self._users.get(key, 0) + 1
        return lock

    def _checkin(self, key: Hashable) -> None:
        remaining = self._users.get(key, 0) - 1
        if remaining <= 0:
            self._users.pop(key, None)
            self._locks.pop(key, None)
        else:
            self._users[key] = remaining

    @asynccontextmanager
    async def _hold_one(self, key: Hashable) -> AsyncIterator[None]:
        lock = self._checkout(key)
        try:
            async with lock:
                yield
        finally:
            self._checkin(key)

    @asynccontextmanager
    async def hold(self, *keys: Hashable) -> AsyncIterator[None]:
        """
        Acquire the locks of all given keys.
        Keys are de-duplicated and taken in a fixed order so two callers
        locking the same pair of sprints can never deadlock.
        """
        ordered = sorted({key for key in keys if key is not None}, key=str)
        async with AsyncExitStack() as stack:
            for key in ordered:
                await stack.enter_async_context(self._hold_one(key))
            logger.debug("Holding sprint locks: %s", ordered)
            yield

    @asynccontextmanager
    async def transaction(self, db: AsyncSession, *keys: Hashable) -> AsyncIterator[None]:
        """
        Like hold(), but the session's writes are committed before the locks
        are released, so the next holder reads them. On error the session is
        rolled back instead.
        """
        async with self.hold(*keys):
            try:
                yield
            except Exception:
                await db.rollback()
                raise
            await db.commit()

    def is_locked(self, key: Hashable) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    @property
    def active_keys(self) -> int:
        return len(self._locks)


# Singleton instance shared across the application
sprint_locks = SprintLockRegistry()
