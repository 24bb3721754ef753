"""Per-owner consistency boundary for structural category mutations."""

from __future__ import annotations

import asyncio
import weakref
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from linksaver.models import User


class OwnerLocks:
    """Hand out one ``asyncio.Lock`` per owner id.

    Locks live in a weak-value map: an entry disappears once no coroutine
    holds or waits on it, so the registry never grows with the user count.
    """

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[int, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def get(self, owner_id: int) -> asyncio.Lock:
        lock = self._locks.get(owner_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[owner_id] = lock
        return lock

    def __len__(self) -> int:
        return len(self._locks)


owner_locks = OwnerLocks()


@asynccontextmanager
async def owner_tree_boundary(db: AsyncSession, owner_id: int) -> AsyncIterator[None]:
    """Serialize read-validate-write sequences on one owner's category tree.

    Holds the in-process owner lock and row-locks the owner's ``users`` row
    (``SELECT ... FOR UPDATE``; SQLite serializes writers on its own). The
    body must commit before leaving; anything raised rolls back.
    """

    lock = owner_locks.get(owner_id)
    async with lock:
        try:
            await db.execute(
                select(User.id).where(User.id == owner_id).with_for_update()
            )
            yield
        except BaseException:
            await db.rollback()
            raise
