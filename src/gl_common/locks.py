"""Per-user ledger serialization.

Two layers, always acquired in sorted user-id order:
  1. In-process asyncio.Lock per user — keeps one worker from queueing many
     transactions on the same rows.
  2. pg_advisory_xact_lock(hashtext(user_id)) — serializes across workers and
     is released automatically at COMMIT/ROLLBACK.

Different users never share a lock. An in-process entry lives only while
someone holds or waits on it, so the registry does not grow with the number
of users a worker has served.
"""

import asyncio
from collections.abc import AsyncIterator, Iterable
from contextlib import AsyncExitStack, asynccontextmanager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings

_ADVISORY_LOCK_SQL = text("SELECT pg_advisory_xact_lock(hashtext(:user_id))")


class UserLockRegistry:
    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._holders: dict[str, int] = {}

    @property
    def active_users(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def _hold_one(self, user_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(user_id, asyncio.Lock())
        self._holders[user_id] = self._holders.get(user_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            # Counts waiters too, a cancelled waiter still releases its slot
            self._holders[user_id] -= 1
            if self._holders[user_id] == 0:
                del self._holders[user_id]
                del self._locks[user_id]

    def is_locked(self, user_id: str) -> bool:
        lock = self._locks.get(user_id)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, *user_ids: str) -> AsyncIterator[None]:
        async with AsyncExitStack() as stack:
            for user_id in sorted(set(user_ids)):
                await stack.enter_async_context(self._hold_one(user_id))
            yield


async def acquire_ledger_locks(db: AsyncSession, user_ids: Iterable[str]) -> None:
    """Take transaction-scoped advisory locks for every user, sorted.

    Must run inside the transaction that performs the mutation. A lock wait
    longer than LEDGER_LOCK_TIMEOUT_MS fails with SQLSTATE 55P03, which
    storage_guard() turns into ConcurrencyConflictError.
    """
    # SET LOCAL does not accept bind parameters
    timeout_ms = int(settings.LEDGER_LOCK_TIMEOUT_MS)
    await db.execute(text(f"SET LOCAL lock_timeout = '{timeout_ms}ms'"))
    for user_id in sorted(set(user_ids)):
        await db.execute(_ADVISORY_LOCK_SQL, {"user_id": user_id})


user_locks = UserLockRegistry()
