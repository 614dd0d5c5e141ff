"""BatchApplicationService — Batch Store entry points for other engines.

Purchases, BNSL locks and trade settlements create batches here; BNSL and
trade engines move a single batch between buckets with `retag`. Every
mutation runs under the owner's ledger lock and commits before the balance
cache is invalidated.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.gl_balance.infrastructure.cache import BalanceCache
from src.gl_batch.application.schemas import BatchItem, BatchListResponse
from src.gl_batch.domain.repository import BatchRepositoryProtocol
from src.gl_batch.infrastructure.persistence import BatchRepository
from src.gl_common.database import storage_guard
from src.gl_common.enums import BalanceBucket, BatchSourceType
from src.gl_common.errors import (
    BatchNotActiveError,
    BatchNotFoundError,
    InvalidBucketTransitionError,
)
from src.gl_common.grams import parse_grams, parse_price
from src.gl_common.locks import acquire_ledger_locks, user_locks

logger = logging.getLogger(__name__)


class BatchApplicationService:
    def __init__(
        self,
        repo: BatchRepositoryProtocol | None = None,
        cache: BalanceCache | None = None,
    ) -> None:
        self._repo: BatchRepositoryProtocol = repo or BatchRepository()
        self._cache = cache or BalanceCache()

    async def create_batch(
        self,
        db: AsyncSession,
        owner_id: str,
        grams: object,
        locked_price: object,
        bucket: BalanceBucket = BalanceBucket.AVAILABLE,
        source_type: BatchSourceType = BatchSourceType.PURCHASE,
        source_transaction_id: str | None = None,
        notes: str | None = None,
    ) -> BatchItem:
        amount = parse_grams(grams)
        price = parse_price(locked_price)
        async with user_locks.hold(owner_id):
            try:
                async with storage_guard():
                    await acquire_ledger_locks(db, [owner_id])
                    batch = await self._repo.create_batch(
                        db,
                        owner_id,
                        amount,
                        price,
                        bucket,
                        source_transaction_id,
                        source_type,
                        notes=notes,
                    )
                    await db.commit()
            except Exception:
                await db.rollback()
                raise
        await self._cache.invalidate(owner_id)
        logger.info(
            "Batch created: id=%s owner=%s grams=%s price=%s bucket=%s source=%s",
            batch.id, owner_id, amount, price, bucket.value, source_type.value,
        )
        return BatchItem.from_batch(batch)

    async def list_batches(
        self,
        db: AsyncSession,
        user_id: str,
        bucket: BalanceBucket | None = None,
        include_closed: bool = False,
    ) -> BatchListResponse:
        """Batches oldest first. Closed (Consumed/Transferred) only on request."""
        async with storage_guard():
            if include_closed:
                batches = await self._repo.list_batches(db, user_id)
                if bucket is not None:
                    batches = [b for b in batches if b.balance_bucket == bucket.value]
            else:
                batches = await self._repo.list_active_batches(db, user_id, bucket)
        return BatchListResponse.from_batches(user_id, bucket, batches)

    async def retag(
        self, db: AsyncSession, batch_id: str, new_bucket: BalanceBucket
    ) -> BatchItem:
        async with storage_guard():
            current = await self._repo.get_batch(db, batch_id)
        if current is None:
            raise BatchNotFoundError(batch_id)
        owner_id = current.owner_id
        async with user_locks.hold(owner_id):
            try:
                async with storage_guard():
                    await acquire_ledger_locks(db, [owner_id])
                    locked = await self._repo.get_batch(db, batch_id)
                    if locked is None:
                        raise BatchNotFoundError(batch_id)
                    if not locked.is_active:
                        raise BatchNotActiveError(batch_id, locked.status)
                    if locked.balance_bucket == new_bucket.value:
                        raise InvalidBucketTransitionError(
                            f"batch {batch_id} is already in {new_bucket.value}"
                        )
                    previous = locked.balance_bucket
                    batch = await self._repo.retag_bucket(db, batch_id, new_bucket)
                    await db.commit()
            except Exception:
                await db.rollback()
                raise
        await self._cache.invalidate(owner_id)
        logger.info(
            "Batch retagged: id=%s owner=%s %s -> %s",
            batch_id, owner_id, previous, new_bucket.value,
        )
        return BatchItem.from_batch(batch)
