"""Repository Protocol for the Batch Store.

Every method runs inside the caller's transaction; none of them commit.
"""

from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.gl_batch.domain.models import GoldBatch
from src.gl_common.enums import BalanceBucket, BatchSourceType, BatchStatus


class BatchRepositoryProtocol(Protocol):
    async def create_batch(
        self,
        db: AsyncSession,
        owner_id: str,
        grams: Decimal,
        locked_price: Decimal,
        bucket: BalanceBucket,
        source_transaction_id: str | None,
        source_type: BatchSourceType,
        from_user_id: str | None = None,
        notes: str | None = None,
    ) -> GoldBatch: ...

    async def get_batch(self, db: AsyncSession, batch_id: str) -> GoldBatch | None: ...

    async def list_active_batches(
        self,
        db: AsyncSession,
        owner_id: str,
        bucket: BalanceBucket | None = None,
        for_update: bool = False,
    ) -> list[GoldBatch]: ...

    async def list_batches(self, db: AsyncSession, owner_id: str) -> list[GoldBatch]: ...

    async def consume_from_batch(
        self,
        db: AsyncSession,
        batch_id: str,
        grams: Decimal,
        exhausted_status: BatchStatus = BatchStatus.CONSUMED,
    ) -> GoldBatch: ...

    async def retag_bucket(
        self, db: AsyncSession, batch_id: str, new_bucket: BalanceBucket
    ) -> GoldBatch: ...

    async def sum_active_grams(
        self, db: AsyncSession, owner_id: str, bucket: BalanceBucket
    ) -> Decimal: ...
