"""BatchRepository — concrete implementation of BatchRepositoryProtocol.

Consumption and retagging are conditional UPDATE ... RETURNING statements:
0 rows back means the batch was missing, no longer Active, or short of
grams, and a follow-up read tells which.

FIFO order is (created_at, seq). created_at defaults to clock_timestamp(),
seq breaks ties between batches inserted in the same instant.

Transaction ownership: the CALLER commits or rolls back.
"""

import uuid
from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.gl_batch.domain.models import GoldBatch
from src.gl_common.enums import BalanceBucket, BatchSourceType, BatchStatus
from src.gl_common.errors import (
    BatchNotActiveError,
    BatchNotFoundError,
    InsufficientBatchBalanceError,
    InternalError,
)
from src.gl_common.grams import parse_grams, parse_price

_BATCH_COLUMNS = """
    id, owner_id, original_grams, remaining_grams, locked_price_usd_per_gram,
    status, balance_bucket, source_type, source_transaction_id, from_user_id,
    notes, created_at, updated_at
"""

_INSERT_BATCH_SQL = text(f"""
    INSERT INTO gold_batches
        (id, owner_id, original_grams, remaining_grams, locked_price_usd_per_gram,
         status, balance_bucket, source_type, source_transaction_id, from_user_id, notes)
    VALUES
        (:id, :owner_id, :grams, :grams, :locked_price,
         'Active', :bucket, :source_type, :source_transaction_id, :from_user_id, :notes)
    RETURNING {_BATCH_COLUMNS}
""")

_GET_BATCH_SQL = text(f"""
    SELECT {_BATCH_COLUMNS}
    FROM gold_batches
    WHERE id = :batch_id
""")

_LIST_ACTIVE_SQL = f"""
    SELECT {_BATCH_COLUMNS}
    FROM gold_batches
    WHERE owner_id = :owner_id
      AND status = 'Active'
      AND remaining_grams > 0
      AND (CAST(:bucket AS VARCHAR) IS NULL OR balance_bucket = :bucket)
    ORDER BY created_at ASC, seq ASC
"""

_LIST_ACTIVE_BATCHES_SQL = text(_LIST_ACTIVE_SQL)
_LIST_ACTIVE_BATCHES_FOR_UPDATE_SQL = text(_LIST_ACTIVE_SQL + " FOR UPDATE")

_LIST_ALL_BATCHES_SQL = text(f"""
    SELECT {_BATCH_COLUMNS}
    FROM gold_batches
    WHERE owner_id = :owner_id
    ORDER BY created_at ASC, seq ASC
""")

_CONSUME_SQL = text(f"""
    UPDATE gold_batches
    SET remaining_grams = remaining_grams - :grams,
        status = CASE
            WHEN remaining_grams - :grams = 0 THEN CAST(:exhausted_status AS VARCHAR)
            ELSE status
        END
    WHERE id = :batch_id
      AND status = 'Active'
      AND remaining_grams >= :grams
    RETURNING {_BATCH_COLUMNS}
""")

_RETAG_SQL = text(f"""
    UPDATE gold_batches
    SET balance_bucket = :bucket
    WHERE id = :batch_id AND status = 'Active'
    RETURNING {_BATCH_COLUMNS}
""")

_SUM_ACTIVE_SQL = text("""
    SELECT COALESCE(SUM(remaining_grams), 0) AS total
    FROM gold_batches
    WHERE owner_id = :owner_id
      AND status = 'Active'
      AND balance_bucket = :bucket
""")


def _row_to_batch(row: object) -> GoldBatch:
    return GoldBatch(
        id=row.id,  # type: ignore[attr-defined]
        owner_id=row.owner_id,  # type: ignore[attr-defined]
        original_grams=row.original_grams,  # type: ignore[attr-defined]
        remaining_grams=row.remaining_grams,  # type: ignore[attr-defined]
        locked_price_usd_per_gram=row.locked_price_usd_per_gram,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        balance_bucket=row.balance_bucket,  # type: ignore[attr-defined]
        source_type=row.source_type,  # type: ignore[attr-defined]
        source_transaction_id=row.source_transaction_id,  # type: ignore[attr-defined]
        from_user_id=row.from_user_id,  # type: ignore[attr-defined]
        notes=row.notes,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


class BatchRepository:
    """Concrete repository — all mutations atomic at the SQL level."""

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
    ) -> GoldBatch:
        # Input is rejected before any state access
        grams = parse_grams(grams)
        locked_price = parse_price(locked_price)
        result = await db.execute(
            _INSERT_BATCH_SQL,
            {
                "id": str(uuid.uuid4()),
                "owner_id": owner_id,
                "grams": grams,
                "locked_price": locked_price,
                "bucket": bucket.value,
                "source_type": source_type.value,
                "source_transaction_id": source_transaction_id,
                "from_user_id": from_user_id,
                "notes": notes,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Batch insert returned no rows — this should never happen")
        return _row_to_batch(row)

    async def get_batch(self, db: AsyncSession, batch_id: str) -> GoldBatch | None:
        result = await db.execute(_GET_BATCH_SQL, {"batch_id": batch_id})
        row = result.fetchone()
        return _row_to_batch(row) if row else None

    async def list_active_batches(
        self,
        db: AsyncSession,
        owner_id: str,
        bucket: BalanceBucket | None = None,
        for_update: bool = False,
    ) -> list[GoldBatch]:
        stmt = _LIST_ACTIVE_BATCHES_FOR_UPDATE_SQL if for_update else _LIST_ACTIVE_BATCHES_SQL
        result = await db.execute(
            stmt,
            {"owner_id": owner_id, "bucket": bucket.value if bucket else None},
        )
        return [_row_to_batch(row) for row in result.fetchall()]

    async def list_batches(self, db: AsyncSession, owner_id: str) -> list[GoldBatch]:
        result = await db.execute(_LIST_ALL_BATCHES_SQL, {"owner_id": owner_id})
        return [_row_to_batch(row) for row in result.fetchall()]

    async def consume_from_batch(
        self,
        db: AsyncSession,
        batch_id: str,
        grams: Decimal,
        exhausted_status: BatchStatus = BatchStatus.CONSUMED,
    ) -> GoldBatch:
        grams = parse_grams(grams)
        result = await db.execute(
            _CONSUME_SQL,
            {
                "batch_id": batch_id,
                "grams": grams,
                "exhausted_status": exhausted_status.value,
            },
        )
        row = result.fetchone()
        if row is None:
            batch = await self._get_or_raise(db, batch_id)
            if not batch.is_active:
                raise BatchNotActiveError(batch_id, batch.status)
            raise InsufficientBatchBalanceError(batch_id, grams, batch.remaining_grams)
        return _row_to_batch(row)

    async def retag_bucket(
        self, db: AsyncSession, batch_id: str, new_bucket: BalanceBucket
    ) -> GoldBatch:
        result = await db.execute(
            _RETAG_SQL, {"batch_id": batch_id, "bucket": new_bucket.value}
        )
        row = result.fetchone()
        if row is None:
            batch = await self._get_or_raise(db, batch_id)
            raise BatchNotActiveError(batch_id, batch.status)
        return _row_to_batch(row)

    async def sum_active_grams(
        self, db: AsyncSession, owner_id: str, bucket: BalanceBucket
    ) -> Decimal:
        result = await db.execute(
            _SUM_ACTIVE_SQL, {"owner_id": owner_id, "bucket": bucket.value}
        )
        return Decimal(result.scalar_one())

    async def _get_or_raise(self, db: AsyncSession, batch_id: str) -> GoldBatch:
        batch = await self.get_batch(db, batch_id)
        if batch is None:
            raise BatchNotFoundError(batch_id)
        return batch
