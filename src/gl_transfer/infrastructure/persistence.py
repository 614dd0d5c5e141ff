"""TransferRepository — append-only transfer_records and batch_consumptions.

Schema notes:
- transfer_records.seq is BIGSERIAL: insertion order and the pagination cursor
- batch_consumptions.id is BIGSERIAL — do NOT specify id
- UNIQUE (user_id, idempotency_key); NULL keys never collide
"""

from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.gl_common.errors import InternalError
from src.gl_transfer.domain.models import BatchConsumption, TransferRecord

_TRANSFER_COLUMNS = """
    id, seq, user_id, gold_grams, from_wallet_type, to_wallet_type,
    spot_price_usd_per_gram, cost_basis_usd, notes, idempotency_key, created_at
"""

_INSERT_TRANSFER_SQL = text(f"""
    INSERT INTO transfer_records
        (id, user_id, gold_grams, from_wallet_type, to_wallet_type,
         spot_price_usd_per_gram, cost_basis_usd, notes, idempotency_key)
    VALUES
        (:id, :user_id, :gold_grams, :from_wallet_type, :to_wallet_type,
         :spot_price, :cost_basis, :notes, :idempotency_key)
    RETURNING {_TRANSFER_COLUMNS}
""")

_GET_BY_IDEMPOTENCY_KEY_SQL = text(f"""
    SELECT {_TRANSFER_COLUMNS}
    FROM transfer_records
    WHERE user_id = :user_id AND idempotency_key = :idempotency_key
""")

_LIST_TRANSFERS_SQL = text(f"""
    SELECT {_TRANSFER_COLUMNS}
    FROM transfer_records
    WHERE user_id = :user_id
      AND (CAST(:cursor_seq AS BIGINT) IS NULL OR seq < :cursor_seq)
    ORDER BY seq DESC
    LIMIT :limit
""")

_CONSUMPTION_COLUMNS = """
    id, reference_type, reference_id, batch_id, grams, locked_price_usd_per_gram, created_at
"""

_INSERT_CONSUMPTION_SQL = text(f"""
    INSERT INTO batch_consumptions
        (reference_type, reference_id, batch_id, grams, locked_price_usd_per_gram)
    VALUES
        (:reference_type, :reference_id, :batch_id, :grams, :locked_price)
    RETURNING {_CONSUMPTION_COLUMNS}
""")

_LIST_CONSUMPTIONS_SQL = text(f"""
    SELECT {_CONSUMPTION_COLUMNS}
    FROM batch_consumptions
    WHERE reference_id = :reference_id
    ORDER BY id ASC
""")

_SUM_CONSUMPTIONS_SQL = text("""
    SELECT c.batch_id, SUM(c.grams) AS consumed
    FROM batch_consumptions c
    JOIN gold_batches b ON b.id = c.batch_id
    WHERE b.owner_id = :owner_id
    GROUP BY c.batch_id
""")


def _row_to_transfer(row: object) -> TransferRecord:
    return TransferRecord(
        id=row.id,  # type: ignore[attr-defined]
        seq=row.seq,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        gold_grams=row.gold_grams,  # type: ignore[attr-defined]
        from_wallet_type=row.from_wallet_type,  # type: ignore[attr-defined]
        to_wallet_type=row.to_wallet_type,  # type: ignore[attr-defined]
        spot_price_usd_per_gram=row.spot_price_usd_per_gram,  # type: ignore[attr-defined]
        cost_basis_usd=row.cost_basis_usd,  # type: ignore[attr-defined]
        notes=row.notes,  # type: ignore[attr-defined]
        idempotency_key=row.idempotency_key,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


def _row_to_consumption(row: object) -> BatchConsumption:
    return BatchConsumption(
        id=row.id,  # type: ignore[attr-defined]
        reference_type=row.reference_type,  # type: ignore[attr-defined]
        reference_id=row.reference_id,  # type: ignore[attr-defined]
        batch_id=row.batch_id,  # type: ignore[attr-defined]
        grams=row.grams,  # type: ignore[attr-defined]
        locked_price_usd_per_gram=row.locked_price_usd_per_gram,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class TransferRepository:
    async def insert_transfer(self, db: AsyncSession, record: TransferRecord) -> TransferRecord:
        result = await db.execute(
            _INSERT_TRANSFER_SQL,
            {
                "id": record.id,
                "user_id": record.user_id,
                "gold_grams": record.gold_grams,
                "from_wallet_type": record.from_wallet_type,
                "to_wallet_type": record.to_wallet_type,
                "spot_price": record.spot_price_usd_per_gram,
                "cost_basis": record.cost_basis_usd,
                "notes": record.notes,
                "idempotency_key": record.idempotency_key,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Transfer insert returned no rows — this should never happen")
        return _row_to_transfer(row)

    async def get_by_idempotency_key(
        self, db: AsyncSession, user_id: str, idempotency_key: str
    ) -> TransferRecord | None:
        result = await db.execute(
            _GET_BY_IDEMPOTENCY_KEY_SQL,
            {"user_id": user_id, "idempotency_key": idempotency_key},
        )
        row = result.fetchone()
        return _row_to_transfer(row) if row else None

    async def list_transfers(
        self, db: AsyncSession, user_id: str, cursor_seq: int | None, limit: int
    ) -> list[TransferRecord]:
        result = await db.execute(
            _LIST_TRANSFERS_SQL,
            {"user_id": user_id, "cursor_seq": cursor_seq, "limit": limit},
        )
        return [_row_to_transfer(row) for row in result.fetchall()]

    async def insert_consumption(
        self, db: AsyncSession, consumption: BatchConsumption
    ) -> BatchConsumption:
        result = await db.execute(
            _INSERT_CONSUMPTION_SQL,
            {
                "reference_type": consumption.reference_type,
                "reference_id": consumption.reference_id,
                "batch_id": consumption.batch_id,
                "grams": consumption.grams,
                "locked_price": consumption.locked_price_usd_per_gram,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Consumption insert returned no rows — this should never happen")
        return _row_to_consumption(row)

    async def list_consumptions(
        self, db: AsyncSession, reference_id: str
    ) -> list[BatchConsumption]:
        result = await db.execute(_LIST_CONSUMPTIONS_SQL, {"reference_id": reference_id})
        return [_row_to_consumption(row) for row in result.fetchall()]

    async def sum_consumptions_by_batch(
        self, db: AsyncSession, owner_id: str
    ) -> dict[str, Decimal]:
        result = await db.execute(_SUM_CONSUMPTIONS_SQL, {"owner_id": owner_id})
        return {row.batch_id: Decimal(row.consumed) for row in result.fetchall()}
