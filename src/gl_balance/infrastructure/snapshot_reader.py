"""Single-statement snapshot read.

Live bucket balances and active batch aggregates come back from ONE query so
the result reflects a single committed state: it can never combine batch
rows from before a concurrent transfer with live balances from after it.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.gl_balance.domain.snapshot import SnapshotRow

_SNAPSHOT_SQL = text("""
    SELECT 'MPGW' AS wallet_type,
           bucket,
           grams,
           CAST(0 AS NUMERIC) AS locked_value
    FROM live_wallet_balances
    WHERE user_id = :user_id
    UNION ALL
    SELECT 'FPGW' AS wallet_type,
           balance_bucket AS bucket,
           SUM(remaining_grams) AS grams,
           SUM(remaining_grams * locked_price_usd_per_gram) AS locked_value
    FROM gold_batches
    WHERE owner_id = :user_id
      AND status = 'Active'
      AND remaining_grams > 0
    GROUP BY balance_bucket
""")


class SnapshotReader:
    async def read_rows(self, db: AsyncSession, user_id: str) -> list[SnapshotRow]:
        result = await db.execute(_SNAPSHOT_SQL, {"user_id": user_id})
        return [
            SnapshotRow(
                wallet_type=row.wallet_type,
                bucket=row.bucket,
                grams=row.grams,
                locked_value=row.locked_value,
            )
            for row in result.fetchall()
        ]
