"""LiveWalletRepository — concrete implementation of LiveWalletRepositoryProtocol.

Every bucket mutation is a single atomic statement. A debit that returns 0
rows means the bucket could not cover the amount.

Transaction ownership: the CALLER commits or rolls back.
"""

from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.gl_common.enums import BalanceBucket, LiveEntryType, WalletType
from src.gl_common.errors import InsufficientFundsError, InternalError
from src.gl_common.grams import ZERO
from src.gl_wallet.domain.models import LiveBalance, LiveLedgerEntry

_CREDIT_SQL = text("""
    INSERT INTO live_wallet_balances (user_id, bucket, grams)
    VALUES (:user_id, :bucket, :grams)
    ON CONFLICT (user_id, bucket) DO UPDATE
    SET grams = live_wallet_balances.grams + EXCLUDED.grams,
        version = live_wallet_balances.version + 1,
        updated_at = NOW()
    RETURNING user_id, bucket, grams, version, updated_at
""")

_DEBIT_SQL = text("""
    UPDATE live_wallet_balances
    SET grams = grams - :grams,
        version = version + 1,
        updated_at = NOW()
    WHERE user_id = :user_id AND bucket = :bucket AND grams >= :grams
    RETURNING user_id, bucket, grams, version, updated_at
""")

_GET_BALANCES_SQL = text("""
    SELECT bucket, grams
    FROM live_wallet_balances
    WHERE user_id = :user_id
""")

_GET_BUCKET_SQL = text("""
    SELECT grams
    FROM live_wallet_balances
    WHERE user_id = :user_id AND bucket = :bucket
""")

_INSERT_ENTRY_SQL = text("""
    INSERT INTO live_wallet_entries
        (user_id, bucket, entry_type, amount, balance_after,
         reference_type, reference_id, description)
    VALUES
        (:user_id, :bucket, :entry_type, :amount, :balance_after,
         :reference_type, :reference_id, :description)
    RETURNING id, user_id, bucket, entry_type, amount, balance_after,
              reference_type, reference_id, description, created_at
""")

_LIST_ENTRIES_SQL = text("""
    SELECT id, user_id, bucket, entry_type, amount, balance_after,
           reference_type, reference_id, description, created_at
    FROM live_wallet_entries
    WHERE user_id = :user_id
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < :cursor_id)
      AND (CAST(:entry_type AS VARCHAR) IS NULL OR entry_type = :entry_type)
    ORDER BY id DESC
    LIMIT :limit
""")


def _row_to_balance(row: object) -> LiveBalance:
    return LiveBalance(
        user_id=row.user_id,  # type: ignore[attr-defined]
        bucket=row.bucket,  # type: ignore[attr-defined]
        grams=row.grams,  # type: ignore[attr-defined]
        version=row.version,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_entry(row: object) -> LiveLedgerEntry:
    return LiveLedgerEntry(
        id=row.id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        bucket=row.bucket,  # type: ignore[attr-defined]
        entry_type=row.entry_type,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        balance_after=row.balance_after,  # type: ignore[attr-defined]
        reference_type=row.reference_type,  # type: ignore[attr-defined]
        reference_id=row.reference_id,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class LiveWalletRepository:
    """Concrete repository — all operations atomic at the SQL level."""

    async def get_balances(
        self, db: AsyncSession, user_id: str
    ) -> dict[BalanceBucket, Decimal]:
        balances = {bucket: ZERO for bucket in BalanceBucket}
        result = await db.execute(_GET_BALANCES_SQL, {"user_id": user_id})
        for row in result.fetchall():
            balances[BalanceBucket(row.bucket)] = row.grams
        return balances

    async def credit(
        self,
        db: AsyncSession,
        user_id: str,
        bucket: BalanceBucket,
        grams: Decimal,
        entry_type: LiveEntryType,
        reference_type: str | None,
        reference_id: str | None,
        description: str | None,
    ) -> tuple[LiveBalance, LiveLedgerEntry]:
        result = await db.execute(
            _CREDIT_SQL, {"user_id": user_id, "bucket": bucket.value, "grams": grams}
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Live wallet upsert returned no rows — this should never happen")
        balance = _row_to_balance(row)
        entry = await self._append_entry(
            db, balance, entry_type, grams, reference_type, reference_id, description
        )
        return balance, entry

    async def debit(
        self,
        db: AsyncSession,
        user_id: str,
        bucket: BalanceBucket,
        grams: Decimal,
        entry_type: LiveEntryType,
        reference_type: str | None,
        reference_id: str | None,
        description: str | None,
    ) -> tuple[LiveBalance, LiveLedgerEntry]:
        result = await db.execute(
            _DEBIT_SQL, {"user_id": user_id, "bucket": bucket.value, "grams": grams}
        )
        row = result.fetchone()
        if row is None:
            current = await db.execute(
                _GET_BUCKET_SQL, {"user_id": user_id, "bucket": bucket.value}
            )
            current_row = current.fetchone()
            available = current_row.grams if current_row else ZERO
            raise InsufficientFundsError(WalletType.MPGW.value, grams, available)
        balance = _row_to_balance(row)
        entry = await self._append_entry(
            db, balance, entry_type, -grams, reference_type, reference_id, description
        )
        return balance, entry

    async def _append_entry(
        self,
        db: AsyncSession,
        balance: LiveBalance,
        entry_type: LiveEntryType,
        amount: Decimal,
        reference_type: str | None,
        reference_id: str | None,
        description: str | None,
    ) -> LiveLedgerEntry:
        result = await db.execute(
            _INSERT_ENTRY_SQL,
            {
                "user_id": balance.user_id,
                "bucket": balance.bucket,
                "entry_type": entry_type.value,
                "amount": amount,
                "balance_after": balance.grams,
                "reference_type": reference_type,
                "reference_id": reference_id,
                "description": description,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Live wallet entry insert returned no rows — this should never happen")
        return _row_to_entry(row)

    async def list_entries(
        self,
        db: AsyncSession,
        user_id: str,
        cursor_id: int | None,
        limit: int,
        entry_type: str | None,
    ) -> list[LiveLedgerEntry]:
        result = await db.execute(
            _LIST_ENTRIES_SQL,
            {
                "user_id": user_id,
                "cursor_id": cursor_id,
                "entry_type": entry_type,
                "limit": limit,
            },
        )
        return [_row_to_entry(row) for row in result.fetchall()]
