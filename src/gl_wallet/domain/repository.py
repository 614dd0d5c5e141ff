"""Repository Protocol for the live-pool ledger.

Unit tests inject a fake that conforms to this Protocol.
"""

from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.gl_common.enums import BalanceBucket, LiveEntryType
from src.gl_wallet.domain.models import LiveBalance, LiveLedgerEntry


class LiveWalletRepositoryProtocol(Protocol):
    async def get_balances(
        self, db: AsyncSession, user_id: str
    ) -> dict[BalanceBucket, Decimal]: ...

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
    ) -> tuple[LiveBalance, LiveLedgerEntry]: ...

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
    ) -> tuple[LiveBalance, LiveLedgerEntry]: ...

    async def list_entries(
        self,
        db: AsyncSession,
        user_id: str,
        cursor_id: int | None,
        limit: int,
        entry_type: str | None,
    ) -> list[LiveLedgerEntry]: ...
