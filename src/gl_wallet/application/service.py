"""LiveWalletApplicationService — external funding of the live pool.

Buy/sell/send/receive flows live outside this service; `fund` stands in for
them (a simulated buy credit) so the ledger can be exercised end to end.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.gl_balance.infrastructure.cache import BalanceCache
from src.gl_common.database import storage_guard
from src.gl_common.enums import BalanceBucket, LiveEntryType
from src.gl_common.grams import grams_to_display, parse_grams
from src.gl_common.pagination import cursor_decode, cursor_encode
from src.gl_wallet.application.schemas import (
    CreditResponse,
    LiveEntriesResponse,
    LiveEntryItem,
)
from src.gl_wallet.domain.repository import LiveWalletRepositoryProtocol
from src.gl_wallet.infrastructure.persistence import LiveWalletRepository

logger = logging.getLogger(__name__)


class LiveWalletApplicationService:
    def __init__(
        self,
        repo: LiveWalletRepositoryProtocol | None = None,
        cache: BalanceCache | None = None,
    ) -> None:
        self._repo: LiveWalletRepositoryProtocol = repo or LiveWalletRepository()
        self._cache = cache or BalanceCache()

    async def fund(
        self,
        db: AsyncSession,
        user_id: str,
        grams: object,
        bucket: BalanceBucket = BalanceBucket.AVAILABLE,
        reference_id: str | None = None,
    ) -> CreditResponse:
        amount = parse_grams(grams)
        try:
            async with storage_guard():
                balance, entry = await self._repo.credit(
                    db,
                    user_id,
                    bucket,
                    amount,
                    LiveEntryType.CREDIT,
                    "EXTERNAL_CREDIT",
                    reference_id,
                    "Simulated live-pool credit",
                )
                await db.commit()
        except Exception:
            await db.rollback()
            raise
        await self._cache.invalidate(user_id)
        logger.info("Live pool credit: user=%s bucket=%s grams=%s", user_id, bucket.value, amount)
        return CreditResponse(
            user_id=user_id,
            bucket=bucket,
            credited_grams=amount,
            balance_grams=balance.grams,
            balance_display=grams_to_display(balance.grams),
            ledger_entry_id=entry.id,
        )

    async def list_entries(
        self,
        db: AsyncSession,
        user_id: str,
        cursor: str | None,
        limit: int,
        entry_type: str | None,
    ) -> LiveEntriesResponse:
        cursor_id = cursor_decode(cursor)
        # Fetch limit+1 to detect has_more without a COUNT(*) query
        async with storage_guard():
            entries = await self._repo.list_entries(
                db, user_id, cursor_id, limit + 1, entry_type
            )
        has_more = len(entries) > limit
        page = entries[:limit]
        next_cursor = cursor_encode(page[-1].id) if has_more and page else None
        return LiveEntriesResponse(
            items=[LiveEntryItem.from_entry(e) for e in page],
            next_cursor=next_cursor,
            has_more=has_more,
        )
