"""BalanceApplicationService — read-only snapshot of both pools.

Grams come from the ledger (cache-aside, see BalanceCache); the spot price is
read from the oracle on every call and never cached with the totals.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from src.gl_balance.application.schemas import BalanceResponse
from src.gl_balance.domain.repository import SnapshotReaderProtocol
from src.gl_balance.domain.snapshot import LedgerTotals, WalletSnapshot, aggregate_rows
from src.gl_balance.infrastructure.cache import BalanceCache
from src.gl_balance.infrastructure.snapshot_reader import SnapshotReader
from src.gl_common.database import storage_guard
from src.gl_pricing.oracle import PriceOracleProtocol, get_price_oracle


class BalanceApplicationService:
    def __init__(
        self,
        reader: SnapshotReaderProtocol | None = None,
        cache: BalanceCache | None = None,
        oracle: PriceOracleProtocol | None = None,
    ) -> None:
        self._reader: SnapshotReaderProtocol = reader or SnapshotReader()
        self._cache = cache or BalanceCache()
        self._oracle = oracle

    @property
    def oracle(self) -> PriceOracleProtocol:
        return self._oracle or get_price_oracle()

    async def get_ledger_totals(self, db: AsyncSession, user_id: str) -> LedgerTotals:
        cached = await self._cache.get(user_id)
        if cached is not None:
            return cached
        # Taken before the read; a commit in between makes the write a no-op
        generation = await self._cache.generation(user_id)
        async with storage_guard():
            rows = await self._reader.read_rows(db, user_id)
        totals = aggregate_rows(user_id, rows)
        await self._cache.set(totals, generation)
        return totals

    async def get_snapshot(self, db: AsyncSession, user_id: str) -> WalletSnapshot:
        spot = await self.oracle.get_spot_price()
        totals = await self.get_ledger_totals(db, user_id)
        return WalletSnapshot(
            totals=totals,
            gold_price_per_gram=spot.price_usd_per_gram,
            price_as_of=spot.as_of,
        )

    async def get_balance(self, db: AsyncSession, user_id: str) -> BalanceResponse:
        snapshot = await self.get_snapshot(db, user_id)
        return BalanceResponse.from_snapshot(snapshot)
