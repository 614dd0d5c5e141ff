"""In-memory ledger fakes for service-level unit tests.

FakeSession carries the whole ledger state; commit() checkpoints it and
rollback() restores the last checkpoint, so tests can assert that a failed
operation left nothing behind. The fake repositories are stateless like the
real ones and read/write through the session they are handed.
"""

import copy
import dataclasses
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest

from src.gl_balance.domain.snapshot import LedgerTotals, SnapshotRow
from src.gl_batch.domain.models import GoldBatch
from src.gl_common.enums import BalanceBucket, BatchSourceType, BatchStatus, LiveEntryType, WalletType
from src.gl_common.errors import (
    BatchNotActiveError,
    BatchNotFoundError,
    InsufficientBatchBalanceError,
    InsufficientFundsError,
)
from src.gl_common.grams import ZERO, parse_grams, parse_price
from src.gl_pricing.oracle import FixedPriceOracle
from src.gl_transfer.application.service import TransferEngine
from src.gl_transfer.domain.models import BatchConsumption, TransferRecord
from src.gl_wallet.domain.models import LiveBalance, LiveLedgerEntry

_EPOCH = datetime(2026, 1, 1, tzinfo=UTC)


@dataclass
class LedgerState:
    batches: dict[str, GoldBatch] = field(default_factory=dict)
    batch_seq: int = 0
    live: dict[tuple[str, str], Decimal] = field(default_factory=dict)
    live_entries: list[LiveLedgerEntry] = field(default_factory=list)
    transfers: list[TransferRecord] = field(default_factory=list)
    consumptions: list[BatchConsumption] = field(default_factory=list)


class FakeSession:
    def __init__(self) -> None:
        self.state = LedgerState()
        self._checkpoint = copy.deepcopy(self.state)
        self.executed: list[object] = []
        self.commits = 0
        self.rollbacks = 0
        # batch ids whose next consume fails as if another writer got there first
        self.fail_consume: set[str] = set()

    async def execute(self, stmt: object, params: object = None) -> None:
        # Lock statements only; all ledger reads go through the fake repos
        self.executed.append(stmt)

    async def commit(self) -> None:
        self.commits += 1
        self._checkpoint = copy.deepcopy(self.state)

    async def rollback(self) -> None:
        self.rollbacks += 1
        self.state = copy.deepcopy(self._checkpoint)


def _copy(batch: GoldBatch) -> GoldBatch:
    return dataclasses.replace(batch)


class FakeBatchRepository:
    async def create_batch(
        self,
        db: FakeSession,
        owner_id: str,
        grams: Decimal,
        locked_price: Decimal,
        bucket: BalanceBucket,
        source_transaction_id: str | None,
        source_type: BatchSourceType,
        from_user_id: str | None = None,
        notes: str | None = None,
    ) -> GoldBatch:
        grams = parse_grams(grams)
        locked_price = parse_price(locked_price)
        db.state.batch_seq += 1
        seq = db.state.batch_seq
        batch = GoldBatch(
            id=f"batch-{seq:04d}",
            owner_id=owner_id,
            original_grams=grams,
            remaining_grams=grams,
            locked_price_usd_per_gram=locked_price,
            status=BatchStatus.ACTIVE.value,
            balance_bucket=bucket.value,
            source_type=source_type.value,
            source_transaction_id=source_transaction_id,
            from_user_id=from_user_id,
            notes=notes,
            created_at=_EPOCH + timedelta(seconds=seq),
            updated_at=_EPOCH + timedelta(seconds=seq),
        )
        db.state.batches[batch.id] = batch
        return _copy(batch)

    async def get_batch(self, db: FakeSession, batch_id: str) -> GoldBatch | None:
        batch = db.state.batches.get(batch_id)
        return _copy(batch) if batch else None

    async def list_active_batches(
        self,
        db: FakeSession,
        owner_id: str,
        bucket: BalanceBucket | None = None,
        for_update: bool = False,
    ) -> list[GoldBatch]:
        return [
            _copy(b)
            for b in db.state.batches.values()
            if b.owner_id == owner_id
            and b.is_active
            and b.remaining_grams > 0
            and (bucket is None or b.balance_bucket == bucket.value)
        ]

    async def list_batches(self, db: FakeSession, owner_id: str) -> list[GoldBatch]:
        return [_copy(b) for b in db.state.batches.values() if b.owner_id == owner_id]

    async def consume_from_batch(
        self,
        db: FakeSession,
        batch_id: str,
        grams: Decimal,
        exhausted_status: BatchStatus = BatchStatus.CONSUMED,
    ) -> GoldBatch:
        grams = parse_grams(grams)
        batch = db.state.batches.get(batch_id)
        if batch is None:
            raise BatchNotFoundError(batch_id)
        if batch_id in db.fail_consume:
            raise InsufficientBatchBalanceError(batch_id, grams, ZERO)
        if not batch.is_active:
            raise BatchNotActiveError(batch_id, batch.status)
        if batch.remaining_grams < grams:
            raise InsufficientBatchBalanceError(batch_id, grams, batch.remaining_grams)
        batch.remaining_grams -= grams
        if batch.remaining_grams == 0:
            batch.status = exhausted_status.value
        return _copy(batch)

    async def retag_bucket(
        self, db: FakeSession, batch_id: str, new_bucket: BalanceBucket
    ) -> GoldBatch:
        batch = db.state.batches.get(batch_id)
        if batch is None:
            raise BatchNotFoundError(batch_id)
        if not batch.is_active:
            raise BatchNotActiveError(batch_id, batch.status)
        batch.balance_bucket = new_bucket.value
        return _copy(batch)

    async def sum_active_grams(
        self, db: FakeSession, owner_id: str, bucket: BalanceBucket
    ) -> Decimal:
        return sum(
            (b.remaining_grams for b in await self.list_active_batches(db, owner_id, bucket)),
            ZERO,
        )


class FakeLiveWalletRepository:
    async def get_balances(self, db: FakeSession, user_id: str) -> dict[BalanceBucket, Decimal]:
        return {b: db.state.live.get((user_id, b.value), ZERO) for b in BalanceBucket}

    async def credit(
        self,
        db: FakeSession,
        user_id: str,
        bucket: BalanceBucket,
        grams: Decimal,
        entry_type: LiveEntryType,
        reference_type: str | None,
        reference_id: str | None,
        description: str | None,
    ) -> tuple[LiveBalance, LiveLedgerEntry]:
        key = (user_id, bucket.value)
        db.state.live[key] = db.state.live.get(key, ZERO) + grams
        return self._entry(db, user_id, bucket, entry_type, grams, reference_type, reference_id, description)

    async def debit(
        self,
        db: FakeSession,
        user_id: str,
        bucket: BalanceBucket,
        grams: Decimal,
        entry_type: LiveEntryType,
        reference_type: str | None,
        reference_id: str | None,
        description: str | None,
    ) -> tuple[LiveBalance, LiveLedgerEntry]:
        key = (user_id, bucket.value)
        available = db.state.live.get(key, ZERO)
        if available < grams:
            raise InsufficientFundsError(WalletType.MPGW.value, grams, available)
        db.state.live[key] = available - grams
        return self._entry(db, user_id, bucket, entry_type, -grams, reference_type, reference_id, description)

    def _entry(
        self,
        db: FakeSession,
        user_id: str,
        bucket: BalanceBucket,
        entry_type: LiveEntryType,
        amount: Decimal,
        reference_type: str | None,
        reference_id: str | None,
        description: str | None,
    ) -> tuple[LiveBalance, LiveLedgerEntry]:
        balance_after = db.state.live[(user_id, bucket.value)]
        entry = LiveLedgerEntry(
            id=len(db.state.live_entries) + 1,
            user_id=user_id,
            bucket=bucket.value,
            entry_type=entry_type.value,
            amount=amount,
            balance_after=balance_after,
            reference_type=reference_type,
            reference_id=reference_id,
            description=description,
            created_at=_EPOCH,
        )
        db.state.live_entries.append(entry)
        return LiveBalance(user_id, bucket.value, balance_after), entry

    async def list_entries(
        self,
        db: FakeSession,
        user_id: str,
        cursor_id: int | None,
        limit: int,
        entry_type: str | None,
    ) -> list[LiveLedgerEntry]:
        entries = [
            e
            for e in reversed(db.state.live_entries)
            if e.user_id == user_id
            and (cursor_id is None or e.id < cursor_id)
            and (entry_type is None or e.entry_type == entry_type)
        ]
        return entries[:limit]


class FakeTransferRepository:
    async def insert_transfer(self, db: FakeSession, record: TransferRecord) -> TransferRecord:
        stored = dataclasses.replace(
            record, seq=len(db.state.transfers) + 1, created_at=_EPOCH
        )
        db.state.transfers.append(stored)
        return stored

    async def get_by_idempotency_key(
        self, db: FakeSession, user_id: str, idempotency_key: str
    ) -> TransferRecord | None:
        for record in db.state.transfers:
            if record.user_id == user_id and record.idempotency_key == idempotency_key:
                return record
        return None

    async def list_transfers(
        self, db: FakeSession, user_id: str, cursor_seq: int | None, limit: int
    ) -> list[TransferRecord]:
        records = [
            r
            for r in reversed(db.state.transfers)
            if r.user_id == user_id and (cursor_seq is None or (r.seq or 0) < cursor_seq)
        ]
        return records[:limit]

    async def insert_consumption(
        self, db: FakeSession, consumption: BatchConsumption
    ) -> BatchConsumption:
        stored = dataclasses.replace(consumption, id=len(db.state.consumptions) + 1)
        db.state.consumptions.append(stored)
        return stored

    async def list_consumptions(
        self, db: FakeSession, reference_id: str
    ) -> list[BatchConsumption]:
        return [c for c in db.state.consumptions if c.reference_id == reference_id]

    async def sum_consumptions_by_batch(
        self, db: FakeSession, owner_id: str
    ) -> dict[str, Decimal]:
        sums: dict[str, Decimal] = {}
        for c in db.state.consumptions:
            if db.state.batches[c.batch_id].owner_id == owner_id:
                sums[c.batch_id] = sums.get(c.batch_id, ZERO) + c.grams
        return sums


class FakeSnapshotReader:
    async def read_rows(self, db: FakeSession, user_id: str) -> list[SnapshotRow]:
        rows = [
            SnapshotRow(WalletType.MPGW.value, bucket, grams)
            for (uid, bucket), grams in db.state.live.items()
            if uid == user_id
        ]
        grouped: dict[str, tuple[Decimal, Decimal]] = {}
        for b in db.state.batches.values():
            if b.owner_id != user_id or not b.is_active or b.remaining_grams <= 0:
                continue
            grams, value = grouped.get(b.balance_bucket, (ZERO, ZERO))
            grouped[b.balance_bucket] = (
                grams + b.remaining_grams,
                value + b.remaining_grams * b.locked_price_usd_per_gram,
            )
        rows.extend(
            SnapshotRow(WalletType.FPGW.value, bucket, grams, value)
            for bucket, (grams, value) in grouped.items()
        )
        return rows


class FakeCache:
    """Dict-backed stand-in for BalanceCache."""

    def __init__(self) -> None:
        self.store: dict[str, LedgerTotals] = {}
        self.generations: dict[str, int] = {}
        self.invalidated: list[str] = []
        self.reads = 0

    async def get(self, user_id: str) -> LedgerTotals | None:
        self.reads += 1
        return self.store.get(user_id)

    async def generation(self, user_id: str) -> int | None:
        return self.generations.get(user_id, 0)

    async def set(self, totals: LedgerTotals, generation: int | None) -> bool:
        if generation is None or self.generations.get(totals.user_id, 0) != generation:
            return False
        self.store[totals.user_id] = totals
        return True

    async def invalidate(self, *user_ids: str) -> None:
        for user_id in user_ids:
            self.invalidated.append(user_id)
            self.store.pop(user_id, None)
            self.generations[user_id] = self.generations.get(user_id, 0) + 1


@pytest.fixture
def db() -> FakeSession:
    return FakeSession()


@pytest.fixture
def batch_repo() -> FakeBatchRepository:
    return FakeBatchRepository()


@pytest.fixture
def live_repo() -> FakeLiveWalletRepository:
    return FakeLiveWalletRepository()


@pytest.fixture
def transfer_repo() -> FakeTransferRepository:
    return FakeTransferRepository()


@pytest.fixture
def cache() -> FakeCache:
    return FakeCache()


@pytest.fixture
def snapshot_reader() -> FakeSnapshotReader:
    return FakeSnapshotReader()


@pytest.fixture
def oracle() -> FixedPriceOracle:
    return FixedPriceOracle(Decimal("80"))


@pytest.fixture
def engine(
    batch_repo: FakeBatchRepository,
    live_repo: FakeLiveWalletRepository,
    transfer_repo: FakeTransferRepository,
    cache: FakeCache,
    oracle: FixedPriceOracle,
) -> TransferEngine:
    return TransferEngine(
        batch_repo=batch_repo,
        live_repo=live_repo,
        transfer_repo=transfer_repo,
        cache=cache,  # type: ignore[arg-type]
        oracle=oracle,
    )
