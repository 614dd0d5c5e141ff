"""TransferEngine — moves gold between the live and fixed-price pools.

Every mutation follows the same shape:
  1. Input checks (no state access)
  2. Spot price read (only for operations that value gold at market)
  3. Per-user lock: in-process asyncio.Lock + pg advisory xact lock, sorted
  4. All ledger writes inside ONE transaction; commit, or roll back everything
  5. Balance cache invalidated after commit

Repositories never commit; this service owns the transaction boundary.
"""

import logging
import uuid
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from src.gl_balance.infrastructure.cache import BalanceCache
from src.gl_batch.domain.repository import BatchRepositoryProtocol
from src.gl_batch.infrastructure.persistence import BatchRepository
from src.gl_common.database import storage_guard
from src.gl_common.enums import (
    BalanceBucket,
    BatchSourceType,
    BatchStatus,
    ConsumptionReason,
    LiveEntryType,
    WalletType,
)
from src.gl_common.errors import (
    BatchNotActiveError,
    BatchNotFoundError,
    ConcurrencyConflictError,
    InsufficientBatchBalanceError,
    InvalidBucketTransitionError,
    SameWalletTransferError,
)
from src.gl_common.grams import ZERO, parse_grams, round_usd, usd_value
from src.gl_common.locks import acquire_ledger_locks, user_locks
from src.gl_common.pagination import cursor_decode, cursor_encode
from src.gl_pricing.oracle import PriceOracleProtocol, get_price_oracle
from src.gl_transfer.application.schemas import TransferItem, TransferListResponse
from src.gl_transfer.domain.fifo import plan_fifo
from src.gl_transfer.domain.invariants import verify_batch_invariants
from src.gl_transfer.domain.models import (
    BatchConsumption,
    FifoDraw,
    InvariantReport,
    PeerSendResult,
    ReallocationResult,
    SpendValidation,
    TransferRecord,
    TransferResult,
)
from src.gl_transfer.domain.repository import TransferRepositoryProtocol
from src.gl_transfer.infrastructure.persistence import TransferRepository
from src.gl_wallet.domain.repository import LiveWalletRepositoryProtocol
from src.gl_wallet.infrastructure.persistence import LiveWalletRepository

logger = logging.getLogger(__name__)

_TRANSFER_REFERENCE = "INTERNAL_TRANSFER"


class TransferEngine:
    def __init__(
        self,
        batch_repo: BatchRepositoryProtocol | None = None,
        live_repo: LiveWalletRepositoryProtocol | None = None,
        transfer_repo: TransferRepositoryProtocol | None = None,
        cache: BalanceCache | None = None,
        oracle: PriceOracleProtocol | None = None,
    ) -> None:
        self._batches: BatchRepositoryProtocol = batch_repo or BatchRepository()
        self._live: LiveWalletRepositoryProtocol = live_repo or LiveWalletRepository()
        self._transfers: TransferRepositoryProtocol = transfer_repo or TransferRepository()
        self._cache = cache or BalanceCache()
        self._oracle = oracle

    @property
    def oracle(self) -> PriceOracleProtocol:
        return self._oracle or get_price_oracle()

    # ------------------------------------------------------------------
    # Read-only
    # ------------------------------------------------------------------

    async def validate_spend(
        self, db: AsyncSession, user_id: str, grams: object, wallet_type: WalletType
    ) -> SpendValidation:
        """Can `user_id` spend `grams` from `wallet_type` right now? Never mutates.

        Only the Available bucket counts; Pending, Locked_BNSL and
        Reserved_Trade grams are never spendable.
        """
        amount = parse_grams(grams)
        async with storage_guard():
            available = await self._available_grams(db, user_id, wallet_type)
        if available >= amount:
            return SpendValidation(True, wallet_type.value, amount, available)
        return SpendValidation(
            allowed=False,
            wallet_type=wallet_type.value,
            requested_grams=amount,
            available_grams=available,
            reason=(
                f"Insufficient {wallet_type.value} balance: requested {amount:f}g, "
                f"available {available:f}g"
            ),
        )

    async def list_transfers(
        self, db: AsyncSession, user_id: str, cursor: str | None, limit: int
    ) -> TransferListResponse:
        cursor_seq = cursor_decode(cursor)
        async with storage_guard():
            records = await self._transfers.list_transfers(db, user_id, cursor_seq, limit + 1)
        has_more = len(records) > limit
        page = records[:limit]
        next_cursor = (
            cursor_encode(page[-1].seq) if has_more and page and page[-1].seq is not None else None
        )
        return TransferListResponse(
            items=[TransferItem.from_record(r) for r in page],
            next_cursor=next_cursor,
            has_more=has_more,
        )

    async def verify_invariants(self, db: AsyncSession, user_id: str) -> InvariantReport:
        async with storage_guard():
            batches = await self._batches.list_batches(db, user_id)
            consumed = await self._transfers.sum_consumptions_by_batch(db, user_id)
        violations = verify_batch_invariants(batches, consumed)
        for violation in violations:
            logger.error("Batch invariant violated: user=%s %s", user_id, violation)
        return InvariantReport(user_id=user_id, batches_checked=len(batches), violations=violations)

    # ------------------------------------------------------------------
    # MPGW <-> FPGW
    # ------------------------------------------------------------------

    async def transfer(
        self,
        db: AsyncSession,
        user_id: str,
        grams: object,
        from_wallet: WalletType,
        to_wallet: WalletType,
        notes: str | None = None,
        idempotency_key: str | None = None,
    ) -> TransferResult:
        amount = parse_grams(grams)
        if from_wallet == to_wallet:
            raise SameWalletTransferError(from_wallet.value)

        # Outside the lock: a slow oracle must not hold the user's ledger
        spot = await self.oracle.get_spot_price()

        async with user_locks.hold(user_id):
            try:
                async with storage_guard():
                    await acquire_ledger_locks(db, [user_id])
                    if idempotency_key:
                        existing = await self._transfers.get_by_idempotency_key(
                            db, user_id, idempotency_key
                        )
                        if existing is not None:
                            result = await self._replay(db, existing)
                            await db.rollback()
                            logger.info(
                                "Transfer idempotency hit: user=%s key=%s transfer=%s",
                                user_id, idempotency_key, existing.id,
                            )
                            return result

                    transfer_id = str(uuid.uuid4())
                    if from_wallet == WalletType.MPGW:
                        batch_id = await self._live_to_fixed(
                            db, user_id, amount, spot.price_usd_per_gram, transfer_id, notes
                        )
                        draws: list[FifoDraw] = []
                        cost_basis = usd_value(amount, spot.price_usd_per_gram)
                    else:
                        batch_id = None
                        draws = await self._fixed_to_live(db, user_id, amount, transfer_id)
                        cost_basis = round_usd(sum((d.cost_usd for d in draws), ZERO))

                    record = await self._transfers.insert_transfer(
                        db,
                        TransferRecord(
                            id=transfer_id,
                            user_id=user_id,
                            gold_grams=amount,
                            from_wallet_type=from_wallet.value,
                            to_wallet_type=to_wallet.value,
                            spot_price_usd_per_gram=spot.price_usd_per_gram,
                            cost_basis_usd=cost_basis,
                            notes=notes,
                            idempotency_key=idempotency_key,
                        ),
                    )
                    await db.commit()
            except Exception:
                await db.rollback()
                raise

        await self._cache.invalidate(user_id)
        logger.info(
            "Transfer completed: id=%s user=%s %s -> %s grams=%s spot=%s cost_basis=%s draws=%d",
            record.id, user_id, from_wallet.value, to_wallet.value, amount,
            spot.price_usd_per_gram, cost_basis, len(draws),
        )
        return TransferResult(record=record, draws=draws, created_batch_id=batch_id)

    async def _live_to_fixed(
        self,
        db: AsyncSession,
        user_id: str,
        grams: Decimal,
        spot_price: Decimal,
        transfer_id: str,
        notes: str | None,
    ) -> str:
        # Re-checked under the lock: InsufficientFundsError if short
        await self._live.debit(
            db,
            user_id,
            BalanceBucket.AVAILABLE,
            grams,
            LiveEntryType.TRANSFER_OUT,
            _TRANSFER_REFERENCE,
            transfer_id,
            "Transfer to FPGW",
        )
        batch = await self._batches.create_batch(
            db,
            user_id,
            grams,
            spot_price,
            BalanceBucket.AVAILABLE,
            transfer_id,
            BatchSourceType.INTERNAL_TRANSFER,
            notes=notes,
        )
        return batch.id

    async def _fixed_to_live(
        self, db: AsyncSession, user_id: str, grams: Decimal, transfer_id: str
    ) -> list[FifoDraw]:
        draws = await self._consume_available_fifo(
            db,
            user_id,
            grams,
            ConsumptionReason.INTERNAL_TRANSFER,
            transfer_id,
            BatchStatus.CONSUMED,
        )
        await self._live.credit(
            db,
            user_id,
            BalanceBucket.AVAILABLE,
            grams,
            LiveEntryType.TRANSFER_IN,
            _TRANSFER_REFERENCE,
            transfer_id,
            "Transfer from FPGW",
        )
        return draws

    async def _replay(self, db: AsyncSession, record: TransferRecord) -> TransferResult:
        consumptions = await self._transfers.list_consumptions(db, record.id)
        draws = [
            FifoDraw(
                batch_id=c.batch_id,
                grams=c.grams,
                locked_price_usd_per_gram=c.locked_price_usd_per_gram,
            )
            for c in consumptions
        ]
        return TransferResult(record=record, draws=draws, replayed=True)

    # ------------------------------------------------------------------
    # FPGW bucket moves and peer sends
    # ------------------------------------------------------------------

    async def reallocate(
        self,
        db: AsyncSession,
        user_id: str,
        grams: object,
        from_bucket: BalanceBucket,
        to_bucket: BalanceBucket,
    ) -> ReallocationResult:
        """Move `grams` of fixed-price gold between buckets, oldest batches first.

        Whole batches are retagged. A partially moved batch is split: the
        parent keeps the rest, a new batch at the same locked price lands in
        `to_bucket` with the parent id as its source transaction.
        """
        amount = parse_grams(grams)
        if from_bucket == to_bucket:
            raise InvalidBucketTransitionError(f"{from_bucket.value} -> {to_bucket.value}")

        reallocation_id = str(uuid.uuid4())
        retagged: list[str] = []
        split: list[str] = []
        async with user_locks.hold(user_id):
            try:
                async with storage_guard():
                    await acquire_ledger_locks(db, [user_id])
                    batches = await self._batches.list_active_batches(
                        db, user_id, from_bucket, for_update=True
                    )
                    for draw in plan_fifo(batches, amount):
                        if draw.exhausts_batch:
                            await self._retag_or_conflict(db, draw.batch_id, to_bucket)
                            retagged.append(draw.batch_id)
                            continue
                        await self._draw_or_conflict(
                            db,
                            draw,
                            ConsumptionReason.BUCKET_SPLIT,
                            reallocation_id,
                            BatchStatus.CONSUMED,
                        )
                        child = await self._batches.create_batch(
                            db,
                            user_id,
                            draw.grams,
                            draw.locked_price_usd_per_gram,
                            to_bucket,
                            draw.batch_id,
                            BatchSourceType.BUCKET_SPLIT,
                            notes=f"Split from batch {draw.batch_id}",
                        )
                        split.append(child.id)
                    await db.commit()
            except Exception:
                await db.rollback()
                raise

        await self._cache.invalidate(user_id)
        logger.info(
            "Reallocation completed: id=%s user=%s %s -> %s grams=%s retagged=%d split=%d",
            reallocation_id, user_id, from_bucket.value, to_bucket.value, amount,
            len(retagged), len(split),
        )
        return ReallocationResult(
            reallocation_id=reallocation_id,
            user_id=user_id,
            gold_grams=amount,
            from_bucket=from_bucket.value,
            to_bucket=to_bucket.value,
            retagged_batch_ids=retagged,
            split_batch_ids=split,
        )

    async def send_fixed_gold(
        self,
        db: AsyncSession,
        from_user_id: str,
        to_user_id: str,
        grams: object,
        notes: str | None = None,
    ) -> PeerSendResult:
        """Peer transfer of fixed-price gold; locked prices travel with the grams.

        The recipient gets one new Available batch per sender draw, each at
        the drawn batch's locked price.
        """
        amount = parse_grams(grams)
        if from_user_id == to_user_id:
            raise SameWalletTransferError(f"{WalletType.FPGW.value} of user {from_user_id}")

        send_id = str(uuid.uuid4())
        received: list[str] = []
        async with user_locks.hold(from_user_id, to_user_id):
            try:
                async with storage_guard():
                    await acquire_ledger_locks(db, [from_user_id, to_user_id])
                    draws = await self._consume_available_fifo(
                        db,
                        from_user_id,
                        amount,
                        ConsumptionReason.PEER_SEND,
                        send_id,
                        BatchStatus.TRANSFERRED,
                    )
                    for draw in draws:
                        batch = await self._batches.create_batch(
                            db,
                            to_user_id,
                            draw.grams,
                            draw.locked_price_usd_per_gram,
                            BalanceBucket.AVAILABLE,
                            send_id,
                            BatchSourceType.PEER_TRANSFER,
                            from_user_id=from_user_id,
                            notes=notes,
                        )
                        received.append(batch.id)
                    await db.commit()
            except Exception:
                await db.rollback()
                raise

        await self._cache.invalidate(from_user_id, to_user_id)
        cost_basis = round_usd(sum((d.cost_usd for d in draws), ZERO))
        logger.info(
            "Peer send completed: id=%s %s -> %s grams=%s batches=%d",
            send_id, from_user_id, to_user_id, amount, len(draws),
        )
        return PeerSendResult(
            send_id=send_id,
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            gold_grams=amount,
            cost_basis_usd=cost_basis,
            draws=draws,
            received_batch_ids=received,
        )

    # ------------------------------------------------------------------
    # Helpers (run inside the caller's locked transaction)
    # ------------------------------------------------------------------

    async def _available_grams(
        self, db: AsyncSession, user_id: str, wallet_type: WalletType
    ) -> Decimal:
        if wallet_type == WalletType.FPGW:
            return await self._batches.sum_active_grams(db, user_id, BalanceBucket.AVAILABLE)
        balances = await self._live.get_balances(db, user_id)
        return balances.get(BalanceBucket.AVAILABLE, ZERO)

    async def _consume_available_fifo(
        self,
        db: AsyncSession,
        user_id: str,
        grams: Decimal,
        reason: ConsumptionReason,
        reference_id: str,
        exhausted_status: BatchStatus,
    ) -> list[FifoDraw]:
        batches = await self._batches.list_active_batches(
            db, user_id, BalanceBucket.AVAILABLE, for_update=True
        )
        # Raises InsufficientFundsError before any batch is touched
        draws = plan_fifo(batches, grams)
        for draw in draws:
            await self._draw_or_conflict(db, draw, reason, reference_id, exhausted_status)
        return draws

    async def _draw_or_conflict(
        self,
        db: AsyncSession,
        draw: FifoDraw,
        reason: ConsumptionReason,
        reference_id: str,
        exhausted_status: BatchStatus,
    ) -> None:
        """Consume one planned draw and record its provenance.

        The batch was row-locked when the plan was made, so a failed draw
        means the ledger moved underneath us: the whole operation is retried.
        """
        try:
            await self._batches.consume_from_batch(
                db, draw.batch_id, draw.grams, exhausted_status
            )
        except (InsufficientBatchBalanceError, BatchNotActiveError, BatchNotFoundError) as exc:
            raise ConcurrencyConflictError(
                f"Batch {draw.batch_id} changed during the FIFO walk, retry the operation"
            ) from exc
        await self._transfers.insert_consumption(
            db,
            BatchConsumption(
                reference_type=reason.value,
                reference_id=reference_id,
                batch_id=draw.batch_id,
                grams=draw.grams,
                locked_price_usd_per_gram=draw.locked_price_usd_per_gram,
            ),
        )

    async def _retag_or_conflict(
        self, db: AsyncSession, batch_id: str, bucket: BalanceBucket
    ) -> None:
        try:
            await self._batches.retag_bucket(db, batch_id, bucket)
        except (BatchNotActiveError, BatchNotFoundError) as exc:
            raise ConcurrencyConflictError(
                f"Batch {batch_id} changed during reallocation, retry the operation"
            ) from exc
