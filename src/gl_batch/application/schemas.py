"""Pydantic schemas for the Batch Store API."""

from decimal import Decimal

from pydantic import BaseModel, Field

from src.gl_batch.domain.models import GoldBatch
from src.gl_common.enums import BalanceBucket, BatchSourceType
from src.gl_common.grams import usd_to_display, usd_value, weighted_average_price


class CreateBatchRequest(BaseModel):
    owner_id: str = Field(..., min_length=1, max_length=64)
    grams: Decimal = Field(..., gt=0, decimal_places=6)
    locked_price_usd_per_gram: Decimal = Field(..., gt=0)
    bucket: BalanceBucket = BalanceBucket.AVAILABLE
    source_type: BatchSourceType = BatchSourceType.PURCHASE
    source_transaction_id: str | None = Field(None, max_length=64)
    notes: str | None = Field(None, max_length=500)


class RetagBatchRequest(BaseModel):
    bucket: BalanceBucket


class BatchItem(BaseModel):
    id: str
    owner_id: str
    original_grams: Decimal
    remaining_grams: Decimal
    locked_price_usd_per_gram: Decimal
    locked_value_usd: Decimal
    locked_value_display: str
    status: str
    balance_bucket: str
    source_type: str
    source_transaction_id: str | None
    from_user_id: str | None
    notes: str | None
    created_at: str  # ISO8601 string

    @classmethod
    def from_batch(cls, b: GoldBatch) -> "BatchItem":
        value = usd_value(b.remaining_grams, b.locked_price_usd_per_gram)
        return cls(
            id=b.id,
            owner_id=b.owner_id,
            original_grams=b.original_grams,
            remaining_grams=b.remaining_grams,
            locked_price_usd_per_gram=b.locked_price_usd_per_gram,
            locked_value_usd=value,
            locked_value_display=usd_to_display(value),
            status=b.status,
            balance_bucket=b.balance_bucket,
            source_type=b.source_type,
            source_transaction_id=b.source_transaction_id,
            from_user_id=b.from_user_id,
            notes=b.notes,
            created_at=b.created_at.isoformat() if b.created_at else "",
        )


class BatchListResponse(BaseModel):
    user_id: str
    bucket: BalanceBucket | None
    remaining_grams: Decimal
    weighted_avg_price_usd_per_gram: Decimal  # over remaining grams only
    items: list[BatchItem]

    @classmethod
    def from_batches(
        cls, user_id: str, bucket: BalanceBucket | None, batches: list[GoldBatch]
    ) -> "BatchListResponse":
        return cls(
            user_id=user_id,
            bucket=bucket,
            remaining_grams=sum((b.remaining_grams for b in batches), Decimal("0")),
            weighted_avg_price_usd_per_gram=weighted_average_price(
                (b.remaining_grams, b.locked_price_usd_per_gram) for b in batches
            ),
            items=[BatchItem.from_batch(b) for b in batches],
        )
