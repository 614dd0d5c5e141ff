"""Domain models for gl_batch — fixed-price gold lots (FPGW batches)."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from src.gl_common.enums import BatchStatus


@dataclass
class GoldBatch:
    id: str
    owner_id: str
    original_grams: Decimal
    remaining_grams: Decimal            # in [0, original_grams], only ever decreases
    locked_price_usd_per_gram: Decimal  # immutable once set
    status: str                         # BatchStatus value
    balance_bucket: str                 # BalanceBucket value
    source_type: str                    # BatchSourceType value
    source_transaction_id: str | None = None
    from_user_id: str | None = None
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status == BatchStatus.ACTIVE.value

    @property
    def consumed_grams(self) -> Decimal:
        return self.original_grams - self.remaining_grams
