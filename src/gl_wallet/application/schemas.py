"""Pydantic schemas for the live-wallet (MPGW) API."""

from decimal import Decimal

from pydantic import BaseModel, Field

from src.gl_common.enums import BalanceBucket
from src.gl_common.grams import grams_to_display
from src.gl_wallet.domain.models import LiveLedgerEntry


class CreditRequest(BaseModel):
    grams: Decimal = Field(..., gt=0, decimal_places=6, description="Gold grams to credit")
    bucket: BalanceBucket = BalanceBucket.AVAILABLE
    reference_id: str | None = Field(None, max_length=64)


class CreditResponse(BaseModel):
    user_id: str
    bucket: BalanceBucket
    credited_grams: Decimal
    balance_grams: Decimal
    balance_display: str
    ledger_entry_id: int


class LiveEntryItem(BaseModel):
    id: int
    bucket: str
    entry_type: str
    amount_grams: Decimal
    balance_after_grams: Decimal
    balance_after_display: str
    reference_type: str | None
    reference_id: str | None
    description: str | None
    created_at: str  # ISO8601 string

    @classmethod
    def from_entry(cls, e: LiveLedgerEntry) -> "LiveEntryItem":
        return cls(
            id=e.id,
            bucket=e.bucket,
            entry_type=e.entry_type,
            amount_grams=e.amount,
            balance_after_grams=e.balance_after,
            balance_after_display=grams_to_display(e.balance_after),
            reference_type=e.reference_type,
            reference_id=e.reference_id,
            description=e.description,
            created_at=e.created_at.isoformat() if e.created_at else "",
        )


class LiveEntriesResponse(BaseModel):
    items: list[LiveEntryItem]
    next_cursor: str | None
    has_more: bool
