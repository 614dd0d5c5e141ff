"""Domain models for gl_wallet — the live (MPGW) pool, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass
class LiveBalance:
    user_id: str
    bucket: str                 # BalanceBucket value
    grams: Decimal
    version: int = 0
    updated_at: datetime | None = None


@dataclass
class LiveLedgerEntry:
    id: int                     # BIGSERIAL
    user_id: str
    bucket: str
    entry_type: str             # LiveEntryType value
    amount: Decimal             # grams, positive=credit negative=debit
    balance_after: Decimal      # bucket balance snapshot after op
    reference_type: str | None = None
    reference_id: str | None = None
    description: str | None = None
    created_at: datetime | None = None
