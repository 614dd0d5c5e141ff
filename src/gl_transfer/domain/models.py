"""Domain models for gl_transfer — internal MPGW <-> FPGW movement records."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from src.gl_common.grams import round_usd


@dataclass
class TransferRecord:
    """Append-only record of one MPGW <-> FPGW transfer.

    cost_basis_usd is what the moved grams were worth at their source:
    grams x spot for MPGW -> FPGW, sum(draw x locked price) for FPGW -> MPGW.
    The difference to grams x spot on the way out of FPGW is the realized
    gain/loss, derivable from this row alone.
    """
    id: str
    user_id: str
    gold_grams: Decimal
    from_wallet_type: str
    to_wallet_type: str
    spot_price_usd_per_gram: Decimal
    cost_basis_usd: Decimal
    notes: str | None = None
    idempotency_key: str | None = None
    seq: int | None = None
    created_at: datetime | None = None

    @property
    def market_value_usd(self) -> Decimal:
        return round_usd(self.gold_grams * self.spot_price_usd_per_gram)

    @property
    def realized_gain_usd(self) -> Decimal:
        return self.market_value_usd - self.cost_basis_usd


@dataclass(frozen=True)
class FifoDraw:
    batch_id: str
    grams: Decimal
    locked_price_usd_per_gram: Decimal
    exhausts_batch: bool = False

    @property
    def cost_usd(self) -> Decimal:
        """Unrounded; round once after summing."""
        return self.grams * self.locked_price_usd_per_gram


@dataclass(frozen=True)
class BatchConsumption:
    reference_type: str  # ConsumptionReason value
    reference_id: str
    batch_id: str
    grams: Decimal
    locked_price_usd_per_gram: Decimal
    id: int | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class SpendValidation:
    allowed: bool
    wallet_type: str
    requested_grams: Decimal
    available_grams: Decimal
    reason: str | None = None


@dataclass(frozen=True)
class TransferResult:
    record: TransferRecord
    draws: list[FifoDraw] = field(default_factory=list)
    created_batch_id: str | None = None
    replayed: bool = False


@dataclass(frozen=True)
class PeerSendResult:
    send_id: str
    from_user_id: str
    to_user_id: str
    gold_grams: Decimal
    cost_basis_usd: Decimal
    draws: list[FifoDraw] = field(default_factory=list)
    received_batch_ids: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ReallocationResult:
    reallocation_id: str
    user_id: str
    gold_grams: Decimal
    from_bucket: str
    to_bucket: str
    retagged_batch_ids: list[str] = field(default_factory=list)
    split_batch_ids: list[str] = field(default_factory=list)  # new batches in to_bucket


@dataclass(frozen=True)
class InvariantReport:
    user_id: str
    batches_checked: int
    violations: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.violations
