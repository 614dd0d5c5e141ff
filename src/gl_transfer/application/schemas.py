"""Pydantic schemas for the Transfer Engine API."""

from decimal import Decimal

from pydantic import BaseModel, Field

from src.gl_common.enums import BalanceBucket, WalletType
from src.gl_common.grams import grams_to_display, usd_to_display
from src.gl_transfer.domain.models import (
    FifoDraw,
    InvariantReport,
    PeerSendResult,
    ReallocationResult,
    SpendValidation,
    TransferRecord,
    TransferResult,
)


# --- Requests ---

class ValidateSpendRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64)
    grams: Decimal
    wallet_type: WalletType


class TransferRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64)
    grams: Decimal
    from_wallet_type: WalletType
    to_wallet_type: WalletType
    notes: str | None = Field(None, max_length=500)


class ReallocateRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64)
    grams: Decimal
    from_bucket: BalanceBucket
    to_bucket: BalanceBucket


class SendRequest(BaseModel):
    from_user_id: str = Field(..., min_length=1, max_length=64)
    to_user_id: str = Field(..., min_length=1, max_length=64)
    grams: Decimal
    notes: str | None = Field(None, max_length=500)


# --- Responses ---

class SpendValidationResponse(BaseModel):
    allowed: bool
    wallet_type: str
    requested_grams: Decimal
    available_grams: Decimal
    reason: str | None

    @classmethod
    def from_validation(cls, v: SpendValidation) -> "SpendValidationResponse":
        return cls(
            allowed=v.allowed,
            wallet_type=v.wallet_type,
            requested_grams=v.requested_grams,
            available_grams=v.available_grams,
            reason=v.reason,
        )


class DrawItem(BaseModel):
    batch_id: str
    grams: Decimal
    locked_price_usd_per_gram: Decimal
    exhausts_batch: bool

    @classmethod
    def from_draw(cls, d: FifoDraw) -> "DrawItem":
        return cls(
            batch_id=d.batch_id,
            grams=d.grams,
            locked_price_usd_per_gram=d.locked_price_usd_per_gram,
            exhausts_batch=d.exhausts_batch,
        )


class TransferItem(BaseModel):
    id: str
    user_id: str
    gold_grams: Decimal
    gold_display: str
    from_wallet_type: str
    to_wallet_type: str
    spot_price_usd_per_gram: Decimal
    cost_basis_usd: Decimal
    market_value_usd: Decimal
    realized_gain_usd: Decimal
    notes: str | None
    idempotency_key: str | None
    created_at: str  # ISO8601 string

    @classmethod
    def from_record(cls, r: TransferRecord) -> "TransferItem":
        return cls(
            id=r.id,
            user_id=r.user_id,
            gold_grams=r.gold_grams,
            gold_display=grams_to_display(r.gold_grams),
            from_wallet_type=r.from_wallet_type,
            to_wallet_type=r.to_wallet_type,
            spot_price_usd_per_gram=r.spot_price_usd_per_gram,
            cost_basis_usd=r.cost_basis_usd,
            market_value_usd=r.market_value_usd,
            realized_gain_usd=r.realized_gain_usd,
            notes=r.notes,
            idempotency_key=r.idempotency_key,
            created_at=r.created_at.isoformat() if r.created_at else "",
        )


class TransferResponse(BaseModel):
    transfer: TransferItem
    draws: list[DrawItem]
    created_batch_id: str | None
    replayed: bool

    @classmethod
    def from_result(cls, result: TransferResult) -> "TransferResponse":
        return cls(
            transfer=TransferItem.from_record(result.record),
            draws=[DrawItem.from_draw(d) for d in result.draws],
            created_batch_id=result.created_batch_id,
            replayed=result.replayed,
        )


class TransferListResponse(BaseModel):
    items: list[TransferItem]
    next_cursor: str | None
    has_more: bool


class ReallocationResponse(BaseModel):
    reallocation_id: str
    user_id: str
    gold_grams: Decimal
    from_bucket: str
    to_bucket: str
    retagged_batch_ids: list[str]
    split_batch_ids: list[str]

    @classmethod
    def from_result(cls, r: ReallocationResult) -> "ReallocationResponse":
        return cls(
            reallocation_id=r.reallocation_id,
            user_id=r.user_id,
            gold_grams=r.gold_grams,
            from_bucket=r.from_bucket,
            to_bucket=r.to_bucket,
            retagged_batch_ids=r.retagged_batch_ids,
            split_batch_ids=r.split_batch_ids,
        )


class SendResponse(BaseModel):
    send_id: str
    from_user_id: str
    to_user_id: str
    gold_grams: Decimal
    cost_basis_usd: Decimal
    cost_basis_display: str
    draws: list[DrawItem]
    received_batch_ids: list[str]

    @classmethod
    def from_result(cls, r: PeerSendResult) -> "SendResponse":
        return cls(
            send_id=r.send_id,
            from_user_id=r.from_user_id,
            to_user_id=r.to_user_id,
            gold_grams=r.gold_grams,
            cost_basis_usd=r.cost_basis_usd,
            cost_basis_display=usd_to_display(r.cost_basis_usd),
            draws=[DrawItem.from_draw(d) for d in r.draws],
            received_batch_ids=r.received_batch_ids,
        )


class InvariantReportResponse(BaseModel):
    user_id: str
    ok: bool
    batches_checked: int
    violations: list[str]

    @classmethod
    def from_report(cls, r: InvariantReport) -> "InvariantReportResponse":
        return cls(
            user_id=r.user_id,
            ok=r.ok,
            batches_checked=r.batches_checked,
            violations=r.violations,
        )
