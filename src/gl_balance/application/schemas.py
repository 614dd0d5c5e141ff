"""Pydantic schemas for the dual-wallet balance API."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from src.gl_balance.domain.snapshot import PoolTotals, WalletSnapshot
from src.gl_common.grams import usd_to_display


class PoolBalance(BaseModel):
    available_grams: Decimal
    pending_grams: Decimal
    locked_bnsl_grams: Decimal
    reserved_trade_grams: Decimal
    total_grams: Decimal

    @classmethod
    def from_totals(cls, pool: PoolTotals) -> "PoolBalance":
        return cls(
            available_grams=pool.available,
            pending_grams=pool.pending,
            locked_bnsl_grams=pool.locked_bnsl,
            reserved_trade_grams=pool.reserved_trade,
            total_grams=pool.total,
        )


class LivePoolBalance(PoolBalance):
    value_usd: Decimal
    value_display: str


class FixedPoolBalance(PoolBalance):
    weighted_avg_price_usd_per_gram: Decimal
    locked_value_usd: Decimal
    market_value_usd: Decimal
    locked_value_display: str


class BalanceResponse(BaseModel):
    user_id: str
    gold_price_usd_per_gram: Decimal
    price_as_of: datetime
    mpgw: LivePoolBalance
    fpgw: FixedPoolBalance
    total_available_grams: Decimal
    total_grams: Decimal
    total_value_usd: Decimal
    total_value_display: str

    @classmethod
    def from_snapshot(cls, s: WalletSnapshot) -> "BalanceResponse":
        t = s.totals
        return cls(
            user_id=t.user_id,
            gold_price_usd_per_gram=s.gold_price_per_gram,
            price_as_of=s.price_as_of,
            mpgw=LivePoolBalance(
                **PoolBalance.from_totals(t.live).model_dump(),
                value_usd=s.live_value_usd,
                value_display=usd_to_display(s.live_value_usd),
            ),
            fpgw=FixedPoolBalance(
                **PoolBalance.from_totals(t.fixed).model_dump(),
                weighted_avg_price_usd_per_gram=t.fixed_weighted_avg_price,
                locked_value_usd=s.fixed_locked_value_usd,
                market_value_usd=s.fixed_market_value_usd,
                locked_value_display=usd_to_display(s.fixed_locked_value_usd),
            ),
            total_available_grams=t.total_available_grams,
            total_grams=t.total_grams,
            total_value_usd=s.total_value_usd,
            total_value_display=usd_to_display(s.total_value_usd),
        )
