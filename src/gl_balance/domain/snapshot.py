"""Wallet snapshot — derived view over both pools, never persisted.

Grams are authoritative. USD figures are computed on demand from the spot
price (live pool and fixed-pool market value) or from the fixed pool's
weighted average locked price (fixed-pool locked value).
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from src.gl_common.enums import BalanceBucket, WalletType
from src.gl_common.grams import ZERO, average_price, usd_value


@dataclass(frozen=True)
class SnapshotRow:
    """One aggregated row of the snapshot query."""
    wallet_type: str
    bucket: str
    grams: Decimal
    locked_value: Decimal = ZERO   # sum(remaining x locked price); 0 for MPGW rows


@dataclass(frozen=True)
class PoolTotals:
    available: Decimal = ZERO
    pending: Decimal = ZERO
    locked_bnsl: Decimal = ZERO
    reserved_trade: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return self.available + self.pending + self.locked_bnsl + self.reserved_trade

    def bucket(self, bucket: BalanceBucket) -> Decimal:
        return {
            BalanceBucket.AVAILABLE: self.available,
            BalanceBucket.PENDING: self.pending,
            BalanceBucket.LOCKED_BNSL: self.locked_bnsl,
            BalanceBucket.RESERVED_TRADE: self.reserved_trade,
        }[bucket]

    @classmethod
    def from_buckets(cls, buckets: dict[BalanceBucket, Decimal]) -> "PoolTotals":
        return cls(
            available=buckets.get(BalanceBucket.AVAILABLE, ZERO),
            pending=buckets.get(BalanceBucket.PENDING, ZERO),
            locked_bnsl=buckets.get(BalanceBucket.LOCKED_BNSL, ZERO),
            reserved_trade=buckets.get(BalanceBucket.RESERVED_TRADE, ZERO),
        )

    def to_dict(self) -> dict[str, str]:
        return {b.value: str(self.bucket(b)) for b in BalanceBucket}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PoolTotals":
        return cls.from_buckets(
            {b: Decimal(data[b.value]) for b in BalanceBucket if b.value in data}
        )


@dataclass(frozen=True)
class LedgerTotals:
    """Price-independent part of a snapshot — safe to cache."""
    user_id: str
    live: PoolTotals = field(default_factory=PoolTotals)
    fixed: PoolTotals = field(default_factory=PoolTotals)
    fixed_weighted_avg_price: Decimal = ZERO

    @property
    def total_available_grams(self) -> Decimal:
        return self.live.available + self.fixed.available

    @property
    def total_grams(self) -> Decimal:
        return self.live.total + self.fixed.total

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "live": self.live.to_dict(),
            "fixed": self.fixed.to_dict(),
            "fixed_weighted_avg_price": str(self.fixed_weighted_avg_price),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LedgerTotals":
        return cls(
            user_id=data["user_id"],
            live=PoolTotals.from_dict(data["live"]),
            fixed=PoolTotals.from_dict(data["fixed"]),
            fixed_weighted_avg_price=Decimal(data["fixed_weighted_avg_price"]),
        )


@dataclass(frozen=True)
class WalletSnapshot:
    totals: LedgerTotals
    gold_price_per_gram: Decimal
    price_as_of: datetime

    @property
    def live_value_usd(self) -> Decimal:
        return usd_value(self.totals.live.total, self.gold_price_per_gram)

    @property
    def fixed_locked_value_usd(self) -> Decimal:
        return usd_value(self.totals.fixed.total, self.totals.fixed_weighted_avg_price)

    @property
    def fixed_market_value_usd(self) -> Decimal:
        return usd_value(self.totals.fixed.total, self.gold_price_per_gram)

    @property
    def total_value_usd(self) -> Decimal:
        return self.live_value_usd + self.fixed_locked_value_usd


def aggregate_rows(user_id: str, rows: list[SnapshotRow]) -> LedgerTotals:
    """Fold snapshot rows into per-pool bucket totals and the weighted average price.

    The average spans every Active batch regardless of bucket.
    """
    live: dict[BalanceBucket, Decimal] = {}
    fixed: dict[BalanceBucket, Decimal] = {}
    fixed_value = ZERO
    fixed_grams = ZERO
    for row in rows:
        bucket = BalanceBucket(row.bucket)
        if row.wallet_type == WalletType.MPGW.value:
            live[bucket] = live.get(bucket, ZERO) + row.grams
        else:
            fixed[bucket] = fixed.get(bucket, ZERO) + row.grams
            fixed_grams += row.grams
            fixed_value += row.locked_value
    return LedgerTotals(
        user_id=user_id,
        live=PoolTotals.from_buckets(live),
        fixed=PoolTotals.from_buckets(fixed),
        fixed_weighted_avg_price=average_price(fixed_value, fixed_grams),
    )
