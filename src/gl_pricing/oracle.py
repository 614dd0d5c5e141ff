"""Gold spot price oracle.

The ledger treats the oracle as read-only and eventually consistent: every
call returns the value at call time, nothing is cached here.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Protocol

import httpx

from config.settings import settings
from src.gl_common.errors import InvalidPriceError, PriceUnavailableError
from src.gl_common.grams import parse_price

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SpotPrice:
    price_usd_per_gram: Decimal
    as_of: datetime


class PriceOracleProtocol(Protocol):
    async def get_spot_price(self) -> SpotPrice: ...


class FixedPriceOracle:
    """Constant price — local development and tests."""

    def __init__(self, price_usd_per_gram: Decimal | str | int) -> None:
        self._price = parse_price(price_usd_per_gram)

    async def get_spot_price(self) -> SpotPrice:
        return SpotPrice(price_usd_per_gram=self._price, as_of=datetime.now(timezone.utc))


class HttpPriceOracle:
    """Polls a JSON endpoint returning {"price_per_gram": ..., "timestamp": ...}.

    `pricePerGram` is accepted as an alias. `timestamp` may be ISO-8601 or
    epoch seconds; when absent the fetch time is used.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._transport = transport

    async def get_spot_price(self) -> SpotPrice:
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                resp = await client.get(self._url)
                resp.raise_for_status()
                payload = resp.json()
        except httpx.HTTPError as exc:
            logger.warning("Gold price fetch failed: %s", exc)
            raise PriceUnavailableError(f"Gold price fetch failed: {exc}") from exc
        except ValueError as exc:
            raise PriceUnavailableError("Gold price response is not JSON") from exc
        return _parse_payload(payload)


def _parse_payload(payload: Any) -> SpotPrice:
    if not isinstance(payload, dict):
        raise PriceUnavailableError("Gold price response is not an object")
    raw = payload.get("price_per_gram", payload.get("pricePerGram"))
    if raw is None:
        raise PriceUnavailableError("Gold price response has no price_per_gram")
    try:
        price = parse_price(raw)
    except InvalidPriceError as exc:
        raise PriceUnavailableError(f"Oracle returned unusable price: {raw!r}") from exc
    return SpotPrice(price_usd_per_gram=price, as_of=_parse_timestamp(payload.get("timestamp")))


def _parse_timestamp(raw: Any) -> datetime:
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return datetime.fromtimestamp(raw, tz=timezone.utc)
    if isinstance(raw, str):
        try:
            parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            return datetime.now(timezone.utc)
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return datetime.now(timezone.utc)


class UnconfiguredPriceOracle:
    async def get_spot_price(self) -> SpotPrice:
        raise PriceUnavailableError(
            "No gold price source configured (GOLD_PRICE_URL or GOLD_PRICE_FIXED_USD_PER_GRAM)"
        )


_oracle: PriceOracleProtocol | None = None


def get_price_oracle() -> PriceOracleProtocol:
    """Process-wide oracle built from settings on first use."""
    global _oracle  # noqa: PLW0603
    if _oracle is None:
        if settings.GOLD_PRICE_URL:
            _oracle = HttpPriceOracle(
                settings.GOLD_PRICE_URL, timeout=settings.GOLD_PRICE_TIMEOUT_SECONDS
            )
        elif settings.GOLD_PRICE_FIXED_USD_PER_GRAM is not None:
            _oracle = FixedPriceOracle(settings.GOLD_PRICE_FIXED_USD_PER_GRAM)
        else:
            _oracle = UnconfiguredPriceOracle()
    return _oracle
