"""Tests for gl_pricing.oracle using httpx.MockTransport."""

from datetime import UTC, datetime
from decimal import Decimal

import httpx
import pytest

from src.gl_common.errors import InvalidPriceError, PriceUnavailableError
from src.gl_pricing import oracle as oracle_module
from src.gl_pricing.oracle import (
    FixedPriceOracle,
    HttpPriceOracle,
    UnconfiguredPriceOracle,
    get_price_oracle,
)

_URL = "https://prices.example.test/gold"


def _oracle(handler) -> HttpPriceOracle:  # type: ignore[no-untyped-def]
    return HttpPriceOracle(_URL, timeout=1.0, transport=httpx.MockTransport(handler))


class TestFixedPriceOracle:
    async def test_returns_configured_price(self) -> None:
        spot = await FixedPriceOracle("80").get_spot_price()
        assert spot.price_usd_per_gram == Decimal("80")
        assert spot.as_of.tzinfo is not None

    def test_rejects_non_positive(self) -> None:
        with pytest.raises(InvalidPriceError):
            FixedPriceOracle(0)


class TestHttpPriceOracle:
    async def test_parses_price_and_iso_timestamp(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url == _URL
            return httpx.Response(
                200, json={"price_per_gram": "85.123456", "timestamp": "2026-10-19T12:00:00Z"}
            )

        spot = await _oracle(handler).get_spot_price()
        assert spot.price_usd_per_gram == Decimal("85.123456")
        assert spot.as_of == datetime(2026, 10, 19, 12, 0, tzinfo=UTC)

    async def test_camel_case_alias_and_epoch(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"pricePerGram": 80, "timestamp": 0})

        spot = await _oracle(handler).get_spot_price()
        assert spot.price_usd_per_gram == Decimal("80")
        assert spot.as_of == datetime(1970, 1, 1, tzinfo=UTC)

    async def test_http_error_is_price_unavailable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="bad gateway")

        with pytest.raises(PriceUnavailableError) as exc_info:
            await _oracle(handler).get_spot_price()
        assert exc_info.value.retryable is True

    async def test_transport_failure_is_price_unavailable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        with pytest.raises(PriceUnavailableError):
            await _oracle(handler).get_spot_price()

    async def test_non_json_body(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>")

        with pytest.raises(PriceUnavailableError, match="not JSON"):
            await _oracle(handler).get_spot_price()

    async def test_missing_price(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"timestamp": 0})

        with pytest.raises(PriceUnavailableError, match="price_per_gram"):
            await _oracle(handler).get_spot_price()

    async def test_non_positive_price(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"price_per_gram": 0})

        with pytest.raises(PriceUnavailableError, match="unusable"):
            await _oracle(handler).get_spot_price()


class TestGetPriceOracle:
    async def test_unconfigured_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(oracle_module, "_oracle", None)
        monkeypatch.setattr(oracle_module.settings, "GOLD_PRICE_URL", None)
        monkeypatch.setattr(oracle_module.settings, "GOLD_PRICE_FIXED_USD_PER_GRAM", None)
        oracle = get_price_oracle()
        assert isinstance(oracle, UnconfiguredPriceOracle)
        with pytest.raises(PriceUnavailableError):
            await oracle.get_spot_price()

    def test_url_wins_over_fixed(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(oracle_module, "_oracle", None)
        monkeypatch.setattr(oracle_module.settings, "GOLD_PRICE_URL", _URL)
        monkeypatch.setattr(oracle_module.settings, "GOLD_PRICE_FIXED_USD_PER_GRAM", Decimal("80"))
        assert isinstance(get_price_oracle(), HttpPriceOracle)

    def test_fixed_price(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(oracle_module, "_oracle", None)
        monkeypatch.setattr(oracle_module.settings, "GOLD_PRICE_URL", None)
        monkeypatch.setattr(oracle_module.settings, "GOLD_PRICE_FIXED_USD_PER_GRAM", Decimal("80"))
        oracle = get_price_oracle()
        assert isinstance(oracle, FixedPriceOracle)
        assert get_price_oracle() is oracle
