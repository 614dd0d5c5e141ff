"""Tests for gl_common.grams — Decimal gram and USD arithmetic."""

from decimal import Decimal

import pytest

from src.gl_common.errors import InvalidPriceError, InvalidQuantityError
from src.gl_common.grams import (
    average_price,
    grams_to_display,
    parse_grams,
    parse_price,
    round_usd,
    usd_to_display,
    usd_value,
    weighted_average_price,
)


class TestParseGrams:
    def test_decimal_passthrough(self) -> None:
        assert parse_grams(Decimal("7")) == Decimal("7.000000")

    def test_string_and_int(self) -> None:
        assert parse_grams("0.000001") == Decimal("0.000001")
        assert parse_grams(10) == Decimal("10")

    def test_float_uses_shortest_repr(self) -> None:
        assert parse_grams(0.1) == Decimal("0.1")

    def test_zero_raises(self) -> None:
        with pytest.raises(InvalidQuantityError, match="greater than zero"):
            parse_grams(0)

    def test_negative_raises(self) -> None:
        with pytest.raises(InvalidQuantityError):
            parse_grams("-1")

    def test_seven_decimal_places_raises(self) -> None:
        with pytest.raises(InvalidQuantityError, match="6 decimal places"):
            parse_grams("0.0000001")

    def test_non_finite_raises(self) -> None:
        for bad in ("NaN", "Infinity", "abc", None, True):
            with pytest.raises(InvalidQuantityError):
                parse_grams(bad)


class TestParsePrice:
    def test_quantized(self) -> None:
        assert parse_price("80") == Decimal("80.000000")
        assert parse_price("80.0000005") == Decimal("80.000001")

    def test_non_positive_raises(self) -> None:
        for bad in (0, "-5", "nope"):
            with pytest.raises(InvalidPriceError):
                parse_price(bad)


class TestUsd:
    def test_usd_value_rounds_to_cents(self) -> None:
        assert usd_value(Decimal("7"), Decimal("80")) == Decimal("560.00")
        assert usd_value(Decimal("0.000001"), Decimal("80")) == Decimal("0.00")

    def test_round_half_up(self) -> None:
        assert round_usd(Decimal("0.005")) == Decimal("0.01")

    def test_display(self) -> None:
        assert usd_to_display(Decimal("6500")) == "$6,500.00"
        assert usd_to_display(Decimal("-12")) == "-$12.00"
        assert usd_to_display(Decimal("0")) == "$0.00"

    def test_grams_display(self) -> None:
        assert grams_to_display(Decimal("10.5")) == "10.500000g"


class TestAveragePrice:
    def test_weighted_average(self) -> None:
        lots = [(Decimal("3"), Decimal("70")), (Decimal("7"), Decimal("90"))]
        assert weighted_average_price(lots) == Decimal("84")

    def test_empty_is_zero(self) -> None:
        assert weighted_average_price([]) == Decimal("0")
        assert average_price(Decimal("0"), Decimal("0")) == Decimal("0")

    def test_single_lot(self) -> None:
        assert weighted_average_price([(Decimal("2.5"), Decimal("61.25"))]) == Decimal("61.25")
