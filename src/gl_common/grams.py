"""Decimal arithmetic for gold grams and USD prices.

Grams are the single source of truth: NUMERIC(18,6), never float.
USD values are always derived (grams x price) and rounded only for display.
"""

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from src.gl_common.errors import InvalidPriceError, InvalidQuantityError

GRAMS_QUANTUM = Decimal("0.000001")
PRICE_QUANTUM = Decimal("0.000001")
USD_QUANTUM = Decimal("0.01")
ZERO = Decimal("0")


def _to_decimal(value: object) -> Decimal | None:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        return None
    try:
        # str() first so 0.1 stays 0.1 instead of its binary expansion
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return None


def parse_grams(value: object) -> Decimal:
    """Validate a positive gram quantity with at most 6 decimal places."""
    grams = _to_decimal(value)
    if grams is None or not grams.is_finite():
        raise InvalidQuantityError(f"not a number: {value!r}")
    if grams <= 0:
        raise InvalidQuantityError(f"must be greater than zero, got {grams}")
    if grams.as_tuple().exponent < -6:  # type: ignore[operator]
        raise InvalidQuantityError(f"more than 6 decimal places: {grams}")
    return grams.quantize(GRAMS_QUANTUM)


def parse_price(value: object) -> Decimal:
    """Validate a positive USD-per-gram price, quantized to 6 dp."""
    price = _to_decimal(value)
    if price is None or not price.is_finite():
        raise InvalidPriceError(f"not a number: {value!r}")
    if price <= 0:
        raise InvalidPriceError(f"must be greater than zero, got {price}")
    return price.quantize(PRICE_QUANTUM, rounding=ROUND_HALF_UP)


def round_usd(amount: Decimal) -> Decimal:
    return amount.quantize(USD_QUANTUM, rounding=ROUND_HALF_UP)


def usd_value(grams: Decimal, price: Decimal) -> Decimal:
    """grams x price rounded to cents."""
    return round_usd(grams * price)


def average_price(total_value: Decimal, total_grams: Decimal) -> Decimal:
    """total_value / total_grams; 0 when there are no grams."""
    if total_grams == 0:
        return ZERO.quantize(PRICE_QUANTUM)
    return (total_value / total_grams).quantize(PRICE_QUANTUM, rounding=ROUND_HALF_UP)


def weighted_average_price(lots: Iterable[tuple[Decimal, Decimal]]) -> Decimal:
    """sum(grams_i * price_i) / sum(grams_i) over (grams, price) lots."""
    total_grams = ZERO
    total_value = ZERO
    for grams, price in lots:
        total_grams += grams
        total_value += grams * price
    return average_price(total_value, total_grams)


def grams_to_display(grams: Decimal) -> str:
    """10.5 -> '10.500000g'."""
    return f"{grams.quantize(GRAMS_QUANTUM):f}g"


def usd_to_display(amount: Decimal) -> str:
    """Convert USD to display string: 6500 -> '$6,500.00', -12 -> '-$12.00'."""
    rounded = round_usd(amount)
    if rounded < 0:
        return f"-${-rounded:,.2f}"
    return f"${rounded:,.2f}"
