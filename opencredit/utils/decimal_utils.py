"""Fixed-point decimal helpers shared by the metrics and rule evaluators"""

from decimal import Decimal, ROUND_HALF_UP, ROUND_DOWN
from typing import Iterable, Optional

ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")

# Intermediate quotient scale, percentage scale
SCALE = 4
PERCENT_SCALE = 2

_SQRT_TOLERANCE = Decimal("0.00001")
_SQRT_MAX_ITERATIONS = 50


def quantize(value: Decimal, scale: int) -> Decimal:
    """Round half-up to a fixed number of decimal places"""
    return value.quantize(Decimal(1).scaleb(-scale), rounding=ROUND_HALF_UP)


def to_decimal(value) -> Decimal:
    """Coerce ints, floats, bools and strings to Decimal without binary float noise"""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        return ONE if value else ZERO
    if isinstance(value, int):
        return Decimal(value)
    return Decimal(str(value))


def divide(numerator: Decimal, denominator: Decimal, scale: int = SCALE) -> Decimal:
    """Quotient rounded half-up; zero denominator yields zero"""
    if denominator == 0:
        return ZERO
    return quantize(numerator / denominator, scale)


def percentage(part: Decimal, total: Decimal) -> Decimal:
    """part / total * 100, quotient at scale 4, result at scale 2"""
    if total == 0:
        return quantize(ZERO, PERCENT_SCALE)
    return quantize(divide(part, total) * HUNDRED, PERCENT_SCALE)


def clamp(value: Decimal, low: Optional[Decimal] = ZERO, high: Optional[Decimal] = HUNDRED) -> Decimal:
    """Bound a value; either bound may be None"""
    if low is not None and value < low:
        value = low
    if high is not None and value > high:
        value = high
    return value


def mean(values: Iterable[Decimal]) -> Decimal:
    values = list(values)
    if not values:
        return ZERO
    return divide(sum(values, ZERO), Decimal(len(values)))


def sqrt(value: Decimal, scale: int = SCALE) -> Decimal:
    """
    Square root by Newton's method.

    Iterates in Decimal at scale + 2 until successive estimates differ by less than
    0.00001, then rounds half-up to the requested scale. Non-positive input
    returns zero.
    """
    if value <= 0:
        return ZERO

    working_scale = scale + 2
    # Seed within an order of magnitude of the root
    estimate = Decimal(1).scaleb(value.adjusted() // 2)
    for _ in range(_SQRT_MAX_ITERATIONS):
        next_estimate = quantize((estimate + quantize(value / estimate, working_scale)) / 2, working_scale)
        if abs(estimate - next_estimate) < _SQRT_TOLERANCE:
            estimate = next_estimate
            break
        estimate = next_estimate

    return quantize(estimate, scale)


def population_std_dev(values: Iterable[Decimal], center: Decimal) -> Decimal:
    """Population standard deviation around a precomputed mean"""
    values = list(values)
    if len(values) < 2:
        return ZERO
    squared = sum(((v - center) ** 2 for v in values), ZERO)
    variance = divide(squared, Decimal(len(values)))
    return sqrt(variance)


def truncate_to_int(value: Decimal) -> int:
    """Round toward zero"""
    return int(value.to_integral_value(rounding=ROUND_DOWN))
