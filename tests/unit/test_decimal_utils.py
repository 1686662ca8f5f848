"""Unit tests for fixed-point and date helpers"""

from datetime import date
from decimal import Decimal

import pytest

from opencredit.utils.date_utils import in_window, month_key, subtract_months
from opencredit.utils.decimal_utils import (
    clamp,
    divide,
    mean,
    percentage,
    population_std_dev,
    quantize,
    sqrt,
    to_decimal,
    truncate_to_int,
)


@pytest.mark.parametrize(
    "value, scale, expected",
    [
        ("2.5", 0, "3"),
        ("-2.5", 0, "-3"),
        ("69.75", 0, "70"),
        ("1.23449", 4, "1.2345"),
        ("0.005", 2, "0.01"),
    ],
)
def test_quantize_rounds_half_up(value, scale, expected):
    """Test half-up rounding away from zero"""
    assert quantize(Decimal(value), scale) == Decimal(expected)


def test_divide_by_zero_is_zero():
    assert divide(Decimal("10"), Decimal("0")) == Decimal("0")


def test_divide_scale():
    """Test quotient keeps four places"""
    assert divide(Decimal("1"), Decimal("3")) == Decimal("0.3333")
    assert divide(Decimal("2"), Decimal("3")) == Decimal("0.6667")


def test_percentage():
    assert percentage(Decimal("1"), Decimal("3")) == Decimal("33.33")
    assert percentage(Decimal("5"), Decimal("0")) == Decimal("0")


def test_clamp_bounds():
    assert clamp(Decimal("-5")) == Decimal("0")
    assert clamp(Decimal("150")) == Decimal("100")
    assert clamp(Decimal("42")) == Decimal("42")
    assert clamp(Decimal("7"), Decimal("10"), None) == Decimal("10")
    assert clamp(Decimal("7000000"), None, Decimal("5000000")) == Decimal("5000000")


@pytest.mark.parametrize(
    "value, expected",
    [
        ("2", "1.4142"),
        ("1000000", "1000"),
        ("20000", "141.4214"),
        ("0.0004", "0.02"),
        ("0", "0"),
    ],
)
def test_sqrt_newton(value, expected):
    """Test square root converges to four places"""
    assert sqrt(Decimal(value)) == Decimal(expected)


def test_population_std_dev():
    values = [Decimal("100"), Decimal("300")]
    assert population_std_dev(values, mean(values)) == Decimal("100")


def test_population_std_dev_single_value_is_zero():
    assert population_std_dev([Decimal("5")], Decimal("5")) == Decimal("0")


def test_to_decimal_avoids_float_noise():
    assert to_decimal(0.15) == Decimal("0.15")
    assert to_decimal(True) == Decimal("1")
    assert to_decimal(False) == Decimal("0")
    assert to_decimal(7) == Decimal("7")


def test_truncate_to_int_rounds_toward_zero():
    assert truncate_to_int(Decimal("45.9")) == 45
    assert truncate_to_int(Decimal("0.4")) == 0


@pytest.mark.parametrize(
    "start, months, expected",
    [
        (date(2024, 5, 31), 3, date(2024, 2, 29)),
        (date(2025, 3, 31), 1, date(2025, 2, 28)),
        (date(2026, 1, 15), 3, date(2025, 10, 15)),
        (date(2026, 6, 30), 12, date(2025, 6, 30)),
    ],
)
def test_subtract_months_clamps_day(start, months, expected):
    """Test calendar-month subtraction clamps to the end of short months"""
    assert subtract_months(start, months) == expected


def test_month_key():
    assert month_key(date(2026, 3, 9)) == "2026-03"


def test_in_window_boundaries():
    start, end = date(2026, 3, 30), date(2026, 6, 30)
    assert in_window(start, start, end)
    assert in_window(end, start, end)
    assert not in_window(date(2026, 3, 29), start, end)
