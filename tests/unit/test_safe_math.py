"""Unit tests for guarded arithmetic"""

import math

import pytest

from retirement_engine.domain.safe_math import (
    DIVISION_BY_ZERO,
    INVALID_INPUT,
    INVALID_RESULT,
    SafeResult,
    clamp_value,
    guarded_value,
    safe_divide,
    safe_multiply,
    safe_parse_float,
    safe_percentage,
)


def test_safe_divide_by_zero_returns_tagged_default():
    """Zero denominator yields the caller's default tagged division_by_zero"""
    result = safe_divide(100, 0, -1, "test")

    assert result.value == -1
    assert result.error == DIVISION_BY_ZERO
    assert result.context == "test"


def test_safe_divide_zero_numerator_is_exact_zero():
    """A legitimately zero numerator is not an error"""
    result = safe_divide(0, 5)

    assert result == SafeResult(0.0)
    assert result.ok


def test_safe_divide_regular_quotient():
    assert safe_divide("1,000", 4).value == 250.0


def test_safe_divide_non_numeric_numerator():
    result = safe_divide("abc", 4, 7)

    assert result.value == 7
    assert result.error == INVALID_INPUT


def test_safe_divide_overflowing_quotient():
    """Quotients too large to represent fall back to the default"""
    result = safe_divide(1e308, 1e-308, 0.0)

    assert result.value == 0.0
    assert result.error == INVALID_RESULT


@pytest.mark.parametrize("denominator", [None, math.nan, math.inf, "", "x"])
def test_safe_divide_invalid_denominator(denominator):
    result = safe_divide(10, denominator, 3)

    assert result.value == 3
    assert result.error == DIVISION_BY_ZERO


@pytest.mark.parametrize(
    "value,expected",
    [
        (None, 5.0),
        (True, 5.0),
        (math.nan, 5.0),
        (math.inf, 5.0),
        ("", 5.0),
        ("not a number", 5.0),
        (" 12.5 ", 12.5),
        ("15,000", 15000.0),
        (42, 42.0),
    ],
)
def test_safe_parse_float(value, expected):
    assert safe_parse_float(value, 5.0) == expected


def test_safe_multiply_invalid_operand():
    result = safe_multiply("x", 3, 1.5)

    assert result.value == 1.5
    assert result.error == INVALID_INPUT


def test_safe_multiply_overflow():
    result = safe_multiply(1e200, 1e200)

    assert result.value == 0.0
    assert result.error == INVALID_RESULT


def test_safe_percentage():
    assert safe_percentage(25, 200).value == 12.5
    assert safe_percentage(25, 0, 9).error == DIVISION_BY_ZERO
    assert safe_percentage(25, 0, 9).value == 9


def test_clamp_value():
    assert clamp_value(150, 0, 100) == 100
    assert clamp_value(-5, 0, 100) == 0
    assert clamp_value("42", 0, 100) == 42
    assert clamp_value(None, 10, 100) == 10


def test_guarded_value_catches_errors():
    """Exceptions and non-finite outputs are replaced by the default"""
    assert guarded_value("boom", lambda: 1 / 0, 4.0) == 4.0
    assert guarded_value("nan", lambda: math.nan, 2.0) == 2.0
    assert guarded_value("wrapped", lambda: SafeResult(3.5)) == 3.5
