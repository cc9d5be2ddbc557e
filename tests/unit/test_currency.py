"""Unit tests for currency formatting and conversion"""

import math

import pytest

from retirement_engine.domain.currency import convert_currency, format_currency


@pytest.mark.parametrize(
    "amount,code,expected",
    [
        (1234567, "ILS", "₪1,234,567"),
        (1500.4, "USD", "$1,500"),
        (2000, "EUR", "€2,000"),
        (0.5, "BTC", "₿0.500000"),
        (1.25, "ETH", "Ξ1.250000"),
        (100, "CHF", "CHF 100"),
    ],
)
def test_format_currency(amount, code, expected):
    assert format_currency(amount, code) == expected


@pytest.mark.parametrize("amount", [None, math.nan, math.inf, "abc"])
def test_format_currency_invalid_amount_renders_zero(amount):
    assert format_currency(amount) == "₪0"


def test_convert_currency():
    rates = {"USD": 3.7, "BTC": 250000, "ETH": 10000, "CHF": 4.0}

    assert convert_currency(37000, "USD", rates) == "$10,000"
    assert convert_currency(500000, "BTC", rates) == "₿2.000000"
    assert convert_currency(25000, "ETH", rates) == "Ξ2.5000"
    assert convert_currency(1000, "CHF", rates) == "250.00 CHF"


@pytest.mark.parametrize(
    "rates,amount",
    [
        (None, 100),
        ({}, 100),
        ({"EUR": 4.0}, 100),
        ({"USD": 0}, 100),
        ({"USD": 3.7}, "lots"),
    ],
)
def test_convert_currency_not_available(rates, amount):
    assert convert_currency(amount, "USD", rates) == "N/A"
