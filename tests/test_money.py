from decimal import Decimal

import pytest

from storefront.utils.money import to_minor_units, to_major_units, format_currency


@pytest.mark.parametrize(
    "amount, expected",
    [
        (Decimal("19.995"), 2000),
        (Decimal("19.994"), 1999),
        (19.995, 2000),
        (19.994, 1999),
        (Decimal("0.005"), 1),
        (12, 1200),
    ],
)
def test_to_minor_units_rounds_half_up(amount, expected):
    assert to_minor_units(amount) == expected


def test_to_major_units():
    assert to_major_units(1999) == Decimal("19.99")
    assert to_major_units(0) == Decimal("0.00")
    assert to_major_units(None) == Decimal("0.00")


def test_format_currency():
    assert format_currency(123456, "nzd") == "NZD $1,234.56"
    assert format_currency(500, "AUD") == "AUD $5.00"
    assert format_currency(500, "eur") == "$5.00"
