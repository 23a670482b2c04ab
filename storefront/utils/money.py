# storefront/utils/money.py
from decimal import Decimal, ROUND_HALF_UP

_CURRENCY_SYMBOLS = {
    "aud": "AUD $",
    "nzd": "NZD $",
    "usd": "USD $",
}


def to_minor_units(amount) -> int:
    """Major units (e.g. 19.99) -> integer minor units, rounding half up."""
    value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    return int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_major_units(amount: int | None) -> Decimal:
    return (Decimal(amount or 0) / 100).quantize(Decimal("0.01"))


def format_currency(amount_minor: int, currency: str) -> str:
    symbol = _CURRENCY_SYMBOLS.get((currency or "").lower(), "$")
    return f"{symbol}{to_major_units(amount_minor):,.2f}"
