# storefront/utils/order_numbers.py
import secrets
import string
import time

from storefront.utils.settings import ORDER_NUMBER_PREFIX

_ALPHABET = string.digits + string.ascii_uppercase
MAX_LENGTH = 12


def to_base36(value: int) -> str:
    if value < 0:
        raise ValueError("base36 expects a non-negative integer")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_ALPHABET[rem])
    return "".join(reversed(digits))


def generate_order_number(prefix: str | None = None, now_ms: int | None = None) -> str:
    """
    Human readable order number: base36(ms timestamp) + 3 random base36 chars.
    Not unique on its own, the orders table enforces uniqueness.
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    random_part = "".join(secrets.choice(_ALPHABET) for _ in range(3))
    number = f"{ORDER_NUMBER_PREFIX if prefix is None else prefix}{to_base36(now_ms)}{random_part}"
    return number[:MAX_LENGTH]
