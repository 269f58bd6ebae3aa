"""Minor-unit money amounts"""

import re
from decimal import Decimal

from checkout.errors import ValidationError

MIN_AMOUNT = 50  # $0.50

CURRENCY_SYMBOLS = {"usd": "$", "eur": "€", "gbp": "£", "cad": "$", "aud": "$"}

_CURRENCY_RE = re.compile(r"^[a-z]{3}$")


def format_amount(amount: int, currency: str = "usd") -> str:
    """Render minor units for display, e.g. ``50`` -> ``$0.50``"""
    major = (Decimal(amount) / 100).quantize(Decimal("0.01"))
    symbol = CURRENCY_SYMBOLS.get(currency.lower())
    if symbol:
        return f"{symbol}{major}"
    return f"{major} {currency.upper()}"


def validate_amount(amount, minimum: int = MIN_AMOUNT, currency: str = "usd") -> int:
    """Return ``amount`` if it is an integer at or above ``minimum``"""
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValidationError("Amount must be an integer number of minor currency units")
    if amount < minimum:
        raise ValidationError(f"Minimum order amount is {format_amount(minimum, currency)}")
    return amount


def normalize_currency(currency: str) -> str:
    code = (currency or "").strip().lower()
    if not _CURRENCY_RE.match(code):
        raise ValidationError(f"Invalid currency code: {currency!r}")
    return code
