from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from types import MappingProxyType
from typing import Mapping

CENT = Decimal("0.01")

CURRENCY_SYMBOLS: Mapping[str, str] = MappingProxyType(
    {
        "CAD": "CA$",
        "USD": "$",
        "BDT": "৳",
        "CNY": "¥",
    }
)

CURRENCY_NAMES: Mapping[str, str] = MappingProxyType(
    {
        "CAD": "Canadian Dollar",
        "USD": "US Dollar",
        "BDT": "Bangladeshi Taka",
        "CNY": "Chinese Yuan",
    }
)


def to_decimal(value) -> Decimal:
    """Convert user/storage input to Decimal.

    Floats go through ``str`` so 0.1 stays 0.1 instead of its binary expansion.
    Raises ValueError for anything that is not a finite number.
    """
    if isinstance(value, bool):
        raise ValueError(f"Not a number: {value!r}")
    if isinstance(value, Decimal):
        d = value
    else:
        try:
            d = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"Not a number: {value!r}") from None
    if not d.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return d


def round2(value: Decimal) -> Decimal:
    """Round to 2 decimal places, half-up (0.125 -> 0.13)."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def _code(currency) -> str:
    # Accept the Currency enum or its plain code.
    code = str(getattr(currency, "value", currency))
    if code not in CURRENCY_SYMBOLS:
        raise ValueError(f"Unsupported currency: {code!r}")
    return code


def currency_symbol(currency) -> str:
    return CURRENCY_SYMBOLS[_code(currency)]


def currency_name(currency) -> str:
    return CURRENCY_NAMES[_code(currency)]


def format_money(amount, currency) -> str:
    """``{symbol}{amount with exactly 2 decimals}``, e.g. ``CA$1250.00``."""
    return f"{currency_symbol(currency)}{round2(amount):f}"


def format_total(amount, currency) -> str:
    """Total line: ``{symbol}{amount} {code}``, e.g. ``$500.00 USD``."""
    return f"{format_money(amount, currency)} {_code(currency)}"


def format_quantity(quantity) -> str:
    """Minimal decimal representation: 2.50 -> '2.5', 3 -> '3', 100 -> '100'."""
    d = to_decimal(quantity)
    if d == d.to_integral_value():
        return f"{d.quantize(Decimal(1)):f}"
    return f"{d.normalize():f}"


def parse_money(text: str, currency) -> Decimal:
    """Inverse of format_money/format_total for the given currency."""
    code = _code(currency)
    value = text.strip()
    if value.endswith(code):
        value = value[: -len(code)].rstrip()
    symbol = CURRENCY_SYMBOLS[code]
    if not value.startswith(symbol):
        raise ValueError(f"Amount {text!r} is not in {code}")
    return to_decimal(value[len(symbol):])
