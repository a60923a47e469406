from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from typing import TYPE_CHECKING, List, Sequence, Tuple

from ..errors import ValidationError
from .money import round2, to_decimal

if TYPE_CHECKING:
    from ..invoice import FeeLine


def fee_number(value, field: str, index: int) -> Decimal:
    """``to_decimal`` for a fee line field; bad input names the line and field."""
    try:
        return to_decimal(value)
    except ValueError:
        raise ValidationError(f"{field} is not a valid number: {value!r}", field=field, index=index) from None


def checked_line(quantity, unit_price, index: int) -> Tuple[Decimal, Decimal]:
    """Quantity must be positive and unit price non-negative."""
    quantity = fee_number(quantity, "quantity", index)
    unit_price = fee_number(unit_price, "unit_price", index)
    if quantity <= 0:
        raise ValidationError(f"quantity must be positive; got {quantity}", field="quantity", index=index)
    if unit_price < 0:
        raise ValidationError(f"unit_price must not be negative; got {unit_price}", field="unit_price", index=index)
    return quantity, unit_price


def compute_amounts(fees: Sequence[FeeLine]) -> Tuple[List[FeeLine], Decimal]:
    """Price every fee line and total them.

    Each line gets ``amount = round2(quantity * unit_price)``; the total is
    ``round2`` of the sum of those rounded amounts. Input order is kept.
    Any supplied ``amount`` is ignored and recomputed.
    """
    priced: List[FeeLine] = []
    for index, fee in enumerate(fees):
        quantity, unit_price = checked_line(fee.quantity, fee.unit_price, index)
        priced.append(
            replace(fee, quantity=quantity, unit_price=unit_price, amount=round2(quantity * unit_price))
        )
    total = round2(sum((fee.amount for fee in priced), Decimal("0")))
    return priced, total


def invoice_total(fees: Sequence[FeeLine]) -> Decimal:
    return compute_amounts(fees)[1]
