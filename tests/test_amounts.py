from __future__ import annotations

import random
from decimal import Decimal

import pytest

from feebill.errors import ValidationError
from feebill.invoice import FeeLine, FeeType
from feebill.pipeline.amounts import compute_amounts, invoice_total

from conftest import fee


def test_line_amounts_and_total() -> None:
    fees = [fee("Drafting", "2.5", "33.333"), fee("Postage", "1", "0.125")]
    priced, total = compute_amounts(fees)
    assert [line.amount for line in priced] == [Decimal("83.33"), Decimal("0.13")]
    assert total == Decimal("83.46")


def test_order_is_preserved() -> None:
    fees = [fee(f"Item {n}", "1", str(n)) for n in range(5)]
    priced, _ = compute_amounts(fees)
    assert [line.description for line in priced] == [f"Item {n}" for n in range(5)]


def test_total_does_not_depend_on_order() -> None:
    fees = [fee(f"Item {n}", "1.5", f"{n}.335") for n in range(8)]
    expected = invoice_total(fees)
    rng = random.Random(7)
    for _ in range(10):
        shuffled = list(fees)
        rng.shuffle(shuffled)
        assert invoice_total(shuffled) == expected


def test_total_sums_rounded_line_amounts() -> None:
    # 3 x 0.005 rounds per line to 0.01 each; total is 0.03 not round2(0.015).
    fees = [fee("Tiny", "1", "0.005") for _ in range(3)]
    assert invoice_total(fees) == Decimal("0.03")


def test_empty_fees_total_zero() -> None:
    priced, total = compute_amounts([])
    assert priced == []
    assert total == Decimal("0.00")
    assert f"{total:f}" == "0.00"


def test_supplied_amount_is_recomputed() -> None:
    line = FeeLine("Filing", FeeType.FILING, Decimal("2"), Decimal("10"), amount=Decimal("999"))
    priced, total = compute_amounts([line])
    assert priced[0].amount == Decimal("20.00")
    assert total == Decimal("20.00")


@pytest.mark.parametrize(
    "quantity, unit_price, field",
    [("0", "10", "quantity"), ("-1", "10", "quantity"), ("1", "-0.01", "unit_price"), ("x", "1", "quantity")],
)
def test_invalid_line_names_index_and_field(quantity: str, unit_price: str, field: str) -> None:
    fees = [
        fee("Good", "1", "10"),
        FeeLine("Bad", FeeType.SEARCH, quantity, unit_price),
    ]
    with pytest.raises(ValidationError) as info:
        compute_amounts(fees)
    assert info.value.index == 1
    assert info.value.field == field
    assert info.value.location == f"fees[1].{field}"


def test_zero_unit_price_is_allowed() -> None:
    _, total = compute_amounts([fee("Courtesy review", "1", "0")])
    assert total == Decimal("0.00")
