from __future__ import annotations

from dataclasses import replace
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from feebill import config
from feebill.invoice import Client, Currency, FeeLine, FeeType, Invoice, InvoiceStatus, Patent
from feebill.models import reset_engine


def fee(description: str = "Prepare and file application", quantity="1", unit_price="500.00", fee_type=FeeType.PROFESSIONAL) -> FeeLine:
    return FeeLine(description, fee_type, Decimal(str(quantity)), Decimal(str(unit_price)))


def tall_fee(lines: int, unit_price="100.00") -> FeeLine:
    """A fee whose description wraps to exactly ``lines`` lines."""
    return fee("\n".join(f"Step {n}" for n in range(lines)), unit_price=unit_price)


def make_invoice(**overrides) -> Invoice:
    invoice = Invoice(
        invoice_number="INV-1001",
        client=Client("Acme Robotics Inc.", "billing@acme.example", "12 Example Road, Ottawa"),
        patent=Patent("US 11,234,567", "Widget"),
        currency=Currency.USD,
        issue_date=date(2026, 3, 5),
        due_date=date(2026, 4, 4),
        status=InvoiceStatus.SENT,
        notes=None,
        fees=(fee(),),
    )
    return replace(invoice, **overrides)


def invoice_row(**overrides) -> dict:
    row = {
        "invoice_number": "INV-2001",
        "client_name": "Acme Robotics Inc.",
        "client_email": "billing@acme.example",
        "client_address": "12 Example Road, Ottawa",
        "patent_number": "CA 3,000,001",
        "patent_title": "Self-balancing widget",
        "currency": "CAD",
        "issue_date": "2026-03-05",
        "due_date": "2026-04-04",
        "status": "draft",
        "notes": "Net 30",
        "fees": [
            {"fee_description": "Filing fee", "fee_type": "filing", "quantity": 1, "unit_price": 400},
            {"fee_description": "Drafting", "fee_type": "professional", "quantity": 2.5, "unit_price": 33.333},
        ],
    }
    row.update(overrides)
    return row


@pytest.fixture
def out_dir(tmp_path: Path) -> Path:
    config.set_out_dir(tmp_path)
    reset_engine()
    return tmp_path
