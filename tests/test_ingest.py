from __future__ import annotations

import json
from datetime import date, timedelta
from decimal import Decimal
from pathlib import Path

import pytest

from feebill.errors import ValidationError
from feebill.invoice import Currency, InvoiceStatus
from feebill.pipeline.ingest import ingest_invoices, load_rows, with_defaults
from feebill.repository import list_invoices, load_invoice

from conftest import invoice_row


def _write(path: Path, data) -> Path:
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_ingest_stores_every_invoice(out_dir: Path) -> None:
    source = _write(out_dir / "invoices.json", [invoice_row(), invoice_row(invoice_number="INV-2002", currency="BDT")])
    records = ingest_invoices(source)
    assert [r.invoice_number for r in records] == ["INV-2001", "INV-2002"]
    assert records[0].total_amount == "483.33"
    assert load_invoice(records[1].id).currency is Currency.BDT


def test_ingest_accepts_wrapped_list(out_dir: Path) -> None:
    source = _write(out_dir / "invoices.json", {"invoices": [invoice_row()]})
    assert len(ingest_invoices(source)) == 1


def test_defaults_fill_number_dates_and_status(out_dir: Path) -> None:
    row = invoice_row()
    for key in ("invoice_number", "issue_date", "due_date", "status"):
        row.pop(key)
    source = _write(out_dir / "invoices.json", [row, dict(row)])
    records = ingest_invoices(source)
    numbers = [r.invoice_number for r in records]
    assert all(n.startswith("INV-") for n in numbers)
    assert len(set(numbers)) == 2
    invoice = load_invoice(records[0].id)
    assert invoice.issue_date == date.today()
    assert invoice.due_date == date.today() + timedelta(days=30)
    assert invoice.status is InvoiceStatus.DRAFT


def test_due_date_follows_given_issue_date() -> None:
    filled = with_defaults({"issue_date": "2026-01-31"})
    assert filled["due_date"] == "2026-03-02"
    assert filled["currency"] == "USD"


def test_bad_row_imports_nothing(out_dir: Path) -> None:
    bad = invoice_row(invoice_number="INV-2002")
    bad["fees"][0]["unit_price"] = -5
    source = _write(out_dir / "invoices.json", [invoice_row(), bad])
    with pytest.raises(ValidationError) as info:
        ingest_invoices(source)
    assert str(info.value).startswith("Invoice #2")
    assert info.value.location == "fees[0].unit_price"
    assert list_invoices() == []


def test_duplicate_numbers_rejected(out_dir: Path) -> None:
    source = _write(out_dir / "invoices.json", [invoice_row(), invoice_row()])
    with pytest.raises(ValidationError):
        ingest_invoices(source)
    ingest_invoices(_write(out_dir / "one.json", [invoice_row()]))
    with pytest.raises(ValidationError):
        ingest_invoices(_write(out_dir / "again.json", [invoice_row(invoice_number="INV-9"), invoice_row()]))
    assert [r.invoice_number for r in list_invoices()] == ["INV-2001"]


def test_load_rows_errors(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_rows(tmp_path / "missing.json")
    with pytest.raises(ValueError):
        load_rows(_write(tmp_path / "empty.json", []))
    with pytest.raises(ValueError):
        load_rows(_write(tmp_path / "scalar.json", {"invoices": 3}))


def test_ingested_amounts_use_decimal_text(out_dir: Path) -> None:
    row = invoice_row(fees=[{"fee_description": "Postage", "fee_type": "filing", "quantity": 3, "unit_price": 0.1}])
    record = ingest_invoices(_write(out_dir / "invoices.json", [row]))[0]
    assert record.total_amount == "0.30"
    assert load_invoice(record.id).fees[0].unit_price == Decimal("0.1")


def test_numbers_sharing_file_names_rejected(out_dir: Path) -> None:
    source = _write(out_dir / "invoices.json", [invoice_row(invoice_number="INV/1"), invoice_row(invoice_number="INV 1")])
    with pytest.raises(ValidationError) as info:
        ingest_invoices(source)
    assert str(info.value).startswith("Invoice #2")
    assert list_invoices() == []

    ingest_invoices(_write(out_dir / "one.json", [invoice_row(invoice_number="INV/1")]))
    with pytest.raises(ValidationError):
        ingest_invoices(_write(out_dir / "two.json", [invoice_row(invoice_number="INV-9"), invoice_row(invoice_number="inv 1")]))
    assert [r.invoice_number for r in list_invoices()] == ["INV/1"]
