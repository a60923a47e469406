from __future__ import annotations

from pathlib import Path

import pytest

from feebill.errors import ValidationError
from feebill.invoice import Currency
from feebill.pipeline.export import export_invoice, export_invoices
from feebill.repository import create_invoice, list_invoices

from conftest import make_invoice, tall_fee


def test_export_invoice_writes_named_pdf_and_preview(out_dir: Path) -> None:
    invoice = make_invoice(fees=tuple(tall_fee(12) for _ in range(3)))
    pdf_path, pages, previews = export_invoice(invoice, preview=True)
    assert pdf_path == out_dir / "invoice-inv-1001.pdf"
    assert pdf_path.exists()
    assert len(pages) == 2
    assert [p.name for p in previews] == ["invoice-inv-1001-page1.png"]
    assert previews[0].read_bytes().startswith(b"\x89PNG")


def test_export_letter(out_dir: Path) -> None:
    pdf_path, _, previews = export_invoice(make_invoice(), page_size="Letter")
    assert pdf_path.name == "invoice-inv-1001-letter.pdf"
    assert previews == []


def test_unknown_page_size(out_dir: Path) -> None:
    with pytest.raises(ValueError):
        export_invoice(make_invoice(), page_size="a3")


def test_batch_continues_past_failures(out_dir: Path) -> None:
    create_invoice(make_invoice(invoice_number="INV-1"))
    create_invoice(make_invoice(invoice_number="INV-2", currency=Currency.BDT))
    create_invoice(make_invoice(invoice_number="INV-3", currency=Currency.CAD))
    results = export_invoices(list_invoices())
    assert sorted(results["READY"]) == ["INV-1", "INV-3"]
    assert results["FAILED"] == ["INV-2"]
    assert (out_dir / "invoice-inv-1.pdf").exists()
    assert not (out_dir / "invoice-inv-2.pdf").exists()
    assert "৳" in (out_dir / "invoice-inv-2.error.log").read_text(encoding="utf-8")


def test_each_stored_invoice_gets_its_own_pdf(out_dir: Path) -> None:
    create_invoice(make_invoice(invoice_number="INV/1"))
    with pytest.raises(ValidationError):
        create_invoice(make_invoice(invoice_number="INV 1"))
    create_invoice(make_invoice(invoice_number="INV/2"))
    results = export_invoices(list_invoices())
    assert sorted(results["READY"]) == ["INV/1", "INV/2"]
    assert sorted(p.name for p in out_dir.glob("*.pdf")) == ["invoice-inv-1.pdf", "invoice-inv-2.pdf"]
