from __future__ import annotations

import io
from pathlib import Path

import fitz
import pytest
from reportlab.lib.pagesizes import LETTER

from feebill.errors import RenderError
from feebill.invoice import Currency
from feebill.pipeline.layout import render
from feebill.pipeline.render_pdf import check_renderable, missing_glyphs, render_pdf, write_pdf

from conftest import fee, make_invoice, tall_fee


def test_write_pdf_to_file_object() -> None:
    buffer = io.BytesIO()
    write_pdf(render(make_invoice()), buffer, title="Invoice INV-1001")
    assert buffer.getvalue().startswith(b"%PDF")


def test_write_pdf_needs_pages() -> None:
    with pytest.raises(ValueError):
        write_pdf([], io.BytesIO())


def test_render_pdf_page_count_matches_layout(tmp_path: Path) -> None:
    out = tmp_path / "invoice-inv-1001.pdf"
    invoice = make_invoice(fees=tuple(tall_fee(12) for _ in range(3)))
    pages = render_pdf(invoice, out)
    assert len(pages) == 2
    with fitz.open(out) as doc:
        assert doc.page_count == 2
        text = doc.load_page(1).get_text()
    assert "Description" in text
    assert "$300.00 USD" in text
    assert not (tmp_path / "invoice-inv-1001.pdf.tmp").exists()


def test_letter_page_size(tmp_path: Path) -> None:
    out = tmp_path / "letter.pdf"
    render_pdf(make_invoice(), out, LETTER)
    with fitz.open(out) as doc:
        rect = doc.load_page(0).rect
    assert (round(rect.width), round(rect.height)) == (612, 792)


def test_yen_draws_with_standard_font(tmp_path: Path) -> None:
    out = tmp_path / "cny.pdf"
    render_pdf(make_invoice(currency=Currency.CNY), out)
    assert out.exists()


def test_taka_sign_without_glyph_fails_loudly(tmp_path: Path) -> None:
    out = tmp_path / "bdt.pdf"
    invoice = make_invoice(currency=Currency.BDT, fees=(fee("Filing", "1", "1500"),))
    with pytest.raises(RenderError) as info:
        render_pdf(invoice, out)
    assert info.value.field == "fees[0].unit_price"
    assert info.value.text == "৳1500.00"
    assert not out.exists()
    assert not (tmp_path / "bdt.pdf.tmp").exists()


def test_failed_render_keeps_previous_file(tmp_path: Path) -> None:
    out = tmp_path / "invoice.pdf"
    out.write_bytes(b"previous")
    with pytest.raises(RenderError):
        render_pdf(make_invoice(currency=Currency.BDT), out)
    assert out.read_bytes() == b"previous"


def test_missing_glyphs_for_standard_fonts() -> None:
    assert missing_glyphs("CA$12.00 ¥ é", "Helvetica") == []
    assert missing_glyphs("৳12.00", "Helvetica") == ["৳"]


def test_check_renderable_names_description_field() -> None:
    pages = render(make_invoice(fees=(fee("Search ৳ report"),)))
    with pytest.raises(RenderError) as info:
        check_renderable(pages)
    assert info.value.field == "fees[0].description"
