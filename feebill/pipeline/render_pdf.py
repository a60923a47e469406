from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import BinaryIO, List, Optional, Sequence, Tuple, Union

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen import canvas

from ..config import load_style_preset
from ..errors import RenderError
from ..invoice import Invoice
from .layout import FilledRect, Page, Primitive, Rule, TextRun, render

logger = logging.getLogger(__name__)


def _hex(value: str, default=colors.black) -> colors.Color:
    if not value:
        return default
    try:
        return colors.HexColor("#" + str(value).lstrip("#"))
    except ValueError:
        return default


def register_fonts(style: dict) -> dict:
    """
    Register TrueType fonts named by ``font_path`` / ``bold_font_path``.

    Returns a copy of the style with ``font_name`` / ``bold_font_name``
    pointing at the registered faces. Without paths the standard
    Helvetica faces stay in place.
    """
    st = dict(style)
    for path_key, name_key, suffix in (("font_path", "font_name", ""), ("bold_font_path", "bold_font_name", "-Bold")):
        path = st.get(path_key)
        if not path:
            continue
        name = f"FeeBill-{Path(path).stem}{suffix}"
        if name not in pdfmetrics.getRegisteredFontNames():
            pdfmetrics.registerFont(TTFont(name, str(path)))
        st[name_key] = name
    return st


def missing_glyphs(text: str, font_name: str) -> List[str]:
    font = pdfmetrics.getFont(font_name)
    if isinstance(font, TTFont):
        cmap = font.face.charToGlyph
        return [ch for ch in text if ord(ch) not in cmap]
    # Standard Type 1 faces are drawn through WinAnsiEncoding.
    missing = []
    for ch in text:
        try:
            ch.encode("cp1252")
        except UnicodeEncodeError:
            missing.append(ch)
    return missing


def check_renderable(pages: Sequence[Page]) -> None:
    """Raise RenderError for the first text run the font cannot draw."""
    for page in pages:
        for run in page.texts():
            missing = missing_glyphs(run.text, run.font)
            if missing:
                ch = missing[0]
                raise RenderError(
                    f"Font {run.font} cannot draw {ch!r} (U+{ord(ch):04X}) in {run.field or 'text'}",
                    field=run.field,
                    text=run.text,
                )


def _draw(canv: canvas.Canvas, prim: Primitive, page_h: float) -> None:
    if isinstance(prim, TextRun):
        canv.setFont(prim.font, prim.size)
        canv.setFillColor(_hex(prim.color))
        y = page_h - prim.y
        if prim.align == "right":
            canv.drawRightString(prim.x, y, prim.text)
        elif prim.align == "center":
            canv.drawCentredString(prim.x, y, prim.text)
        else:
            canv.drawString(prim.x, y, prim.text)
        return

    if isinstance(prim, FilledRect):
        canv.setFillColor(_hex(prim.fill))
        canv.rect(prim.x, page_h - prim.y - prim.height, prim.width, prim.height, stroke=0, fill=1)
        return

    if isinstance(prim, Rule):
        canv.setStrokeColor(_hex(prim.color))
        canv.setLineWidth(prim.width)
        canv.line(prim.x1, page_h - prim.y1, prim.x2, page_h - prim.y2)


def write_pdf(pages: Sequence[Page], sink: Union[str, Path, BinaryIO], title: str = "") -> None:
    """Flatten pages into one PDF written to a path or a binary file object."""
    if not pages:
        raise ValueError("Nothing to write: no pages")
    check_renderable(pages)

    target = str(sink) if isinstance(sink, (str, Path)) else sink
    first = pages[0]
    canv = canvas.Canvas(target, pagesize=(first.width, first.height))
    if title:
        canv.setTitle(title)
    for page in pages:
        canv.setPageSize((page.width, page.height))
        for prim in page.primitives:
            _draw(canv, prim, page.height)
        canv.showPage()
    canv.save()


def render_pdf(
    invoice: Invoice,
    output_path: Path,
    page_size: Tuple[float, float] = A4,
    style: Optional[dict] = None,
) -> List[Page]:
    """
    Lay out and write one invoice.

    The file appears only once it is complete: write_pdf checks every run
    for drawable glyphs before drawing, and the PDF goes to a temporary
    sibling that then replaces ``output_path``.
    """
    st = register_fonts(load_style_preset() if style is None else style)
    pages = render(invoice, page_size, st)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    tmp = output_path.with_name(output_path.name + ".tmp")
    try:
        write_pdf(pages, tmp, title=f"Invoice {invoice.invoice_number}")
        os.replace(tmp, output_path)
    finally:
        if tmp.exists():
            tmp.unlink()
    logger.info("Wrote %s (%d pages)", output_path, len(pages))
    return pages
