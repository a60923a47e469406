from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple, Union

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm

from ..invoice import FEE_TYPE_LABELS, FeeLine, FeeType, Invoice, validate_invoice
from .amounts import compute_amounts
from .money import format_money, format_quantity, format_total
from .wrap import wrap_text

# All coordinates are PDF points measured from the top-left corner of the
# page, y growing downwards. Text runs are positioned by their baseline.


@dataclass(frozen=True)
class TextRun:
    x: float
    y: float
    text: str
    font: str
    size: float
    align: str = "left"  # left | right | center
    color: str = "#000000"
    field: str = ""


@dataclass(frozen=True)
class FilledRect:
    x: float
    y: float
    width: float
    height: float
    fill: str


@dataclass(frozen=True)
class Rule:
    x1: float
    y1: float
    x2: float
    y2: float
    color: str
    width: float = 1.0


Primitive = Union[TextRun, FilledRect, Rule]


@dataclass(frozen=True)
class Page:
    number: int
    width: float
    height: float
    margin: float
    primitives: Tuple[Primitive, ...] = ()

    @property
    def content_width(self) -> float:
        return self.width - 2 * self.margin

    @property
    def content_height(self) -> float:
        return self.height - 2 * self.margin

    def texts(self) -> List[TextRun]:
        return [p for p in self.primitives if isinstance(p, TextRun)]


@dataclass(frozen=True)
class Block:
    """A vertical slice of the document that is never split across pages.

    Primitives are positioned relative to the block's top edge.
    ``continuation`` is re-drawn at the top of a page when this block is
    pushed there by a page break (the table header for table rows).
    """

    kind: str
    height: float
    primitives: Tuple[Primitive, ...] = ()
    continuation: Optional["Block"] = None
    keep_with_next: bool = False
    discardable: bool = False


DEFAULT_STYLE: Dict[str, object] = {
    "margin": 20 * mm,
    "font_name": "Helvetica",
    "bold_font_name": "Helvetica-Bold",
    "title_size": 24,
    "title_height": 18 * mm,
    "section_size": 12,
    "body_size": 10,
    "table_size": 9,
    "total_size": 14,
    "footer_size": 8,
    "line_height": 6 * mm,
    "band_gap": 10 * mm,
    "address_width": 80 * mm,
    "table_line_height": 5 * mm,
    "min_row_height": 8 * mm,
    "header_row_height": 8 * mm,
    "header_gap": 2 * mm,
    "cell_padding": 2 * mm,
    "column_weights": [70, 35, 15, 30, 30],
    "total_rule_gap": 5 * mm,
    "total_line_gap": 10 * mm,
    "total_label_offset": 60 * mm,
    "text_color": "#000000",
    "secondary_color": "#6B7280",
    "header_fill": "#F0F0F0",
    "rule_color": "#C8C8C8",
}

TABLE_HEADERS = ["Description", "Type", "Qty", "Unit Price", "Amount"]
TABLE_ALIGN = ["left", "left", "left", "right", "right"]

EPSILON = 1e-6


def _f(style: dict, key: str) -> float:
    return float(style[key])


def format_date(value: date) -> str:
    """Human-readable, never ISO: ``5 March 2026``."""
    return f"{value.day} {value:%B %Y}"


def _shift(primitive: Primitive, dy: float) -> Primitive:
    if isinstance(primitive, Rule):
        return replace(primitive, y1=primitive.y1 + dy, y2=primitive.y2 + dy)
    return replace(primitive, y=primitive.y + dy)


def _text_lines(
    kind: str,
    rows: Sequence[Tuple[str, str, float, str]],
    x: float,
    line_height: float,
    style: dict,
) -> Block:
    """One text line per row, ``(text, font, size, field)``, baseline at 3/4 of the line."""
    color = str(style["text_color"])
    runs = tuple(
        TextRun(x, i * line_height + line_height * 0.75, text, font, size, color=color, field=name)
        for i, (text, font, size, name) in enumerate(rows)
    )
    return Block(kind, len(rows) * line_height, runs)


def _spacer(height: float) -> Block:
    return Block("spacer", height, discardable=True)


def column_widths(content_width: float, weights: Sequence[float]) -> List[float]:
    total = max(1e-6, float(sum(weights)))
    return [content_width * (float(w) / total) for w in weights]


# -------------------- Block producers --------------------
def header_blocks(invoice: Invoice, page_width: float, style: dict) -> List[Block]:
    margin = _f(style, "margin")
    font = str(style["font_name"])
    bold = str(style["bold_font_name"])
    size = _f(style, "body_size")
    lh = _f(style, "line_height")
    title_h = _f(style, "title_height")

    status = getattr(invoice.status, "value", invoice.status)
    lines = _text_lines(
        "header",
        [
            (f"Invoice Number: {invoice.invoice_number}", font, size, "invoice_number"),
            (f"Issue Date: {format_date(invoice.issue_date)}", font, size, "issue_date"),
            (f"Due Date: {format_date(invoice.due_date)}", font, size, "due_date"),
            (f"Status: {str(status).upper()}", font, size, "status"),
        ],
        margin,
        lh,
        style,
    )
    title = TextRun(
        page_width / 2,
        _f(style, "title_size"),
        "INVOICE",
        bold,
        _f(style, "title_size"),
        align="center",
        color=str(style["text_color"]),
        field="title",
    )
    runs = (title,) + tuple(_shift(p, title_h) for p in lines.primitives)
    return [Block("header", title_h + lines.height, runs), _spacer(_f(style, "band_gap"))]


def party_blocks(invoice: Invoice, page_width: float, style: dict) -> List[Block]:
    margin = _f(style, "margin")
    font = str(style["font_name"])
    bold = str(style["bold_font_name"])
    size = _f(style, "body_size")
    section = _f(style, "section_size")
    lh = _f(style, "line_height")
    content_w = page_width - 2 * margin

    address = wrap_text(invoice.client.address, font, size, _f(style, "address_width"))
    client_rows = [
        ("Bill To:", bold, section, "label"),
        (invoice.client.name, font, size, "client.name"),
        (invoice.client.email, font, size, "client.email"),
    ] + [(line, font, size, "client.address") for line in address]

    title = wrap_text(f"Patent Title: {invoice.patent.title}", font, size, content_w)
    patent_rows = [
        ("Patent Information:", bold, section, "label"),
        (f"Patent Number: {invoice.patent.number}", font, size, "patent.number"),
    ] + [(line, font, size, "patent.title") for line in title]

    gap = _f(style, "band_gap")
    return [
        _text_lines("client", client_rows, margin, lh, style),
        _spacer(gap),
        _text_lines("patent", patent_rows, margin, lh, style),
        _spacer(gap),
    ]


def table_header_block(page_width: float, style: dict) -> Block:
    margin = _f(style, "margin")
    bold = str(style["bold_font_name"])
    size = _f(style, "table_size")
    pad = _f(style, "cell_padding")
    row_h = _f(style, "header_row_height")
    content_w = page_width - 2 * margin
    col_w = column_widths(content_w, style["column_weights"])

    prims: List[Primitive] = [FilledRect(margin, 0.0, content_w, row_h, str(style["header_fill"]))]
    cx = margin
    for label, align, w in zip(TABLE_HEADERS, TABLE_ALIGN, col_w):
        x = cx + w - pad if align == "right" else cx + pad
        prims.append(
            TextRun(x, row_h * 0.75, label, bold, size, align=align, color=str(style["text_color"]), field="table.header")
        )
        cx += w
    return Block("table_header", row_h + _f(style, "header_gap"), tuple(prims), keep_with_next=True)


def row_block(index: int, fee: FeeLine, currency, page_width: float, style: dict, header: Block) -> Block:
    margin = _f(style, "margin")
    font = str(style["font_name"])
    size = _f(style, "table_size")
    pad = _f(style, "cell_padding")
    tlh = _f(style, "table_line_height")
    color = str(style["text_color"])
    content_w = page_width - 2 * margin
    col_w = column_widths(content_w, style["column_weights"])
    col_x = [margin + sum(col_w[:i]) for i in range(len(col_w))]

    desc = wrap_text(fee.description, font, size, col_w[0] - 2 * pad)
    height = max(len(desc) * tlh, _f(style, "min_row_height"))
    first = tlh * 0.8

    prefix = f"fees[{index}]"
    prims: List[Primitive] = [
        TextRun(col_x[0] + pad, first + i * tlh, line, font, size, color=color, field=f"{prefix}.description")
        for i, line in enumerate(desc)
    ]
    fee_type = FeeType(getattr(fee.fee_type, "value", fee.fee_type))
    prims.append(TextRun(col_x[1] + pad, first, FEE_TYPE_LABELS[fee_type], font, size, color=color, field=f"{prefix}.fee_type"))
    prims.append(TextRun(col_x[2] + pad, first, format_quantity(fee.quantity), font, size, color=color, field=f"{prefix}.quantity"))
    for col, value, name in ((3, fee.unit_price, "unit_price"), (4, fee.amount, "amount")):
        prims.append(
            TextRun(
                col_x[col] + col_w[col] - pad,
                first,
                format_money(value, currency),
                font,
                size,
                align="right",
                color=color,
                field=f"{prefix}.{name}",
            )
        )
    return Block("row", height, tuple(prims), continuation=header)


def total_block(total: Decimal, currency, page_width: float, style: dict) -> Block:
    margin = _f(style, "margin")
    bold = str(style["bold_font_name"])
    size = _f(style, "total_size")
    rule_y = _f(style, "total_rule_gap")
    baseline = rule_y + _f(style, "total_line_gap")
    right = page_width - margin
    color = str(style["text_color"])
    prims = (
        Rule(margin, rule_y, right, rule_y, str(style["rule_color"]), 0.75),
        TextRun(right - _f(style, "total_label_offset"), baseline, "Total:", bold, size, color=color, field="total.label"),
        TextRun(right, baseline, format_total(total, currency), bold, size, align="right", color=color, field="total"),
    )
    return Block("total", baseline + size * 0.3, prims)


def notes_blocks(notes: Optional[str], page_width: float, style: dict) -> List[Block]:
    if not notes or not notes.strip():
        return []
    margin = _f(style, "margin")
    font = str(style["font_name"])
    bold = str(style["bold_font_name"])
    size = _f(style, "body_size")
    lh = _f(style, "line_height")

    lines = wrap_text(notes.strip(), font, size, page_width - 2 * margin)
    # The label travels with the first line; later lines may flow onto new pages.
    first = _text_lines("notes", [("Notes:", bold, size, "notes.label"), (lines[0], font, size, "notes")], margin, lh, style)
    rest = [_text_lines("notes", [(line, font, size, "notes")], margin, lh, style) for line in lines[1:]]
    return [_spacer(_f(style, "band_gap")), first] + rest


def build_blocks(
    invoice: Invoice,
    fees: Sequence[FeeLine],
    total: Decimal,
    page_width: float,
    style: dict,
) -> List[Block]:
    header = table_header_block(page_width, style)
    blocks: List[Block] = []
    blocks.extend(header_blocks(invoice, page_width, style))
    blocks.extend(party_blocks(invoice, page_width, style))
    blocks.append(header)
    blocks.extend(row_block(i, fee, invoice.currency, page_width, style, header) for i, fee in enumerate(fees))
    blocks.append(total_block(total, invoice.currency, page_width, style))
    blocks.extend(notes_blocks(invoice.notes, page_width, style))
    return blocks


# -------------------- Page packing --------------------
def paginate(blocks: Sequence[Block], top: float, bottom: float) -> List[List[Tuple[float, Block]]]:
    """
    Greedy first-fit of blocks, in order, onto pages spanning ``top``..``bottom``.

    A block that does not fit starts a new page (after its continuation, if
    any). A block is never split: one taller than a whole page is placed at
    the top of a fresh page and allowed to overflow. Discardable blocks
    (spacers) are dropped at page breaks and page tops.
    """
    pages: List[List[Tuple[float, Block]]] = [[]]
    y = top
    fresh = True

    for i, block in enumerate(blocks):
        needed = block.height
        if block.keep_with_next and i + 1 < len(blocks):
            pair = block.height + blocks[i + 1].height
            if pair <= bottom - top + EPSILON:
                needed = pair

        if y + needed > bottom + EPSILON and not fresh:
            if block.discardable:
                continue
            pages.append([])
            y = top
            fresh = True
            if block.continuation is not None:
                pages[-1].append((y, block.continuation))
                y += block.continuation.height

        if block.discardable and fresh:
            continue

        pages[-1].append((y, block))
        y += block.height
        # A block kept with its successor does not count as page content yet.
        fresh = fresh and block.keep_with_next

    return pages


def render(invoice: Invoice, page_size: Tuple[float, float] = A4, style: Optional[dict] = None) -> List[Page]:
    """Lay out one invoice as a sequence of pages of draw primitives."""
    validate_invoice(invoice)
    fees, total = compute_amounts(invoice.fees)

    st = dict(DEFAULT_STYLE)
    st.update(style or {})
    pw, ph = float(page_size[0]), float(page_size[1])
    margin = _f(st, "margin")

    placed = paginate(build_blocks(invoice, fees, total, pw, st), margin, ph - margin)

    pages: List[Page] = []
    count = len(placed)
    for number, entries in enumerate(placed, start=1):
        prims: List[Primitive] = [_shift(p, y) for y, block in entries for p in block.primitives]
        prims.append(
            TextRun(
                pw / 2,
                ph - margin * 0.45,
                f"Page {number} of {count}",
                str(st["font_name"]),
                _f(st, "footer_size"),
                align="center",
                color=str(st["secondary_color"]),
                field="page",
            )
        )
        pages.append(Page(number, pw, ph, margin, tuple(prims)))
    return pages
