from __future__ import annotations

import json
import logging
import time
from datetime import date, timedelta
from pathlib import Path
from typing import List

from .. import config
from ..errors import ValidationError
from ..invoice import Invoice, parse_invoice
from ..models import InvoiceRecord
from ..repository import check_number_available, create_invoice
from ..storage import invoice_slug

logger = logging.getLogger(__name__)


def new_invoice_number(offset: int = 0) -> str:
    """``INV-<epoch ms>``; ``offset`` keeps numbers distinct within one import."""
    return f"{config.INVOICE_NUMBER_PREFIX}{int(time.time() * 1000) + offset}"


def load_rows(json_path: Path) -> List[dict]:
    if not json_path.exists():
        raise FileNotFoundError(f"JSON not found: {json_path}")
    with json_path.open("r", encoding="utf-8") as handle:
        data = json.load(handle)
    rows = data.get("invoices") if isinstance(data, dict) else data
    if not isinstance(rows, list):
        raise ValueError("JSON must be a list of invoices or {\"invoices\": [...]}")
    if not rows:
        raise ValueError("JSON has no invoices")
    if not all(isinstance(row, dict) for row in rows):
        raise ValueError("Every invoice entry must be an object")
    return rows


def with_defaults(row: dict, position: int = 0) -> dict:
    """Fill the fields a new-invoice form pre-populates: number, dates, status."""
    filled = dict(row)
    if not str(filled.get("invoice_number") or "").strip():
        filled["invoice_number"] = new_invoice_number(position)
    if not filled.get("issue_date"):
        filled["issue_date"] = date.today().isoformat()
    if not filled.get("due_date"):
        try:
            issued = date.fromisoformat(str(filled["issue_date"]))
        except ValueError:
            raise ValidationError(f"issue_date: invalid date {filled['issue_date']!r}", field="issue_date") from None
        filled["due_date"] = (issued + timedelta(days=config.DEFAULT_PAYMENT_TERMS_DAYS)).isoformat()
    filled.setdefault("status", "draft")
    filled.setdefault("currency", "USD")
    return filled


def parse_rows(rows: List[dict]) -> List[Invoice]:
    """Parse every row before storing any, so a bad file imports nothing."""
    invoices: List[Invoice] = []
    seen = set()
    for position, row in enumerate(rows):
        try:
            invoice = parse_invoice(with_defaults(row, position))
        except ValidationError as exc:
            raise ValidationError(f"Invoice #{position + 1}: {exc}", field=exc.field, index=exc.index) from exc
        slug = invoice_slug(invoice.invoice_number)
        if slug in seen:
            raise ValidationError(
                f"Invoice #{position + 1}: number {invoice.invoice_number} clashes with an earlier invoice in the file",
                field="invoice_number",
            )
        seen.add(slug)
        invoices.append(invoice)
    return invoices


def ingest_invoices(json_path: Path) -> List[InvoiceRecord]:
    invoices = parse_rows(load_rows(json_path))
    for invoice in invoices:
        check_number_available(invoice.invoice_number)
    records = [create_invoice(invoice) for invoice in invoices]
    logger.info("Imported %d invoices from %s", len(records), json_path)
    return records
