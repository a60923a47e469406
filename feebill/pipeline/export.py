from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from .. import config
from ..errors import RenderError, ValidationError
from ..invoice import Invoice
from ..models import InvoiceRecord
from ..repository import load_invoice
from ..storage import artifact_path
from .layout import Page
from .render_pdf import render_pdf
from .render_preview import render_previews

PAGE_ARTIFACTS = {"a4": "pdf_a4", "letter": "pdf_usletter"}

logger = logging.getLogger(__name__)


def _write_error(invoice_number: str, message: str, base_dir: Path | None = None) -> None:
    error_path = artifact_path(invoice_number, "error", base_dir=base_dir)
    error_path.write_text(message, encoding="utf-8")


def export_invoice(
    invoice: Invoice,
    page_size: str = "a4",
    base_dir: Path | None = None,
    style: Optional[dict] = None,
    preview: bool = False,
) -> Tuple[Path, List[Page], List[Path]]:
    """Write ``invoice-<slug>.pdf`` (and optionally a first-page PNG)."""
    key = page_size.lower()
    if key not in config.PAGE_SIZES:
        raise ValueError(f"Unknown page size: {page_size} (use {', '.join(config.PAGE_SIZES)})")
    pdf_path = artifact_path(invoice.invoice_number, PAGE_ARTIFACTS[key], base_dir=base_dir)
    pages = render_pdf(invoice, pdf_path, config.PAGE_SIZES[key], style)
    previews = render_previews(invoice.invoice_number, pdf_path, base_dir=base_dir) if preview else []
    return pdf_path, pages, previews


def export_invoices(
    records: Iterable[InvoiceRecord],
    page_size: str = "a4",
    base_dir: Path | None = None,
    style: Optional[dict] = None,
) -> dict[str, list[str]]:
    """Export every record independently; one failure never stops the batch."""
    results: dict[str, list[str]] = {"READY": [], "FAILED": []}
    for record in records:
        number = record.invoice_number
        try:
            export_invoice(load_invoice(record.id), page_size=page_size, base_dir=base_dir, style=style)
        except (ValidationError, RenderError) as exc:
            logger.warning("Cannot export %s: %s", number, exc)
            _write_error(number, str(exc), base_dir)
            results["FAILED"].append(number)
            continue
        except Exception as exc:
            logger.exception("Export error for %s", number)
            _write_error(number, str(exc), base_dir)
            results["FAILED"].append(number)
            continue
        results["READY"].append(number)
    return results
