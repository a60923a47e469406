from __future__ import annotations

import hashlib
import re
from pathlib import Path

from slugify import slugify

from . import config


ARTIFACT_NAMES = {
    "pdf_a4": "invoice-{slug}.pdf",
    "pdf_usletter": "invoice-{slug}-letter.pdf",
    "preview": "invoice-{slug}-page{page}.png",
    "error": "invoice-{slug}.error.log",
}


def invoice_slug(invoice_number: str) -> str:
    slug = slugify(invoice_number)
    slug = re.sub(r"[^a-z0-9-]+", "-", slug.lower()).strip("-")
    if not slug:
        slug = hashlib.md5(invoice_number.encode("utf-8")).hexdigest()[:12]
    if ".." in slug or "/" in slug or "\\" in slug:
        raise ValueError("Invalid slug generated from invoice number")
    return slug


def output_dir(base_dir: Path | None = None) -> Path:
    path = base_dir or config.OUT_DIR
    path.mkdir(parents=True, exist_ok=True)
    return path


def artifact_path(
    invoice_number: str,
    artifact_type: str,
    base_dir: Path | None = None,
    page: int = 1,
) -> Path:
    filename = ARTIFACT_NAMES[artifact_type].format(slug=invoice_slug(invoice_number), page=page)
    return output_dir(base_dir) / filename
