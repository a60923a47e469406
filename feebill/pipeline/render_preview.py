from __future__ import annotations

from pathlib import Path
from typing import List, Sequence

import fitz  # PyMuPDF

from ..storage import artifact_path


def _render_page_to_png(doc: fitz.Document, page_index: int, out_path: Path, min_px: int = 1600) -> None:
    page = doc.load_page(page_index)

    # Scale so the short side of the image is at least min_px pixels.
    rect = page.rect
    short_side = min(rect.width, rect.height)
    zoom = max(2.0, min_px / float(short_side))
    mat = fitz.Matrix(zoom, zoom)

    pix = page.get_pixmap(matrix=mat, alpha=False)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    pix.save(str(out_path))


def render_previews(
    invoice_number: str,
    pdf_path: Path,
    pages: Sequence[int] = (0,),
    base_dir: Path | None = None,
) -> List[Path]:
    """PNG snapshots of the given zero-based pages of an exported invoice."""
    out: List[Path] = []
    with fitz.open(pdf_path) as doc:
        for index in pages:
            if index >= doc.page_count:
                continue
            path = artifact_path(invoice_number, "preview", base_dir=base_dir, page=index + 1)
            _render_page_to_png(doc, index, path)
            out.append(path)
    return out
