from __future__ import annotations

from pathlib import Path
import json

from reportlab.lib.pagesizes import A4, LETTER


BASE_DIR = Path(__file__).resolve().parents[1]
OUT_DIR = BASE_DIR / "out"
DB_PATH = OUT_DIR / "feebill.db"
STYLE_PRESET_PATH = Path(__file__).resolve().parent / "assets" / "invoice_style.json"

DEFAULT_PAYMENT_TERMS_DAYS = 30
INVOICE_NUMBER_PREFIX = "INV-"

PAGE_SIZES = {
    "a4": A4,
    "letter": LETTER,
}


def load_style_preset() -> dict:
    with STYLE_PRESET_PATH.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def set_out_dir(path: Path) -> None:
    global OUT_DIR, DB_PATH
    OUT_DIR = path
    DB_PATH = OUT_DIR / "feebill.db"
