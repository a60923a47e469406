from __future__ import annotations

from typing import List

from reportlab.pdfbase.pdfmetrics import stringWidth


def text_width(text: str, font_name: str, font_size: float) -> float:
    return stringWidth(text, font_name, font_size)


def _longest_prefix(word: str, font_name: str, font_size: float, max_width: float) -> int:
    # At least one character per line, even if that character alone is too wide.
    cut = 1
    while cut < len(word) and text_width(word[: cut + 1], font_name, font_size) <= max_width:
        cut += 1
    return cut


def wrap_text(text: str, font_name: str, font_size: float, max_width: float) -> List[str]:
    """
    Greedy word wrap against a measured column width.

    Explicit newlines start a new line. Words wider than the column are
    broken by character. Always returns at least one line.
    """
    lines: List[str] = []
    for paragraph in (text or "").splitlines() or [""]:
        words = paragraph.split()
        if not words:
            lines.append("")
            continue

        cur = ""
        for word in words:
            test = f"{cur} {word}" if cur else word
            if text_width(test, font_name, font_size) <= max_width:
                cur = test
                continue

            if cur:
                lines.append(cur)
                cur = ""
            while len(word) > 1 and text_width(word, font_name, font_size) > max_width:
                cut = _longest_prefix(word, font_name, font_size, max_width)
                lines.append(word[:cut])
                word = word[cut:]
            cur = word

        lines.append(cur)

    return lines
