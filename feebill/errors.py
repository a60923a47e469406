from __future__ import annotations


class ValidationError(ValueError):
    """Invoice or fee line input is malformed. Raised before any layout work."""

    def __init__(self, message: str, field: str | None = None, index: int | None = None) -> None:
        super().__init__(message)
        self.field = field
        self.index = index

    @property
    def location(self) -> str:
        if self.index is not None and self.field:
            return f"fees[{self.index}].{self.field}"
        if self.index is not None:
            return f"fees[{self.index}]"
        return self.field or ""


class RenderError(Exception):
    """A text run cannot be drawn with the configured font."""

    def __init__(self, message: str, field: str, text: str = "") -> None:
        super().__init__(message)
        self.field = field
        self.text = text
