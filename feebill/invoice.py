from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional, Sequence, Tuple

from .errors import ValidationError
from .pipeline.amounts import checked_line, invoice_total


class Currency(str, Enum):
    CAD = "CAD"
    USD = "USD"
    BDT = "BDT"
    CNY = "CNY"


class FeeType(str, Enum):
    FILING = "filing"
    SEARCH = "search"
    EXAMINATION = "examination"
    MAINTENANCE = "maintenance"
    PROFESSIONAL = "professional"


class InvoiceStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"


FEE_TYPE_LABELS = {
    FeeType.FILING: "Filing Fee",
    FeeType.SEARCH: "Search Fee",
    FeeType.EXAMINATION: "Examination Fee",
    FeeType.MAINTENANCE: "Maintenance Fee",
    FeeType.PROFESSIONAL: "Professional Service",
}


@dataclass(frozen=True)
class FeeLine:
    description: str
    fee_type: FeeType
    quantity: Decimal
    unit_price: Decimal
    # Filled by the amount engine; never supplied by callers.
    amount: Optional[Decimal] = None


@dataclass(frozen=True)
class Client:
    name: str
    email: str
    address: str


@dataclass(frozen=True)
class Patent:
    number: str
    title: str


@dataclass(frozen=True)
class Invoice:
    invoice_number: str
    client: Client
    patent: Patent
    currency: Currency
    issue_date: date
    due_date: date
    status: InvoiceStatus
    notes: Optional[str] = None
    fees: Tuple[FeeLine, ...] = field(default_factory=tuple)

    @property
    def total_amount(self) -> Decimal:
        return invoice_total(self.fees)


def _enum(enum_cls, value, field_name: str, index: int | None = None):
    try:
        return enum_cls(str(getattr(value, "value", value)).strip())
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(
            f"{field_name} must be one of {allowed}; got {value!r}", field=field_name, index=index
        ) from None


def _required_text(data: dict, key: str, field_name: str | None = None) -> str:
    value = data.get(key)
    if value is None or not str(value).strip():
        name = field_name or key
        raise ValidationError(f"Missing required field: {name}", field=name)
    return str(value).strip()


def _date(value, field_name: str) -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise ValidationError(f"{field_name}: invalid date {value!r}, use YYYY-MM-DD", field=field_name) from None


def parse_fee(data: dict, index: int = 0) -> FeeLine:
    """Build a FeeLine from a plain mapping (``fee_description``, ``fee_type``, ``quantity``, ``unit_price``)."""
    description = str(data.get("fee_description", data.get("description", "")) or "").strip()
    if not description:
        raise ValidationError("Fee description is required", field="description", index=index)
    fee_type = _enum(FeeType, data.get("fee_type", ""), "fee_type", index)
    quantity, unit_price = checked_line(data.get("quantity"), data.get("unit_price"), index)
    return FeeLine(description, fee_type, quantity, unit_price)


def parse_invoice(data: dict) -> Invoice:
    """Build an Invoice from the flat record layout used by the store and JSON imports.

    No defaulting happens here: every required field must be present.
    """
    raw_fees = data.get("fees") or []
    if not isinstance(raw_fees, (list, tuple)):
        raise ValidationError("fees must be a list", field="fees")
    notes = data.get("notes")
    invoice = Invoice(
        invoice_number=_required_text(data, "invoice_number"),
        client=Client(
            name=_required_text(data, "client_name", "client.name"),
            email=_required_text(data, "client_email", "client.email"),
            address=_required_text(data, "client_address", "client.address"),
        ),
        patent=Patent(
            number=_required_text(data, "patent_number", "patent.number"),
            title=_required_text(data, "patent_title", "patent.title"),
        ),
        currency=_enum(Currency, data.get("currency", ""), "currency"),
        issue_date=_date(data.get("issue_date", ""), "issue_date"),
        due_date=_date(data.get("due_date", ""), "due_date"),
        status=_enum(InvoiceStatus, data.get("status", ""), "status"),
        notes=str(notes) if notes is not None else None,
        fees=fees_from(raw_fees),
    )
    return invoice


def validate_invoice(invoice: Invoice) -> Invoice:
    """Check an already-built Invoice is complete. Returns it unchanged."""
    texts = {
        "invoice_number": invoice.invoice_number,
        "client.name": invoice.client.name if invoice.client else None,
        "client.email": invoice.client.email if invoice.client else None,
        "client.address": invoice.client.address if invoice.client else None,
        "patent.number": invoice.patent.number if invoice.patent else None,
        "patent.title": invoice.patent.title if invoice.patent else None,
    }
    for name, value in texts.items():
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(f"Missing required field: {name}", field=name)
    _enum(Currency, invoice.currency, "currency")
    _enum(InvoiceStatus, invoice.status, "status")
    for name in ("issue_date", "due_date"):
        if not isinstance(getattr(invoice, name), date):
            raise ValidationError(f"{name} must be a date", field=name)
    if invoice.notes is not None and not isinstance(invoice.notes, str):
        raise ValidationError("notes must be text", field="notes")
    if not isinstance(invoice.fees, (list, tuple)):
        raise ValidationError("fees must be a list of fee lines", field="fees")
    for i, fee in enumerate(invoice.fees):
        if not isinstance(fee, FeeLine):
            raise ValidationError("Not a fee line", index=i)
        _enum(FeeType, fee.fee_type, "fee_type", i)
        checked_line(fee.quantity, fee.unit_price, i)
    return invoice


def fees_from(items: Sequence[dict]) -> Tuple[FeeLine, ...]:
    return tuple(parse_fee(item, i) for i, item in enumerate(items))
