from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from sqlmodel import select

from .errors import ValidationError
from .invoice import Client, Currency, FeeLine, Invoice, InvoiceStatus, Patent, validate_invoice
from .models import FeeRecord, InvoiceRecord, get_session, init_db
from .pipeline.amounts import compute_amounts
from .storage import invoice_slug

logger = logging.getLogger(__name__)

# Invoice fields a caller may change through update_invoice.
EDITABLE_FIELDS = {
    "invoice_number",
    "client_name",
    "client_email",
    "client_address",
    "patent_number",
    "patent_title",
    "currency",
    "issue_date",
    "due_date",
    "status",
    "notes",
}


class InvoiceNotFound(LookupError):
    pass


def _coerce(enum_cls, value, field: str):
    try:
        return enum_cls(getattr(value, "value", value))
    except ValueError:
        raise ValidationError(f"Invalid {field}: {value!r}", field=field) from None


def _fee_records(invoice_id: int, fees: Sequence[FeeLine]) -> List[FeeRecord]:
    return [
        FeeRecord(
            invoice_id=invoice_id,
            position=position,
            fee_description=fee.description,
            fee_type=fee.fee_type,
            quantity=str(fee.quantity),
            unit_price=str(fee.unit_price),
            amount=str(fee.amount),
        )
        for position, fee in enumerate(fees)
    ]


def _fees_for(session, invoice_id: int) -> List[FeeRecord]:
    statement = (
        select(FeeRecord)
        .where(FeeRecord.invoice_id == invoice_id)
        .order_by(FeeRecord.position, FeeRecord.id)
    )
    return list(session.exec(statement))


def _ensure_unique_number(session, number: str, own_id: Optional[int] = None) -> None:
    # Output files are named by slug; no two stored numbers may share one.
    slug = invoice_slug(number)
    for other_id, other in session.exec(select(InvoiceRecord.id, InvoiceRecord.invoice_number)):
        if other_id == own_id:
            continue
        if other == number:
            raise ValidationError(f"Invoice number already exists: {number}", field="invoice_number")
        if invoice_slug(other) == slug:
            raise ValidationError(
                f"Invoice number {number} would share output files with {other}", field="invoice_number"
            )


def check_number_available(invoice_number: str) -> None:
    """Raise ValidationError if a stored invoice already uses this number or its file names."""
    init_db()
    with get_session() as session:
        _ensure_unique_number(session, invoice_number)


def to_invoice(record: InvoiceRecord, fees: Sequence[FeeRecord]) -> Invoice:
    return Invoice(
        invoice_number=record.invoice_number,
        client=Client(record.client_name, record.client_email, record.client_address),
        patent=Patent(record.patent_number, record.patent_title),
        currency=record.currency,
        issue_date=record.issue_date,
        due_date=record.due_date,
        status=record.status,
        notes=record.notes,
        fees=tuple(
            FeeLine(
                fee.fee_description,
                fee.fee_type,
                Decimal(fee.quantity),
                Decimal(fee.unit_price),
                Decimal(fee.amount),
            )
            for fee in fees
        ),
    )


def create_invoice(invoice: Invoice) -> InvoiceRecord:
    """Store an invoice and its fees. The total is always recomputed from the fees."""
    validate_invoice(invoice)
    priced, total = compute_amounts(invoice.fees)
    init_db()
    with get_session() as session:
        _ensure_unique_number(session, invoice.invoice_number)
        record = InvoiceRecord(
            invoice_number=invoice.invoice_number,
            client_name=invoice.client.name,
            client_email=invoice.client.email,
            client_address=invoice.client.address,
            patent_number=invoice.patent.number,
            patent_title=invoice.patent.title,
            currency=invoice.currency,
            total_amount=str(total),
            issue_date=invoice.issue_date,
            due_date=invoice.due_date,
            status=invoice.status,
            notes=invoice.notes,
        )
        session.add(record)
        session.flush()
        session.add_all(_fee_records(record.id, priced))
        session.commit()
        session.refresh(record)
    logger.info("Created invoice %s (%d fees, total %s)", record.invoice_number, len(priced), total)
    return record


def get_record(invoice_id: int) -> InvoiceRecord:
    init_db()
    with get_session() as session:
        record = session.get(InvoiceRecord, invoice_id)
    if record is None:
        raise InvoiceNotFound(f"No invoice with id {invoice_id}")
    return record


def find_by_number(invoice_number: str) -> InvoiceRecord:
    init_db()
    with get_session() as session:
        record = session.exec(
            select(InvoiceRecord).where(InvoiceRecord.invoice_number == invoice_number)
        ).first()
    if record is None:
        raise InvoiceNotFound(f"No invoice numbered {invoice_number}")
    return record


def load_invoice(invoice_id: int) -> Invoice:
    """Invoice value with its fees in insertion order."""
    record = get_record(invoice_id)
    with get_session() as session:
        fees = _fees_for(session, invoice_id)
    return to_invoice(record, fees)


def list_invoices(status: Optional[InvoiceStatus] = None) -> List[InvoiceRecord]:
    """Newest first."""
    init_db()
    with get_session() as session:
        statement = select(InvoiceRecord)
        if status is not None:
            statement = statement.where(InvoiceRecord.status == status)
        statement = statement.order_by(InvoiceRecord.created_at.desc(), InvoiceRecord.id.desc())
        return list(session.exec(statement))


def update_invoice(
    invoice_id: int,
    changes: Optional[Dict[str, object]] = None,
    fees: Optional[Sequence[FeeLine]] = None,
) -> InvoiceRecord:
    """
    Apply field changes and, when ``fees`` is given, replace every fee line.

    The updated invoice is validated as a whole before anything is written.
    """
    changes = dict(changes or {})
    if "status" in changes:
        changes["status"] = _coerce(InvoiceStatus, changes["status"], "status")
    if "currency" in changes:
        changes["currency"] = _coerce(Currency, changes["currency"], "currency")
    unknown = set(changes) - EDITABLE_FIELDS
    if unknown:
        raise ValidationError(f"Fields cannot be edited: {', '.join(sorted(unknown))}", field=sorted(unknown)[0])

    init_db()
    with get_session() as session:
        record = session.get(InvoiceRecord, invoice_id)
        if record is None:
            raise InvoiceNotFound(f"No invoice with id {invoice_id}")
        current = to_invoice(record, _fees_for(session, invoice_id))
        if "invoice_number" in changes:
            _ensure_unique_number(session, str(changes["invoice_number"]), own_id=record.id)

        with session.no_autoflush:
            for key, value in changes.items():
                setattr(record, key, value)
            candidate = replace(
                to_invoice(record, []),
                fees=tuple(fees) if fees is not None else current.fees,
            )
        try:
            validate_invoice(candidate)
            priced, total = compute_amounts(candidate.fees)
        except ValidationError:
            session.rollback()
            raise

        if fees is not None:
            for old in _fees_for(session, invoice_id):
                session.delete(old)
            session.add_all(_fee_records(invoice_id, priced))
        record.total_amount = str(total)
        record.updated_at = datetime.now(timezone.utc)
        session.add(record)
        session.commit()
        session.refresh(record)
    logger.info("Updated invoice %s", record.invoice_number)
    return record


def update_status(invoice_id: int, status: InvoiceStatus) -> InvoiceRecord:
    return update_invoice(invoice_id, {"status": status})


def delete_invoice(invoice_id: int) -> None:
    init_db()
    with get_session() as session:
        record = session.get(InvoiceRecord, invoice_id)
        if record is None:
            raise InvoiceNotFound(f"No invoice with id {invoice_id}")
        for fee in _fees_for(session, invoice_id):
            session.delete(fee)
        number = record.invoice_number
        session.delete(record)
        session.commit()
    logger.info("Deleted invoice %s", number)


def status_counts() -> Dict[str, int]:
    """Dashboard summary: ``total`` plus one count per status."""
    records = list_invoices()
    counts = {"total": len(records)}
    for status in InvoiceStatus:
        counts[status.value] = sum(1 for r in records if r.status == status)
    return counts
