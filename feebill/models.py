from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional

from sqlmodel import Field, Session, SQLModel, create_engine

from . import config
from .invoice import Currency, FeeType, InvoiceStatus


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InvoiceRecord(SQLModel, table=True):
    __tablename__ = "invoice"

    id: Optional[int] = Field(default=None, primary_key=True)
    invoice_number: str = Field(index=True, unique=True)
    client_name: str
    client_email: str
    client_address: str
    patent_number: str
    patent_title: str
    currency: Currency = Field(default=Currency.USD)
    # Decimal amounts are kept as text so SQLite never rounds them through float.
    total_amount: str = "0.00"
    issue_date: date
    due_date: date
    status: InvoiceStatus = Field(default=InvoiceStatus.DRAFT, index=True)
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)


class FeeRecord(SQLModel, table=True):
    __tablename__ = "invoice_fee"

    id: Optional[int] = Field(default=None, primary_key=True)
    invoice_id: int = Field(foreign_key="invoice.id", index=True)
    position: int = 0
    fee_description: str
    fee_type: FeeType
    quantity: str
    unit_price: str
    amount: str
    created_at: datetime = Field(default_factory=_now)


engine = create_engine(f"sqlite:///{config.DB_PATH}")


def reset_engine() -> None:
    global engine
    engine = create_engine(f"sqlite:///{config.DB_PATH}")


def init_db() -> None:
    config.OUT_DIR.mkdir(parents=True, exist_ok=True)
    SQLModel.metadata.create_all(engine)


def get_session() -> Session:
    return Session(engine, expire_on_commit=False)
