from __future__ import annotations

import logging
from decimal import Decimal
from pathlib import Path
from typing import Optional

import typer

from . import config
from .errors import RenderError, ValidationError
from .invoice import InvoiceStatus
from .models import reset_engine
from .pipeline.export import export_invoice, export_invoices
from .pipeline.ingest import ingest_invoices
from .pipeline.money import format_total
from .repository import (
    InvoiceNotFound,
    delete_invoice,
    find_by_number,
    list_invoices,
    load_invoice,
    status_counts,
    update_status,
)

app = typer.Typer(help="Patent fee invoices: storage and PDF export")

OUT_OPTION = typer.Option(None, "--out", help="Output directory (database and PDFs)")


def _use_out(out: Optional[Path]) -> None:
    if out:
        config.set_out_dir(out)
        reset_engine()


def _fail(exc: Exception) -> None:
    if isinstance(exc, ValidationError) and exc.location:
        message = f"Invalid input ({exc.location}): {exc}"
    elif isinstance(exc, RenderError):
        message = f"Cannot render {exc.field}: {exc}"
    else:
        message = str(exc)
    typer.secho(message, fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Log progress")) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@app.command("import")
def import_(
    json_path: Path = typer.Option(..., "--json", help="JSON file with a list of invoices"),
    out: Optional[Path] = OUT_OPTION,
) -> None:
    _use_out(out)
    try:
        records = ingest_invoices(json_path)
    except (ValidationError, ValueError, FileNotFoundError) as exc:
        _fail(exc)
    typer.echo(f"Imported {len(records)} invoices")


@app.command("list")
def list_(
    status: Optional[InvoiceStatus] = typer.Option(None, "--status", help="Only this status"),
    out: Optional[Path] = OUT_OPTION,
) -> None:
    _use_out(out)
    records = list_invoices(status)
    if not records:
        typer.echo("No invoices")
        return
    for record in records:
        total = format_total(Decimal(record.total_amount), record.currency)
        typer.echo(f"{record.invoice_number:<20} {record.client_name:<28} {total:>18}  {record.status.value}")


@app.command()
def stats(out: Optional[Path] = OUT_OPTION) -> None:
    _use_out(out)
    counts = status_counts()
    typer.echo(f"Total: {counts['total']}")
    for status in InvoiceStatus:
        typer.echo(f"{status.value.capitalize()}: {counts[status.value]}")


@app.command("set-status")
def set_status(
    invoice_number: str = typer.Argument(..., help="Invoice number"),
    status: InvoiceStatus = typer.Argument(..., help="New status"),
    out: Optional[Path] = OUT_OPTION,
) -> None:
    _use_out(out)
    try:
        record = update_status(find_by_number(invoice_number).id, status)
    except (InvoiceNotFound, ValidationError) as exc:
        _fail(exc)
    typer.echo(f"{record.invoice_number}: {record.status.value}")


@app.command()
def delete(
    invoice_number: str = typer.Argument(..., help="Invoice number"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
    out: Optional[Path] = OUT_OPTION,
) -> None:
    _use_out(out)
    try:
        record = find_by_number(invoice_number)
    except InvoiceNotFound as exc:
        _fail(exc)
    if not yes:
        typer.confirm(f"Delete invoice {invoice_number}?", abort=True)
    delete_invoice(record.id)
    typer.echo(f"Deleted {invoice_number}")


@app.command()
def export(
    invoice_number: str = typer.Argument(..., help="Invoice number"),
    page_size: str = typer.Option("a4", "--page-size", help="a4 or letter"),
    preview: bool = typer.Option(False, "--preview", help="Also write a PNG of page 1"),
    out: Optional[Path] = OUT_OPTION,
) -> None:
    _use_out(out)
    try:
        invoice = load_invoice(find_by_number(invoice_number).id)
        pdf_path, pages, previews = export_invoice(invoice, page_size=page_size, preview=preview)
    except (InvoiceNotFound, ValidationError, RenderError, ValueError) as exc:
        _fail(exc)
    typer.echo(f"{pdf_path} ({len(pages)} pages)")
    for path in previews:
        typer.echo(str(path))


@app.command("export-all")
def export_all(
    status: Optional[InvoiceStatus] = typer.Option(None, "--status", help="Only this status"),
    page_size: str = typer.Option("a4", "--page-size", help="a4 or letter"),
    out: Optional[Path] = OUT_OPTION,
) -> None:
    _use_out(out)
    if page_size.lower() not in config.PAGE_SIZES:
        _fail(ValueError(f"Unknown page size: {page_size}"))
    records = list_invoices(status)
    if not records:
        typer.echo("No invoices to export")
        return
    results = export_invoices(records, page_size=page_size)
    typer.echo(f"READY: {len(results['READY'])}")
    typer.echo(f"FAILED: {len(results['FAILED'])}")
    for number in results["FAILED"]:
        typer.echo(f"FAILED: {number}")


if __name__ == "__main__":
    app()
