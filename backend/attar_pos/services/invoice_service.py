# Overview: Service-layer operations for invoice numbering; per-year atomic sequences.

from __future__ import annotations

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import InvoiceSequence, Sale
from ..time_utils import current_year
from .concurrency import run_with_retry


INVOICE_PREFIX = "INV"
INVOICE_PAD = 3


def format_invoice_number(year: int, sequence: int) -> str:
    """INV-2026-007. Sequences past 999 simply grow wider."""
    return f"{INVOICE_PREFIX}-{year}-{sequence:0{INVOICE_PAD}d}"


def _current_sequence(year: int) -> int | None:
    return (
        db.session.query(InvoiceSequence.sequence)
        .filter_by(year=year)
        .scalar()
    )


def ensure_sequence_row(year: int) -> int:
    """
    Return the stored sequence for year, creating the row at 0 if absent.

    Must run before any other pending work in the session: when a concurrent
    creator wins the insert, the unique constraint on year raises and the
    whole session is rolled back before the winner's row is read back.
    """
    current = _current_sequence(year)
    if current is not None:
        return current

    db.session.add(InvoiceSequence(year=year, sequence=0))
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        current = _current_sequence(year)
        if current is None:
            raise
        return current
    return 0


def _increment(year: int) -> int:
    """
    Atomically bump the year's sequence in the current transaction and
    return the new value. Does not commit.
    """
    stmt = (
        update(InvoiceSequence)
        .where(InvoiceSequence.year == year)
        .values(sequence=InvoiceSequence.sequence + 1)
        .execution_options(synchronize_session=False)
    )

    result = db.session.execute(stmt)
    if not result.rowcount:
        db.session.add(InvoiceSequence(year=year, sequence=1))
        db.session.flush()
        return 1

    return _current_sequence(year)


def peek_next(year: int | None = None) -> tuple[str, int]:
    """
    Preview the next invoice number without reserving it.

    Two calls in a row return the same number, and two tills previewing at
    the same time see the same number too. Use allocate_invoice_number (or
    let sales_service.record_sale allocate) when the number must be unique.
    """
    year = year or current_year()
    next_seq = run_with_retry(lambda: ensure_sequence_row(year)) + 1
    return format_invoice_number(year, next_seq), next_seq


def commit_increment(year: int | None = None) -> int:
    """
    Atomically advance the year's sequence and return the new value.

    The first increment of a year yields 1. Numbers handed out here are
    never handed out again, even if the sale that previewed them is
    abandoned.
    """
    year = year or current_year()

    def _op():
        ensure_sequence_row(year)
        value = _increment(year)
        db.session.commit()
        return value

    value = run_with_retry(_op)
    current_app.logger.info("Invoice sequence for %s advanced to %s", year, value)
    return value


def allocate_invoice_number(year: int | None = None) -> str:
    """
    Allocate-and-reserve: advance the sequence and return the formatted
    number, skipping any number a sale already carries.

    Previewed numbers can reach the sales table without a matching
    increment, so the loop steps past them. Gaps are fine, reuse is not.

    Joins the caller's transaction and is rolled back with it; the caller
    must have run ensure_sequence_row(year) before starting that transaction.
    """
    year = year or current_year()
    while True:
        number = format_invoice_number(year, _increment(year))
        taken = db.session.query(Sale.id).filter_by(invoice_number=number).first()
        if taken is None:
            return number


def get_sequences() -> list[InvoiceSequence]:
    return db.session.query(InvoiceSequence).order_by(InvoiceSequence.year.desc()).all()
