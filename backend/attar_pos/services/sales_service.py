"""
Sales Service - transactional sale recording

A sale is recorded in one database transaction:

    look up each line's item -> conditional stock decrement per line
    -> (optionally) allocate the invoice number -> insert sale + lines -> commit

Any failure before the commit rolls the whole thing back, so stock is never
left decremented without the sale that explains it. Storage errors are
retried by run_with_retry and then surface as StorageFault.

Invoice numbers:
- Caller omits invoice_number: the number is allocated inside the sale
  transaction (no separate increment call, no preview race).
- Caller supplies invoice_number (preview flow): it is checked for
  uniqueness and stored as-is; the caller still advances the sequence with
  invoice_service.commit_increment.

Line snapshots (name, qty, rate, amount) and totals are stored as the till
sent them. With ENFORCE_SALE_TOTALS on they must add up first.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from ..errors import (
    DuplicateInvoiceError,
    InsufficientStockError,
    ItemNotFoundError,
    NotFoundError,
    ValidationError,
)
from ..extensions import db
from ..models import InventoryItem, Sale, SaleLine
from ..time_utils import current_year, day_bounds, parse_iso_datetime, utcnow
from ..validation import coerce_decimal, coerce_integer
from .concurrency import lock_for_update, run_with_retry
from .inventory_service import apply_stock_delta
from .invoice_service import allocate_invoice_number, ensure_sequence_row


# Rounding slack when checking till-computed totals
TOTALS_TOLERANCE = Decimal("0.01")

DEFAULT_CUSTOMER_NAME = "Customer"


def _normalize_lines(items) -> list[dict]:
    if not items or not isinstance(items, list):
        raise ValidationError("Please provide invoice number and items")

    lines = []
    for index, raw in enumerate(items, start=1):
        if not isinstance(raw, dict):
            raise ValidationError(f"Line {index} must be an object")

        missing = [key for key in ("item_id", "qty", "rate", "amount") if raw.get(key) is None]
        if missing:
            raise ValidationError(
                f"Line {index} is missing: {', '.join(missing)}",
                details={"line": index, "missing": missing},
            )

        qty = coerce_integer("qty", raw["qty"])
        if qty <= 0:
            raise ValidationError(f"Line {index}: qty must be > 0", details={"line": index})

        rate = coerce_decimal("rate", raw["rate"])
        amount = coerce_decimal("amount", raw["amount"])
        if rate < 0 or amount < 0:
            raise ValidationError(f"Line {index}: rate and amount must be >= 0", details={"line": index})

        name = raw.get("name")
        lines.append({
            "item_id": coerce_integer("item_id", raw["item_id"]),
            "name": str(name).strip() if name else None,
            "qty": qty,
            "rate": rate,
            "amount": amount,
        })
    return lines


def _normalize_totals(totals: dict | None) -> dict:
    totals = totals or {}
    if totals.get("subtotal") is None:
        raise ValidationError("subtotal is required")

    result = {"subtotal": coerce_decimal("subtotal", totals["subtotal"])}
    for key in ("discount_percent", "discount_amount", "gst_percent", "gst_amount"):
        value = totals.get(key)
        result[key] = coerce_decimal(key, value) if value is not None else Decimal("0")

    if totals.get("taxable") is not None:
        result["taxable"] = coerce_decimal("taxable", totals["taxable"])
    else:
        result["taxable"] = result["subtotal"] - result["discount_amount"]

    if totals.get("grand_total") is not None:
        result["grand_total"] = coerce_decimal("grand_total", totals["grand_total"])
    else:
        result["grand_total"] = result["taxable"] + result["gst_amount"]

    negative = sorted(key for key, value in result.items() if value < 0)
    if negative:
        raise ValidationError(
            f"Totals cannot be negative: {', '.join(negative)}",
            details={"fields": negative},
        )
    return result


def check_totals(lines: list[dict], totals: dict) -> None:
    """
    Verify line amounts and totals are internally consistent:

        amount      == qty * rate            (each line)
        subtotal    == sum(amount)
        taxable     == subtotal - discount_amount
        grand_total == taxable + gst_amount
    """
    def _off(actual: Decimal, expected: Decimal) -> bool:
        return abs(actual - expected) > TOTALS_TOLERANCE

    for index, line in enumerate(lines, start=1):
        expected = line["rate"] * line["qty"]
        if _off(line["amount"], expected):
            raise ValidationError(
                f"Line {index}: amount {line['amount']} does not match qty x rate ({expected})",
                details={"line": index, "expected": str(expected)},
            )

    checks = (
        ("subtotal", totals["subtotal"], sum((line["amount"] for line in lines), Decimal("0"))),
        ("taxable", totals["taxable"], totals["subtotal"] - totals["discount_amount"]),
        ("grand_total", totals["grand_total"], totals["taxable"] + totals["gst_amount"]),
    )
    for field, actual, expected in checks:
        if _off(actual, expected):
            raise ValidationError(
                f"{field} {actual} does not match computed value {expected}",
                details={"field": field, "expected": str(expected)},
            )


def _parse_invoice_date(value) -> datetime:
    if value is None or value == "":
        return utcnow()
    if isinstance(value, datetime):
        return value
    try:
        parsed = parse_iso_datetime(str(value))
    except ValueError:
        raise ValidationError("invoice_date must be an ISO-8601 date or datetime")
    return parsed or utcnow()


def _text(value) -> str:
    """Tills may send mobile numbers as JSON numbers; store the digits."""
    if value is None:
        return ""
    return str(value).strip()


def _invoice_exists(invoice_number: str) -> bool:
    return db.session.query(Sale.id).filter_by(invoice_number=invoice_number).first() is not None


def record_sale(
    *,
    items,
    username: str,
    invoice_number: str | None = None,
    invoice_date=None,
    customer_name: str | None = None,
    customer_mobile: str | None = None,
    totals: dict | None = None,
) -> Sale:
    """
    Validate, decrement stock and persist a sale atomically.

    Raises:
        ValidationError: missing/malformed items or totals
        DuplicateInvoiceError: invoice_number already used
        ItemNotFoundError: a line references an unknown item
        InsufficientStockError: a line asks for more than is in stock
        StorageFault: database unavailable after retries
    """
    if invoice_number is not None:
        invoice_number = str(invoice_number).strip()
        if not invoice_number:
            raise ValidationError("Please provide invoice number and items")

    lines = _normalize_lines(items)
    sale_totals = _normalize_totals(totals)
    if current_app.config.get("ENFORCE_SALE_TOTALS", True):
        check_totals(lines, sale_totals)

    invoice_date = _parse_invoice_date(invoice_date)
    allocate = invoice_number is None
    year = current_year()

    customer_name = _text(customer_name) or DEFAULT_CUSTOMER_NAME
    customer_mobile = _text(customer_mobile)

    def _op():
        if allocate:
            ensure_sequence_row(year)
        elif _invoice_exists(invoice_number):
            raise DuplicateInvoiceError(
                "Invoice number already exists",
                details={"invoice_number": invoice_number},
            )

        sale_lines = []
        for line_number, line in enumerate(lines, start=1):
            item = lock_for_update(
                db.session.query(InventoryItem).filter_by(id=line["item_id"])
            ).first()
            if item is None:
                raise ItemNotFoundError(
                    f"Item {line['name'] or line['item_id']} not found",
                    details={"line": line_number, "item_id": line["item_id"]},
                )
            name = line["name"] or item.name

            try:
                apply_stock_delta(item.id, -line["qty"])
            except InsufficientStockError as exc:
                raise InsufficientStockError(
                    f"Insufficient stock for {name}. Available: {exc.details['available']}",
                    details={
                        "line": line_number,
                        "item_id": item.id,
                        "requested": line["qty"],
                        "available": exc.details["available"],
                    },
                ) from exc
            except NotFoundError as exc:
                # Deleted between the lookup and the decrement
                raise ItemNotFoundError(
                    f"Item {name} not found",
                    details={"line": line_number, "item_id": line["item_id"]},
                ) from exc

            sale_lines.append(SaleLine(
                line_number=line_number,
                item_id=item.id,
                name=name,
                qty=line["qty"],
                rate=line["rate"],
                amount=line["amount"],
            ))

        number = allocate_invoice_number(year) if allocate else invoice_number

        sale = Sale(
            invoice_number=number,
            invoice_date=invoice_date,
            customer_name=customer_name,
            customer_mobile=customer_mobile,
            user=username,
            timestamp=utcnow(),
            lines=sale_lines,
            **sale_totals,
        )
        db.session.add(sale)

        try:
            db.session.flush()
        except IntegrityError as exc:
            # Another till stored the same number after our pre-check
            db.session.rollback()
            raise DuplicateInvoiceError(
                "Invoice number already exists",
                details={"invoice_number": number},
            ) from exc

        db.session.commit()
        return sale

    sale = run_with_retry(_op)
    current_app.logger.info(
        "Sale recorded invoice=%s lines=%d grand_total=%s user=%s",
        sale.invoice_number, len(lines), sale.grand_total, username,
    )
    return sale


def get_sale(sale_id: int) -> Sale:
    def _op():
        sale = db.session.get(Sale, sale_id, options=[selectinload(Sale.lines)])
        if sale is None:
            raise NotFoundError("Sale not found", details={"sale_id": sale_id})
        return sale

    return run_with_retry(_op)


def _parse_filter_date(name: str, value: str):
    try:
        parsed = parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 date")
    if parsed is None:
        raise ValidationError(f"{name} must be an ISO-8601 date")
    return parsed


def _date_filters(query, *, date: str | None, start_date: str | None, end_date: str | None):
    if date:
        start, end = day_bounds(_parse_filter_date("date", date).date())
        return query.filter(Sale.invoice_date >= start, Sale.invoice_date <= end)

    if start_date:
        query = query.filter(Sale.invoice_date >= _parse_filter_date("start_date", start_date))
    if end_date:
        end = _parse_filter_date("end_date", end_date)
        if "T" not in end_date:
            # Date-only upper bound includes the whole day
            end = day_bounds(end.date())[1]
        query = query.filter(Sale.invoice_date <= end)
    return query


def list_sales(
    *,
    date: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
) -> list[Sale]:
    """
    Sales newest first, lines loaded.

    date selects one calendar day; start_date/end_date an inclusive range
    (either bound may be omitted). date wins when both forms are given.
    """
    def _op():
        query = _date_filters(
            db.session.query(Sale).options(selectinload(Sale.lines)),
            date=date, start_date=start_date, end_date=end_date,
        )
        return query.order_by(Sale.timestamp.desc(), Sale.id.desc()).all()

    return run_with_retry(_op)


def sales_summary(*, date: str | None = None) -> dict:
    """Count, revenue and units sold, optionally for one day."""
    def _op():
        sales_q = _date_filters(
            db.session.query(
                func.count(Sale.id),
                func.coalesce(func.sum(Sale.grand_total), 0),
            ),
            date=date, start_date=None, end_date=None,
        )
        total_sales, total_revenue = sales_q.one()

        items_q = _date_filters(
            db.session.query(func.coalesce(func.sum(SaleLine.qty), 0)).join(Sale, SaleLine.sale_id == Sale.id),
            date=date, start_date=None, end_date=None,
        )
        return total_sales, total_revenue, items_q.scalar()

    total_sales, total_revenue, total_items = run_with_retry(_op)
    return {
        "total_sales": int(total_sales or 0),
        "total_revenue": float(total_revenue or 0),
        "total_items": int(total_items or 0),
    }
