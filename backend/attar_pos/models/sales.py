from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


def _money(value):
    return float(value) if value is not None else None


class InvoiceSequence(db.Model):
    """
    Per-calendar-year invoice counter.

    `sequence` is the last number handed out for that year (0 = none yet).
    Only ever moved forward by a single UPDATE ... SET sequence = sequence + 1.
    """
    __tablename__ = "invoice_sequences"
    __table_args__ = (
        db.UniqueConstraint("year", name="uq_invoice_sequences_year"),
        db.CheckConstraint("sequence >= 0", name="ck_invoice_sequences_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    year = db.Column(db.Integer, nullable=False)
    sequence = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())


class Sale(db.Model):
    """
    Recorded sale (immutable once created).

    Line items are snapshots: name/qty/rate/amount as they were at sale
    time, so deleting or repricing an inventory item never rewrites history.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("invoice_number", name="uq_sales_invoice_number"),
        db.Index("ix_sales_invoice_date", "invoice_date"),
        db.Index("ix_sales_timestamp", "timestamp"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable invoice number (e.g., "INV-2026-001")
    invoice_number = db.Column(db.String(64), nullable=False)
    invoice_date = db.Column(db.DateTime(timezone=True), nullable=False)

    customer_name = db.Column(db.String(255), nullable=False, default="Customer")
    customer_mobile = db.Column(db.String(32), nullable=False, default="")

    # Totals as computed by the till
    subtotal = db.Column(db.Numeric(12, 2), nullable=False)
    discount_percent = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    discount_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    taxable = db.Column(db.Numeric(12, 2), nullable=False)
    gst_percent = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    gst_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    grand_total = db.Column(db.Numeric(12, 2), nullable=False)

    # Username of the cashier/admin who recorded it
    user = db.Column(db.String(64), nullable=False)

    timestamp = db.Column(db.DateTime(timezone=True), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    lines = db.relationship(
        "SaleLine",
        backref="sale",
        lazy=True,
        order_by="SaleLine.line_number",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Sale id={self.id} invoice_number={self.invoice_number!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "invoice_date": to_utc_z(self.invoice_date),
            "customer_name": self.customer_name,
            "customer_mobile": self.customer_mobile,
            "items": [line.to_dict() for line in self.lines],
            "subtotal": _money(self.subtotal),
            "discount_percent": _money(self.discount_percent),
            "discount_amount": _money(self.discount_amount),
            "taxable": _money(self.taxable),
            "gst_percent": _money(self.gst_percent),
            "gst_amount": _money(self.gst_amount),
            "grand_total": _money(self.grand_total),
            "user": self.user,
            "timestamp": to_utc_z(self.timestamp),
            "created_at": to_utc_z(self.created_at),
        }


class SaleLine(db.Model):
    __tablename__ = "sale_lines"
    __table_args__ = (
        db.UniqueConstraint("sale_id", "line_number", name="uq_sale_lines_sale_line"),
        db.CheckConstraint("qty > 0", name="ck_sale_lines_qty_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    line_number = db.Column(db.Integer, nullable=False)

    # Plain reference, not a FK: the item may be deleted later
    item_id = db.Column(db.Integer, nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    qty = db.Column(db.Integer, nullable=False)
    rate = db.Column(db.Numeric(12, 2), nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False)

    def to_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "name": self.name,
            "qty": self.qty,
            "rate": _money(self.rate),
            "amount": _money(self.amount),
        }
