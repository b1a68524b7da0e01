from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


ITEM_TYPES = ("Attar", "Perfume", "Body Mist", "Others")


class InventoryItem(db.Model):
    """
    Sellable stock line (one attar, perfume, body mist...).

    Stock is a mutable counter, decremented by sales and adjusted by admins.
    It is never written with a read-then-write: every change goes through a
    conditional UPDATE in inventory_service so it cannot go negative.
    """
    __tablename__ = "inventory_items"
    __table_args__ = (
        db.CheckConstraint("stock >= 0", name="ck_inventory_items_stock_nonneg"),
        db.CheckConstraint("price >= 0", name="ck_inventory_items_price_nonneg"),
        db.Index("ix_inventory_items_created", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    type = db.Column(db.String(32), nullable=False)
    price = db.Column(db.Numeric(12, 2), nullable=False)
    stock = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<InventoryItem id={self.id} name={self.name!r} stock={self.stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "price": float(self.price) if self.price is not None else None,
            "stock": self.stock,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
