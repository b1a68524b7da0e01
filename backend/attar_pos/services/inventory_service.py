# Overview: Service-layer operations for inventory; encapsulates business logic and database work.

# backend/attar_pos/services/inventory_service.py

from __future__ import annotations

from flask import current_app
from sqlalchemy import update

from ..errors import InsufficientStockError, NotFoundError, ValidationError
from ..extensions import db
from ..models import InventoryItem
from ..validation import (
    ModelValidationPolicy,
    coerce_integer,
    enforce_rules_inventory_item,
    validate_payload,
)
from .concurrency import run_with_retry
"""
Inventory Invariants (authoritative)

- stock is a stored counter and may never go negative.
- Every stock change is one conditional UPDATE:
      UPDATE inventory_items SET stock = stock + :delta
      WHERE id = :id AND stock + :delta >= 0
  Zero rows affected means the item is missing or the change would oversell;
  nothing was written in either case. Two concurrent decrements can never
  both read the same stale value.
- The CHECK (stock >= 0) constraint is a backstop, not the mechanism.
- Deleting an item never touches sale lines (they hold snapshots).
"""


ITEM_POLICY = ModelValidationPolicy(
    writable_fields={"name", "type", "price", "stock"},
    required_on_create={"name", "type", "price", "stock"},
)


def list_items() -> list[InventoryItem]:
    """All items, newest first."""
    return run_with_retry(
        lambda: db.session.query(InventoryItem)
        .order_by(InventoryItem.created_at.desc(), InventoryItem.id.desc())
        .all()
    )


def _load_item(item_id: int) -> InventoryItem:
    item = db.session.get(InventoryItem, item_id)
    if item is None:
        raise NotFoundError("Item not found", details={"item_id": item_id})
    return item


def get_item(item_id: int) -> InventoryItem:
    return run_with_retry(lambda: _load_item(item_id))


def create_item(payload: dict) -> InventoryItem:
    """
    Create a new inventory item.

    payload must carry name, type, price and stock. Raises ValidationError on
    missing fields, unknown type, or negative price/stock.
    """
    patch = validate_payload(model=InventoryItem, payload=payload, policy=ITEM_POLICY, partial=False)
    enforce_rules_inventory_item(patch)

    def _op():
        item = InventoryItem(**patch)
        db.session.add(item)
        db.session.commit()
        return item

    item = run_with_retry(_op)
    current_app.logger.info("Inventory item created id=%s name=%r stock=%s", item.id, item.name, item.stock)
    return item


def update_item(item_id: int, payload: dict) -> InventoryItem:
    """Partial update; only supplied fields are validated and written."""
    patch = validate_payload(model=InventoryItem, payload=payload, policy=ITEM_POLICY, partial=True)
    enforce_rules_inventory_item(patch)

    def _op():
        item = _load_item(item_id)
        for key, value in patch.items():
            setattr(item, key, value)
        db.session.commit()
        return item

    return run_with_retry(_op)


def apply_stock_delta(item_id: int, delta: int) -> InventoryItem:
    """
    Conditionally apply delta to stock inside the current transaction.

    Does not commit. Callers that need several changes to land together
    (a multi-line sale) call this per line and commit once.
    """
    stmt = (
        update(InventoryItem)
        .where(
            InventoryItem.id == item_id,
            InventoryItem.stock + delta >= 0,
        )
        .values(stock=InventoryItem.stock + delta)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)

    if not result.rowcount:
        item = db.session.get(InventoryItem, item_id, populate_existing=True)
        if item is None:
            raise NotFoundError("Item not found", details={"item_id": item_id})
        raise InsufficientStockError(
            f"Insufficient stock for {item.name}. Available: {item.stock}",
            details={
                "item_id": item.id,
                "name": item.name,
                "available": item.stock,
                "requested_delta": delta,
            },
        )

    # Reload so the caller sees the committed-to-be value, not a stale identity-map copy
    return db.session.get(InventoryItem, item_id, populate_existing=True)


def adjust_stock(item_id: int, delta) -> InventoryItem:
    """
    Atomically add delta (may be negative) to an item's stock.

    Raises NotFoundError for an unknown id and InsufficientStockError if the
    result would be negative; stock is unchanged in both cases.
    """
    if delta is None:
        raise ValidationError("delta is required")
    delta = coerce_integer("delta", delta)
    if delta == 0:
        raise ValidationError("delta must be non-zero")

    def _op():
        item = apply_stock_delta(item_id, delta)
        db.session.commit()
        return item

    item = run_with_retry(_op)
    current_app.logger.info("Stock adjusted item_id=%s delta=%+d stock=%s", item.id, delta, item.stock)
    return item


def delete_item(item_id: int) -> None:
    def _op():
        item = _load_item(item_id)
        db.session.delete(item)
        db.session.commit()

    run_with_retry(_op)
    current_app.logger.info("Inventory item deleted id=%s", item_id)
