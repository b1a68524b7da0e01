# Overview: Flask API routes for inventory operations; parses input and returns JSON responses.

# backend/attar_pos/routes/inventory.py
"""
Inventory routes.

- Read operations require VIEW_INVENTORY permission
- Write operations require MANAGE_INVENTORY permission (admin)
"""

from flask import Blueprint, request, jsonify, current_app

from ..services import inventory_service
from ..errors import PosError, error_response
from ..decorators import require_auth, require_permission


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("")
@require_auth
@require_permission("VIEW_INVENTORY")
def list_items_route():
    """List all inventory items, newest first."""
    try:
        items = inventory_service.list_items()
        return jsonify([item.to_dict() for item in items]), 200
    except PosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list inventory")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/<int:item_id>")
@require_auth
@require_permission("VIEW_INVENTORY")
def get_item_route(item_id: int):
    try:
        return jsonify(inventory_service.get_item(item_id).to_dict()), 200
    except PosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get inventory item")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.post("")
@require_auth
@require_permission("MANAGE_INVENTORY")
def create_item_route():
    """
    Add new inventory item.

    Body: {"name", "type", "price", "stock"}
    """
    try:
        payload = request.get_json(silent=True) or {}
        item = inventory_service.create_item(payload)
        return jsonify(item.to_dict()), 201
    except PosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create inventory item")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.put("/<int:item_id>")
@require_auth
@require_permission("MANAGE_INVENTORY")
def update_item_route(item_id: int):
    """Partial update of name/type/price/stock."""
    try:
        payload = request.get_json(silent=True) or {}
        item = inventory_service.update_item(item_id, payload)
        return jsonify(item.to_dict()), 200
    except PosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update inventory item")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.patch("/<int:item_id>/stock")
@require_auth
@require_permission("MANAGE_INVENTORY")
def adjust_stock_route(item_id: int):
    """
    Adjust stock by a signed delta.

    Body: {"delta": -3}
    409 if the result would be negative; stock is left unchanged.
    """
    try:
        data = request.get_json(silent=True) or {}
        item = inventory_service.adjust_stock(item_id, data.get("delta"))
        return jsonify(item.to_dict()), 200
    except PosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.delete("/<int:item_id>")
@require_auth
@require_permission("MANAGE_INVENTORY")
def delete_item_route(item_id: int):
    try:
        inventory_service.delete_item(item_id)
        return jsonify({"message": "Item deleted successfully"}), 200
    except PosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete inventory item")
        return jsonify({"error": "Internal server error"}), 500
