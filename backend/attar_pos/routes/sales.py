# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/attar_pos/routes/sales.py
"""Sales API routes with permission enforcement"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import sales_service, invoice_service
from ..errors import PosError, error_response
from ..decorators import require_auth, require_permission


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")

TOTAL_FIELDS = (
    "subtotal",
    "discount_percent",
    "discount_amount",
    "taxable",
    "gst_percent",
    "gst_amount",
    "grand_total",
)


@sales_bp.get("")
@require_auth
@require_permission("VIEW_SALES")
def list_sales_route():
    """
    List sales, newest first.

    Query params:
    - date: YYYY-MM-DD (one day)
    - start_date / end_date: inclusive range
    """
    try:
        sales = sales_service.list_sales(
            date=request.args.get("date"),
            start_date=request.args.get("start_date"),
            end_date=request.args.get("end_date"),
        )
        return jsonify([sale.to_dict() for sale in sales]), 200
    except PosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list sales")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("")
@require_auth
@require_permission("CREATE_SALE")
def create_sale_route():
    """
    Record a sale and decrement stock.

    Omit invoice_number to have one allocated as part of the sale.

    Requires: CREATE_SALE permission
    Available to: admin, cashier
    """
    try:
        data = request.get_json(silent=True) or {}
        sale = sales_service.record_sale(
            items=data.get("items"),
            username=g.current_user.username,
            invoice_number=data.get("invoice_number"),
            invoice_date=data.get("invoice_date"),
            customer_name=data.get("customer_name"),
            customer_mobile=data.get("customer_mobile"),
            totals={key: data.get(key) for key in TOTAL_FIELDS},
        )
        return jsonify(sale.to_dict()), 201

    except PosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/<int:sale_id>")
@require_auth
@require_permission("VIEW_SALES")
def get_sale_route(sale_id: int):
    try:
        return jsonify(sales_service.get_sale(sale_id).to_dict()), 200
    except PosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/invoice-number")
@require_auth
@require_permission("CREATE_SALE")
def next_invoice_number_route():
    """Preview the next invoice number for the current year (not reserved)."""
    try:
        invoice_number, sequence = invoice_service.peek_next()
        return jsonify({"invoice_number": invoice_number, "sequence": sequence}), 200
    except PosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get invoice number")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/increment-invoice")
@require_auth
@require_permission("CREATE_SALE")
def increment_invoice_route():
    """Advance the invoice sequence after a sale recorded with a previewed number."""
    try:
        sequence = invoice_service.commit_increment()
        return jsonify({"sequence": sequence}), 200
    except PosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to increment invoice sequence")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/summary")
@require_auth
@require_permission("VIEW_SALES")
def sales_summary_route():
    """Totals for all sales, or for ?date=YYYY-MM-DD."""
    try:
        return jsonify(sales_service.sales_summary(date=request.args.get("date"))), 200
    except PosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get sales summary")
        return jsonify({"error": "Internal server error"}), 500
