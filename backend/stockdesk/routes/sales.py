# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/stockdesk/routes/sales.py
"""Sales API routes: checkout, void, history and reports"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import sales_service, reporting_service
from ..services.inventory_service import InventoryError
from ..services.reporting_service import ReportError
from ..services.sales_service import SaleError, SaleNotFoundError, TransactionFailure
from ..decorators import require_auth, require_admin
from ..time_utils import parse_iso_date, utcnow
from ..validation import ValidationError


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _error(message: str, status: int, details: dict | None = None):
    body = {"success": False, "error": message}
    if details:
        body["details"] = details
    return jsonify(body), status


def _scope_user_id():
    """Non-admins only ever see their own sales."""
    return None if g.identity.is_admin else g.user_id


@sales_bp.post("")
@require_auth
def create_sale_route():
    """
    Check out a sale.

    Body: {customer_name?, items: [{product_id, quantity, price, total?}],
           subtotal?, tax?, discount?, grand_total, payment_method?}
    """
    try:
        sale_request = sales_service.parse_sale_request(request.get_json(silent=True) or {})
        receipt = sales_service.create_sale(sale_request, g.user_id)
    except ValidationError as e:
        return _error(str(e), 400, e.details)
    except InventoryError as e:
        return _error(str(e), 400, e.details)
    except TransactionFailure:
        current_app.logger.exception("Sale transaction failed")
        return _error("Transaction failed.", 500)
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return _error("Internal server error", 500)

    return jsonify({
        "success": True,
        "message": "Sale completed successfully",
        **receipt.to_dict(),
    }), 201


@sales_bp.get("")
@require_auth
def list_sales_route():
    """
    List sales, newest first.

    Query params: start_date, end_date (YYYY-MM-DD), payment_method, customer
    """
    try:
        start_date = parse_iso_date(request.args.get("start_date"))
        end_date = parse_iso_date(request.args.get("end_date"))
    except ValueError:
        return _error("Dates must be formatted as YYYY-MM-DD", 400)

    sales = sales_service.list_sales(
        user_id=_scope_user_id(),
        start_date=start_date,
        end_date=end_date,
        payment_method=request.args.get("payment_method"),
        customer=request.args.get("customer"),
    )
    return jsonify({"success": True, "count": len(sales), "sales": sales}), 200


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    """Get sale with items. Non-admins may only read their own sales."""
    try:
        sale = sales_service.get_sale_detail(sale_id)
    except SaleNotFoundError as e:
        return _error(str(e), 404)

    if not g.identity.is_admin and sale["user_id"] != g.user_id:
        return _error("Permission denied.", 403)

    return jsonify({"success": True, "sale": sale}), 200


@sales_bp.delete("/<int:sale_id>")
@require_auth
@require_admin
def void_sale_route(sale_id: int):
    """
    Void a sale: restore stock and delete the sale with its items.

    Requires: admin
    """
    try:
        restored = sales_service.void_sale(sale_id)
    except SaleNotFoundError as e:
        return _error(str(e), 404)
    except TransactionFailure:
        current_app.logger.exception("Void of sale %s failed", sale_id)
        return _error("Transaction failed.", 500)
    except (SaleError, InventoryError):
        current_app.logger.exception("Failed to void sale %s", sale_id)
        return _error("Failed to void sale.", 500)
    except Exception:
        current_app.logger.exception("Failed to void sale %s", sale_id)
        return _error("Internal server error", 500)

    return jsonify({
        "success": True,
        "message": "Sale voided. Stock restored.",
        "restored": [level.to_dict() for level in restored],
    }), 200


@sales_bp.get("/reports/summary")
@require_auth
def summary_report_route():
    period = request.args.get("period")
    try:
        summary = reporting_service.sales_summary(period=period, user_id=_scope_user_id())
    except ReportError as e:
        return _error(str(e), 400)
    return jsonify({"success": True, "period": period or "all_time", "summary": summary}), 200


@sales_bp.get("/reports/daily")
@require_auth
def daily_report_route():
    try:
        target = parse_iso_date(request.args.get("date")) or utcnow().date()
    except ValueError:
        return _error("date must be formatted as YYYY-MM-DD", 400)

    data = reporting_service.daily_report(target, user_id=_scope_user_id())
    return jsonify({"success": True, "date": target.isoformat(), "data": data}), 200


@sales_bp.get("/reports/monthly")
@require_auth
def monthly_report_route():
    today = utcnow().date()
    year = request.args.get("year", default=today.year, type=int)
    month = request.args.get("month", default=today.month, type=int)
    try:
        data = reporting_service.monthly_report(year, month, user_id=_scope_user_id())
    except ReportError as e:
        return _error(str(e), 400)
    return jsonify({"success": True, "year": year, "month": month, "data": data}), 200
