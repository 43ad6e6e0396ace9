# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/stockdesk/routes/products.py
"""
Product management routes.

SECURITY: All routes require authentication.
- Read operations are open to every signed-in user
- Write operations and the dashboard require the admin role
"""
from flask import Blueprint, request, jsonify, current_app
from sqlalchemy.orm.exc import StaleDataError

from ..services import inventory_service, reporting_service
from ..services.products_service import (
    list_products as list_products_service,
    get_product,
    create_product,
    update_product,
    delete_product,
    list_categories,
)
from ..services.inventory_service import InventoryError
from ..models import Product
from ..stock_status import STOCK_STATUS_VALUES
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    positive_int,
    ValidationError,
    ConflictError,
)
from ..decorators import require_auth, require_admin

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "sku", "category", "brand", "description", "supplier", "image_path",
        "purchase_price", "selling_price", "quantity", "min_stock",
    },
    required_on_create={"name", "sku", "selling_price"},
    # status is derived; clients may echo it back but it is never applied
    ignored_fields={"id", "status", "version_id", "created_at", "updated_at"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products():
    """
    List products, newest first.

    Query params:
    - search: matches name, sku or category
    - category: exact category
    - status: in_stock | low_stock | out_of_stock
    """
    status = request.args.get("status")
    if status and status not in STOCK_STATUS_VALUES:
        return {"success": False, "error": f"Invalid status. Must be one of: {', '.join(STOCK_STATUS_VALUES)}"}, 400

    result = list_products_service(
        search=request.args.get("search"),
        category=request.args.get("category"),
        status=status,
    )
    return {"success": True, "count": result["count"], "products": result["items"]}


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    product = get_product(product_id)
    if product is None:
        return {"success": False, "error": "Product not found"}, 404
    return {"success": True, "product": product.to_dict()}


@products_bp.post("")
@require_auth
@require_admin
def create_product_route():
    """
    Create a new product. Requires admin.
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"success": False, "error": str(e)}, 400

    try:
        created = create_product(patch=patch)
    except ConflictError as e:
        return {"success": False, "error": str(e)}, 409

    return {
        "success": True,
        "message": "Product added successfully",
        "productId": created["id"],
        "product": created,
    }, 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_admin
def update_product_route(product_id: int):
    """
    Update a product. Status is re-derived from quantity and min_stock.

    Requires admin.
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"success": False, "error": str(e)}, 400

    try:
        updated = update_product(product_id=product_id, patch=patch)
    except ConflictError as e:
        return {"success": False, "error": str(e)}, 409
    except StaleDataError:
        current_app.logger.warning("Concurrent update of product %s", product_id)
        return {"success": False, "error": "Product was modified by another request, please retry"}, 409

    if not updated:
        return {"success": False, "error": "Product not found"}, 404

    return {"success": True, "message": "Product updated successfully", "product": updated}, 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_admin
def delete_product_route(product_id: int):
    """
    Delete a product that has never been sold. Requires admin.
    """
    try:
        deleted = delete_product(product_id=product_id)
    except ConflictError as e:
        return {"success": False, "error": str(e)}, 409

    if not deleted:
        return {"success": False, "error": "Product not found"}, 404

    return {"success": True, "message": "Product deleted successfully"}, 200


@products_bp.post("/<int:product_id>/restock")
@require_auth
@require_admin
def restock_product_route(product_id: int):
    """
    Add received units to a product's stock. Body: {quantity}
    """
    payload = request.get_json(silent=True) or {}
    try:
        quantity = positive_int("quantity", payload.get("quantity"))
        level = inventory_service.restock_product(product_id, quantity)
    except ValidationError as e:
        return {"success": False, "error": str(e)}, 400
    except InventoryError as e:
        return {"success": False, "error": "Product not found", "details": e.details}, 404
    except Exception:
        current_app.logger.exception("Failed to restock product %s", product_id)
        return {"success": False, "error": "Internal server error"}, 500

    return {"success": True, "message": "Stock updated", "stock": level.to_dict()}, 200


@products_bp.get("/stats/dashboard")
@require_auth
@require_admin
def dashboard_stats():
    return jsonify({"success": True, "stats": reporting_service.inventory_dashboard()})


@products_bp.get("/categories/list")
@require_auth
def categories_list():
    return jsonify({"success": True, "categories": list_categories()})
