# backend/stockdesk/services/products_service.py
"""
Products Service

Product edits may set quantity directly (stock count corrections); the
status column is always recomputed through derive_status, never taken
from the client.
"""
from __future__ import annotations

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Product, SaleItem
from ..stock_status import DEFAULT_MIN_STOCK, derive_status
from ..validation import ConflictError

PRODUCT_MUTABLE_FIELDS = {
    "name", "sku", "category", "brand", "description", "supplier", "image_path",
    "purchase_price", "selling_price", "quantity", "min_stock",
}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)
    p.status = derive_status(p.quantity or 0, p.min_stock).value


def list_products(
    search: str | None = None,
    category: str | None = None,
    status: str | None = None,
) -> dict:
    """
    Product listing, most recently created first.

    search matches name, sku or category (case-insensitive substring).
    """
    q = db.session.query(Product)
    if search:
        term = f"%{search}%"
        q = q.filter(or_(Product.name.ilike(term), Product.sku.ilike(term), Product.category.ilike(term)))
    if category:
        q = q.filter(Product.category == category)
    if status:
        q = q.filter(Product.status == status)

    products = q.order_by(Product.created_at.desc(), Product.id.desc()).all()
    return {
        "items": [p.to_dict() for p in products],
        "count": len(products),
    }


def get_product(product_id: int) -> Product | None:
    return db.session.get(Product, product_id)


def create_product(*, patch: dict) -> dict:
    """
    Create product using a validated patch dict.

    quantity defaults to 0 and min_stock to 5; status is derived from both.
    """
    product = Product(
        purchase_price=0,
        quantity=0,
        min_stock=DEFAULT_MIN_STOCK,
    )
    apply_product_patch(product, patch)

    db.session.add(product)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        if "sku" in str(exc.orig).lower():
            raise ConflictError("Product with this SKU already exists") from exc
        raise
    return product.to_dict()


def update_product(*, product_id: int, patch: dict) -> dict | None:
    product = db.session.get(Product, product_id)
    if product is None:
        return None

    apply_product_patch(product, patch)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        if "sku" in str(exc.orig).lower():
            raise ConflictError("Another product with this SKU already exists") from exc
        raise
    return product.to_dict()


def delete_product(*, product_id: int) -> bool:
    """
    Delete a product that has never been sold.

    Products referenced by sale items are kept (RESTRICT) so historical
    sales stay readable.
    """
    product = db.session.get(Product, product_id)
    if product is None:
        return False

    referenced = db.session.query(SaleItem.id).filter(SaleItem.product_id == product_id).first()
    if referenced is not None:
        raise ConflictError("Product has recorded sales and cannot be deleted")

    db.session.delete(product)
    db.session.commit()
    return True


def list_categories() -> list[str]:
    rows = (
        db.session.query(Product.category)
        .filter(Product.category.isnot(None), Product.category != "")
        .distinct()
        .order_by(Product.category)
        .all()
    )
    return [category for (category,) in rows]
