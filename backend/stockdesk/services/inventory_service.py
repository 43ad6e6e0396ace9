# Overview: Service-layer operations for inventory; the only writer of product stock levels.

"""
Inventory ledger.

Invariants:
- Product.quantity never goes below zero.
- Product.status == derive_status(quantity, min_stock) after every write.
- apply_delta never commits; the caller owns the transaction boundary.

Concurrency:
- The product row is read with lock_for_update() inside the caller's
  transaction, so the stock check sees the transaction-consistent quantity.
- The write is conditional on Product.version_id. If another transaction
  changed the row between our read and our write, the flush raises
  StaleDataError and nothing is written; callers retry via run_with_retry.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..extensions import db
from ..models import Product
from ..stock_status import derive_status
from ..time_utils import utcnow, to_utc_z
from ..validation import ValidationError
from .concurrency import begin_immediate, lock_for_update, run_with_retry


class InventoryError(Exception):
    """Raised for stock mutation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ProductNotFoundError(InventoryError):
    def __init__(self, product_id):
        super().__init__(
            f"Product ID {product_id} not found.",
            details={"product_id": product_id},
        )
        self.product_id = product_id


class InsufficientStockError(InventoryError):
    def __init__(self, product_id: int, product_name: str, available: int, requested: int):
        super().__init__(
            f'Not enough stock for "{product_name}". '
            f"Available: {available}, Requested: {requested}",
            details={
                "product_id": product_id,
                "product_name": product_name,
                "available": available,
                "requested": requested,
            },
        )
        self.product_id = product_id
        self.product_name = product_name
        self.available = available
        self.requested = requested


@dataclass(frozen=True)
class StockLevel:
    product_id: int
    name: str
    quantity: int
    min_stock: int
    status: str
    updated_at: object = None

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "quantity": self.quantity,
            "min_stock": self.min_stock,
            "status": self.status,
            "updated_at": to_utc_z(self.updated_at),
        }


def get_product_for_update(product_id: int, *, session=None) -> Product:
    """Load a product row under lock, or raise ProductNotFoundError."""
    session = session or db.session
    product = lock_for_update(session.query(Product).filter_by(id=product_id)).first()
    if product is None:
        raise ProductNotFoundError(product_id)
    return product


def apply_delta(product_id: int, delta: int, *, session=None) -> StockLevel:
    """
    Apply a signed quantity change to one product and re-derive its status.

    Negative deltas (sales) fail with InsufficientStockError when they would
    drive the quantity below zero; the row is left untouched. Positive deltas
    (voids, restocks) always succeed for an existing product.

    Issues exactly one conditional UPDATE (flushed, not committed).
    """
    session = session or db.session
    if isinstance(delta, bool) or not isinstance(delta, int):
        raise TypeError("delta must be an int")

    product = get_product_for_update(product_id, session=session)

    new_quantity = product.quantity + delta
    if new_quantity < 0:
        raise InsufficientStockError(
            product_id=product.id,
            product_name=product.name,
            available=product.quantity,
            requested=-delta,
        )

    product.quantity = new_quantity
    product.status = derive_status(new_quantity, product.min_stock).value
    product.updated_at = utcnow()

    # UPDATE ... WHERE id = :id AND version_id = :seen; StaleDataError on 0 rows.
    session.flush()

    return StockLevel(
        product_id=product.id,
        name=product.name,
        quantity=product.quantity,
        min_stock=product.min_stock,
        status=product.status,
        updated_at=product.updated_at,
    )


def restock_product(product_id: int, quantity: int, *, attempts: int = 3) -> StockLevel:
    """Manual restock: a committed positive delta through the ledger."""
    if quantity <= 0:
        raise ValidationError("quantity must be greater than 0")

    def _op():
        begin_immediate()
        level = apply_delta(product_id, quantity)
        db.session.commit()
        return level

    try:
        return run_with_retry(_op, attempts=attempts)
    except InventoryError:
        db.session.rollback()
        raise
