"""
Sales Service - checkout and void as single database transactions

INVARIANTS:
- A committed sale has every one of its items written and every item's
  quantity taken off the product, or none of it exists.
- Items are processed in the order given, one at a time, inside one
  transaction. Two lines for the same product see each other's decrement.
- Any failure rolls back explicitly before the error reaches the caller.
"""

from __future__ import annotations

import random
import time
from dataclasses import dataclass
from datetime import date

from flask import current_app
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..models import Sale, SaleItem, Product, User, PAYMENT_METHODS, DEFAULT_CUSTOMER_NAME
from ..validation import ValidationError, positive_int, optional_number
from .concurrency import RETRYABLE_ERRORS, begin_immediate, run_with_retry
from .inventory_service import (
    InventoryError,
    InsufficientStockError,
    StockLevel,
    apply_delta,
    get_product_for_update,
)


class SaleError(Exception):
    """Raised for sale operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class SaleNotFoundError(SaleError):
    def __init__(self, sale_id):
        super().__init__("Sale not found.", details={"sale_id": sale_id})
        self.sale_id = sale_id


class TransactionFailure(SaleError):
    """Commit/rollback-level failure. The message is safe to show; the cause is logged."""


class InvoiceCollisionError(TransactionFailure):
    """Generated invoice number already taken; retried with a fresh number."""


@dataclass(frozen=True)
class SaleItemRequest:
    product_id: int
    quantity: int
    price: float | None = None
    total: float | None = None


@dataclass(frozen=True)
class SaleRequest:
    items: tuple[SaleItemRequest, ...]
    grand_total: float
    customer_name: str = DEFAULT_CUSTOMER_NAME
    subtotal: float = 0.0
    tax: float = 0.0
    discount: float = 0.0
    payment_method: str = "cash"


@dataclass(frozen=True)
class SaleReceipt:
    invoice_number: str
    sale_id: int
    items_count: int
    grand_total: float

    def to_dict(self) -> dict:
        return {
            "invoiceNumber": self.invoice_number,
            "saleId": self.sale_id,
            "itemsCount": self.items_count,
            "grandTotal": self.grand_total,
        }


def generate_invoice_number() -> str:
    """INV-<epoch millis>-<4 random digits>. Not guaranteed unique; see InvoiceCollisionError."""
    return f"INV-{int(time.time() * 1000)}-{random.randint(1000, 9999)}"


def _parse_item(position: int, raw) -> SaleItemRequest:
    if not isinstance(raw, dict):
        raise ValidationError(f"Item {position} must be an object.")
    # blank price or total means "not given", same as omitting the key
    price = raw.get("price")
    price = None if price == "" else price
    total = raw.get("total")
    total = None if total == "" else total
    return SaleItemRequest(
        product_id=positive_int(f"items[{position}].product_id", raw.get("product_id")),
        quantity=positive_int(f"items[{position}].quantity", raw.get("quantity")),
        price=None if price is None else optional_number(f"items[{position}].price", price),
        total=None if total is None else optional_number(f"items[{position}].total", total),
    )


def parse_sale_request(payload) -> SaleRequest:
    """
    Validate a checkout payload.

    Runs before any transaction is opened; everything it rejects is a
    ValidationError.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    items = payload.get("items")
    if not items or not isinstance(items, list):
        raise ValidationError("No items provided.")

    if not payload.get("grand_total"):
        raise ValidationError("Grand total is required.")
    grand_total = optional_number("grand_total", payload.get("grand_total"))
    if grand_total <= 0:
        raise ValidationError("Grand total must be greater than 0.")

    payment_method = payload.get("payment_method") or "cash"
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(
            f"Invalid payment method. Must be one of: {', '.join(PAYMENT_METHODS)}"
        )

    customer_name = payload.get("customer_name")
    customer_name = str(customer_name).strip() if customer_name else ""

    return SaleRequest(
        items=tuple(_parse_item(i, raw) for i, raw in enumerate(items)),
        grand_total=grand_total,
        customer_name=customer_name or DEFAULT_CUSTOMER_NAME,
        subtotal=optional_number("subtotal", payload.get("subtotal")),
        tax=optional_number("tax", payload.get("tax")),
        discount=optional_number("discount", payload.get("discount")),
        payment_method=payment_method,
    )


def _is_invoice_collision(exc: IntegrityError) -> bool:
    return "invoice_number" in str(exc.orig)


def _write_sale(session, request: SaleRequest, user_id: int | None, invoice_number: str) -> SaleReceipt:
    sale = Sale(
        invoice_number=invoice_number,
        user_id=user_id,
        customer_name=request.customer_name,
        subtotal=request.subtotal,
        tax=request.tax,
        discount=request.discount,
        grand_total=request.grand_total,
        payment_method=request.payment_method,
    )
    session.add(sale)
    session.flush()
    sale_id = sale.id

    for item in request.items:
        product = get_product_for_update(item.product_id, session=session)
        if product.quantity < item.quantity:
            raise InsufficientStockError(
                product_id=product.id,
                product_name=product.name,
                available=product.quantity,
                requested=item.quantity,
            )

        price = item.price if item.price is not None else product.selling_price
        total = item.total if item.total is not None else item.quantity * price
        session.add(SaleItem(
            sale_id=sale_id,
            product_id=product.id,
            quantity=item.quantity,
            price=price,
            total=total,
        ))

        apply_delta(product.id, -item.quantity, session=session)

    return SaleReceipt(
        invoice_number=invoice_number,
        sale_id=sale_id,
        items_count=len(request.items),
        grand_total=request.grand_total,
    )


def create_sale(
    request: SaleRequest | dict,
    user_id: int | None = None,
    *,
    session=None,
    attempts: int | None = None,
) -> SaleReceipt:
    """
    Check out a sale: header, line items and stock decrements in one transaction.

    Raises ValidationError before touching the database, InventoryError
    subclasses for unknown products / short stock, TransactionFailure when
    the store cannot commit. In every failure case nothing is persisted.
    """
    if not isinstance(request, SaleRequest):
        request = parse_sale_request(request)
    if not request.items:
        raise ValidationError("No items provided.")

    session = session or db.session
    attempts = attempts or current_app.config.get("SALE_RETRY_ATTEMPTS", 3)

    def _op():
        invoice_number = generate_invoice_number()
        try:
            begin_immediate(session)
            receipt = _write_sale(session, request, user_id, invoice_number)
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            if _is_invoice_collision(exc):
                current_app.logger.warning("Invoice number %s already used, regenerating", invoice_number)
                raise InvoiceCollisionError("Transaction failed.") from exc
            raise
        except Exception:
            session.rollback()
            raise
        return receipt

    try:
        receipt = run_with_retry(
            _op,
            attempts=attempts,
            retry_on=RETRYABLE_ERRORS + (InvoiceCollisionError,),
            session=session,
        )
    except InventoryError as exc:
        current_app.logger.info("Sale rolled back: %s", exc)
        raise
    except SQLAlchemyError as exc:
        session.rollback()
        current_app.logger.error("Sale transaction failed: %s", exc)
        raise TransactionFailure("Transaction failed.") from exc

    current_app.logger.info(
        "Sale %s committed (id=%s, items=%s, total=%s)",
        receipt.invoice_number, receipt.sale_id, receipt.items_count, receipt.grand_total,
    )
    return receipt


def void_sale(sale_id: int, *, session=None, attempts: int | None = None) -> list[StockLevel]:
    """
    Reverse a committed sale: restore every item's quantity, then delete the
    items and the sale, all in one transaction.

    Hard delete; no audit row is kept. Returns the restored stock levels.
    """
    session = session or db.session
    attempts = attempts or current_app.config.get("SALE_RETRY_ATTEMPTS", 3)

    def _op():
        try:
            begin_immediate(session)
            items = session.execute(
                select(SaleItem.product_id, SaleItem.quantity)
                .where(SaleItem.sale_id == sale_id)
                .order_by(SaleItem.id)
            ).all()

            restored = [
                apply_delta(product_id, quantity, session=session)
                for product_id, quantity in items
            ]

            session.execute(delete(SaleItem).where(SaleItem.sale_id == sale_id))
            result = session.execute(delete(Sale).where(Sale.id == sale_id))
            if result.rowcount == 0:
                raise SaleNotFoundError(sale_id)

            session.commit()
        except Exception:
            session.rollback()
            raise
        return restored

    try:
        restored = run_with_retry(_op, attempts=attempts, session=session)
    except (SaleError, InventoryError):
        raise
    except SQLAlchemyError as exc:
        session.rollback()
        current_app.logger.error("Void of sale %s failed: %s", sale_id, exc)
        raise TransactionFailure("Transaction failed.") from exc

    current_app.logger.info("Sale %s voided, %s item(s) restocked", sale_id, len(restored))
    return restored


def list_sales(
    *,
    user_id: int | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    payment_method: str | None = None,
    customer: str | None = None,
) -> list[dict]:
    """Sales newest first with the cashier's username. user_id scopes to one cashier."""
    q = (
        db.session.query(Sale, User.username)
        .outerjoin(User, Sale.user_id == User.id)
    )
    if user_id is not None:
        q = q.filter(Sale.user_id == user_id)
    if start_date is not None:
        q = q.filter(func.date(Sale.created_at) >= start_date.isoformat())
    if end_date is not None:
        q = q.filter(func.date(Sale.created_at) <= end_date.isoformat())
    if payment_method:
        q = q.filter(Sale.payment_method == payment_method)
    if customer:
        q = q.filter(Sale.customer_name.ilike(f"%{customer}%"))

    rows = q.order_by(Sale.created_at.desc(), Sale.id.desc()).all()
    return [{**sale.to_dict(), "cashier_name": username} for sale, username in rows]


def get_sale_detail(sale_id: int) -> dict:
    """Sale header plus its items joined to product name, sku and category."""
    row = (
        db.session.query(Sale, User.username)
        .outerjoin(User, Sale.user_id == User.id)
        .filter(Sale.id == sale_id)
        .first()
    )
    if row is None:
        raise SaleNotFoundError(sale_id)
    sale, username = row

    items = (
        db.session.query(SaleItem, Product.name, Product.sku, Product.category, Product.image_path)
        .outerjoin(Product, SaleItem.product_id == Product.id)
        .filter(SaleItem.sale_id == sale_id)
        .order_by(SaleItem.id)
        .all()
    )

    return {
        **sale.to_dict(),
        "cashier_name": username,
        "items": [
            {
                **item.to_dict(),
                "product_name": name,
                "sku": sku,
                "category": category,
                "image_path": image_path,
            }
            for item, name, sku, category, image_path in items
        ],
    }
