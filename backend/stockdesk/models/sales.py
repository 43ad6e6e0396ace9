from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow

PAYMENT_METHODS = ("cash", "card", "online")
DEFAULT_CUSTOMER_NAME = "Walk-in Customer"


class Sale(db.Model):
    """
    Sale header.

    Immutable once committed; the only way to undo one is a void, which
    restores stock and deletes the header together with its items.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.CheckConstraint(
            "payment_method IN ('cash', 'card', 'online')",
            name="ck_sales_payment_method",
        ),
        db.Index("ix_sales_user_created", "user_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # e.g. "INV-1718000000000-4821"
    invoice_number = db.Column(db.String(64), nullable=False, unique=True)

    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    customer_name = db.Column(db.String(255), nullable=True, default=DEFAULT_CUSTOMER_NAME)

    subtotal = db.Column(db.Float, nullable=False, default=0)
    tax = db.Column(db.Float, nullable=False, default=0)
    discount = db.Column(db.Float, nullable=False, default=0)
    grand_total = db.Column(db.Float, nullable=False)

    payment_method = db.Column(db.String(16), nullable=False, default="cash")

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=db.func.now(),
        index=True,
    )

    user = db.relationship("User", backref=db.backref("sales", lazy=True, passive_deletes=True))
    items = db.relationship(
        "SaleItem",
        back_populates="sale",
        lazy=True,
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="SaleItem.id",
    )

    def __repr__(self) -> str:
        return f"<Sale id={self.id} invoice_number={self.invoice_number!r} grand_total={self.grand_total}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "user_id": self.user_id,
            "customer_name": self.customer_name,
            "subtotal": self.subtotal,
            "tax": self.tax,
            "discount": self.discount,
            "grand_total": self.grand_total,
            "payment_method": self.payment_method,
            "created_at": to_utc_z(self.created_at),
        }


class SaleItem(db.Model):
    """Line item on a sale. Price is the unit price snapshotted at checkout."""
    __tablename__ = "sale_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sale_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(
        db.Integer,
        db.ForeignKey("sales.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id = db.Column(
        db.Integer,
        db.ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    quantity = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Float, nullable=False)
    total = db.Column(db.Float, nullable=False)

    sale = db.relationship("Sale", back_populates="items")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "price": self.price,
            "total": self.total,
        }
