from __future__ import annotations

from ..extensions import db
from ..stock_status import DEFAULT_MIN_STOCK, StockStatus
from ..time_utils import to_utc_z, utcnow


class Product(db.Model):
    """
    Product master data with its current stock level.

    QUANTITY: mutated only through inventory_service.apply_delta (sales,
    voids, restocks) or a full product edit.

    STATUS: derived from (quantity, min_stock) by stock_status.derive_status.
    Never accepted from clients.

    version_id is the optimistic lock: every UPDATE is conditional on the
    version read, so two writers cannot both decrement from the same
    observed quantity.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_products_quantity_non_negative"),
        db.CheckConstraint("min_stock >= 0", name="ck_products_min_stock_non_negative"),
        db.CheckConstraint("selling_price >= 0", name="ck_products_selling_price_non_negative"),
        db.CheckConstraint(
            "status IN ('in_stock', 'low_stock', 'out_of_stock')",
            name="ck_products_status",
        ),
        db.Index("ix_products_category", "category"),
        db.Index("ix_products_status", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    sku = db.Column(db.String(64), nullable=False, unique=True)
    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(120), nullable=True)
    brand = db.Column(db.String(120), nullable=True)
    description = db.Column(db.Text, nullable=True)
    supplier = db.Column(db.String(255), nullable=True)
    image_path = db.Column(db.String(255), nullable=True)

    purchase_price = db.Column(db.Float, nullable=False, default=0)
    selling_price = db.Column(db.Float, nullable=False)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    min_stock = db.Column(db.Integer, nullable=False, default=DEFAULT_MIN_STOCK)
    status = db.Column(db.String(16), nullable=False, default=StockStatus.OUT_OF_STOCK.value)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=db.func.now(),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=db.func.now(),
        onupdate=utcnow,
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r} quantity={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "sku": self.sku,
            "category": self.category,
            "brand": self.brand,
            "description": self.description,
            "supplier": self.supplier,
            "image_path": self.image_path,
            "purchase_price": self.purchase_price,
            "selling_price": self.selling_price,
            "quantity": self.quantity,
            "min_stock": self.min_stock,
            "status": self.status,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
