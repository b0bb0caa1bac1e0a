from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from posapp.time_utils import to_utc_z


MOVEMENT_TYPES = ("purchase", "sale", "adjustment", "return")

STOCK_STATUS_OUT = "Out of stock"
STOCK_STATUS_LOW = "Low stock"
STOCK_STATUS_IN = "In stock"


def money_to_json(value: Decimal | None) -> float | None:
    return float(value) if value is not None else None


class Product(db.Model):
    """
    Product / menu item master data.

    SKU is optional but unique when present. Stock is a cached running total
    whose history lives in stock_movements; the CHECK constraint is the last
    line of defense against overselling.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock_quantity >= 0", name="ck_products_stock_non_negative"),
        db.CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
        db.CheckConstraint("cost >= 0", name="ck_products_cost_non_negative"),
        db.Index("ix_products_category_active", "category", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(64), nullable=False)

    price = db.Column(db.Numeric(12, 2), nullable=False)
    cost = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0.00"))

    stock_quantity = db.Column(db.Integer, nullable=False, default=0)
    low_stock_threshold = db.Column(db.Integer, nullable=False, default=10)

    image_path = db.Column(db.String(255), nullable=True)
    sku = db.Column(db.String(64), nullable=True, unique=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock={self.stock_quantity}>"

    @property
    def is_in_stock(self) -> bool:
        return (self.stock_quantity or 0) > 0

    @property
    def is_low_stock(self) -> bool:
        return (self.stock_quantity or 0) <= (self.low_stock_threshold or 0)

    @property
    def has_image(self) -> bool:
        return bool(self.image_path)

    def has_enough_stock(self, quantity: int) -> bool:
        return (self.stock_quantity or 0) >= quantity

    @property
    def profit_margin(self) -> Decimal:
        """(price - cost) / cost * 100, defined as 0 when cost is 0."""
        cost = self.cost or Decimal("0")
        if cost == 0:
            return Decimal("0")
        return ((self.price - cost) / cost * 100).quantize(Decimal("0.01"))

    @property
    def stock_status(self) -> str:
        if not self.is_in_stock:
            return STOCK_STATUS_OUT
        if self.is_low_stock:
            return STOCK_STATUS_LOW
        return STOCK_STATUS_IN

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "price": money_to_json(self.price),
            "cost": money_to_json(self.cost),
            "stock_quantity": self.stock_quantity,
            "low_stock_threshold": self.low_stock_threshold,
            "image_path": self.image_path,
            "sku": self.sku,
            "is_active": self.is_active,
            "stock_status": self.stock_status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockMovement(db.Model):
    """
    Stock ledger.

    Applying every movement of a product to zero reproduces its current
    stock_quantity. Rows are never updated; they are deleted only together
    with a product that was never sold.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.CheckConstraint(
            "movement_type IN ('purchase', 'sale', 'adjustment', 'return')",
            name="ck_stock_movements_type",
        ),
        db.Index("ix_stock_movements_product_created", "product_id", "created_at"),
        db.Index("ix_stock_movements_type_reference", "movement_type", "reference_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity_change = db.Column(db.Integer, nullable=False)
    movement_type = db.Column(db.String(16), nullable=False)

    # Sale id for 'sale' movements; free for other types
    reference_id = db.Column(db.Integer, nullable=True)
    notes = db.Column(db.String(255), nullable=True)
    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def is_increase(self) -> bool:
        return self.quantity_change > 0

    @property
    def is_decrease(self) -> bool:
        return self.quantity_change < 0

    @property
    def absolute_quantity(self) -> int:
        return abs(self.quantity_change)

    @property
    def movement_type_display(self) -> str:
        return {
            "purchase": "Purchase",
            "sale": "Sale",
            "adjustment": "Adjustment",
            "return": "Return",
        }.get(self.movement_type, self.movement_type)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "quantity_change": self.quantity_change,
            "movement_type": self.movement_type,
            "reference_id": self.reference_id,
            "notes": self.notes,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }
