from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from posapp.time_utils import to_utc_z, utcnow
from .inventory import money_to_json


PAYMENT_METHOD_LABELS = {
    "cash": "Cash",
    "card": "Credit/Debit Card",
    "check": "Check",
}


class Sale(db.Model):
    """
    Completed sale. Sales and their items form an append-only ledger:
    there is no update or delete path once the row is committed.

    total_amount = subtotal + tax_amount - discount_amount.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.CheckConstraint("total_amount >= 0", name="ck_sales_total_non_negative"),
        db.Index("ix_sales_created_at", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_number = db.Column(db.String(64), nullable=False, unique=True)

    # NULL for walk-in sales
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    subtotal = db.Column(db.Numeric(12, 2), nullable=False)
    tax_amount = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    discount_amount = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    total_amount = db.Column(db.Numeric(12, 2), nullable=False)

    # Label only, no gateway behind it
    payment_method = db.Column(db.String(32), nullable=False, default="cash")
    status = db.Column(db.String(16), nullable=False, default="completed")

    # Set in Python so range filters compare like-for-like timestamps
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    items = db.relationship(
        "SaleItem",
        backref="sale",
        lazy=True,
        order_by="SaleItem.id",
        cascade="all, delete-orphan",
    )
    customer = db.relationship("Customer", lazy=True)
    cashier = db.relationship("User", lazy=True)

    def __repr__(self) -> str:
        return f"<Sale id={self.id} invoice={self.invoice_number!r} total={self.total_amount}>"

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def has_customer(self) -> bool:
        return self.customer_id is not None

    @property
    def effective_tax_rate(self) -> Decimal:
        if not self.subtotal:
            return Decimal("0")
        return (self.tax_amount / self.subtotal * 100).quantize(Decimal("0.01"))

    @property
    def discount_percentage(self) -> Decimal:
        gross = (self.subtotal or 0) + (self.tax_amount or 0)
        if not gross:
            return Decimal("0")
        return (self.discount_amount / gross * 100).quantize(Decimal("0.01"))

    @property
    def payment_method_display(self) -> str:
        return PAYMENT_METHOD_LABELS.get(self.payment_method, self.payment_method)

    def summary(self) -> dict:
        return {
            "invoice_number": self.invoice_number,
            "item_count": self.item_count,
            "subtotal": money_to_json(self.subtotal),
            "tax": money_to_json(self.tax_amount),
            "discount": money_to_json(self.discount_amount),
            "total": money_to_json(self.total_amount),
            "payment_method": self.payment_method_display,
        }

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "customer_id": self.customer_id,
            "customer_name": self.customer.name if self.customer else None,
            "user_id": self.user_id,
            "cashier_name": self.cashier.full_name if self.cashier else None,
            "subtotal": money_to_json(self.subtotal),
            "tax_amount": money_to_json(self.tax_amount),
            "discount_amount": money_to_json(self.discount_amount),
            "total_amount": money_to_json(self.total_amount),
            "payment_method": self.payment_method,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SaleItem(db.Model):
    """Line item; product_name is a snapshot taken when the sale was recorded."""
    __tablename__ = "sale_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sale_items_quantity_positive"),
        db.CheckConstraint("unit_price >= 0", name="ck_sale_items_price_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    product_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    total_price = db.Column(db.Numeric(12, 2), nullable=False)

    def calculate_total(self) -> Decimal:
        return self.unit_price * self.quantity

    def profit(self, cost: Decimal) -> Decimal:
        return (self.unit_price - cost) * self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price": money_to_json(self.unit_price),
            "total_price": money_to_json(self.total_price),
        }
