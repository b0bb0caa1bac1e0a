from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from posapp.time_utils import to_utc_z
from .inventory import money_to_json


def loyalty_tier(visit_count: int) -> str:
    """0 -> New, 1-2 -> Regular, 3-9 -> Loyal, 10+ -> VIP."""
    if not visit_count:
        return "New"
    if visit_count < 3:
        return "Regular"
    if visit_count < 10:
        return "Loyal"
    return "VIP"


class Customer(db.Model):
    """
    Customer master data for tracking purchases and loyalty.

    total_purchases and visit_count are aggregates of the sales ledger. They
    are written only by sale creation, never by a customer update.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.CheckConstraint("total_purchases >= 0", name="ck_customers_total_non_negative"),
        db.CheckConstraint("visit_count >= 0", name="ck_customers_visits_non_negative"),
        db.Index("ix_customers_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    address = db.Column(db.Text, nullable=True)

    # Denormalized aggregates (updated when sales are completed)
    total_purchases = db.Column(db.Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    visit_count = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def __repr__(self) -> str:
        return f"<Customer id={self.id} name={self.name!r} visits={self.visit_count}>"

    @property
    def average_purchase_value(self) -> Decimal:
        if not self.visit_count:
            return Decimal("0.00")
        return (self.total_purchases / self.visit_count).quantize(Decimal("0.01"))

    @property
    def has_contact_info(self) -> bool:
        return bool(self.email or self.phone)

    @property
    def primary_contact(self) -> str | None:
        return self.email or self.phone or None

    @property
    def is_frequent(self) -> bool:
        return (self.visit_count or 0) > 5

    @property
    def loyalty_status(self) -> str:
        return loyalty_tier(self.visit_count or 0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "total_purchases": money_to_json(self.total_purchases),
            "visit_count": self.visit_count,
            "loyalty_status": self.loyalty_status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
