from __future__ import annotations

from decimal import Decimal

from sqlalchemy import or_

from ..models import Customer
from .base import BaseRepository


class CustomerRepository(BaseRepository[Customer]):
    model = Customer

    def _ordering(self, order_by):
        if order_by is None:
            return (Customer.name.asc(), Customer.id.asc())
        return super()._ordering(order_by)

    def search(self, term: str) -> list[Customer]:
        pattern = f"%{term.strip()}%"
        return (
            self.session.query(Customer)
            .filter(
                or_(
                    Customer.name.ilike(pattern),
                    Customer.email.ilike(pattern),
                    Customer.phone.ilike(pattern),
                )
            )
            .order_by(Customer.name.asc(), Customer.id.asc())
            .all()
        )

    def record_purchase(self, customer_or_id, amount: Decimal) -> Customer | None:
        """
        Add one visit and amount to the aggregates.

        Must run inside the sale's unit of work with the row locked.
        """
        customer = self._resolve(customer_or_id)
        if customer is None:
            return None
        customer.total_purchases = (customer.total_purchases or Decimal("0.00")) + amount
        customer.visit_count = (customer.visit_count or 0) + 1
        self._flush()
        return customer

    def find_frequent(self, min_visits: int = 6, limit: int | None = None) -> list[Customer]:
        q = (
            self.session.query(Customer)
            .filter(Customer.visit_count >= min_visits)
            .order_by(Customer.visit_count.desc(), Customer.total_purchases.desc(), Customer.id.asc())
        )
        if limit is not None:
            q = q.limit(limit)
        return q.all()
