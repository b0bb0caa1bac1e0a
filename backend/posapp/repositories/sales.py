from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import func

from ..models import Sale
from ..time_utils import day_bounds, utcnow
from .base import BaseRepository


def _money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(Decimal("0.01"))


class SaleRepository(BaseRepository[Sale]):
    model = Sale
    unique_fields = ("invoice_number",)

    def _ordering(self, order_by):
        if order_by is None:
            return (Sale.created_at.desc(), Sale.id.desc())
        return super()._ordering(order_by)

    def _between(self, q, start: datetime | None, end: datetime | None):
        if start is not None:
            q = q.filter(Sale.created_at >= start)
        if end is not None:
            q = q.filter(Sale.created_at < end)
        return q

    def find_by_date_range(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
        *,
        customer_id: int | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[Sale]:
        """Half-open range [start, end) on created_at, newest first."""
        q = self._between(self.session.query(Sale), start, end)
        if customer_id is not None:
            q = q.filter(Sale.customer_id == customer_id)
        q = q.order_by(Sale.created_at.desc(), Sale.id.desc())
        if offset:
            q = q.offset(offset)
        if limit is not None:
            q = q.limit(limit)
        return q.all()

    def find_by_customer(self, customer_id: int) -> list[Sale]:
        return self.find(customer_id=customer_id)

    def find_by_invoice_number(self, invoice_number: str) -> Sale | None:
        return self.find_one(invoice_number=invoice_number)

    def today(self) -> list[Sale]:
        today = utcnow().date()
        start, end = day_bounds(today, today)
        return self.find_by_date_range(start, end)

    def count_between(self, start: datetime | None = None, end: datetime | None = None) -> int:
        return self._between(self.session.query(func.count(Sale.id)), start, end).scalar() or 0

    def total_between(self, start: datetime | None = None, end: datetime | None = None) -> Decimal:
        q = self.session.query(func.coalesce(func.sum(Sale.total_amount), 0))
        return _money(self._between(q, start, end).scalar())

    def tax_total_between(self, start: datetime | None = None, end: datetime | None = None) -> Decimal:
        q = self.session.query(func.coalesce(func.sum(Sale.tax_amount), 0))
        return _money(self._between(q, start, end).scalar())

    def subtotal_between(self, start: datetime | None = None, end: datetime | None = None) -> Decimal:
        q = self.session.query(func.coalesce(func.sum(Sale.subtotal), 0))
        return _money(self._between(q, start, end).scalar())

    def discount_total_between(self, start: datetime | None = None, end: datetime | None = None) -> Decimal:
        q = self.session.query(func.coalesce(func.sum(Sale.discount_amount), 0))
        return _money(self._between(q, start, end).scalar())

    def average_between(self, start: datetime | None = None, end: datetime | None = None) -> Decimal:
        count = self.count_between(start, end)
        if not count:
            return Decimal("0.00")
        return (self.total_between(start, end) / count).quantize(Decimal("0.01"))

    def recent(self, limit: int = 5) -> list[Sale]:
        return self.find(limit=limit)
