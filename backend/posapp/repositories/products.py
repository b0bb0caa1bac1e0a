from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func, or_

from ..models import Product
from .base import BaseRepository


class ProductRepository(BaseRepository[Product]):
    model = Product
    unique_fields = ("sku",)

    def _ordering(self, order_by):
        if order_by is None:
            return (Product.name.asc(), Product.id.asc())
        return super()._ordering(order_by)

    def find_active(self) -> list[Product]:
        return self.find(is_active=True)

    def find_by_category(self, category: str, *, active_only: bool = True) -> list[Product]:
        if active_only:
            return self.find(category=category, is_active=True)
        return self.find(category=category)

    def find_low_stock(self) -> list[Product]:
        return (
            self.session.query(Product)
            .filter(Product.is_active.is_(True))
            .filter(Product.stock_quantity <= Product.low_stock_threshold)
            .order_by(Product.stock_quantity.asc(), Product.id.asc())
            .all()
        )

    def find_out_of_stock(self) -> list[Product]:
        return (
            self.session.query(Product)
            .filter(Product.is_active.is_(True), Product.stock_quantity <= 0)
            .order_by(Product.name.asc())
            .all()
        )

    def find_by_sku(self, sku: str) -> Product | None:
        return self.find_one(sku=sku)

    def find_many_for_update(self, product_ids) -> dict[int, Product]:
        """Lock the given rows in ascending id order and return them keyed by id."""
        ids = sorted(set(product_ids))
        if not ids:
            return {}
        rows = (
            self.session.query(Product)
            .filter(Product.id.in_(ids))
            .order_by(Product.id.asc())
            .with_for_update()
            .populate_existing()
            .all()
        )
        return {p.id: p for p in rows}

    def categories(self) -> list[str]:
        rows = (
            self.session.query(Product.category)
            .filter(Product.is_active.is_(True))
            .distinct()
            .order_by(Product.category.asc())
            .all()
        )
        return [r[0] for r in rows]

    def search(self, term: str, *, category: str | None = None, active_only: bool = False) -> list[Product]:
        pattern = f"%{term.strip()}%"
        q = self.session.query(Product).filter(
            or_(
                Product.name.ilike(pattern),
                Product.description.ilike(pattern),
                Product.category.ilike(pattern),
                Product.sku.ilike(pattern),
            )
        )
        if category:
            q = q.filter(Product.category == category)
        if active_only:
            q = q.filter(Product.is_active.is_(True))
        return q.order_by(Product.name.asc(), Product.id.asc()).all()

    def adjust_stock(self, product_or_id, delta: int) -> Product | None:
        """Apply a signed delta to the cached stock total. Caller records the movement."""
        product = self._resolve(product_or_id)
        if product is None:
            return None
        product.stock_quantity = (product.stock_quantity or 0) + delta
        self._flush()
        return product

    def total_inventory_value(self) -> Decimal:
        value = (
            self.session.query(func.coalesce(func.sum(Product.cost * Product.stock_quantity), 0))
            .filter(Product.is_active.is_(True))
            .scalar()
        )
        return Decimal(str(value)).quantize(Decimal("0.01"))

    def count_by_category(self) -> dict[str, int]:
        rows = (
            self.session.query(Product.category, func.count(Product.id))
            .filter(Product.is_active.is_(True))
            .group_by(Product.category)
            .all()
        )
        return {category: count for category, count in rows}
