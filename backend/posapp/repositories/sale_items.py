from __future__ import annotations

from sqlalchemy import func

from ..models import SaleItem
from .base import BaseRepository


class SaleItemRepository(BaseRepository[SaleItem]):
    model = SaleItem

    def find_by_sale(self, sale_id: int) -> list[SaleItem]:
        return self.find(sale_id=sale_id)

    def find_by_sales(self, sale_ids) -> list[SaleItem]:
        ids = list(sale_ids)
        if not ids:
            return []
        return (
            self.session.query(SaleItem)
            .filter(SaleItem.sale_id.in_(ids))
            .order_by(SaleItem.sale_id.asc(), SaleItem.id.asc())
            .all()
        )

    def find_by_product(self, product_id: int) -> list[SaleItem]:
        return self.find(product_id=product_id)

    def total_quantity(self, sale_id: int) -> int:
        value = (
            self.session.query(func.coalesce(func.sum(SaleItem.quantity), 0))
            .filter(SaleItem.sale_id == sale_id)
            .scalar()
        )
        return int(value or 0)

    def exists_for_product(self, product_id: int) -> bool:
        return self.exists(product_id=product_id)
