from __future__ import annotations

from sqlalchemy import func

from ..models import StockMovement
from .base import BaseRepository


class StockMovementRepository(BaseRepository[StockMovement]):
    """Append-only: exposes create and reads, the services never update rows."""

    model = StockMovement

    def _ordering(self, order_by):
        if order_by is None:
            return (StockMovement.created_at.desc(), StockMovement.id.desc())
        return super()._ordering(order_by)

    def find_by_product(self, product_id: int) -> list[StockMovement]:
        return self.find(product_id=product_id)

    def find_by_type(self, movement_type: str) -> list[StockMovement]:
        return self.find(movement_type=movement_type)

    def find_by_reference(self, reference_id: int, movement_type: str | None = None) -> list[StockMovement]:
        if movement_type:
            return self.find(reference_id=reference_id, movement_type=movement_type)
        return self.find(reference_id=reference_id)

    def history(self, product_id: int, limit: int = 50) -> list[StockMovement]:
        return self.find(product_id=product_id, limit=limit)

    def total_movement(self, product_id: int, movement_type: str) -> int:
        value = (
            self.session.query(func.coalesce(func.sum(StockMovement.quantity_change), 0))
            .filter(StockMovement.product_id == product_id, StockMovement.movement_type == movement_type)
            .scalar()
        )
        return int(value or 0)

    def net_change(self, product_id: int) -> int:
        value = (
            self.session.query(func.coalesce(func.sum(StockMovement.quantity_change), 0))
            .filter(StockMovement.product_id == product_id)
            .scalar()
        )
        return int(value or 0)

    def has_sale_movements(self, product_id: int) -> bool:
        return self.exists(product_id=product_id, movement_type="sale")

    def record(
        self,
        *,
        product_id: int,
        quantity_change: int,
        movement_type: str,
        reference_id: int | None = None,
        notes: str | None = None,
        created_by: int | None = None,
    ) -> StockMovement:
        return self.create(
            product_id=product_id,
            quantity_change=quantity_change,
            movement_type=movement_type,
            reference_id=reference_id,
            notes=notes,
            created_by=created_by,
        )

    def record_sale_movement(self, product_id: int, quantity: int, sale_id: int, user_id: int | None = None) -> StockMovement:
        return self.record(
            product_id=product_id,
            quantity_change=-quantity,
            movement_type="sale",
            reference_id=sale_id,
            created_by=user_id,
        )
