from .base import BaseRepository
from .products import ProductRepository
from .sales import SaleRepository
from .sale_items import SaleItemRepository
from .stock_movements import StockMovementRepository
from .customers import CustomerRepository
from .users import UserRepository
from .settings import SettingRepository

__all__ = [
    "BaseRepository",
    "ProductRepository",
    "SaleRepository",
    "SaleItemRepository",
    "StockMovementRepository",
    "CustomerRepository",
    "UserRepository",
    "SettingRepository",
]
