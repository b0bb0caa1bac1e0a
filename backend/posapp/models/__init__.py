from .auth import User, ROLES
from .inventory import Product, StockMovement, MOVEMENT_TYPES
from .customers import Customer, loyalty_tier
from .sales import Sale, SaleItem
from .settings import Setting

__all__ = [
    'User', 'ROLES',
    'Product', 'StockMovement', 'MOVEMENT_TYPES',
    'Customer', 'loyalty_tier',
    'Sale', 'SaleItem',
    'Setting',
]
