# Overview: Service-layer operations for maintenance; bootstrap data and full data wipes.

from __future__ import annotations

import logging
import os

from flask import current_app

from ..extensions import db
from ..models import Customer, Product, Sale, SaleItem, StockMovement, User
from ..repositories import ProductRepository, UserRepository
from . import file_service, settings_service
from .auth_service import hash_password
from .concurrency import atomic

logger = logging.getLogger(__name__)

users = UserRepository()
products = ProductRepository()

DEFAULT_ADMIN = {
    "username": "admin",
    "email": "admin@pos.com",
    "password": "admin123",
    "full_name": "System Administrator",
    "role": "admin",
}

SAMPLE_PRODUCTS = [
    {"name": "Espresso", "category": "Beverages", "price": "3.50", "cost": "1.20",
     "stock_quantity": 100, "low_stock_threshold": 20},
    {"name": "Cappuccino", "category": "Beverages", "price": "4.50", "cost": "1.50",
     "stock_quantity": 100, "low_stock_threshold": 20},
    {"name": "Chocolate Cake", "category": "Desserts", "price": "5.99", "cost": "2.50",
     "stock_quantity": 25, "low_stock_threshold": 5},
]

SAMPLE_CUSTOMERS = [
    {"name": "John Doe", "email": "john@example.com", "phone": "555-0101"},
    {"name": "Jane Smith", "email": "jane@example.com", "phone": "555-0102"},
]


def ensure_default_admin() -> User | None:
    """Create admin/admin123 when no admin account exists. Returns the new user, or None."""
    if users.find_by_role("admin"):
        return None

    def _op():
        return users.create(
            username=DEFAULT_ADMIN["username"],
            email=DEFAULT_ADMIN["email"],
            password_hash=hash_password(DEFAULT_ADMIN["password"]),
            full_name=DEFAULT_ADMIN["full_name"],
            role=DEFAULT_ADMIN["role"],
            is_active=True,
        )

    user = atomic(_op)
    logger.info("Default admin created: username=%s", user.username)
    return user


def init_system() -> dict:
    """Idempotent bootstrap: tables, default admin, default settings."""
    db.create_all()
    admin = ensure_default_admin()
    created_settings = settings_service.ensure_defaults()
    return {"admin_created": admin is not None, "settings_created": created_settings}


def seed_sample_data(user_id: int | None = None) -> dict:
    """Add the sample menu and customers, skipping names that already exist."""
    from . import customer_service, products_service

    created = {"products": 0, "customers": 0}
    for data in SAMPLE_PRODUCTS:
        if db.session.query(Product).filter_by(name=data["name"]).first() is None:
            products_service.create_product(dict(data), user_id=user_id)
            created["products"] += 1
    for data in SAMPLE_CUSTOMERS:
        if db.session.query(Customer).filter_by(name=data["name"]).first() is None:
            customer_service.create_customer(dict(data))
            created["customers"] += 1
    return created


def wipe_data() -> dict:
    """
    Delete every sale, movement, product and customer, plus all users except
    the first admin. Uploaded images are removed after the commit.
    """
    keep = (
        db.session.query(User)
        .filter_by(role="admin")
        .order_by(User.id.asc())
        .first()
    )

    def _op():
        counts = {
            "sale_items": db.session.query(SaleItem).delete(),
            "sales": db.session.query(Sale).delete(),
            "stock_movements": db.session.query(StockMovement).delete(),
            "products": db.session.query(Product).delete(),
            "customers": db.session.query(Customer).delete(),
        }
        q = db.session.query(User)
        if keep is not None:
            q = q.filter(User.id != keep.id)
        counts["users"] = q.delete(synchronize_session=False)
        return counts

    counts = atomic(_op)
    counts["images"] = _clear_upload_folder()
    logger.warning("All business data wiped: %s", counts)
    return counts


def find_missing_images(*, clear: bool = False) -> list[dict]:
    """
    List products whose image_path names a file that is no longer on disk.

    With clear=True the dangling paths are set to NULL in one transaction.
    """
    missing = [
        {"id": p.id, "name": p.name, "image_path": p.image_path}
        for p in products.find(order_by=Product.id.asc())
        if p.image_path and not file_service.file_exists(p.image_path)
    ]
    if not missing or not clear:
        return missing

    def _op():
        for entry in missing:
            product = products.find_by_id(entry["id"], lock=True)
            if product is not None and product.image_path == entry["image_path"]:
                products.update(product, image_path=None)

    atomic(_op)
    logger.warning("Cleared %d dangling product image paths", len(missing))
    return missing


def _clear_upload_folder() -> int:
    folder = current_app.config["UPLOAD_FOLDER"]
    if not os.path.isdir(folder):
        return 0
    removed = 0
    for name in os.listdir(folder):
        path = os.path.join(folder, name)
        if os.path.isfile(path):
            os.remove(path)
            removed += 1
    return removed
