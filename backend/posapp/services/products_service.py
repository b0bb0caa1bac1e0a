# backend/posapp/services/products_service.py
"""
Products Service

Inventory CRUD plus the image lifecycle. Every change to stock_quantity
writes a stock_movements row in the same transaction, so the ledger always
sums to the cached stock figure (see reconcile_stock).

Image replace runs as a small saga:
  1. store the new file
  2. update + commit the row
  3. delete the old file
If step 2 fails the new file is deleted again, so no orphan is left behind
and the row keeps pointing at the old, still-present image.
"""
from __future__ import annotations

import logging

from werkzeug.datastructures import FileStorage

from ..models import Product, MOVEMENT_TYPES
from ..repositories import ProductRepository, SaleItemRepository, StockMovementRepository
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_rules_product,
    to_int,
    validate_payload,
)
from . import file_service
from .concurrency import atomic

logger = logging.getLogger(__name__)

products = ProductRepository()
movements = StockMovementRepository()
sale_items = SaleItemRepository()

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name",
        "description",
        "category",
        "price",
        "cost",
        "stock_quantity",
        "low_stock_threshold",
        "sku",
        "is_active",
    },
    required_on_create={"name", "category", "price"},
)

# 'sale' movements are only written by sale creation, with the sale id as reference
MANUAL_MOVEMENT_TYPES = tuple(t for t in MOVEMENT_TYPES if t != "sale")


def _require_product(product_id: int, *, lock: bool = False) -> Product:
    product = products.find_by_id(product_id, lock=lock)
    if product is None:
        raise NotFoundError(f"Product with ID {product_id} not found")
    return product


def _store_image(image_file: FileStorage | None) -> str | None:
    if image_file is None or not image_file.filename:
        return None
    return file_service.upload_image(image_file)


def list_products(
    *,
    category: str | None = None,
    search: str | None = None,
    include_inactive: bool = False,
    limit: int | None = None,
    offset: int | None = None,
) -> list[Product]:
    """Active products (all with include_inactive), filtered by category and name/description substring."""
    if search and search.strip():
        items = products.search(
            search,
            category=category if category and category != "all" else None,
            active_only=not include_inactive,
        )
    else:
        criteria = {}
        if not include_inactive:
            criteria["is_active"] = True
        if category and category != "all":
            criteria["category"] = category
        items = products.find(**criteria)

    start = max(offset or 0, 0)
    if limit is not None:
        return items[start:start + max(limit, 0)]
    return items[start:]


def get_product(product_id: int) -> Product:
    return _require_product(product_id)


def get_product_details(product_id: int, history_limit: int = 50) -> dict:
    product = _require_product(product_id)
    history = movements.history(product_id, limit=history_limit)
    return {
        "product": product.to_dict(),
        "stock_movements": [m.to_dict() for m in history],
        "profit_margin": float(product.profit_margin),
        "stock_status": product.stock_status,
    }


def create_product(data: dict, image_file: FileStorage | None = None, *, user_id: int | None = None) -> Product:
    """
    Create a product. Initial stock is recorded as an 'adjustment' movement.
    """
    patch = validate_payload(model=Product, payload=data, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(patch)
    initial_stock = patch.pop("stock_quantity", None) or 0

    image_path = _store_image(image_file)

    def _op():
        product = products.create(**patch, image_path=image_path, stock_quantity=initial_stock)
        if initial_stock:
            movements.record(
                product_id=product.id,
                quantity_change=initial_stock,
                movement_type="adjustment",
                notes="Initial stock",
                created_by=user_id,
            )
        return product

    try:
        product = atomic(_op)
    except Exception:
        if image_path:
            file_service.delete_image(image_path)
        raise

    logger.info("Product created: id=%s name=%s", product.id, product.name)
    return product


def update_product(
    product_id: int,
    data: dict,
    image_file: FileStorage | None = None,
    *,
    user_id: int | None = None,
) -> Product:
    """
    Partial update. A changed stock_quantity is recorded as an 'adjustment'
    movement for the delta; a new image replaces the old one (saga, see module doc).
    """
    patch = validate_payload(model=Product, payload=data or {}, policy=PRODUCT_POLICY, partial=True)
    enforce_rules_product(patch)

    new_stock = patch.pop("stock_quantity", None)

    _require_product(product_id)
    new_image_path = _store_image(image_file)
    replaced: dict = {}

    def _op():
        product = _require_product(product_id, lock=True)

        if new_stock is not None and new_stock != product.stock_quantity:
            delta = new_stock - product.stock_quantity
            products.adjust_stock(product, delta)
            movements.record(
                product_id=product.id,
                quantity_change=delta,
                movement_type="adjustment",
                notes="Stock edited",
                created_by=user_id,
            )

        if new_image_path:
            replaced["old"] = product.image_path
            patch["image_path"] = new_image_path

        return products.update(product, **patch)

    try:
        product = atomic(_op)
    except Exception:
        if new_image_path:
            file_service.delete_image(new_image_path)
        raise

    old_image_path = replaced.get("old")
    if old_image_path and old_image_path != new_image_path:
        file_service.delete_image(old_image_path)

    return product


def delete_product(product_id: int) -> bool:
    """
    Delete an unsold product together with its stock history and image.

    Raises ConflictError once any sale references the product.
    """
    image_path: dict = {}

    def _op():
        product = _require_product(product_id, lock=True)
        if sale_items.exists_for_product(product.id) or movements.has_sale_movements(product.id):
            raise ConflictError("Cannot delete product that has been sold")
        image_path["path"] = product.image_path
        movements.delete_where(product_id=product.id)
        return products.delete(product)

    deleted = atomic(_op)

    if image_path.get("path"):
        file_service.delete_image(image_path["path"])
    logger.info("Product deleted: id=%s", product_id)
    return deleted


def adjust_stock(
    product_id: int,
    quantity_change,
    movement_type: str = "adjustment",
    *,
    user_id: int | None = None,
    notes: str | None = None,
) -> Product:
    """Apply a signed stock delta and record it in the ledger, atomically."""
    delta = to_int(quantity_change, "quantity_change")
    if delta == 0:
        raise ValidationError("quantity_change must not be zero")
    if movement_type not in MANUAL_MOVEMENT_TYPES:
        raise ValidationError(
            "Invalid movement type",
            details={"allowed": list(MANUAL_MOVEMENT_TYPES)},
        )

    def _op():
        product = _require_product(product_id, lock=True)
        if product.stock_quantity + delta < 0:
            raise ValidationError(
                f"Adjustment would make stock negative for {product.name}. Available: {product.stock_quantity}"
            )
        products.adjust_stock(product, delta)
        movements.record(
            product_id=product.id,
            quantity_change=delta,
            movement_type=movement_type,
            notes=notes,
            created_by=user_id,
        )
        return product

    product = atomic(_op)
    logger.info(
        "Stock adjusted: product_id=%s delta=%s type=%s now=%s",
        product.id, delta, movement_type, product.stock_quantity,
    )
    return product


def get_low_stock_products() -> list[Product]:
    return products.find_low_stock()


def list_categories() -> list[str]:
    return products.categories()


def search_products(query: str | None) -> list[Product]:
    if not query or not query.strip():
        return []
    return products.search(query, active_only=True)


def reconcile_stock(product_id: int) -> dict:
    """
    Compare the cached stock figure against the sum of its movements.

    A product whose ledger does not reproduce its stock indicates rows written
    outside the services (manual SQL, imports).
    """
    product = _require_product(product_id)
    ledger_total = movements.net_change(product.id)
    return {
        "product_id": product.id,
        "stock_quantity": product.stock_quantity,
        "ledger_total": ledger_total,
        "difference": product.stock_quantity - ledger_total,
        "consistent": product.stock_quantity == ledger_total,
    }
