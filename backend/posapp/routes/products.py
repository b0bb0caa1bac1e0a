# Overview: Flask API routes for products operations; parses input and returns JSON responses.

"""
Product management routes.

Create/update accept either JSON or multipart/form-data; the multipart form
may carry the picture in an "image" file field.

SECURITY: All routes require authentication.
- Reads are open to every role
- Writes and stock adjustments require manager or admin
"""
from flask import Blueprint, request, jsonify, g

from ..services import products_service
from ..decorators import require_auth, require_role


products_bp = Blueprint("products", __name__, url_prefix="/api/products")

# Form fields where an empty value means "clear it" rather than "not sent"
_TEXT_FORM_FIELDS = {"description", "sku"}


def _product_payload():
    """Return (data, image_file) from a JSON or multipart request."""
    if request.mimetype == "multipart/form-data":
        data = {
            k: v
            for k, v in request.form.to_dict().items()
            if v != "" or k in _TEXT_FORM_FIELDS
        }
        return data, request.files.get("image")
    return request.get_json(silent=True) or {}, None


@products_bp.get("")
@require_auth
def list_products_route():
    """
    Query params:
    - category: str (optional, "all" = no filter)
    - search: str (optional) - name/description/category substring
    - include_inactive: bool (optional)
    - limit / offset: int (optional)
    """
    items = products_service.list_products(
        category=request.args.get("category"),
        search=request.args.get("search"),
        include_inactive=request.args.get("include_inactive", "").lower() in {"1", "true", "yes"},
        limit=request.args.get("limit", type=int),
        offset=request.args.get("offset", type=int),
    )
    return jsonify({"items": [p.to_dict() for p in items], "count": len(items)})


@products_bp.get("/low-stock")
@require_auth
def low_stock_route():
    items = products_service.get_low_stock_products()
    return jsonify({"items": [p.to_dict() for p in items], "count": len(items)})


@products_bp.get("/categories")
@require_auth
def categories_route():
    return jsonify({"categories": products_service.list_categories()})


@products_bp.get("/search")
@require_auth
def search_route():
    items = products_service.search_products(request.args.get("q"))
    return jsonify({"items": [p.to_dict() for p in items], "count": len(items)})


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    return jsonify({"product": products_service.get_product(product_id).to_dict()})


@products_bp.get("/<int:product_id>/details")
@require_auth
def product_details_route(product_id: int):
    return jsonify(products_service.get_product_details(product_id))


@products_bp.get("/<int:product_id>/reconcile")
@require_auth
@require_role("admin", "manager")
def reconcile_route(product_id: int):
    return jsonify(products_service.reconcile_stock(product_id))


@products_bp.post("")
@require_auth
@require_role("admin", "manager")
def create_product_route():
    data, image = _product_payload()
    product = products_service.create_product(data, image, user_id=g.current_user.id)
    return jsonify({"product": product.to_dict()}), 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_role("admin", "manager")
def update_product_route(product_id: int):
    data, image = _product_payload()
    product = products_service.update_product(product_id, data, image, user_id=g.current_user.id)
    return jsonify({"product": product.to_dict()})


@products_bp.delete("/<int:product_id>")
@require_auth
@require_role("admin", "manager")
def delete_product_route(product_id: int):
    products_service.delete_product(product_id)
    return jsonify({"message": "Product deleted"})


@products_bp.post("/<int:product_id>/stock")
@require_auth
@require_role("admin", "manager")
def adjust_stock_route(product_id: int):
    """
    Body: {quantity_change: int (signed), movement_type?: adjustment|purchase|return, notes?: str}
    """
    data = request.get_json(silent=True) or {}
    product = products_service.adjust_stock(
        product_id,
        data.get("quantity_change", data.get("quantity")),
        data.get("movement_type") or "adjustment",
        user_id=g.current_user.id,
        notes=data.get("notes"),
    )
    return jsonify({"product": product.to_dict()})
