# Overview: Flask API routes for customers; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify

from ..services import customer_service
from ..decorators import require_auth, require_role


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
def list_customers_route():
    items = customer_service.list_customers(request.args.get("search"))
    return jsonify({"items": [c.to_dict() for c in items], "count": len(items)})


@customers_bp.get("/frequent")
@require_auth
def frequent_customers_route():
    items = customer_service.get_frequent_customers(limit=request.args.get("limit", type=int))
    return jsonify({"items": [c.to_dict() for c in items], "count": len(items)})


@customers_bp.get("/<int:customer_id>")
@require_auth
def get_customer_route(customer_id: int):
    return jsonify({"customer": customer_service.get_customer(customer_id).to_dict()})


@customers_bp.get("/<int:customer_id>/history")
@require_auth
def customer_history_route(customer_id: int):
    return jsonify(customer_service.get_customer_history(customer_id))


@customers_bp.post("")
@require_auth
def create_customer_route():
    customer = customer_service.create_customer(request.get_json(silent=True) or {})
    return jsonify({"customer": customer.to_dict()}), 201


@customers_bp.put("/<int:customer_id>")
@require_auth
def update_customer_route(customer_id: int):
    customer = customer_service.update_customer(customer_id, request.get_json(silent=True) or {})
    return jsonify({"customer": customer.to_dict()})


@customers_bp.delete("/<int:customer_id>")
@require_auth
@require_role("admin", "manager")
def delete_customer_route(customer_id: int):
    customer_service.delete_customer(customer_id)
    return jsonify({"message": "Customer deleted"})
