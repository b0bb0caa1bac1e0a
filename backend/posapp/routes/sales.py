# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

"""Sales API routes. Sales are append-only: there is no update or delete route."""

from flask import Blueprint, request, jsonify, g

from ..services import sales_service, settings_service
from ..decorators import require_auth


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
@require_auth
def create_sale_route():
    """
    Record a sale for the authenticated cashier.

    When the body omits tax_rate the current tax_rate setting is applied.
    """
    data = dict(request.get_json(silent=True) or {})
    data["user_id"] = g.current_user.id
    if data.get("tax_rate") in (None, ""):
        data["tax_rate"] = settings_service.get_tax_rate()

    sale = sales_service.create_sale(data)
    return jsonify({"sale": sale.to_dict(include_items=True)}), 201


@sales_bp.get("")
@require_auth
def list_sales_route():
    """
    Query params: start_date, end_date (YYYY-MM-DD, inclusive), customer_id,
    limit, offset.
    """
    items = sales_service.list_sales(
        start_date=request.args.get("start_date"),
        end_date=request.args.get("end_date"),
        customer_id=request.args.get("customer_id", type=int),
        limit=request.args.get("limit", type=int),
        offset=request.args.get("offset", type=int),
    )
    return jsonify({"items": [s.to_dict() for s in items], "count": len(items)})


@sales_bp.get("/today")
@require_auth
def today_sales_route():
    items = sales_service.get_today_sales()
    return jsonify({"items": [s.to_dict() for s in items], "count": len(items)})


@sales_bp.get("/summary")
@require_auth
def sales_summary_route():
    return jsonify(sales_service.get_sales_summary(
        request.args.get("start_date"),
        request.args.get("end_date"),
    ))


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    sale = sales_service.get_sale_with_items(sale_id)
    return jsonify({"sale": sale.to_dict(include_items=True)})
