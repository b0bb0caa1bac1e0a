# Overview: Flask API routes for reporting; dashboard for all roles, reports for managers.

from flask import Blueprint, request, jsonify

from ..services import report_service
from ..decorators import require_auth, require_role


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/dashboard")
@require_auth
def dashboard_route():
    return jsonify(report_service.get_dashboard_stats())


@reports_bp.get("/summary")
@require_auth
@require_role("admin", "manager")
def summary_route():
    return jsonify(report_service.get_sales_summary(
        request.args.get("start_date"),
        request.args.get("end_date"),
    ))


@reports_bp.get("/top-products")
@require_auth
@require_role("admin", "manager")
def top_products_route():
    items = report_service.get_top_products(
        request.args.get("start_date"),
        request.args.get("end_date"),
        limit=request.args.get("limit", type=int),
    )
    return jsonify({"items": items})


@reports_bp.get("/by-period")
@require_auth
@require_role("admin", "manager")
def by_period_route():
    items = report_service.get_sales_by_period(
        request.args.get("start_date"),
        request.args.get("end_date"),
        period=request.args.get("period", "daily"),
    )
    return jsonify({"items": items})


@reports_bp.get("/export")
@require_auth
@require_role("admin", "manager")
def export_route():
    items = report_service.export_sales_data(
        request.args.get("start_date"),
        request.args.get("end_date"),
    )
    return jsonify({"items": items, "count": len(items)})
