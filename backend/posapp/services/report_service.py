# Overview: Read-side aggregation for the dashboard and reports pages.

from __future__ import annotations

from datetime import date
from decimal import Decimal

from ..repositories import (
    CustomerRepository,
    ProductRepository,
    SaleItemRepository,
    SaleRepository,
)
from ..validation import ValidationError, to_date
from posapp.time_utils import day_bounds, to_utc_z, utcnow

sales = SaleRepository()
sale_items = SaleItemRepository()
products = ProductRepository()
customers = CustomerRepository()

DEFAULT_TOP_LIMIT = 10
RECENT_SALES_LIMIT = 5
PERIODS = ("daily", "monthly")


def _range(start_date, end_date, *, default_today: bool = True):
    today = utcnow().date()
    start = to_date(start_date, "start_date")
    end = to_date(end_date, "end_date")
    if default_today:
        start = start or today
        end = end or today
    elif start is None or end is None:
        raise ValidationError("Start date and end date are required")
    if end < start:
        raise ValidationError("end_date must not be before start_date")
    return start, end


def get_sales_summary(start_date=None, end_date=None) -> dict:
    start, end = _range(start_date, end_date)
    start_dt, end_dt = day_bounds(start, end)
    return {
        "total_sales": sales.count_between(start_dt, end_dt),
        "total_revenue": float(sales.total_between(start_dt, end_dt)),
        "total_tax": float(sales.tax_total_between(start_dt, end_dt)),
        "total_subtotal": float(sales.subtotal_between(start_dt, end_dt)),
        "total_discount": float(sales.discount_total_between(start_dt, end_dt)),
        "avg_sale_amount": float(sales.average_between(start_dt, end_dt)),
        "start_date": start.isoformat(),
        "end_date": end.isoformat(),
    }


def get_top_products(start_date=None, end_date=None, limit: int | None = None) -> list[dict]:
    """
    Best sellers by quantity in the range.

    Aggregated in memory from the matching sales' items so the figures use
    the product_name snapshot taken at sale time.
    """
    start, end = _range(start_date, end_date)
    limit = DEFAULT_TOP_LIMIT if limit is None else limit
    if limit <= 0:
        raise ValidationError("limit must be greater than 0")

    start_dt, end_dt = day_bounds(start, end)
    sale_rows = sales.find_by_date_range(start_dt, end_dt)
    items = sale_items.find_by_sales(s.id for s in sale_rows)

    stats: dict[int, dict] = {}
    for item in items:
        entry = stats.get(item.product_id)
        if entry is None:
            entry = stats[item.product_id] = {
                "product_id": item.product_id,
                "product_name": item.product_name,
                "total_quantity": 0,
                "total_revenue": Decimal("0.00"),
                "times_sold": 0,
            }
        entry["total_quantity"] += item.quantity
        entry["total_revenue"] += item.total_price
        entry["times_sold"] += 1

    ranked = sorted(
        stats.values(),
        key=lambda e: (-e["total_quantity"], -e["total_revenue"], e["product_name"]),
    )[:limit]
    for entry in ranked:
        entry["total_revenue"] = float(entry["total_revenue"])
    return ranked


def _bucket(day: date, period: str) -> str:
    if period == "monthly":
        return day.strftime("%Y-%m")
    return day.isoformat()


def get_sales_by_period(start_date, end_date, period: str = "daily") -> list[dict]:
    """Count / revenue / tax per day (or month), ascending; empty buckets are omitted."""
    if period not in PERIODS:
        raise ValidationError("period must be 'daily' or 'monthly'")
    start, end = _range(start_date, end_date, default_today=False)
    start_dt, end_dt = day_bounds(start, end)

    buckets: dict[str, dict] = {}
    for sale in sales.find_by_date_range(start_dt, end_dt):
        key = _bucket(sale.created_at.date(), period)
        entry = buckets.setdefault(
            key,
            {"period": key, "count": 0, "revenue": Decimal("0.00"), "tax": Decimal("0.00")},
        )
        entry["count"] += 1
        entry["revenue"] += sale.total_amount
        entry["tax"] += sale.tax_amount

    return [
        {**entry, "revenue": float(entry["revenue"]), "tax": float(entry["tax"])}
        for _, entry in sorted(buckets.items())
    ]


def get_dashboard_stats() -> dict:
    now = utcnow()
    today = now.date()
    today_start, today_end = day_bounds(today, today)
    month_start, _ = day_bounds(today.replace(day=1), today)

    return {
        "today": {
            "sales": sales.count_between(today_start, today_end),
            "revenue": float(sales.total_between(today_start, today_end)),
        },
        "month": {
            "sales": sales.count_between(month_start, today_end),
            "revenue": float(sales.total_between(month_start, today_end)),
        },
        "low_stock_count": len(products.find_low_stock()),
        "total_customers": customers.count(),
        "total_products": products.count(is_active=True),
        "inventory_value": float(products.total_inventory_value()),
        "recent_sales": [s.to_dict() for s in sales.recent(RECENT_SALES_LIMIT)],
        "timestamp": to_utc_z(now),
    }


def export_sales_data(start_date=None, end_date=None) -> list[dict]:
    """Sales with their items for the range; file rendering is left to the client."""
    start, end = _range(start_date, end_date)
    start_dt, end_dt = day_bounds(start, end)
    return [s.to_dict(include_items=True) for s in sales.find_by_date_range(start_dt, end_dt)]
