"""
Sales Service - atomic sale recording

A sale touches five tables (sales, sale_items, products,
stock_movements, customers). Either all of those rows are written or none
are, so the whole apply phase runs inside one transaction with the product
rows locked.

Flow (validate-then-apply):
  1. Validate the cart structurally before touching storage.
  2. Lock the referenced products (ascending id) and re-read their stock.
  3. Compute subtotal / tax / discount / total.
  4. Insert the sale, then per line: sale item, stock decrement, movement.
  5. Update customer aggregates in the same transaction.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

from ..models import Sale
from ..repositories import (
    CustomerRepository,
    ProductRepository,
    SaleItemRepository,
    SaleRepository,
    StockMovementRepository,
    UserRepository,
)
from ..validation import (
    CENT,
    InsufficientStockError,
    NotFoundError,
    ValidationError,
    to_date,
    to_int,
    to_money,
)
from posapp.time_utils import day_bounds, utcnow
from .concurrency import atomic
from .settings_service import parse_tax_rate

logger = logging.getLogger(__name__)

sales = SaleRepository()
sale_items = SaleItemRepository()
products = ProductRepository()
customers = CustomerRepository()
movements = StockMovementRepository()
users = UserRepository()

INVOICE_PREFIX = "INV-"
MAX_PAYMENT_METHOD_LENGTH = 32


@dataclass(frozen=True)
class CartLine:
    product_id: int
    quantity: int
    unit_price: Decimal

    @property
    def total(self) -> Decimal:
        return (self.unit_price * self.quantity).quantize(CENT)


@dataclass(frozen=True)
class SaleRequest:
    user_id: int
    lines: tuple[CartLine, ...]
    customer_id: int | None
    tax_rate: Decimal
    discount_amount: Decimal
    payment_method: str


@dataclass(frozen=True)
class SaleTotals:
    subtotal: Decimal
    tax_amount: Decimal
    discount_amount: Decimal
    total_amount: Decimal


def generate_invoice_number(now: datetime | None = None) -> str:
    """
    INV-<YYYYMMDD>-<12 hex chars>.

    48 random bits per day keep collisions out of reach; the unique
    constraint on invoice_number still backs it.
    """
    now = now or utcnow()
    return f"{INVOICE_PREFIX}{now:%Y%m%d}-{uuid.uuid4().hex[:12].upper()}"


def _parse_line(raw, index: int) -> CartLine:
    if not isinstance(raw, dict):
        raise ValidationError(f"Item {index + 1} must be an object")

    missing = [f for f in ("product_id", "quantity", "unit_price") if raw.get(f) in (None, "")]
    if missing:
        raise ValidationError(
            "Each item must have product_id, quantity, and unit_price",
            details={"item": index + 1, "missing": missing},
        )

    product_id = to_int(raw["product_id"], "product_id")
    quantity = to_int(raw["quantity"], "quantity")
    unit_price = to_money(raw["unit_price"], "unit_price")

    if quantity <= 0:
        raise ValidationError("Item quantity must be greater than 0", details={"item": index + 1})
    if unit_price < 0:
        raise ValidationError("Item price cannot be negative", details={"item": index + 1})

    return CartLine(product_id=product_id, quantity=quantity, unit_price=unit_price)


def validate_sale_request(data: dict) -> SaleRequest:
    """Structural validation of the whole cart; raises ValidationError, never touches storage."""
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")

    items = data.get("items")
    if not isinstance(items, list) or not items:
        raise ValidationError("Sale must contain at least one item")

    if data.get("user_id") in (None, ""):
        raise ValidationError("User ID is required")
    user_id = to_int(data["user_id"], "user_id")

    lines = tuple(_parse_line(raw, i) for i, raw in enumerate(items))

    customer_id = data.get("customer_id")
    if customer_id in (None, "", 0):
        customer_id = None
    else:
        customer_id = to_int(customer_id, "customer_id")

    raw_rate = data.get("tax_rate")
    tax_rate = Decimal("0") if raw_rate in (None, "") else parse_tax_rate(raw_rate)

    raw_discount = data.get("discount_amount")
    discount = Decimal("0.00") if raw_discount in (None, "") else to_money(raw_discount, "discount_amount")
    if discount < 0:
        raise ValidationError("discount_amount cannot be negative")

    payment_method = str(data.get("payment_method") or "cash").strip() or "cash"
    if len(payment_method) > MAX_PAYMENT_METHOD_LENGTH:
        raise ValidationError(f"payment_method exceeds max length {MAX_PAYMENT_METHOD_LENGTH}")

    return SaleRequest(
        user_id=user_id,
        lines=lines,
        customer_id=customer_id,
        tax_rate=tax_rate,
        discount_amount=discount,
        payment_method=payment_method,
    )


def calculate_totals(lines, tax_rate: Decimal, discount_amount: Decimal = Decimal("0.00")) -> SaleTotals:
    """
    subtotal = sum(quantity * unit_price); tax = subtotal * rate / 100;
    total = subtotal + tax - discount, with discount capped at subtotal + tax.
    """
    subtotal = sum((line.total for line in lines), Decimal("0.00"))
    tax_amount = (subtotal * tax_rate / Decimal("100")).quantize(CENT, rounding=ROUND_HALF_UP)
    gross = subtotal + tax_amount
    discount = min(discount_amount, gross)
    return SaleTotals(
        subtotal=subtotal,
        tax_amount=tax_amount,
        discount_amount=discount,
        total_amount=gross - discount,
    )


def _requested_quantities(lines) -> dict[int, int]:
    """Sum quantities per product, keeping first-appearance order."""
    requested: dict[int, int] = {}
    for line in lines:
        requested[line.product_id] = requested.get(line.product_id, 0) + line.quantity
    return requested


def create_sale(data: dict) -> Sale:
    """
    Record a completed sale.

    Input: {user_id, items: [{product_id, quantity, unit_price}], customer_id?,
    tax_rate? (percent, supplied by the caller), discount_amount?, payment_method?}

    Raises ValidationError, NotFoundError or InsufficientStockError. On any
    failure no row is written.
    """
    request = validate_sale_request(data)
    totals = calculate_totals(request.lines, request.tax_rate, request.discount_amount)
    requested = _requested_quantities(request.lines)

    def _op():
        if users.find_by_id(request.user_id) is None:
            raise NotFoundError(f"User {request.user_id} not found")

        locked = products.find_many_for_update(requested.keys())
        for product_id, quantity in requested.items():
            product = locked.get(product_id)
            if product is None:
                raise NotFoundError(f"Product {product_id} not found")
            if not product.has_enough_stock(quantity):
                raise InsufficientStockError(
                    product.name,
                    available=product.stock_quantity,
                    requested=quantity,
                    product_id=product.id,
                )

        customer = None
        if request.customer_id is not None:
            customer = customers.find_by_id(request.customer_id, lock=True)
            if customer is None:
                raise NotFoundError(f"Customer {request.customer_id} not found")

        sale = sales.create(
            invoice_number=generate_invoice_number(),
            customer_id=request.customer_id,
            user_id=request.user_id,
            subtotal=totals.subtotal,
            tax_amount=totals.tax_amount,
            discount_amount=totals.discount_amount,
            total_amount=totals.total_amount,
            payment_method=request.payment_method,
            status="completed",
        )

        for line in request.lines:
            product = locked[line.product_id]
            sale_items.create(
                sale_id=sale.id,
                product_id=product.id,
                product_name=product.name,
                quantity=line.quantity,
                unit_price=line.unit_price,
                total_price=line.total,
            )
            products.adjust_stock(product, -line.quantity)
            movements.record_sale_movement(product.id, line.quantity, sale.id, request.user_id)

        if customer is not None:
            customers.record_purchase(customer, totals.total_amount)

        return sale

    sale = atomic(_op)
    logger.info(
        "Sale created: invoice=%s total=%s items=%d customer_id=%s",
        sale.invoice_number, sale.total_amount, len(request.lines), sale.customer_id,
    )
    return sale


def _date_range(start_date, end_date):
    start = to_date(start_date, "start_date")
    end = to_date(end_date, "end_date")
    if start and end and end < start:
        raise ValidationError("end_date must not be before start_date")
    start_dt = day_bounds(start, start)[0] if start else None
    end_dt = day_bounds(end, end)[1] if end else None
    return start_dt, end_dt


def list_sales(
    *,
    start_date=None,
    end_date=None,
    customer_id: int | None = None,
    limit: int | None = None,
    offset: int | None = None,
) -> list[Sale]:
    """Newest first. Dates are inclusive calendar days (YYYY-MM-DD)."""
    start_dt, end_dt = _date_range(start_date, end_date)
    return sales.find_by_date_range(start_dt, end_dt, customer_id=customer_id, limit=limit, offset=offset)


def get_sale_with_items(sale_id: int) -> Sale:
    sale = sales.find_by_id(sale_id)
    if sale is None:
        raise NotFoundError(f"Sale {sale_id} not found")
    return sale


def get_sales_summary(start_date=None, end_date=None) -> dict:
    """Counts and sums for an inclusive date range; both default to today."""
    today = utcnow().date()
    start = to_date(start_date, "start_date") or today
    end = to_date(end_date, "end_date") or today
    start_dt, end_dt = day_bounds(start, end)
    return {
        "total_sales": sales.count_between(start_dt, end_dt),
        "total_revenue": float(sales.total_between(start_dt, end_dt)),
        "total_tax": float(sales.tax_total_between(start_dt, end_dt)),
        "avg_sale_amount": float(sales.average_between(start_dt, end_dt)),
        "date_range": {"start_date": start.isoformat(), "end_date": end.isoformat()},
    }


def get_today_sales() -> list[Sale]:
    return sales.today()


def get_customer_sales(customer_id: int) -> list[Sale]:
    return sales.find_by_customer(customer_id)
