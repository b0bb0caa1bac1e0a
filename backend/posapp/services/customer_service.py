from __future__ import annotations

import logging

from ..models import Customer
from ..repositories import CustomerRepository, SaleRepository
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    validate_payload,
)
from .concurrency import atomic

logger = logging.getLogger(__name__)

customers = CustomerRepository()
sales = SaleRepository()

# total_purchases / visit_count are owned by sale creation and never client-writable
CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "email", "phone", "address"},
    required_on_create={"name"},
)


def _require_customer(customer_id: int) -> Customer:
    customer = customers.find_by_id(customer_id)
    if customer is None:
        raise NotFoundError(f"Customer {customer_id} not found")
    return customer


def list_customers(search: str | None = None) -> list[Customer]:
    if search and search.strip():
        return customers.search(search)
    return customers.find_all()


def search_customers(query: str | None) -> list[Customer]:
    if not query or not query.strip():
        return []
    return customers.search(query)


def get_customer(customer_id: int) -> Customer:
    return _require_customer(customer_id)


def create_customer(data: dict) -> Customer:
    patch = validate_payload(model=Customer, payload=data, policy=CUSTOMER_POLICY, partial=False)

    def _op():
        return customers.create(**patch)

    customer = atomic(_op)
    logger.info("Customer created: id=%s", customer.id)
    return customer


def update_customer(customer_id: int, data: dict) -> Customer:
    patch = validate_payload(model=Customer, payload=data or {}, policy=CUSTOMER_POLICY, partial=True)

    def _op():
        return customers.update(_require_customer(customer_id), **patch)

    return atomic(_op)


def delete_customer(customer_id: int) -> bool:
    def _op():
        customer = _require_customer(customer_id)
        if sales.exists(customer_id=customer.id):
            raise ConflictError("Cannot delete customer with existing sales")
        return customers.delete(customer)

    deleted = atomic(_op)
    logger.info("Customer deleted: id=%s", customer_id)
    return deleted


def get_customer_history(customer_id: int) -> dict:
    """Customer, every sale made to them (newest first), and the derived loyalty tier."""
    customer = _require_customer(customer_id)
    history = sales.find_by_customer(customer.id)
    return {
        "customer": customer.to_dict(),
        "sales": [s.to_dict() for s in history],
        "total_purchases": float(customer.total_purchases),
        "visit_count": customer.visit_count,
        "average_purchase_value": float(customer.average_purchase_value),
        "loyalty_status": customer.loyalty_status,
    }


def get_frequent_customers(limit: int | None = None) -> list[Customer]:
    return customers.find_frequent(limit=limit)
