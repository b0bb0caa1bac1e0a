from decimal import Decimal

import pytest

from posapp.models import Customer, loyalty_tier
from posapp.services import customer_service, sales_service
from posapp.validation import ConflictError, NotFoundError, ValidationError


@pytest.mark.parametrize(
    "visits,tier",
    [(0, "New"), (1, "Regular"), (2, "Regular"), (3, "Loyal"), (9, "Loyal"), (10, "VIP"), (42, "VIP")],
)
def test_loyalty_tiers(visits, tier):
    assert loyalty_tier(visits) == tier


class TestCustomerCrud:

    def test_create_and_update(self, db_session):
        customer = customer_service.create_customer({"name": "Jane Smith", "email": "jane@example.com"})
        assert customer.visit_count == 0
        assert customer.total_purchases == Decimal("0.00")
        assert customer.loyalty_status == "New"

        updated = customer_service.update_customer(customer.id, {"phone": "555-0102"})
        assert updated.phone == "555-0102"
        assert updated.email == "jane@example.com"

    def test_name_required(self, db_session):
        with pytest.raises(ValidationError):
            customer_service.create_customer({"email": "nobody@example.com"})

    def test_aggregates_not_client_writable(self, db_session, customer):
        customer_service.update_customer(customer.id, {"visit_count": 50, "total_purchases": "999"})
        refreshed = db_session.get(Customer, customer.id)
        assert refreshed.visit_count == 0
        assert refreshed.total_purchases == Decimal("0.00")

    def test_search(self, db_session, customer):
        customer_service.create_customer({"name": "Jane Smith", "phone": "555-0102"})
        assert [c.name for c in customer_service.list_customers("jane")] == ["Jane Smith"]
        assert [c.name for c in customer_service.search_customers("555-0101")] == ["John Doe"]
        assert customer_service.search_customers("") == []
        assert len(customer_service.list_customers()) == 2

    def test_get_missing(self, db_session):
        with pytest.raises(NotFoundError):
            customer_service.get_customer(404)


class TestCustomerDelete:

    def test_customer_without_sales_is_deleted(self, db_session, customer):
        assert customer_service.delete_customer(customer.id) is True
        assert db_session.get(Customer, customer.id) is None

    def test_customer_with_sales_is_kept(self, db_session, cashier_user, product, customer):
        sales_service.create_sale({
            "user_id": cashier_user.id,
            "customer_id": customer.id,
            "items": [{"product_id": product.id, "quantity": 1, "unit_price": "3.50"}],
        })
        with pytest.raises(ConflictError):
            customer_service.delete_customer(customer.id)
        assert db_session.get(Customer, customer.id) is not None


class TestCustomerHistory:

    def test_history_and_average(self, db_session, cashier_user, product, customer):
        for quantity in (2, 4):
            sales_service.create_sale({
                "user_id": cashier_user.id,
                "customer_id": customer.id,
                "items": [{"product_id": product.id, "quantity": quantity, "unit_price": "3.50"}],
                "tax_rate": 10,
            })

        history = customer_service.get_customer_history(customer.id)

        assert len(history["sales"]) == 2
        assert history["visit_count"] == 2
        assert history["total_purchases"] == pytest.approx(23.10)
        assert history["average_purchase_value"] == pytest.approx(11.55)
        assert history["loyalty_status"] == "Regular"

    def test_frequent_customers(self, db_session, customer):
        regular = customer_service.create_customer({"name": "Regular Rita"})
        regular.visit_count = 7
        customer.visit_count = 2
        db_session.commit()

        assert [c.name for c in customer_service.get_frequent_customers()] == ["Regular Rita"]
