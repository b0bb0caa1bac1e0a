"""
Sale recording tests.

Verifies:
- Totals: subtotal, tax at the caller's rate, discount
- Stock is decremented and a 'sale' movement written per line
- Customer aggregates move with the sale
- A rejected cart writes nothing at all
"""

from decimal import Decimal

import pytest

from posapp.models import Customer, Product, Sale, SaleItem, StockMovement
from posapp.services import products_service, sales_service
from posapp.services.sales_service import CartLine, calculate_totals
from posapp.validation import InsufficientStockError, NotFoundError, ValidationError


def _cart(product, quantity=2, unit_price="3.50"):
    return [{"product_id": product.id, "quantity": quantity, "unit_price": unit_price}]


# =============================================================================
# TOTALS
# =============================================================================


class TestCalculateTotals:

    def test_two_espressos_at_ten_percent(self):
        totals = calculate_totals([CartLine(1, 2, Decimal("3.50"))], Decimal("10"))
        assert totals.subtotal == Decimal("7.00")
        assert totals.tax_amount == Decimal("0.70")
        assert totals.total_amount == Decimal("7.70")

    def test_discount_subtracted_after_tax(self):
        totals = calculate_totals([CartLine(1, 1, Decimal("10.00"))], Decimal("10"), Decimal("1.00"))
        assert totals.total_amount == Decimal("10.00")

    def test_discount_capped_at_gross(self):
        totals = calculate_totals([CartLine(1, 1, Decimal("5.00"))], Decimal("0"), Decimal("50.00"))
        assert totals.discount_amount == Decimal("5.00")
        assert totals.total_amount == Decimal("0.00")

    def test_tax_rounds_half_up(self):
        totals = calculate_totals([CartLine(1, 1, Decimal("0.05"))], Decimal("10"))
        assert totals.tax_amount == Decimal("0.01")


def test_invoice_number_format():
    invoice = sales_service.generate_invoice_number()
    assert invoice.startswith("INV-")
    assert len(invoice.split("-")[2]) == 12


# =============================================================================
# CREATE SALE
# =============================================================================


class TestCreateSale:

    def test_records_sale_items_stock_and_movements(self, db_session, cashier_user, product):
        sale = sales_service.create_sale({
            "user_id": cashier_user.id,
            "items": _cart(product),
            "tax_rate": 10,
        })

        assert sale.subtotal == Decimal("7.00")
        assert sale.tax_amount == Decimal("0.70")
        assert sale.total_amount == Decimal("7.70")
        assert sale.status == "completed"
        assert sale.payment_method == "cash"

        items = db_session.query(SaleItem).filter_by(sale_id=sale.id).all()
        assert len(items) == 1
        assert items[0].product_name == "Espresso"
        assert items[0].total_price == Decimal("7.00")

        assert db_session.get(Product, product.id).stock_quantity == 98

        movement = db_session.query(StockMovement).filter_by(product_id=product.id).one()
        assert movement.quantity_change == -2
        assert movement.movement_type == "sale"
        assert movement.reference_id == sale.id
        assert movement.created_by == cashier_user.id

    def test_zero_tax_rate_is_honored(self, db_session, cashier_user, product):
        sale = sales_service.create_sale({
            "user_id": cashier_user.id,
            "items": _cart(product),
            "tax_rate": 0,
        })
        assert sale.tax_amount == Decimal("0.00")
        assert sale.total_amount == Decimal("7.00")

    def test_updates_customer_aggregates(self, db_session, cashier_user, product, customer):
        sales_service.create_sale({
            "user_id": cashier_user.id,
            "customer_id": customer.id,
            "items": _cart(product),
            "tax_rate": 10,
        })
        sales_service.create_sale({
            "user_id": cashier_user.id,
            "customer_id": customer.id,
            "items": _cart(product, quantity=1),
            "tax_rate": 10,
        })

        refreshed = db_session.get(Customer, customer.id)
        assert refreshed.visit_count == 2
        assert refreshed.total_purchases == Decimal("11.55")
        assert refreshed.loyalty_status == "Regular"

    def test_customer_id_zero_means_walk_in(self, db_session, cashier_user, product):
        sale = sales_service.create_sale({
            "user_id": cashier_user.id,
            "customer_id": 0,
            "items": _cart(product),
        })
        assert sale.customer_id is None

    def test_repeated_product_lines_checked_together(self, db_session, cashier_user, make_product):
        cake = make_product(name="Chocolate Cake", price="5.99", stock_quantity=3)
        with pytest.raises(InsufficientStockError):
            sales_service.create_sale({
                "user_id": cashier_user.id,
                "items": [
                    {"product_id": cake.id, "quantity": 2, "unit_price": "5.99"},
                    {"product_id": cake.id, "quantity": 2, "unit_price": "5.99"},
                ],
            })
        assert db_session.get(Product, cake.id).stock_quantity == 3


class TestSaleRejection:

    def test_insufficient_stock_writes_nothing(self, db_session, cashier_user, make_product, customer):
        espresso = make_product(name="Espresso", stock_quantity=10)
        cake = make_product(name="Chocolate Cake", price="5.99", stock_quantity=1)

        with pytest.raises(InsufficientStockError) as exc:
            sales_service.create_sale({
                "user_id": cashier_user.id,
                "customer_id": customer.id,
                "items": [
                    {"product_id": espresso.id, "quantity": 2, "unit_price": "3.50"},
                    {"product_id": cake.id, "quantity": 5, "unit_price": "5.99"},
                ],
                "tax_rate": 10,
            })

        assert str(exc.value) == "Insufficient stock for Chocolate Cake. Available: 1"
        assert exc.value.available == 1
        assert db_session.query(Sale).count() == 0
        assert db_session.query(SaleItem).count() == 0
        assert db_session.query(StockMovement).count() == 0
        assert db_session.get(Product, espresso.id).stock_quantity == 10
        assert db_session.get(Product, cake.id).stock_quantity == 1
        refreshed = db_session.get(Customer, customer.id)
        assert refreshed.visit_count == 0
        assert refreshed.total_purchases == Decimal("0.00")

    def test_unknown_product(self, db_session, cashier_user):
        with pytest.raises(NotFoundError):
            sales_service.create_sale({
                "user_id": cashier_user.id,
                "items": [{"product_id": 999, "quantity": 1, "unit_price": "1.00"}],
            })
        assert db_session.query(Sale).count() == 0

    def test_unknown_customer(self, db_session, cashier_user, product):
        with pytest.raises(NotFoundError):
            sales_service.create_sale({
                "user_id": cashier_user.id,
                "customer_id": 999,
                "items": _cart(product),
            })
        assert db_session.get(Product, product.id).stock_quantity == 100

    def test_unknown_user(self, db_session, product):
        with pytest.raises(NotFoundError):
            sales_service.create_sale({"user_id": 999, "items": _cart(product)})

    @pytest.mark.parametrize(
        "payload",
        [
            {"items": []},
            {"items": None},
            {"items": [{"product_id": 1, "quantity": 1}]},
            {"items": [{"product_id": 1, "quantity": 0, "unit_price": "1.00"}]},
            {"items": [{"product_id": 1, "quantity": 1.5, "unit_price": "1.00"}]},
            {"items": [{"product_id": 1, "quantity": 1, "unit_price": "-1.00"}]},
            {"items": [{"product_id": 1, "quantity": 1, "unit_price": "1.00"}], "tax_rate": 150},
            {"items": [{"product_id": 1, "quantity": 1, "unit_price": "1.00"}], "discount_amount": -1},
        ],
    )
    def test_structural_validation(self, db_session, cashier_user, payload):
        with pytest.raises(ValidationError):
            sales_service.create_sale({"user_id": cashier_user.id, **payload})

    def test_user_id_required(self, db_session, product):
        with pytest.raises(ValidationError):
            sales_service.create_sale({"items": _cart(product)})


# =============================================================================
# QUERIES
# =============================================================================


class TestSaleQueries:

    def test_list_and_summary(self, db_session, cashier_user, product):
        first = sales_service.create_sale({"user_id": cashier_user.id, "items": _cart(product), "tax_rate": 10})
        second = sales_service.create_sale({"user_id": cashier_user.id, "items": _cart(product, 1), "tax_rate": 10})

        listed = sales_service.list_sales()
        assert {s.id for s in listed} == {first.id, second.id}
        assert len(sales_service.get_today_sales()) == 2

        summary = sales_service.get_sales_summary()
        assert summary["total_sales"] == 2
        assert summary["total_revenue"] == pytest.approx(11.55)
        assert summary["total_tax"] == pytest.approx(1.05)

    def test_get_sale_with_items(self, db_session, cashier_user, product):
        sale = sales_service.create_sale({"user_id": cashier_user.id, "items": _cart(product)})
        loaded = sales_service.get_sale_with_items(sale.id)
        data = loaded.to_dict(include_items=True)
        assert data["invoice_number"] == sale.invoice_number
        assert data["items"][0]["quantity"] == 2

    def test_repeated_reads_are_identical(self, db_session, cashier_user, product):
        sales_service.create_sale({"user_id": cashier_user.id, "items": _cart(product), "tax_rate": 10})
        sales_service.create_sale({"user_id": cashier_user.id, "items": _cart(product, 1)})

        first = [s.to_dict(include_items=True) for s in sales_service.list_sales()]
        second = [s.to_dict(include_items=True) for s in sales_service.list_sales()]
        assert first == second

        assert products_service.get_product(product.id).to_dict() == products_service.get_product(product.id).to_dict()

    def test_get_missing_sale(self, db_session):
        with pytest.raises(NotFoundError):
            sales_service.get_sale_with_items(12345)

    def test_invalid_date_filter(self, db_session):
        with pytest.raises(ValidationError):
            sales_service.list_sales(start_date="not-a-date")
