import pytest

from posapp.services import report_service, sales_service
from posapp.time_utils import utcnow
from posapp.validation import ValidationError


@pytest.fixture
def sold(db_session, cashier_user, make_product, customer):
    """Espresso x5 over two sales, cake x2 (higher revenue, lower quantity)."""
    espresso = make_product(name="Espresso", price="3.50")
    cake = make_product(name="Chocolate Cake", price="5.99", stock_quantity=25)
    sales_service.create_sale({
        "user_id": cashier_user.id,
        "customer_id": customer.id,
        "items": [
            {"product_id": espresso.id, "quantity": 3, "unit_price": "3.50"},
            {"product_id": cake.id, "quantity": 2, "unit_price": "10.00"},
        ],
        "tax_rate": 10,
    })
    sales_service.create_sale({
        "user_id": cashier_user.id,
        "items": [{"product_id": espresso.id, "quantity": 2, "unit_price": "3.50"}],
        "tax_rate": 10,
        "discount_amount": "1.00",
    })
    return {"espresso": espresso, "cake": cake}


def _today():
    return utcnow().date().isoformat()


class TestSalesSummary:

    def test_defaults_to_today(self, sold):
        summary = report_service.get_sales_summary()
        assert summary["total_sales"] == 2
        # (10.50 + 20.00) * 1.1 + 7.00 * 1.1 - 1.00
        assert summary["total_revenue"] == pytest.approx(40.25)
        assert summary["total_subtotal"] == pytest.approx(37.50)
        assert summary["total_tax"] == pytest.approx(3.75)
        assert summary["total_discount"] == pytest.approx(1.00)
        assert summary["start_date"] == summary["end_date"] == _today()

    def test_empty_range(self, db_session):
        summary = report_service.get_sales_summary("2001-01-01", "2001-01-31")
        assert summary["total_sales"] == 0
        assert summary["total_revenue"] == 0
        assert summary["avg_sale_amount"] == 0

    def test_reversed_range(self, db_session):
        with pytest.raises(ValidationError):
            report_service.get_sales_summary("2024-02-01", "2024-01-01")


class TestTopProducts:

    def test_ranked_by_quantity(self, sold):
        top = report_service.get_top_products()
        assert [row["product_name"] for row in top] == ["Espresso", "Chocolate Cake"]
        assert top[0]["total_quantity"] == 5
        assert top[0]["times_sold"] == 2
        assert top[0]["total_revenue"] == pytest.approx(17.50)
        assert top[1]["total_revenue"] == pytest.approx(20.00)

    def test_limit(self, sold):
        assert len(report_service.get_top_products(limit=1)) == 1
        with pytest.raises(ValidationError):
            report_service.get_top_products(limit=0)


class TestSalesByPeriod:

    def test_daily_bucket(self, sold):
        rows = report_service.get_sales_by_period(_today(), _today())
        assert len(rows) == 1
        assert rows[0]["period"] == _today()
        assert rows[0]["count"] == 2

    def test_monthly_bucket(self, sold):
        rows = report_service.get_sales_by_period(_today(), _today(), "monthly")
        assert rows[0]["period"] == _today()[:7]

    def test_dates_required(self, db_session):
        with pytest.raises(ValidationError):
            report_service.get_sales_by_period(None, _today())

    def test_unknown_period(self, db_session):
        with pytest.raises(ValidationError):
            report_service.get_sales_by_period(_today(), _today(), "weekly")


def test_dashboard(sold, make_product):
    make_product(name="Nearly Gone", stock_quantity=1, low_stock_threshold=5)
    stats = report_service.get_dashboard_stats()

    assert stats["today"]["sales"] == 2
    assert stats["today"]["revenue"] == pytest.approx(40.25)
    assert stats["month"]["sales"] == 2
    assert stats["low_stock_count"] == 1
    assert stats["total_customers"] == 1
    assert stats["total_products"] == 3
    assert len(stats["recent_sales"]) == 2
    assert stats["timestamp"].endswith("Z")


def test_export_includes_items(sold):
    rows = report_service.export_sales_data()
    assert len(rows) == 2
    assert sum(len(r["items"]) for r in rows) == 3
