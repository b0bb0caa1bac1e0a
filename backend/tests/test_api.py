"""
End-to-end API flows through the Flask test client.
"""

import io

import pytest

from posapp.models import Product, Sale

from conftest import PASSWORD


# =============================================================================
# AUTH
# =============================================================================


class TestAuthApi:

    def test_login_errors_are_identical(self, client, cashier_user):
        unknown = client.post("/api/auth/login", json={"username": "ghost", "password": PASSWORD})
        wrong = client.post("/api/auth/login", json={"username": "cashier", "password": "nope-nope"})
        assert unknown.status_code == wrong.status_code == 401
        assert unknown.json == wrong.json == {"error": "Invalid username or password"}

    def test_login_requires_fields(self, client, db_session):
        resp = client.post("/api/auth/login", json={"username": "cashier"})
        assert resp.status_code == 400

    def test_me_and_change_password(self, client, cashier_headers):
        me = client.get("/api/auth/me", headers=cashier_headers)
        assert me.json["user"]["username"] == "cashier"

        short = client.post(
            "/api/auth/change-password",
            json={"old_password": PASSWORD, "new_password": "123"},
            headers=cashier_headers,
        )
        assert short.status_code == 400

        wrong = client.post(
            "/api/auth/change-password",
            json={"old_password": "incorrect", "new_password": "123456"},
            headers=cashier_headers,
        )
        assert wrong.status_code == 401

        ok = client.post(
            "/api/auth/change-password",
            json={"old_password": PASSWORD, "new_password": "123456"},
            headers=cashier_headers,
        )
        assert ok.status_code == 200
        relogin = client.post("/api/auth/login", json={"username": "cashier", "password": "123456"})
        assert relogin.status_code == 200


# =============================================================================
# SALES
# =============================================================================


class TestSalesApi:

    def test_sale_uses_configured_tax_rate(self, client, admin_headers, cashier_headers, product):
        client.put("/api/settings/tax-rate", json={"tax_rate": 10}, headers=admin_headers)

        resp = client.post(
            "/api/sales",
            json={"items": [{"product_id": product.id, "quantity": 2, "unit_price": 3.50}]},
            headers=cashier_headers,
        )

        assert resp.status_code == 201
        sale = resp.json["sale"]
        assert sale["subtotal"] == 7.00
        assert sale["tax_amount"] == 0.70
        assert sale["total_amount"] == 7.70
        assert sale["invoice_number"].startswith("INV-")
        assert sale["cashier_name"] == "Cashier User"
        assert sale["items"][0]["product_name"] == "Espresso"

        fetched = client.get(f"/api/sales/{sale['id']}", headers=cashier_headers)
        assert fetched.json["sale"]["items"][0]["quantity"] == 2

    def test_explicit_tax_rate_wins(self, client, cashier_headers, product):
        resp = client.post(
            "/api/sales",
            json={"items": [{"product_id": product.id, "quantity": 2, "unit_price": 3.50}], "tax_rate": 0},
            headers=cashier_headers,
        )
        assert resp.json["sale"]["total_amount"] == 7.00

    def test_insufficient_stock_is_conflict(self, client, cashier_headers, make_product, db_session):
        cake = make_product(name="Chocolate Cake", price="5.99", stock_quantity=1)
        resp = client.post(
            "/api/sales",
            json={"items": [{"product_id": cake.id, "quantity": 3, "unit_price": 5.99}]},
            headers=cashier_headers,
        )
        assert resp.status_code == 409
        assert resp.json["error"] == "Insufficient stock for Chocolate Cake. Available: 1"
        assert resp.json["details"]["requested"] == 3
        assert db_session.query(Sale).count() == 0

    def test_empty_cart_is_bad_request(self, client, cashier_headers):
        resp = client.post("/api/sales", json={"items": []}, headers=cashier_headers)
        assert resp.status_code == 400

    def test_list_and_summary(self, client, cashier_headers, product):
        for _ in range(2):
            client.post(
                "/api/sales",
                json={"items": [{"product_id": product.id, "quantity": 1, "unit_price": 3.50}], "tax_rate": 0},
                headers=cashier_headers,
            )
        listed = client.get("/api/sales", headers=cashier_headers)
        assert listed.json["count"] == 2
        assert client.get("/api/sales/today", headers=cashier_headers).json["count"] == 2
        summary = client.get("/api/sales/summary", headers=cashier_headers).json
        assert summary["total_sales"] == 2
        assert summary["total_revenue"] == pytest.approx(7.00)

    def test_bad_date_filter(self, client, cashier_headers):
        resp = client.get("/api/sales?start_date=yesterday", headers=cashier_headers)
        assert resp.status_code == 400


# =============================================================================
# PRODUCTS
# =============================================================================


class TestProductsApi:

    def test_multipart_create_with_image_is_served(self, client, manager_headers):
        resp = client.post(
            "/api/products",
            data={
                "name": "Muffin",
                "category": "Food",
                "price": "2.75",
                "stock_quantity": "12",
                "cost": "",
                "image": (io.BytesIO(b"GIF89a" + b"0" * 32), "muffin.gif", "image/gif"),
            },
            headers=manager_headers,
            content_type="multipart/form-data",
        )
        assert resp.status_code == 201
        image_path = resp.json["product"]["image_path"]
        assert image_path.startswith("/uploads/")

        served = client.get(image_path)
        assert served.status_code == 200
        assert served.data.startswith(b"GIF89a")
        served.close()

    def test_bad_image_rejected(self, client, manager_headers, db_session):
        resp = client.post(
            "/api/products",
            data={
                "name": "Muffin",
                "category": "Food",
                "price": "2.75",
                "image": (io.BytesIO(b"MZ"), "muffin.exe", "application/octet-stream"),
            },
            headers=manager_headers,
            content_type="multipart/form-data",
        )
        assert resp.status_code == 400
        assert db_session.query(Product).count() == 0

    def test_stock_adjustment_and_details(self, client, manager_headers, product):
        resp = client.post(
            f"/api/products/{product.id}/stock",
            json={"quantity_change": -5, "movement_type": "adjustment", "notes": "Spilled"},
            headers=manager_headers,
        )
        assert resp.json["product"]["stock_quantity"] == 95

        details = client.get(f"/api/products/{product.id}/details", headers=manager_headers).json
        assert details["stock_movements"][0]["notes"] == "Spilled"

    def test_delete_sold_product_conflict(self, client, manager_headers, cashier_headers, product):
        client.post(
            "/api/sales",
            json={"items": [{"product_id": product.id, "quantity": 1, "unit_price": 3.50}]},
            headers=cashier_headers,
        )
        resp = client.delete(f"/api/products/{product.id}", headers=manager_headers)
        assert resp.status_code == 409
        assert resp.json["error"] == "Cannot delete product that has been sold"

    def test_missing_product_is_404(self, client, cashier_headers):
        assert client.get("/api/products/999", headers=cashier_headers).status_code == 404

    def test_search_and_categories(self, client, cashier_headers, make_product):
        make_product(name="Espresso")
        make_product(name="Bagel", category="Food")
        found = client.get("/api/products/search?q=bag", headers=cashier_headers).json
        assert [p["name"] for p in found["items"]] == ["Bagel"]
        cats = client.get("/api/products/categories", headers=cashier_headers).json
        assert cats["categories"] == ["Beverages", "Food"]


# =============================================================================
# CUSTOMERS / SETTINGS / REPORTS
# =============================================================================


class TestCustomersApi:

    def test_create_history_and_delete_guard(self, client, cashier_headers, manager_headers, product):
        created = client.post("/api/customers", json={"name": "Jane Smith"}, headers=cashier_headers)
        assert created.status_code == 201
        customer_id = created.json["customer"]["id"]

        client.post(
            "/api/sales",
            json={
                "customer_id": customer_id,
                "items": [{"product_id": product.id, "quantity": 2, "unit_price": 3.50}],
                "tax_rate": 10,
            },
            headers=cashier_headers,
        )

        history = client.get(f"/api/customers/{customer_id}/history", headers=cashier_headers).json
        assert history["visit_count"] == 1
        assert history["total_purchases"] == pytest.approx(7.70)
        assert history["loyalty_status"] == "Regular"

        resp = client.delete(f"/api/customers/{customer_id}", headers=manager_headers)
        assert resp.status_code == 409


class TestSettingsApi:

    def test_tax_rate_out_of_range(self, client, admin_headers):
        resp = client.put("/api/settings/tax-rate", json={"tax_rate": "150"}, headers=admin_headers)
        assert resp.status_code == 400
        assert client.get("/api/settings/tax-rate", headers=admin_headers).json["tax_rate"] == 10

    def test_bulk_update_is_all_or_nothing(self, client, admin_headers):
        resp = client.put(
            "/api/settings",
            json={"store_name": "Corner Cafe", "tax_rate": "150"},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert client.get("/api/settings", headers=admin_headers).json["settings"] == {}

    def test_categories(self, client, admin_headers):
        resp = client.put("/api/settings/categories", json={"categories": ["Coffee", "Tea"]}, headers=admin_headers)
        assert resp.json["categories"] == ["Coffee", "Tea"]
        bad = client.put("/api/settings/categories", json={"categories": []}, headers=admin_headers)
        assert bad.status_code == 400

    def test_generic_key(self, client, admin_headers):
        client.put("/api/settings/store_name", json={"value": "Corner Cafe"}, headers=admin_headers)
        assert client.get("/api/settings/store_name", headers=admin_headers).json["value"] == "Corner Cafe"
        assert client.delete("/api/settings/store_name", headers=admin_headers).status_code == 200
        assert client.get("/api/settings/store_name", headers=admin_headers).status_code == 404


class TestReportsApi:

    def test_by_period_requires_dates(self, client, manager_headers):
        resp = client.get("/api/reports/by-period", headers=manager_headers)
        assert resp.status_code == 400

    def test_dashboard_shape(self, client, cashier_headers):
        stats = client.get("/api/reports/dashboard", headers=cashier_headers).json
        assert set(stats) >= {"today", "month", "low_stock_count", "total_customers", "recent_sales"}
