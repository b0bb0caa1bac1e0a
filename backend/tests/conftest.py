"""
Pytest fixtures for POS backend tests.

Provides the test application, a per-test clean database, user/product/customer
factories and auth helpers.
"""

import os
import shutil
from decimal import Decimal

import pytest

from posapp import create_app
from posapp.config import TestConfig
from posapp.extensions import db
from posapp.models import Customer, Product, User
from posapp.services.auth_service import hash_password


PASSWORD = "secret123"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Empty every table and the upload folder before each test."""
    db.session.rollback()
    for table in reversed(db.metadata.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()

    folder = app.config["UPLOAD_FOLDER"]
    if os.path.isdir(folder):
        shutil.rmtree(folder)

    yield db.session

    db.session.rollback()


def _make_user(session, username: str, role: str, *, is_active: bool = True) -> User:
    user = User(
        username=username,
        email=f"{username}@pos.test",
        password_hash=hash_password(PASSWORD),
        full_name=f"{username.title()} User",
        role=role,
        is_active=is_active,
    )
    session.add(user)
    session.commit()
    return user


@pytest.fixture(scope='function')
def admin_user(db_session):
    return _make_user(db_session, "admin", "admin")


@pytest.fixture(scope='function')
def manager_user(db_session):
    return _make_user(db_session, "manager", "manager")


@pytest.fixture(scope='function')
def cashier_user(db_session):
    return _make_user(db_session, "cashier", "cashier")


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: make_product(name=..., price=..., stock_quantity=...)."""
    def _make(name="Espresso", price="3.50", cost="1.20", stock_quantity=100,
              category="Beverages", low_stock_threshold=10, **extra):
        product = Product(
            name=name,
            category=category,
            price=Decimal(str(price)),
            cost=Decimal(str(cost)),
            stock_quantity=stock_quantity,
            low_stock_threshold=low_stock_threshold,
            **extra,
        )
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture(scope='function')
def product(make_product):
    """Espresso at 3.50 with 100 in stock."""
    return make_product()


@pytest.fixture(scope='function')
def customer(db_session):
    c = Customer(name="John Doe", email="john@example.com", phone="555-0101")
    db_session.add(c)
    db_session.commit()
    return c


def get_auth_token(client, username: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, admin_user.username))


@pytest.fixture(scope='function')
def manager_headers(client, manager_user):
    return auth_headers(get_auth_token(client, manager_user.username))


@pytest.fixture(scope='function')
def cashier_headers(client, cashier_user):
    return auth_headers(get_auth_token(client, cashier_user.username))
