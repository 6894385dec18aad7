"""
Pytest fixtures for the shop backend tests.

Provides test database setup, default accounts, a product factory and an
authenticated test client per role.
"""

import pytest
from mija import create_app
from mija.extensions import db
from mija.models import ProductCategory, Role
from mija.services.auth_service import create_user
from mija.services import products_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def master(db_session):
    return create_user(email="admin@shop.com", password="admin123", name="Master Admin", role=Role.MASTER)


@pytest.fixture(scope='function')
def warehouse(db_session):
    return create_user(email="warehouse@shop.com", password="warehouse123", name="Warehouse Staff", role=Role.SECOND)


@pytest.fixture(scope='function')
def customer(db_session):
    return create_user(
        email="customer@shop.com",
        password="customer123",
        name="Test Customer",
        role=Role.CUSTOMER,
        phone="09171234567",
        address="12 Mabini St, Manila",
    )


@pytest.fixture(scope='function')
def other_customer(db_session):
    return create_user(email="other@shop.com", password="other123", name="Other Customer", role=Role.CUSTOMER)


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: make_product(category, price_cents, stock, name=...)."""
    counter = {"n": 0}

    def _make(category=ProductCategory.ONHAND, price_cents=500, stock=10, name=None, cost_cents=None):
        counter["n"] += 1
        return products_service.create_product({
            "name": name or f"Product {counter['n']}",
            "category": category,
            "price_cents": price_cents,
            "cost_cents": cost_cents if cost_cents is not None else max(price_cents // 2, 1),
            "stock": stock,
        })

    return _make


def get_auth_token(client, email: str, password: str) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'email': email,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def master_headers(client, master):
    return auth_headers(get_auth_token(client, "admin@shop.com", "admin123"))


@pytest.fixture(scope='function')
def warehouse_headers(client, warehouse):
    return auth_headers(get_auth_token(client, "warehouse@shop.com", "warehouse123"))


@pytest.fixture(scope='function')
def customer_headers(client, customer):
    return auth_headers(get_auth_token(client, "customer@shop.com", "customer123"))


@pytest.fixture(scope='function')
def other_customer_headers(client, other_customer):
    return auth_headers(get_auth_token(client, "other@shop.com", "other123"))
