"""
Pytest fixtures for LogGas backend tests.

Provides the in-memory database, two distributor tenants, product and
customer factories, and HTTP auth helpers.
"""

import pytest

from loggas import create_app
from loggas.extensions import db
from loggas.models import Product, Customer
from loggas.services.auth_service import create_user
from loggas.services.session_service import create_session
from loggas.services.subscription_service import reset_subscribers


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'GEMINI_API_KEY': None,
        'STORAGE_RETRY_ATTEMPTS': 2,
        'LOG_LEVEL': 'WARNING',
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
    """Fresh tables for each test."""
    with app.app_context():
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        db.session.rollback()
        db.session.remove()
        reset_subscribers()


@pytest.fixture(scope='function')
def admin_a(db_session):
    """Distributor A (its id is the tenant id)."""
    return create_user(
        name="Gás Central",
        email="admin@gascentral.com",
        password=PASSWORD,
        role="admin",
        company_name="Gás Central",
    )


@pytest.fixture(scope='function')
def admin_b(db_session):
    """Distributor B."""
    return create_user(
        name="Água Boa",
        email="admin@aguaboa.com",
        password=PASSWORD,
        role="admin",
        company_name="Água Boa",
    )


@pytest.fixture(scope='function')
def tenant_a(admin_a):
    return admin_a.tenant_id


@pytest.fixture(scope='function')
def tenant_b(admin_b):
    return admin_b.tenant_id


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: make_product(tenant_id, **overrides) -> Product."""
    counter = {"n": 0}

    def _make(tenant_id, **overrides):
        counter["n"] += 1
        fields = {
            "name": f"Produto {counter['n']}",
            "category": "gas",
            "sku": f"SKU-{counter['n']:03d}",
            "stock": 10,
            "min_stock": 2,
            "cost_price_cents": 8000,
            "sell_price_cents": 11000,
            "active": True,
            "show_online": True,
        }
        fields.update(overrides)
        product = Product(tenant_id=tenant_id, **fields)
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture(scope='function')
def make_customer(db_session):
    """Factory: make_customer(tenant_id, customer_id, **overrides) -> Customer."""
    def _make(tenant_id, customer_id, **overrides):
        fields = {"name": f"Cliente {customer_id}", "status": "active"}
        fields.update(overrides)
        customer = Customer(tenant_id=tenant_id, id=customer_id, **fields)
        db_session.add(customer)
        db_session.commit()
        return customer

    return _make


def get_auth_token(client, email: str, password: str = PASSWORD) -> str:
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
def admin_headers(admin_a):
    _, token = create_session(admin_a)
    return auth_headers(token)
