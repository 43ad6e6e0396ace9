"""
Pytest fixtures for stockdesk backend tests.

Provides an in-memory database per test, user accounts with bearer tokens,
and a product factory.
"""

import itertools

import pytest
from stockdesk import create_app
from stockdesk.extensions import db
from stockdesk.models import Product
from stockdesk.services.auth_service import create_user, ensure_default_admin, issue_token
from stockdesk.services.products_service import create_product


@pytest.fixture(scope='function')
def app():
    """Create application with a fresh in-memory database."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SEED_DEFAULT_ADMIN': False,
        'BCRYPT_ROUNDS': 4,
        'JWT_SECRET': 'test-secret',
    })

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
    yield db.session
    db.session.rollback()


@pytest.fixture(scope='function')
def admin_user(db_session):
    """The bootstrap admin (admin@company.com / admin123)."""
    return ensure_default_admin()


@pytest.fixture(scope='function')
def cashier_user(db_session):
    """Regular (non-admin) user."""
    return create_user(
        username="cashier",
        email="cashier@company.com",
        password="cashier123",
        role="user",
        branch="Downtown",
    )


@pytest.fixture(scope='function')
def admin_headers(admin_user):
    return auth_headers(issue_token(admin_user))


@pytest.fixture(scope='function')
def cashier_headers(cashier_user):
    return auth_headers(issue_token(cashier_user))


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory creating committed products through the products service."""
    counter = itertools.count(1)

    def _make(quantity=10, min_stock=5, selling_price=10.0, name=None, sku=None, **extra):
        n = next(counter)
        created = create_product(patch={
            "name": name or f"Product {n}",
            "sku": sku or f"SKU-{n:03d}",
            "selling_price": selling_price,
            "quantity": quantity,
            "min_stock": min_stock,
            **extra,
        })
        return db_session.get(Product, created["id"])

    return _make


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def checkout_payload():
    """Builds a POST /api/sales body from (product_id, quantity, price) tuples."""

    def _build(*items, grand_total=None, **header):
        lines = [
            {"product_id": product_id, "quantity": quantity, "price": price}
            for product_id, quantity, price in items
        ]
        total = grand_total if grand_total is not None else sum(q * p for _, q, p in items)
        return {"items": lines, "grand_total": total, **header}

    return _build
