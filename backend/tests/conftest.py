"""
Pytest fixtures for orderdesk backend tests.

Provides an app per test (in-memory SQLite), the wired services for either
store backend, and a test client.
"""

from decimal import Decimal

import pytest

from orderdesk import create_app, shutdown
from orderdesk.config import TestingConfig
from orderdesk.domain import OrderLineInput, ProductInput, Role


@pytest.fixture(params=["sql", "memory"])
def store_backend(request):
    """Service tests run once per store implementation."""
    return request.param


@pytest.fixture
def app(store_backend):
    app = create_app(TestingConfig, STORE_BACKEND=store_backend)
    yield app
    shutdown(app)


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def services(app):
    """The app's Services, with an application context pushed for the SQL store."""
    with app.app_context():
        yield app.extensions["orderdesk"]


@pytest.fixture
def product(services):
    """P1: sells for 20.00, costs 8.00 to make."""
    return services.catalog.create(
        ProductInput(name="P1", sale_price=Decimal("20.00"), unit_cost=Decimal("8.00"))
    )


@pytest.fixture
def make_order(services, product):
    def _make(quantity="3", unit_price=None, customer_name="Ana"):
        return services.orders.create_order(
            customer_name,
            [OrderLineInput(
                product_id=product.id,
                quantity=Decimal(quantity),
                unit_price=Decimal(unit_price) if unit_price is not None else None,
            )],
        )
    return _make


@pytest.fixture
def admin(services):
    return services.users.create_user("admin", Role.ADMIN)


@pytest.fixture
def regular_user(services):
    return services.users.create_user("maria", Role.REGULAR)
