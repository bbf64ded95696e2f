"""
Threaded concurrency tests.

The SQL store runs against a temporary file-backed SQLite database so that
every thread gets its own connection; in-memory SQLite would share one.
"""

import os
import tempfile
import threading
from decimal import Decimal

import pytest

from orderdesk import create_app, shutdown
from orderdesk.config import TestingConfig
from orderdesk.domain import FREIGHT_CATEGORY, EntryKind, OrderLineInput, OrderStatus, ProductInput
from orderdesk.errors import InvalidTransition, ValidationError
from orderdesk.services import TransitionRequest
from orderdesk.services.numbering import parse_order_number

WORKERS = 10


@pytest.fixture(params=["sql", "memory"])
def threaded_app(request):
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = os.path.join(tmpdir, "concurrency.db")
        app = create_app(
            TestingConfig,
            STORE_BACKEND=request.param,
            SQLALCHEMY_DATABASE_URI=f"sqlite:///{db_path}",
            RETRY_ATTEMPTS=5,
        )
        yield app
        shutdown(app)


@pytest.fixture
def product_id(threaded_app):
    with threaded_app.app_context():
        product = threaded_app.extensions["orderdesk"].catalog.create(
            ProductInput(name="P1", sale_price=Decimal("20.00"), unit_cost=Decimal("8.00"))
        )
    return product.id


def _run_in_threads(app, target, count=WORKERS):
    results = []
    errors = []
    lock = threading.Lock()
    barrier = threading.Barrier(count)

    def worker():
        with app.app_context():
            barrier.wait()
            try:
                outcome = target(app.extensions["orderdesk"])
                with lock:
                    results.append(outcome)
            except Exception as exc:
                with lock:
                    errors.append(exc)

    threads = [threading.Thread(target=worker) for _ in range(count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return results, errors


def test_concurrent_creation_numbers_are_unique_and_sequential(threaded_app, product_id):
    def create(services):
        order = services.orders.create_order(None, [OrderLineInput(product_id=product_id, quantity=Decimal("1"))])
        return order.number

    numbers, errors = _run_in_threads(threaded_app, create)

    assert errors == []
    assert len(numbers) == WORKERS
    assert len(set(numbers)) == WORKERS
    parsed = [parse_order_number(n) for n in numbers]
    assert len({year for year, _ in parsed}) == 1
    assert sorted(seq for _, seq in parsed) == list(range(1, WORKERS + 1))

    with threaded_app.app_context():
        services = threaded_app.extensions["orderdesk"]
        assert len(services.orders.list_orders()) == WORKERS
        assert services.cash.summary().outflows == Decimal("8.00") * WORKERS


def test_concurrent_ship_succeeds_once(threaded_app, product_id):
    with threaded_app.app_context():
        services = threaded_app.extensions["orderdesk"]
        order = services.orders.create_order(None, [OrderLineInput(product_id=product_id, quantity=Decimal("2"))])

    def ship(services):
        return services.lifecycle.transition(order.id, OrderStatus.SHIPPED, TransitionRequest("BR1", Decimal("5.00")))

    shipped, errors = _run_in_threads(threaded_app, ship)

    assert len(shipped) == 1
    assert len(errors) == WORKERS - 1
    assert all(isinstance(e, InvalidTransition) for e in errors)
    with threaded_app.app_context():
        entries = threaded_app.extensions["orderdesk"].cash.list_entries(order_id=order.id)
        assert [e.category for e in entries].count(FREIGHT_CATEGORY) == 1


def test_concurrent_complete_and_cancel_leave_consistent_ledger(threaded_app, product_id):
    with threaded_app.app_context():
        services = threaded_app.extensions["orderdesk"]
        order = services.orders.create_order(None, [OrderLineInput(product_id=product_id, quantity=Decimal("3"))])
        services.lifecycle.transition(order.id, OrderStatus.SHIPPED, TransitionRequest("BR1", Decimal("5.00")))

    targets = iter([OrderStatus.COMPLETED, OrderStatus.CANCELLED] * (WORKERS // 2))
    targets_lock = threading.Lock()

    def move(services):
        with targets_lock:
            target = next(targets)
        return services.lifecycle.transition(order.id, target)

    moved, errors = _run_in_threads(threaded_app, move)

    assert len(moved) == 1
    assert all(isinstance(e, InvalidTransition) for e in errors)
    with threaded_app.app_context():
        services = threaded_app.extensions["orderdesk"]
        final = services.orders.get_order(order.id)
        entries = services.cash.list_entries(order_id=order.id)
    assert final.status is moved[0].status
    if final.status is OrderStatus.COMPLETED:
        assert sorted(e.category for e in entries) == ["Freight", "Production Cost", "Sale Revenue"]
    else:
        assert entries == []


def test_manual_entries_racing_a_cancel_leave_no_orphans(threaded_app, product_id):
    with threaded_app.app_context():
        services = threaded_app.extensions["orderdesk"]
        order = services.orders.create_order(None, [OrderLineInput(product_id=product_id, quantity=Decimal("1"))])

    actions = iter(["cancel"] + ["entry"] * (WORKERS - 1))
    actions_lock = threading.Lock()

    def act(services):
        with actions_lock:
            action = next(actions)
        if action == "cancel":
            return services.lifecycle.transition(order.id, OrderStatus.CANCELLED)
        return services.cash.create_entry(EntryKind.OUTFLOW, "Packaging", Decimal("1.00"), order_id=order.id)

    _, errors = _run_in_threads(threaded_app, act)

    assert all(isinstance(e, ValidationError) for e in errors)
    with threaded_app.app_context():
        services = threaded_app.extensions["orderdesk"]
        assert services.orders.get_order(order.id).status is OrderStatus.CANCELLED
        assert services.cash.list_entries(order_id=order.id) == []
