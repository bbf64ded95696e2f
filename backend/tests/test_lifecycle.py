from decimal import Decimal

import pytest

from orderdesk.domain import (
    FREIGHT_CATEGORY,
    PRODUCTION_COST_CATEGORY,
    SALE_REVENUE_CATEGORY,
    EntryKind,
    OrderStatus,
)
from orderdesk.errors import InvalidTransition, NotFoundError, PermissionDenied, ValidationError
from orderdesk.services import TransitionRequest
from orderdesk.services.lifecycle_service import TRANSITIONS, can_transition
from orderdesk.storage.memory import MemoryUnitOfWork
from orderdesk.storage.sql import SqlUnitOfWork


def _categories(services, order_id):
    return sorted(e.category for e in services.cash.list_entries(order_id=order_id))


def test_transition_table():
    assert can_transition(OrderStatus.IN_PRODUCTION, OrderStatus.SHIPPED)
    assert can_transition(OrderStatus.SHIPPED, OrderStatus.COMPLETED)
    assert can_transition(OrderStatus.IN_PRODUCTION, OrderStatus.CANCELLED)
    assert can_transition(OrderStatus.SHIPPED, OrderStatus.CANCELLED)
    assert not can_transition(OrderStatus.IN_PRODUCTION, OrderStatus.COMPLETED)
    assert not can_transition(OrderStatus.SHIPPED, OrderStatus.IN_PRODUCTION)
    for status in OrderStatus:
        assert (status, status) not in TRANSITIONS


def test_ship_sets_tracking_and_books_freight(services, make_order):
    order = make_order()
    shipped = services.lifecycle.transition(
        order.id, OrderStatus.SHIPPED, TransitionRequest("  BR123 ", Decimal("5.00"))
    )

    assert shipped.status is OrderStatus.SHIPPED
    assert shipped.tracking_code == "BR123"
    assert shipped.shipping_cost == Decimal("5.00")
    freight = [e for e in services.cash.list_entries(order_id=order.id) if e.category == FREIGHT_CATEGORY]
    assert len(freight) == 1
    assert freight[0].kind is EntryKind.OUTFLOW
    assert freight[0].amount == Decimal("5.00")


def test_ship_without_cost_books_no_freight(services, make_order):
    order = make_order()
    shipped = services.lifecycle.transition(order.id, OrderStatus.SHIPPED, TransitionRequest("BR1"))
    assert shipped.shipping_cost == Decimal("0.00")
    assert _categories(services, order.id) == [PRODUCTION_COST_CATEGORY]


@pytest.mark.parametrize("code", [None, "", "   "])
def test_ship_requires_tracking_code(services, make_order, code):
    order = make_order()
    with pytest.raises(ValidationError) as excinfo:
        services.lifecycle.transition(order.id, OrderStatus.SHIPPED, TransitionRequest(code, Decimal("5.00")))
    assert "trackingCode" in excinfo.value.fields
    assert services.orders.get_order(order.id).status is OrderStatus.IN_PRODUCTION
    assert _categories(services, order.id) == [PRODUCTION_COST_CATEGORY]


def test_ship_rejects_negative_cost(services, make_order):
    order = make_order()
    with pytest.raises(ValidationError):
        services.lifecycle.transition(order.id, OrderStatus.SHIPPED, TransitionRequest("BR1", Decimal("-1.00")))


def test_complete_books_revenue_for_order_total(services, make_order):
    order = make_order(quantity="3")
    services.lifecycle.transition(order.id, OrderStatus.SHIPPED, TransitionRequest("BR1"))
    completed = services.lifecycle.transition(order.id, OrderStatus.COMPLETED)

    assert completed.status is OrderStatus.COMPLETED
    revenue = [e for e in services.cash.list_entries(order_id=order.id) if e.category == SALE_REVENUE_CATEGORY]
    assert len(revenue) == 1
    assert revenue[0].kind is EntryKind.INFLOW
    assert revenue[0].amount == completed.total == Decimal("60.00")


def test_status_aliases_are_accepted(services, make_order):
    order = make_order()
    assert services.lifecycle.transition(order.id, "Enviado", TransitionRequest("BR1")).status is OrderStatus.SHIPPED
    assert services.lifecycle.transition(order.id, "3").status is OrderStatus.COMPLETED


def test_unknown_status_is_validation_error(services, make_order):
    order = make_order()
    with pytest.raises(ValidationError):
        services.lifecycle.transition(order.id, "Lost")


def test_cannot_skip_shipping(services, make_order):
    order = make_order()
    with pytest.raises(InvalidTransition):
        services.lifecycle.transition(order.id, OrderStatus.COMPLETED)
    assert _categories(services, order.id) == [PRODUCTION_COST_CATEGORY]


@pytest.mark.parametrize("status", list(OrderStatus))
def test_completed_order_rejects_every_transition(services, make_order, status):
    order = make_order()
    services.lifecycle.transition(order.id, OrderStatus.SHIPPED, TransitionRequest("BR1", Decimal("5.00")))
    services.lifecycle.transition(order.id, OrderStatus.COMPLETED)
    before = set(services.cash.list_entries())

    with pytest.raises(InvalidTransition):
        services.lifecycle.transition(order.id, status, TransitionRequest("BR2", Decimal("1.00")))

    assert services.orders.get_order(order.id).status is OrderStatus.COMPLETED
    assert set(services.cash.list_entries()) == before


@pytest.mark.parametrize("status", list(OrderStatus))
def test_cancelled_order_rejects_every_transition(services, make_order, status):
    order = make_order()
    services.lifecycle.transition(order.id, OrderStatus.CANCELLED)
    with pytest.raises(InvalidTransition):
        services.lifecycle.transition(order.id, status, TransitionRequest("BR2"))
    assert services.orders.get_order(order.id).status is OrderStatus.CANCELLED


def test_same_status_is_invalid(services, make_order):
    order = make_order()
    with pytest.raises(InvalidTransition):
        services.lifecycle.transition(order.id, OrderStatus.IN_PRODUCTION)
    services.lifecycle.transition(order.id, OrderStatus.SHIPPED, TransitionRequest("BR1"))
    with pytest.raises(InvalidTransition):
        services.lifecycle.transition(order.id, OrderStatus.SHIPPED, TransitionRequest("BR1"))


def test_cancel_removes_only_that_orders_entries(services, make_order):
    keep = make_order(quantity="1")
    drop = make_order(quantity="2")
    services.lifecycle.transition(drop.id, OrderStatus.SHIPPED, TransitionRequest("BR9", Decimal("7.50")))
    manual = services.cash.create_entry(EntryKind.OUTFLOW, "Packaging", Decimal("3.00"), order_id=drop.id)
    unrelated = services.cash.create_entry(EntryKind.INFLOW, "Deposit", Decimal("100.00"))
    before_keep = services.cash.list_entries(order_id=keep.id)

    cancelled = services.lifecycle.transition(drop.id, OrderStatus.CANCELLED)

    assert cancelled.status is OrderStatus.CANCELLED
    assert services.cash.list_entries(order_id=drop.id) == []
    assert services.cash.list_entries(order_id=keep.id) == before_keep
    remaining = {e.id for e in services.cash.list_entries()}
    assert unrelated.id in remaining
    assert manual.id not in remaining


def test_missing_order(services):
    with pytest.raises(NotFoundError):
        services.lifecycle.transition("nope", OrderStatus.SHIPPED, TransitionRequest("BR1"))


def test_cancel_requires_admin_when_actor_known(services, make_order, admin, regular_user):
    order = make_order()
    with pytest.raises(PermissionDenied):
        services.lifecycle.transition(order.id, OrderStatus.CANCELLED, actor=regular_user)
    assert services.orders.get_order(order.id).status is OrderStatus.IN_PRODUCTION

    cancelled = services.lifecycle.transition(order.id, OrderStatus.CANCELLED, actor=admin)
    assert cancelled.status is OrderStatus.CANCELLED


def test_regular_user_can_ship(services, make_order, regular_user):
    order = make_order()
    shipped = services.lifecycle.transition(
        order.id, OrderStatus.SHIPPED, TransitionRequest("BR1"), actor=regular_user
    )
    assert shipped.status is OrderStatus.SHIPPED


def test_failed_side_effect_rolls_back_status(services, make_order, monkeypatch):
    order = make_order()
    services.lifecycle.transition(order.id, OrderStatus.SHIPPED, TransitionRequest("BR1", Decimal("5.00")))
    before = set(services.cash.list_entries())

    def broken_insert(self, entry, *, now):
        raise RuntimeError("disk full")

    monkeypatch.setattr(SqlUnitOfWork, "insert_entry", broken_insert)
    monkeypatch.setattr(MemoryUnitOfWork, "insert_entry", broken_insert)

    with pytest.raises(RuntimeError):
        services.lifecycle.transition(order.id, OrderStatus.COMPLETED)

    assert services.orders.get_order(order.id).status is OrderStatus.SHIPPED
    assert set(services.cash.list_entries()) == before
