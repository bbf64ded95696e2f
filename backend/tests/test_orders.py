from datetime import timedelta
from decimal import Decimal

import pytest

from orderdesk.domain import (
    PRODUCTION_COST_CATEGORY,
    EntryKind,
    OrderLineInput,
    OrderStatus,
    ProductInput,
)
from orderdesk.errors import NotFoundError, ValidationError
from orderdesk.services import TransitionRequest


def test_create_order_snapshots_sale_price(services, make_order, product):
    order = make_order(quantity="3")

    assert order.status is OrderStatus.IN_PRODUCTION
    assert order.customer_name == "Ana"
    assert len(order.lines) == 1
    line = order.lines[0]
    assert line.product_id == product.id
    assert line.quantity == Decimal("3")
    assert line.unit_price == Decimal("20.00")
    assert line.product.name == "P1"
    assert order.total == Decimal("60.00")


def test_create_order_records_production_cost(services, make_order):
    order = make_order(quantity="3")

    entries = services.cash.list_entries(order_id=order.id)
    assert len(entries) == 1
    entry = entries[0]
    assert entry.kind is EntryKind.OUTFLOW
    assert entry.category == PRODUCTION_COST_CATEGORY
    assert entry.amount == Decimal("24.00")


def test_explicit_unit_price_wins_when_positive(make_order):
    assert make_order(unit_price="18.50").lines[0].unit_price == Decimal("18.50")
    # zero means "use the catalog price"
    assert make_order(unit_price="0").lines[0].unit_price == Decimal("20.00")


def test_price_snapshot_survives_product_edit(services, make_order, product):
    order = make_order()
    services.catalog.update(
        product.id, ProductInput(name="P1", sale_price=Decimal("99.00"), unit_cost=Decimal("50.00"))
    )
    assert services.orders.get_order(order.id).lines[0].unit_price == Decimal("20.00")


def test_zero_quantity_lines_are_dropped(services, product):
    other = services.catalog.create(
        ProductInput(name="P2", sale_price=Decimal("35.00"), unit_cost=Decimal("15.00"))
    )
    order = services.orders.create_order(None, [
        OrderLineInput(product_id=product.id, quantity=Decimal("0")),
        OrderLineInput(product_id=other.id, quantity=Decimal("2")),
    ])
    assert [line.product_id for line in order.lines] == [other.id]
    assert order.customer_name is None


def test_round_trip_keeps_line_items(services, product):
    other = services.catalog.create(
        ProductInput(name="P2", sale_price=Decimal("35.00"), unit_cost=Decimal("15.00"))
    )
    created = services.orders.create_order("Bruno", [
        OrderLineInput(product_id=product.id, quantity=Decimal("1.5")),
        OrderLineInput(product_id=other.id, quantity=Decimal("2"), unit_price=Decimal("30.00")),
    ])
    fetched = services.orders.get_order(created.id)

    assert [(l.product_id, l.quantity, l.unit_price) for l in fetched.lines] == [
        (product.id, Decimal("1.5"), Decimal("20.00")),
        (other.id, Decimal("2"), Decimal("30.00")),
    ]
    assert fetched.lines[1].product.name == "P2"
    assert fetched.total == Decimal("90.00")


def test_fractional_cost_rounds_half_up(services):
    cheap = services.catalog.create(
        ProductInput(name="Bolt", sale_price=Decimal("0.10"), unit_cost=Decimal("0.05"))
    )
    order = services.orders.create_order(None, [OrderLineInput(product_id=cheap.id, quantity=Decimal("0.5"))])
    (entry,) = services.cash.list_entries(order_id=order.id)
    # 0.5 * 0.05 = 0.025 -> 0.03
    assert entry.amount == Decimal("0.03")


def test_free_product_writes_no_production_cost(services):
    free = services.catalog.create(ProductInput(name="Gift", sale_price=Decimal("0"), unit_cost=Decimal("0")))
    order = services.orders.create_order(None, [OrderLineInput(product_id=free.id, quantity=Decimal("1"))])
    assert services.cash.list_entries(order_id=order.id) == []


def test_all_zero_lines_rejected(services, product):
    with pytest.raises(ValidationError):
        services.orders.create_order(None, [OrderLineInput(product_id=product.id, quantity=Decimal("0"))])
    assert services.orders.list_orders() == []


def test_negative_quantity_rejected(services, product):
    with pytest.raises(ValidationError) as excinfo:
        services.orders.create_order(None, [
            OrderLineInput(product_id=product.id, quantity=Decimal("2")),
            OrderLineInput(product_id=product.id, quantity=Decimal("-1")),
        ])
    assert "lines[1].quantity" in excinfo.value.fields


def test_unknown_product_aborts_without_writes(services, product):
    with pytest.raises(NotFoundError):
        services.orders.create_order(None, [
            OrderLineInput(product_id=product.id, quantity=Decimal("1")),
            OrderLineInput(product_id=404, quantity=Decimal("1")),
        ])
    assert services.orders.list_orders() == []
    assert services.cash.list_entries() == []


def test_get_missing_order(services):
    with pytest.raises(NotFoundError):
        services.orders.get_order("does-not-exist")


def test_list_orders_filters_by_status_and_range(services, make_order):
    first = make_order()
    second = make_order()
    services.lifecycle.transition(second.id, OrderStatus.SHIPPED, _ship("BR1"))

    assert {o.id for o in services.orders.list_orders()} == {first.id, second.id}
    assert [o.id for o in services.orders.list_orders(status=OrderStatus.SHIPPED)] == [second.id]
    assert [o.id for o in services.orders.list_orders(status=OrderStatus.IN_PRODUCTION)] == [first.id]

    later = second.created_at + timedelta(days=1)
    assert services.orders.list_orders(start=later) == []
    assert len(services.orders.list_orders(end=later)) == 2


def _ship(code, cost=None):
    return TransitionRequest(tracking_code=code, shipping_cost=Decimal(cost) if cost else None)
