from decimal import Decimal

import pytest

from orderdesk.domain import ProductInput
from orderdesk.errors import NotFoundError, ValidationError


def _input(name="Shelf", sale="35.00", cost="15.00", active=True):
    return ProductInput(name=name, sale_price=Decimal(sale), unit_cost=Decimal(cost), active=active)


def test_create_and_get(services):
    created = services.catalog.create(_input())
    fetched = services.catalog.get(created.id)
    assert fetched == created
    assert fetched.sale_price == Decimal("35.00")
    assert fetched.margin == Decimal("20.00")


def test_list_active_hides_deactivated_products(services):
    keep = services.catalog.create(_input(name="Keep"))
    hide = services.catalog.create(_input(name="Hide"))
    services.catalog.update(hide.id, _input(name="Hide", active=False))

    assert [p.id for p in services.catalog.list_active()] == [keep.id]
    assert {p.id for p in services.catalog.list_all()} == {keep.id, hide.id}


def test_update_is_full_replace(services):
    product = services.catalog.create(_input())
    updated = services.catalog.update(product.id, _input(name="Shelf XL", sale="40.00", cost="18.50"))
    assert updated.name == "Shelf XL"
    assert updated.sale_price == Decimal("40.00")
    assert updated.unit_cost == Decimal("18.50")
    assert services.catalog.get(product.id) == updated


def test_duplicate_names_are_allowed(services):
    a = services.catalog.create(_input(name="Twin"))
    b = services.catalog.create(_input(name="Twin"))
    assert a.id != b.id


def test_missing_product(services):
    with pytest.raises(NotFoundError):
        services.catalog.get(999)
    with pytest.raises(NotFoundError):
        services.catalog.update(999, _input())


@pytest.mark.parametrize(
    "data",
    [
        _input(name="   "),
        _input(sale="-1.00"),
        _input(cost="-0.01"),
    ],
)
def test_invalid_product_rejected(services, data):
    with pytest.raises(ValidationError):
        services.catalog.create(data)
    assert services.catalog.list_all() == []
