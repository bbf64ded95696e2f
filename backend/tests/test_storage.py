from decimal import Decimal

import pytest

from orderdesk.domain import EntryKind, NewLedgerEntry, ProductInput
from orderdesk.models import LedgerEntryRow, OrderLineRow, OrderRow, ProductRow
from orderdesk.storage import MemoryStore, SqlAlchemyStore, build_store
from orderdesk.time_utils import utcnow


def test_transaction_after_reads(services):
    # Reads leave an open session transaction on the SQL store
    services.catalog.create(ProductInput(name="P", sale_price=Decimal("1.00"), unit_cost=Decimal("0.50")))
    assert len(services.catalog.list_all()) == 1

    now = utcnow()
    with services.store.transaction() as uow:
        uow.insert_entry(
            NewLedgerEntry(kind=EntryKind.INFLOW, category="Deposit", amount=Decimal("10.00"), date=now),
            now=now,
        )
    assert [e.category for e in services.cash.list_entries()] == ["Deposit"]


def test_failed_transaction_writes_nothing(services):
    now = utcnow()
    with pytest.raises(RuntimeError):
        with services.store.transaction() as uow:
            uow.insert_entry(
                NewLedgerEntry(kind=EntryKind.INFLOW, category="Deposit", amount=Decimal("10.00"), date=now),
                now=now,
            )
            raise RuntimeError("abort")
    assert services.cash.list_entries() == []


@pytest.mark.parametrize(
    "column",
    [
        ProductRow.__table__.c.sale_price_cents,
        ProductRow.__table__.c.unit_cost_cents,
        OrderRow.__table__.c.shipping_cost_cents,
        OrderLineRow.__table__.c.unit_price_cents,
        LedgerEntryRow.__table__.c.amount_cents,
    ],
)
def test_money_columns_are_64_bit(column):
    assert column.type.python_type is int
    assert type(column.type).__name__ == "BigInteger"


def test_build_store_selects_backend():
    assert isinstance(build_store({"STORE_BACKEND": "memory"}, None), MemoryStore)
    assert isinstance(build_store({"STORE_BACKEND": "SQL"}, object()), SqlAlchemyStore)
    with pytest.raises(ValueError):
        build_store({"STORE_BACKEND": "redis"}, None)
