# Overview: Process-local store; same capabilities as the SQL store, nothing durable.

from __future__ import annotations

import dataclasses
import logging
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from typing import Callable, Iterator, Optional

from ..domain import (
    EntryKind,
    LedgerEntry,
    NewLedgerEntry,
    Order,
    OrderLine,
    OrderStatus,
    Product,
    ProductInput,
    Role,
    User,
    quantize_money,
)
from ..errors import ConflictError
from .base import Store, UnitOfWork

log = logging.getLogger(__name__)


@dataclasses.dataclass
class _Tables:
    products: dict[int, Product] = dataclasses.field(default_factory=dict)
    orders: dict[str, Order] = dataclasses.field(default_factory=dict)
    lines: dict[str, tuple[OrderLine, ...]] = dataclasses.field(default_factory=dict)
    entries: dict[str, LedgerEntry] = dataclasses.field(default_factory=dict)
    users: dict[int, User] = dataclasses.field(default_factory=dict)
    sequences: dict[int, int] = dataclasses.field(default_factory=dict)

    def copy(self) -> "_Tables":
        return _Tables(
            products=dict(self.products),
            orders=dict(self.orders),
            lines=dict(self.lines),
            entries=dict(self.entries),
            users=dict(self.users),
            sequences=dict(self.sequences),
        )

    def hydrate(self, order: Order) -> Order:
        lines = tuple(
            dataclasses.replace(line, product=self.products.get(line.product_id))
            for line in self.lines.get(order.id, ())
        )
        return dataclasses.replace(order, lines=lines)


def _in_range(value: datetime, start: Optional[datetime], end: Optional[datetime]) -> bool:
    if start is not None and value < start:
        return False
    if end is not None and value > end:
        return False
    return True


class MemoryUnitOfWork(UnitOfWork):
    """Works on a private copy of the tables; the store swaps it in on success."""

    def __init__(self, tables: _Tables):
        self.tables = tables

    def get_product(self, product_id: int) -> Optional[Product]:
        return self.tables.products.get(product_id)

    def lock_order(self, order_id: str) -> Optional[Order]:
        # The store lock is already held for the whole transaction
        order = self.tables.orders.get(order_id)
        return self.tables.hydrate(order) if order else None

    def order_numbers_for_year(self, year: int) -> list[str]:
        prefix = f"{year}-"
        return [o.number for o in self.tables.orders.values() if o.number.startswith(prefix)]

    def next_sequence_value(self, year: int, seed: Callable[[], int]) -> int:
        if year in self.tables.sequences:
            value = self.tables.sequences[year]
        else:
            value = seed() + 1
        self.tables.sequences[year] = value + 1
        return value

    def insert_order(
        self,
        *,
        order_id: str,
        number: str,
        customer_name: Optional[str],
        status: OrderStatus,
        now: datetime,
    ) -> None:
        if any(o.number == number for o in self.tables.orders.values()):
            raise ConflictError(f"Order number {number} already exists")
        self.tables.orders[order_id] = Order(
            id=order_id,
            number=number,
            customer_name=customer_name,
            status=status,
            tracking_code=None,
            shipping_cost=Decimal("0.00"),
            created_at=now,
            updated_at=now,
        )
        self.tables.lines[order_id] = ()

    def insert_line(
        self,
        *,
        line_id: str,
        order_id: str,
        product_id: int,
        position: int,
        quantity: Decimal,
        unit_price: Decimal,
    ) -> None:
        line = OrderLine(
            id=line_id,
            order_id=order_id,
            product_id=product_id,
            quantity=quantity,
            unit_price=quantize_money(unit_price),
        )
        existing = self.tables.lines.get(order_id, ())
        self.tables.lines[order_id] = existing[:position] + (line,) + existing[position:]

    def update_order(
        self,
        order_id: str,
        *,
        status: OrderStatus,
        now: datetime,
        tracking_code: Optional[str] = None,
        shipping_cost: Optional[Decimal] = None,
    ) -> None:
        order = self.tables.orders[order_id]
        changes = {"status": status, "updated_at": now}
        if tracking_code is not None:
            changes["tracking_code"] = tracking_code
        if shipping_cost is not None:
            changes["shipping_cost"] = quantize_money(shipping_cost)
        self.tables.orders[order_id] = dataclasses.replace(order, **changes)

    def insert_entry(self, entry: NewLedgerEntry, *, now: datetime) -> LedgerEntry:
        created = _new_entry(entry, now)
        self.tables.entries[created.id] = created
        return created

    def delete_entries_for_order(self, order_id: str) -> int:
        doomed = [e.id for e in self.tables.entries.values() if e.order_id == order_id]
        for entry_id in doomed:
            del self.tables.entries[entry_id]
        return len(doomed)


def _new_entry(entry: NewLedgerEntry, now: datetime) -> LedgerEntry:
    return LedgerEntry(
        id=uuid.uuid4().hex,
        kind=entry.kind,
        category=entry.category,
        amount=quantize_money(entry.amount),
        date=entry.date,
        order_id=entry.order_id,
        receipt_image=entry.receipt_image,
        created_at=now,
    )


class MemoryStore(Store):
    """
    Thread-safe in-process store.

    One re-entrant lock serializes every transaction, which gives the same
    guarantees the SQL store gets from row locks: a transition sees the
    latest committed status and numbering never hands out a value twice.
    """

    backend_name = "memory"

    def __init__(self):
        self._lock = threading.RLock()
        self._tables = _Tables()

    def close(self) -> None:
        with self._lock:
            self._tables = _Tables()
        log.info("Memory store closed")

    @contextmanager
    def transaction(self) -> Iterator[MemoryUnitOfWork]:
        with self._lock:
            working = self._tables.copy()
            yield MemoryUnitOfWork(working)
            self._tables = working

    # Products

    def list_products(self, *, active_only: bool = True) -> list[Product]:
        with self._lock:
            products = sorted(self._tables.products.values(), key=lambda p: p.id)
        return [p for p in products if p.active or not active_only]

    def get_product(self, product_id: int) -> Optional[Product]:
        with self._lock:
            return self._tables.products.get(product_id)

    def create_product(self, data: ProductInput) -> Product:
        with self._lock:
            next_id = max(self._tables.products, default=0) + 1
            product = _product(next_id, data)
            self._tables.products[next_id] = product
            return product

    def update_product(self, product_id: int, data: ProductInput) -> Optional[Product]:
        with self._lock:
            if product_id not in self._tables.products:
                return None
            product = _product(product_id, data)
            self._tables.products[product_id] = product
            return product

    # Orders

    def get_order(self, order_id: str) -> Optional[Order]:
        with self._lock:
            order = self._tables.orders.get(order_id)
            return self._tables.hydrate(order) if order else None

    def list_orders(
        self,
        *,
        status: Optional[OrderStatus] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[Order]:
        with self._lock:
            matches = [
                self._tables.hydrate(o)
                for o in self._tables.orders.values()
                if (status is None or o.status is status) and _in_range(o.created_at, start, end)
            ]
        matches.sort(key=lambda o: (o.created_at, o.number), reverse=True)
        return matches

    # Ledger

    def list_entries(
        self,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        order_id: Optional[str] = None,
    ) -> list[LedgerEntry]:
        with self._lock:
            ordered = list(self._tables.entries.values())
        matches = [
            (position, e)
            for position, e in enumerate(ordered)
            if _in_range(e.date, start, end) and (order_id is None or e.order_id == order_id)
        ]
        matches.sort(key=lambda pair: (pair[1].date, pair[1].created_at, pair[0]), reverse=True)
        return [e for _, e in matches]

    def totals_by_kind(
        self,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> dict[EntryKind, Decimal]:
        totals = {kind: Decimal("0.00") for kind in EntryKind}
        with self._lock:
            for e in self._tables.entries.values():
                if _in_range(e.date, start, end):
                    totals[e.kind] += e.amount
        return totals

    # Users

    def list_users(self) -> list[User]:
        with self._lock:
            return sorted(self._tables.users.values(), key=lambda u: u.id)

    def get_user_by_name(self, name: str) -> Optional[User]:
        with self._lock:
            return next((u for u in self._tables.users.values() if u.name == name), None)

    def create_user(self, name: str, role: Role) -> User:
        with self._lock:
            if any(u.name == name for u in self._tables.users.values()):
                raise ConflictError(f"User '{name}' already exists")
            next_id = max(self._tables.users, default=0) + 1
            user = User(id=next_id, name=name, role=role)
            self._tables.users[next_id] = user
            return user


def _product(product_id: int, data: ProductInput) -> Product:
    return Product(
        id=product_id,
        name=data.name,
        sale_price=quantize_money(data.sale_price),
        unit_cost=quantize_money(data.unit_cost),
        active=data.active,
    )
