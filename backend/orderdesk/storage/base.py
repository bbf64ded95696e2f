# Overview: Capability interfaces every store implementation provides.

"""
Store capabilities

ProductStore, OrderStore, LedgerStore and UserStore cover single-statement
reads and writes. Multi-statement work (order creation, lifecycle
transitions) goes through `Store.transaction()`, which yields a UnitOfWork:

- everything done through the UnitOfWork commits together or not at all
- `lock_order` holds the order row until the transaction ends
- `next_sequence_value` is serialized across concurrent transactions
- driver failures surface as ConflictError / TransientStoreError after rollback
"""

from __future__ import annotations

import abc
from contextlib import AbstractContextManager
from datetime import datetime
from decimal import Decimal
from typing import Callable, Iterable, Optional

from ..domain import (
    EntryKind,
    LedgerEntry,
    NewLedgerEntry,
    Order,
    OrderStatus,
    Product,
    ProductInput,
    Role,
    User,
)


class ProductStore(abc.ABC):
    @abc.abstractmethod
    def list_products(self, *, active_only: bool = True) -> list[Product]: ...

    @abc.abstractmethod
    def get_product(self, product_id: int) -> Optional[Product]: ...

    @abc.abstractmethod
    def create_product(self, data: ProductInput) -> Product: ...

    @abc.abstractmethod
    def update_product(self, product_id: int, data: ProductInput) -> Optional[Product]: ...


class OrderStore(abc.ABC):
    @abc.abstractmethod
    def get_order(self, order_id: str) -> Optional[Order]: ...

    @abc.abstractmethod
    def list_orders(
        self,
        *,
        status: Optional[OrderStatus] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[Order]:
        """Newest first by created_at; status is exact, [start, end] inclusive."""


class LedgerStore(abc.ABC):
    @abc.abstractmethod
    def list_entries(
        self,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        order_id: Optional[str] = None,
    ) -> list[LedgerEntry]:
        """Newest first by date; [start, end] inclusive, order_id exact."""

    @abc.abstractmethod
    def totals_by_kind(
        self,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> dict[EntryKind, Decimal]: ...


class UserStore(abc.ABC):
    @abc.abstractmethod
    def list_users(self) -> list[User]: ...

    @abc.abstractmethod
    def get_user_by_name(self, name: str) -> Optional[User]: ...

    @abc.abstractmethod
    def create_user(self, name: str, role: Role) -> User:
        """Raises ConflictError when the name is taken."""


class UnitOfWork(abc.ABC):
    @abc.abstractmethod
    def get_product(self, product_id: int) -> Optional[Product]: ...

    @abc.abstractmethod
    def lock_order(self, order_id: str) -> Optional[Order]:
        """Load an order and hold it against concurrent transitions."""

    @abc.abstractmethod
    def order_numbers_for_year(self, year: int) -> Iterable[str]: ...

    @abc.abstractmethod
    def next_sequence_value(self, year: int, seed: Callable[[], int]) -> int:
        """
        Reserve the next sequence value for `year`.

        On first use of a year the counter starts after `seed()`, the highest
        sequence already present among existing order numbers.
        """

    @abc.abstractmethod
    def insert_order(
        self,
        *,
        order_id: str,
        number: str,
        customer_name: Optional[str],
        status: OrderStatus,
        now: datetime,
    ) -> None: ...

    @abc.abstractmethod
    def insert_line(
        self,
        *,
        line_id: str,
        order_id: str,
        product_id: int,
        position: int,
        quantity: Decimal,
        unit_price: Decimal,
    ) -> None: ...

    @abc.abstractmethod
    def update_order(
        self,
        order_id: str,
        *,
        status: OrderStatus,
        now: datetime,
        tracking_code: Optional[str] = None,
        shipping_cost: Optional[Decimal] = None,
    ) -> None: ...

    @abc.abstractmethod
    def insert_entry(self, entry: NewLedgerEntry, *, now: datetime) -> LedgerEntry: ...

    @abc.abstractmethod
    def delete_entries_for_order(self, order_id: str) -> int: ...


class Store(ProductStore, OrderStore, LedgerStore, UserStore):
    """A durable store: all capabilities plus an explicit open/close lifecycle."""

    backend_name = "abstract"

    def open(self) -> "Store":
        return self

    def close(self) -> None:
        pass

    def __enter__(self) -> "Store":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @abc.abstractmethod
    def transaction(self) -> AbstractContextManager[UnitOfWork]: ...
