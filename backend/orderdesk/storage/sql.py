# Overview: SQLAlchemy-backed store (file SQLite or hosted Postgres via DATABASE_URL).

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from typing import Callable, Iterator, Optional

from sqlalchemy import func, text, update
from sqlalchemy.exc import DataError, IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

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
    from_cents,
    to_cents,
)
from ..errors import ConflictError, TransientStoreError, ValidationError
from ..models import (
    LedgerEntryRow,
    OrderLineRow,
    OrderRow,
    OrderSequenceRow,
    ProductRow,
    UserRow,
)
from .base import Store, UnitOfWork

log = logging.getLogger(__name__)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; writers there are serialized
    by BEGIN IMMEDIATE in `SqlAlchemyStore.transaction`.
    """
    return query.with_for_update()


def _apply_range(query, column, start: Optional[datetime], end: Optional[datetime]):
    if start is not None:
        query = query.filter(column >= start)
    if end is not None:
        query = query.filter(column <= end)
    return query


class SqlUnitOfWork(UnitOfWork):
    def __init__(self, session):
        self.session = session

    def get_product(self, product_id: int) -> Optional[Product]:
        row = self.session.get(ProductRow, product_id)
        return row.to_domain() if row else None

    def lock_order(self, order_id: str) -> Optional[Order]:
        row = (
            lock_for_update(self.session.query(OrderRow).filter_by(id=order_id))
            .populate_existing()
            .first()
        )
        return row.to_domain() if row else None

    def order_numbers_for_year(self, year: int) -> list[str]:
        rows = self.session.query(OrderRow.number).filter(OrderRow.number.like(f"{year}-%")).all()
        return [number for (number,) in rows]

    def next_sequence_value(self, year: int, seed: Callable[[], int]) -> int:
        stmt = (
            update(OrderSequenceRow)
            .where(OrderSequenceRow.year == year)
            .values(next_number=OrderSequenceRow.next_number + 1)
        )
        result = self.session.execute(stmt)
        if result.rowcount:
            current = (
                self.session.query(OrderSequenceRow.next_number)
                .filter_by(year=year)
                .scalar()
            )
            return current - 1

        # First order of the year: start after whatever numbers already exist.
        # A concurrent first-of-year insert fails on the primary key and the
        # whole creation is retried.
        value = seed() + 1
        self.session.add(OrderSequenceRow(year=year, next_number=value + 1))
        self.session.flush()
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
        self.session.add(OrderRow(
            id=order_id,
            number=number,
            customer_name=customer_name,
            status=status.value,
            shipping_cost_cents=0,
            created_at=now,
            updated_at=now,
        ))
        self.session.flush()

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
        self.session.add(OrderLineRow(
            id=line_id,
            order_id=order_id,
            product_id=product_id,
            position=position,
            quantity=quantity,
            unit_price_cents=to_cents(unit_price),
        ))

    def update_order(
        self,
        order_id: str,
        *,
        status: OrderStatus,
        now: datetime,
        tracking_code: Optional[str] = None,
        shipping_cost: Optional[Decimal] = None,
    ) -> None:
        row = self.session.get(OrderRow, order_id)
        row.status = status.value
        row.updated_at = now
        if tracking_code is not None:
            row.tracking_code = tracking_code
        if shipping_cost is not None:
            row.shipping_cost_cents = to_cents(shipping_cost)
        self.session.flush()

    def insert_entry(self, entry: NewLedgerEntry, *, now: datetime) -> LedgerEntry:
        row = _entry_row(entry, now)
        self.session.add(row)
        self.session.flush()
        return row.to_domain()

    def delete_entries_for_order(self, order_id: str) -> int:
        return (
            self.session.query(LedgerEntryRow)
            .filter(LedgerEntryRow.order_id == order_id)
            .delete(synchronize_session=False)
        )


def _entry_row(entry: NewLedgerEntry, now: datetime) -> LedgerEntryRow:
    return LedgerEntryRow(
        id=uuid.uuid4().hex,
        kind=entry.kind.value,
        category=entry.category,
        amount_cents=to_cents(entry.amount),
        date=entry.date,
        created_at=now,
        order_id=entry.order_id,
        receipt_image=entry.receipt_image,
    )


class SqlAlchemyStore(Store):
    """
    Store over a Flask-SQLAlchemy `db`.

    Must be used inside an application context; the session is the
    context-scoped `db.session`.
    """

    backend_name = "sql"

    def __init__(self, db, *, auto_create_schema: bool = True):
        self.db = db
        self.auto_create_schema = auto_create_schema

    @property
    def session(self):
        return self.db.session

    def open(self) -> "SqlAlchemyStore":
        if self.auto_create_schema:
            self.db.create_all()
        log.info("SQL store opened on %s", self.db.engine.url.render_as_string(hide_password=True))
        return self

    def close(self) -> None:
        self.db.session.remove()
        self.db.engine.dispose()
        log.info("SQL store closed")

    def _commit(self) -> None:
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            raise ConflictError("Duplicate value rejected by the store") from exc
        except (OperationalError, StaleDataError) as exc:
            self.session.rollback()
            raise TransientStoreError("Store is busy, try again") from exc
        except DataError as exc:
            self.session.rollback()
            raise ValidationError("Value out of range for the store") from exc

    @contextmanager
    def transaction(self) -> Iterator[SqlUnitOfWork]:
        # db.session is a scoped_session; transaction state lives on the Session it proxies
        session = self.db.session()
        try:
            if session.in_transaction():
                # End any read-only transaction left by earlier lookups
                session.commit()
            if self.db.engine.dialect.name == "sqlite":
                session.execute(text("BEGIN IMMEDIATE"))
            yield SqlUnitOfWork(session)
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            raise ConflictError("Duplicate value rejected by the store") from exc
        except (OperationalError, StaleDataError) as exc:
            session.rollback()
            raise TransientStoreError("Store is busy, try again") from exc
        except DataError as exc:
            session.rollback()
            raise ValidationError("Value out of range for the store") from exc
        except Exception:
            session.rollback()
            raise

    # Products

    def list_products(self, *, active_only: bool = True) -> list[Product]:
        q = self.session.query(ProductRow)
        if active_only:
            q = q.filter(ProductRow.active.is_(True))
        return [row.to_domain() for row in q.order_by(ProductRow.id.asc()).all()]

    def get_product(self, product_id: int) -> Optional[Product]:
        row = self.session.get(ProductRow, product_id)
        return row.to_domain() if row else None

    def create_product(self, data: ProductInput) -> Product:
        row = ProductRow()
        _apply_product(row, data)
        self.session.add(row)
        self._commit()
        return row.to_domain()

    def update_product(self, product_id: int, data: ProductInput) -> Optional[Product]:
        row = self.session.get(ProductRow, product_id)
        if row is None:
            return None
        _apply_product(row, data)
        self._commit()
        return row.to_domain()

    # Orders

    def get_order(self, order_id: str) -> Optional[Order]:
        row = self.session.get(OrderRow, order_id, populate_existing=True)
        return row.to_domain() if row else None

    def list_orders(
        self,
        *,
        status: Optional[OrderStatus] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[Order]:
        q = self.session.query(OrderRow)
        if status is not None:
            q = q.filter(OrderRow.status == status.value)
        q = _apply_range(q, OrderRow.created_at, start, end)
        q = q.order_by(OrderRow.created_at.desc(), OrderRow.number.desc())
        return [row.to_domain() for row in q.populate_existing().all()]

    # Ledger

    def list_entries(
        self,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        order_id: Optional[str] = None,
    ) -> list[LedgerEntry]:
        q = self.session.query(LedgerEntryRow)
        q = _apply_range(q, LedgerEntryRow.date, start, end)
        if order_id is not None:
            q = q.filter(LedgerEntryRow.order_id == order_id)
        q = q.order_by(LedgerEntryRow.date.desc(), LedgerEntryRow.created_at.desc())
        return [row.to_domain() for row in q.all()]

    def totals_by_kind(
        self,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> dict[EntryKind, Decimal]:
        q = self.session.query(
            LedgerEntryRow.kind,
            func.coalesce(func.sum(LedgerEntryRow.amount_cents), 0),
        )
        q = _apply_range(q, LedgerEntryRow.date, start, end)
        totals = {kind: Decimal("0.00") for kind in EntryKind}
        for kind, cents in q.group_by(LedgerEntryRow.kind).all():
            totals[EntryKind(kind)] = from_cents(int(cents))
        return totals

    # Users

    def list_users(self) -> list[User]:
        return [row.to_domain() for row in self.session.query(UserRow).order_by(UserRow.id.asc()).all()]

    def get_user_by_name(self, name: str) -> Optional[User]:
        row = self.session.query(UserRow).filter_by(name=name).first()
        return row.to_domain() if row else None

    def create_user(self, name: str, role: Role) -> User:
        if self.session.query(UserRow.id).filter_by(name=name).first() is not None:
            raise ConflictError(f"User '{name}' already exists")
        row = UserRow(name=name, role=role.value)
        self.session.add(row)
        self._commit()
        return row.to_domain()


def _apply_product(row: ProductRow, data: ProductInput) -> None:
    row.name = data.name
    row.sale_price_cents = to_cents(data.sale_price)
    row.unit_cost_cents = to_cents(data.unit_cost)
    row.active = data.active
