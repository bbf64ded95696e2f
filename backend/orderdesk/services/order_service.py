# Overview: Order aggregate; creation with priced line items and the production-cost entry.

"""
Order creation

One transaction:
    1. look up every product (NotFound aborts before anything is written)
    2. reserve the next YYYY-NNNN number for the current year
    3. insert the order (InProduction) and its lines, prices snapshotted
    4. if the production cost is positive, insert one Outflow "Production Cost"
       entry linked to the order

A numbering collision rolls the whole attempt back and the creation is
retried a bounded number of times.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Callable, Iterable, Optional

from ..domain import (
    PRODUCTION_COST_CATEGORY,
    EntryKind,
    NewLedgerEntry,
    Order,
    OrderLineInput,
    OrderStatus,
    quantize_money,
)
from ..errors import NotFoundError, ValidationError
from ..storage import Store
from ..time_utils import utcnow
from .concurrency import run_with_retry
from .numbering import next_order_number

log = logging.getLogger(__name__)


def _normalize_lines(lines: Iterable[OrderLineInput]) -> list[OrderLineInput]:
    lines = list(lines)
    negative = [i for i, line in enumerate(lines) if line.quantity < 0]
    if negative:
        raise ValidationError(
            "Line quantities cannot be negative",
            fields={f"lines[{i}].quantity": "quantity must be >= 0" for i in negative},
        )
    kept = [line for line in lines if line.quantity > 0]
    if not kept:
        raise ValidationError(
            "Order must have at least one line with quantity greater than zero",
            fields={"lines": "no line with quantity > 0"},
        )
    return kept


class OrderService:
    def __init__(
        self,
        store: Store,
        *,
        retry_attempts: int = 3,
        retry_backoff: float = 0.05,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.retry_attempts = retry_attempts
        self.retry_backoff = retry_backoff
        self.clock = clock

    def create_order(self, customer_name: Optional[str], lines: Iterable[OrderLineInput]) -> Order:
        kept = _normalize_lines(lines)
        customer_name = (customer_name or "").strip() or None

        order_id = run_with_retry(
            lambda: self._create_once(customer_name, kept),
            attempts=self.retry_attempts,
            backoff_base=self.retry_backoff,
            label="create_order",
        )
        order = self.store.get_order(order_id)
        log.info("Order %s created with %d line(s), total %s", order.number, len(order.lines), order.total)
        return order

    def _create_once(self, customer_name: Optional[str], lines: list[OrderLineInput]) -> str:
        with self.store.transaction() as uow:
            priced = []
            production_cost = Decimal("0")
            for line in lines:
                product = uow.get_product(line.product_id)
                if product is None:
                    raise NotFoundError("Product", line.product_id)
                # Caller price wins only when it is a real price
                if line.unit_price is not None and line.unit_price > 0:
                    unit_price = line.unit_price
                else:
                    unit_price = product.sale_price
                production_cost += line.quantity * product.unit_cost
                priced.append((line, unit_price))

            now = self.clock()
            order_id = uuid.uuid4().hex
            number = next_order_number(uow, now.year)

            uow.insert_order(
                order_id=order_id,
                number=number,
                customer_name=customer_name,
                status=OrderStatus.IN_PRODUCTION,
                now=now,
            )
            for position, (line, unit_price) in enumerate(priced):
                uow.insert_line(
                    line_id=uuid.uuid4().hex,
                    order_id=order_id,
                    product_id=line.product_id,
                    position=position,
                    quantity=line.quantity,
                    unit_price=unit_price,
                )

            production_cost = quantize_money(production_cost)
            if production_cost > 0:
                uow.insert_entry(
                    NewLedgerEntry(
                        kind=EntryKind.OUTFLOW,
                        category=PRODUCTION_COST_CATEGORY,
                        amount=production_cost,
                        date=now,
                        order_id=order_id,
                    ),
                    now=now,
                )
        return order_id

    def get_order(self, order_id: str) -> Order:
        order = self.store.get_order(order_id)
        if order is None:
            raise NotFoundError("Order", order_id)
        return order

    def list_orders(
        self,
        status: Optional[OrderStatus] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[Order]:
        return self.store.list_orders(status=status, start=start, end=end)
