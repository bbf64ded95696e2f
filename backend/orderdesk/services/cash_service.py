# Overview: Cash ledger reads, manual entries and the inflow/outflow summary.

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional

from ..domain import CashSummary, EntryKind, LedgerEntry, NewLedgerEntry, OrderStatus
from ..errors import NotFoundError, ValidationError
from ..storage import Store
from ..time_utils import utcnow


class CashLedger:
    """
    Dated inflows and outflows, optionally linked to an order.

    Amounts are positive; the kind carries the sign. Entries tied to the
    order lifecycle are written by OrderService / OrderLifecycle; this class
    covers manual cash movements and reporting.
    """

    def __init__(self, store: Store, *, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    def list_entries(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        order_id: Optional[str] = None,
    ) -> list[LedgerEntry]:
        return self.store.list_entries(start=start, end=end, order_id=order_id)

    def create_entry(
        self,
        kind: EntryKind,
        category: str,
        amount: Decimal,
        date: Optional[datetime] = None,
        order_id: Optional[str] = None,
        receipt_image: Optional[str] = None,
    ) -> LedgerEntry:
        # Amount > 0 is enforced at the request boundary; this only guards direct callers
        if amount is None or amount <= 0:
            raise ValidationError("Invalid ledger entry", fields={"amount": "amount must be > 0"})
        # Lock the linked order; cancellation deletes its entries under the same lock
        with self.store.transaction() as uow:
            if order_id is not None:
                order = uow.lock_order(order_id)
                if order is None:
                    raise NotFoundError("Order", order_id)
                if order.status is OrderStatus.CANCELLED:
                    raise ValidationError(
                        "Cannot add ledger entries to a cancelled order",
                        fields={"orderId": "order is cancelled"},
                    )
            now = self.clock()
            created = uow.insert_entry(
                NewLedgerEntry(
                    kind=EntryKind.parse(kind),
                    category=category.strip(),
                    amount=amount,
                    date=date or now,
                    order_id=order_id,
                    receipt_image=receipt_image,
                ),
                now=now,
            )
        return created

    def summary(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> CashSummary:
        totals = self.store.totals_by_kind(start=start, end=end)
        return CashSummary(
            inflows=totals.get(EntryKind.INFLOW, Decimal("0.00")),
            outflows=totals.get(EntryKind.OUTFLOW, Decimal("0.00")),
        )
