# Overview: Order lifecycle state machine and its automatic ledger side effects.

"""
Order Lifecycle Service

================================================================================
PURPOSE: Keep order status and the cash ledger consistent
================================================================================

STATE MACHINE:
    InProduction -> Shipped -> Completed
    InProduction -> Cancelled
    Shipped      -> Cancelled

    InProduction: initial status, production cost already expensed
    Shipped:      tracking code recorded, freight expensed
    Completed:    TERMINAL, sale revenue recorded
    Cancelled:    TERMINAL, every ledger entry linked to the order removed

SIDE EFFECTS:
    InProduction -> Shipped    set trackingCode / shippingCost;
                               Outflow "Freight" when shippingCost > 0
    Shipped -> Completed       Inflow "Sale Revenue" = order total
    * -> Cancelled             delete ledger entries whose orderId is this order

RULES:
1. Only the pairs above are accepted; everything else is InvalidTransition
2. Terminal orders never change status again (same-status requests included)
3. Required fields are validated before the transaction starts
4. Status change and ledger side effects commit together or not at all
5. The order row is locked for the whole transition, so two concurrent
   requests cannot both succeed from the same prior status
================================================================================
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional

from ..domain import (
    FREIGHT_CATEGORY,
    SALE_REVENUE_CATEGORY,
    EntryKind,
    NewLedgerEntry,
    Order,
    OrderStatus,
    User,
)
from ..errors import InvalidTransition, NotFoundError, PermissionDenied, ValidationError
from ..storage import Store, UnitOfWork
from ..time_utils import utcnow
from .concurrency import run_with_retry

log = logging.getLogger(__name__)

SHIP = "ship"
COMPLETE = "complete"
CANCEL = "cancel"

TRANSITIONS: dict[tuple[OrderStatus, OrderStatus], str] = {
    (OrderStatus.IN_PRODUCTION, OrderStatus.SHIPPED): SHIP,
    (OrderStatus.SHIPPED, OrderStatus.COMPLETED): COMPLETE,
    (OrderStatus.IN_PRODUCTION, OrderStatus.CANCELLED): CANCEL,
    (OrderStatus.SHIPPED, OrderStatus.CANCELLED): CANCEL,
}


@dataclass(frozen=True)
class TransitionRequest:
    tracking_code: Optional[str] = None
    shipping_cost: Optional[Decimal] = None


def can_transition(from_status: OrderStatus, to_status: OrderStatus) -> bool:
    return (from_status, to_status) in TRANSITIONS


def validate_transition(current: OrderStatus, target: OrderStatus) -> str:
    """Return the side-effect name for (current, target) or raise InvalidTransition."""
    if current is OrderStatus.COMPLETED:
        raise InvalidTransition(current.value, target.value, "Cannot change the status of a completed order")
    if current is OrderStatus.CANCELLED:
        raise InvalidTransition(current.value, target.value, "Cannot change the status of a cancelled order")
    effect = TRANSITIONS.get((current, target))
    if effect is None:
        raise InvalidTransition(current.value, target.value)
    return effect


def _check_request(target: OrderStatus, request: TransitionRequest) -> None:
    if target is not OrderStatus.SHIPPED:
        return
    fields = {}
    if not (request.tracking_code or "").strip():
        fields["trackingCode"] = "trackingCode is required to ship an order"
    if request.shipping_cost is not None and request.shipping_cost < 0:
        fields["shippingCost"] = "shippingCost must be >= 0"
    if fields:
        raise ValidationError("Missing or invalid shipment data", fields=fields)


class OrderLifecycle:
    def __init__(
        self,
        store: Store,
        *,
        retry_attempts: int = 3,
        retry_backoff: float = 0.05,
        clock: Callable[[], datetime] = utcnow,
        admin_only_targets: frozenset[OrderStatus] = frozenset({OrderStatus.CANCELLED}),
    ):
        self.store = store
        self.retry_attempts = retry_attempts
        self.retry_backoff = retry_backoff
        self.clock = clock
        self.admin_only_targets = admin_only_targets

    def transition(
        self,
        order_id: str,
        target: OrderStatus | str,
        request: Optional[TransitionRequest] = None,
        *,
        actor: Optional[User] = None,
    ) -> Order:
        """
        Move an order to `target`, applying the ledger side effects atomically.

        Raises:
            NotFoundError: order does not exist
            InvalidTransition: (current, target) is not an accepted transition
            ValidationError: shipment data missing or invalid
            PermissionDenied: actor's role may not request `target`
        """
        try:
            target = OrderStatus.parse(target)
        except ValueError:
            raise ValidationError(f"Unknown order status '{target}'", fields={"status": "unknown status"})
        request = request or TransitionRequest()

        # Everything that can be rejected is rejected before the transaction
        current = self.store.get_order(order_id)
        if current is None:
            raise NotFoundError("Order", order_id)
        validate_transition(current.status, target)
        _check_request(target, request)
        if actor is not None and target in self.admin_only_targets and not actor.is_admin:
            raise PermissionDenied(f"Only an Admin can move an order to {target.value}")

        run_with_retry(
            lambda: self._apply(order_id, target, request),
            attempts=self.retry_attempts,
            backoff_base=self.retry_backoff,
            label="order_transition",
        )
        return self.store.get_order(order_id)

    def _apply(self, order_id: str, target: OrderStatus, request: TransitionRequest) -> None:
        with self.store.transaction() as uow:
            order = uow.lock_order(order_id)
            if order is None:
                raise NotFoundError("Order", order_id)
            # Re-check under the lock; a concurrent transition may have won
            effect = validate_transition(order.status, target)
            now = self.clock()

            if effect == SHIP:
                self._ship(uow, order, request, now)
            elif effect == COMPLETE:
                self._complete(uow, order, now)
            else:
                self._cancel(uow, order, now)

        log.info("Order %s moved %s -> %s", order.number, order.status.value, target.value)

    def _ship(self, uow: UnitOfWork, order: Order, request: TransitionRequest, now: datetime) -> None:
        shipping_cost = request.shipping_cost if request.shipping_cost is not None else Decimal("0")
        uow.update_order(
            order.id,
            status=OrderStatus.SHIPPED,
            now=now,
            tracking_code=request.tracking_code.strip(),
            shipping_cost=shipping_cost,
        )
        if shipping_cost > 0:
            uow.insert_entry(
                NewLedgerEntry(
                    kind=EntryKind.OUTFLOW,
                    category=FREIGHT_CATEGORY,
                    amount=shipping_cost,
                    date=now,
                    order_id=order.id,
                ),
                now=now,
            )

    def _complete(self, uow: UnitOfWork, order: Order, now: datetime) -> None:
        uow.update_order(order.id, status=OrderStatus.COMPLETED, now=now)
        revenue = order.total
        if revenue > 0:
            uow.insert_entry(
                NewLedgerEntry(
                    kind=EntryKind.INFLOW,
                    category=SALE_REVENUE_CATEGORY,
                    amount=revenue,
                    date=now,
                    order_id=order.id,
                ),
                now=now,
            )

    def _cancel(self, uow: UnitOfWork, order: Order, now: datetime) -> None:
        uow.update_order(order.id, status=OrderStatus.CANCELLED, now=now)
        removed = uow.delete_entries_for_order(order.id)
        log.info("Order %s cancelled; removed %d ledger entr%s", order.number, removed, "y" if removed == 1 else "ies")
