from __future__ import annotations

from dataclasses import dataclass

from ..storage import Store
from .cash_service import CashLedger
from .catalog_service import ProductCatalog
from .lifecycle_service import OrderLifecycle, TransitionRequest
from .order_service import OrderService
from .user_service import UserDirectory


@dataclass
class Services:
    """Every component, wired to the one store the app opened."""
    store: Store
    catalog: ProductCatalog
    orders: OrderService
    cash: CashLedger
    lifecycle: OrderLifecycle
    users: UserDirectory


def build_services(store: Store, *, retry_attempts: int = 3, retry_backoff: float = 0.05) -> Services:
    return Services(
        store=store,
        catalog=ProductCatalog(store),
        orders=OrderService(store, retry_attempts=retry_attempts, retry_backoff=retry_backoff),
        cash=CashLedger(store),
        lifecycle=OrderLifecycle(store, retry_attempts=retry_attempts, retry_backoff=retry_backoff),
        users=UserDirectory(store),
    )


__all__ = [
    "Services", "build_services",
    "CashLedger", "ProductCatalog", "OrderLifecycle", "TransitionRequest", "OrderService", "UserDirectory",
]
