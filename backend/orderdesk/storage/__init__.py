from __future__ import annotations

from .base import LedgerStore, OrderStore, ProductStore, Store, UnitOfWork, UserStore
from .memory import MemoryStore
from .sql import SqlAlchemyStore

STORE_BACKENDS = ("sql", "memory")


def build_store(config, db) -> Store:
    """Construct the store named by config["STORE_BACKEND"]. Not opened yet."""
    backend = (config.get("STORE_BACKEND") or "sql").strip().lower()
    if backend == "sql":
        return SqlAlchemyStore(db, auto_create_schema=bool(config.get("AUTO_CREATE_SCHEMA", True)))
    if backend == "memory":
        return MemoryStore()
    raise ValueError(f"Unknown STORE_BACKEND '{backend}'. Must be one of: {', '.join(STORE_BACKENDS)}")


__all__ = [
    "LedgerStore", "OrderStore", "ProductStore", "Store", "UnitOfWork", "UserStore",
    "MemoryStore", "SqlAlchemyStore", "STORE_BACKENDS", "build_store",
]
