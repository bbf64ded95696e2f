# Overview: Retry wrapper for store operations that can lose a race.

from __future__ import annotations

import logging
import time

from ..errors import ConflictError, TransientStoreError

log = logging.getLogger(__name__)


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1, label: str = "operation"):
    """
    Execute a store operation with retry on concurrency-related failures.

    Retries on ConflictError (unique constraint race, e.g. two creations
    picking the same order number) and TransientStoreError (lock timeouts,
    deadlocks, optimistic version conflicts). The store has already rolled
    the failed attempt back, so `func` starts from a clean transaction.
    """
    attempts = max(1, attempts)
    for attempt in range(attempts):
        try:
            return func()
        except (ConflictError, TransientStoreError) as exc:
            if attempt >= attempts - 1:
                log.error("%s failed after %d attempts: %s", label, attempts, exc)
                raise
            log.warning("%s lost a race (attempt %d/%d): %s", label, attempt + 1, attempts, exc)
            if backoff_base:
                time.sleep(backoff_base * (2 ** attempt))
