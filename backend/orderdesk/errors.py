# Overview: Domain error taxonomy shared by services, stores and routes.

"""
Error taxonomy

- ValidationError      -> 400, malformed or out-of-range input (field-level detail)
- NotFoundError        -> 404, missing product / order / user
- InvalidTransition    -> 400, order lifecycle rule violation
- PermissionDenied     -> 403, acting user lacks the role for an action
- ConflictError        -> retried; 503 once retries are exhausted (409 for duplicate names)
- TransientStoreError  -> retried; 503 once retries are exhausted

Validation always happens before a transaction starts. Once a transaction
is open only store-level failures can occur, and they roll back everything.
"""

from __future__ import annotations


class OrderDeskError(Exception):
    """Base class for errors that map to a defined HTTP response."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(OrderDeskError, ValueError):
    """400-level input problem."""

    def __init__(self, message: str, fields: dict[str, str] | None = None):
        self.fields = dict(fields or {})
        super().__init__(message, {"fields": self.fields} if self.fields else None)


class NotFoundError(OrderDeskError, LookupError):
    def __init__(self, entity: str, key):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} {key} not found")


class InvalidTransition(OrderDeskError):
    """
    Raised when a status change violates the order lifecycle.

    This is a domain error, not a technical error.
    """

    def __init__(self, current: str, target: str, message: str | None = None):
        self.current = current
        self.target = target
        super().__init__(
            message or f"Cannot move order from {current} to {target}",
            {"current": current, "target": target},
        )


class PermissionDenied(OrderDeskError):
    pass


class ConflictError(OrderDeskError):
    """Unique-constraint collision (order number race, duplicate user name)."""


class TransientStoreError(OrderDeskError):
    """Lock timeout, deadlock or optimistic version conflict in the store."""
