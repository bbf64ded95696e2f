from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from .domain import (
    EntryKind,
    OrderLineInput,
    OrderStatus,
    ProductInput,
    Role,
)
from .errors import ValidationError
from .time_utils import parse_iso_datetime, parse_range_bound

# Maximum money value: 9,999,999.99
# This prevents database overflow issues and nonsensical prices
MAX_MONEY = Decimal("9999999.99")
MAX_QUANTITY = Decimal("999999.999")
# Integer ids are stored as 32-bit signed INTEGER columns
MAX_ID = 2**31 - 1
MAX_NAME_LENGTH = 255
MAX_CATEGORY_LENGTH = 120
MAX_TRACKING_CODE_LENGTH = 64


class _FieldErrors:
    """Collects per-field problems so one response can report all of them."""

    def __init__(self):
        self.fields: dict[str, str] = {}

    def add(self, field: str, message: str) -> None:
        self.fields.setdefault(field, message)

    def check(self, fn, field: str, *args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except ValidationError as exc:
            self.add(field, exc.message)
            return None

    def raise_if_any(self, message: str = "Invalid data") -> None:
        if self.fields:
            raise ValidationError(message, fields=self.fields)


def _require_dict(payload: Any) -> dict:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


def _to_decimal(value: Any, field: str) -> Decimal:
    # Booleans are ints in Python; never accept them as numbers
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, float):
        value = repr(value)
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not number.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    return number


def coerce_money(value: Any, field: str, *, positive: bool = False) -> Decimal:
    amount = _to_decimal(value, field)
    if amount.normalize().as_tuple().exponent < -2:
        raise ValidationError(f"{field} must have at most 2 decimal places")
    if positive and amount <= 0:
        raise ValidationError(f"{field} must be > 0")
    if amount < 0:
        raise ValidationError(f"{field} must be >= 0")
    if amount > MAX_MONEY:
        raise ValidationError(f"{field} cannot exceed {MAX_MONEY}")
    return amount


def coerce_quantity(value: Any, field: str) -> Decimal:
    quantity = _to_decimal(value, field)
    if quantity.normalize().as_tuple().exponent < -3:
        raise ValidationError(f"{field} must have at most 3 decimal places")
    if quantity < 0:
        raise ValidationError(f"{field} must be >= 0")
    if quantity > MAX_QUANTITY:
        raise ValidationError(f"{field} cannot exceed {MAX_QUANTITY}")
    return quantity


def coerce_int(value: Any, field: str) -> int:
    """Strict integer: rejects floats, decimals, scientific notation and booleans."""
    if isinstance(value, int) and not isinstance(value, bool):
        number = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped or "e" in stripped.lower() or "." in stripped:
            raise ValidationError(f"{field} must be an integer")
        try:
            number = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    else:
        raise ValidationError(f"{field} must be an integer")
    if abs(number) > MAX_ID:
        raise ValidationError(f"{field} is out of range")
    return number


def check_id(value: int, field: str = "id") -> int:
    """Path ids: positive and within the stored integer range."""
    try:
        number = coerce_int(value, field)
    except ValidationError as exc:
        raise ValidationError(exc.message, fields={field: exc.message})
    if number < 1:
        raise ValidationError(f"{field} must be >= 1", fields={field: "must be >= 1"})
    return number


def coerce_text(value: Any, field: str, *, max_length: int, required: bool) -> Optional[str]:
    if value is None:
        if required:
            raise ValidationError(f"{field} is required")
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    text = value.strip()
    if not text:
        if required:
            raise ValidationError(f"{field} cannot be blank")
        return None
    if len(text) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return text


def coerce_bool(value: Any, field: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, str)) and str(value).strip().lower() in {"1", "true", "0", "false"}:
        return str(value).strip().lower() in {"1", "true"}
    raise ValidationError(f"{field} must be a boolean")


def coerce_datetime(value: Any, field: str) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be an ISO-8601 datetime")
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 datetime")


def parse_status(value: Any, field: str = "status") -> OrderStatus:
    try:
        return OrderStatus.parse(value)
    except ValueError:
        allowed = ", ".join(s.value for s in OrderStatus)
        raise ValidationError(f"Invalid status. Must be one of: {allowed}", fields={field: "unknown status"})


def parse_date_range(start_raw: Optional[str], end_raw: Optional[str]) -> tuple[Optional[datetime], Optional[datetime]]:
    errors = _FieldErrors()
    start = end = None
    try:
        start = parse_range_bound(start_raw)
    except ValueError:
        errors.add("start", "start must be an ISO-8601 date or datetime")
    try:
        end = parse_range_bound(end_raw, end=True)
    except ValueError:
        errors.add("end", "end must be an ISO-8601 date or datetime")
    errors.raise_if_any("Invalid date range")
    if start is not None and end is not None and start > end:
        raise ValidationError("Invalid date range", fields={"start": "start must not be after end"})
    return start, end


def validate_product_payload(payload: Any) -> ProductInput:
    """POST and PUT both carry the full product (PUT is a full replace)."""
    payload = _require_dict(payload)
    errors = _FieldErrors()

    name = errors.check(coerce_text, "name", payload.get("name"), "name", max_length=MAX_NAME_LENGTH, required=True)
    sale_price = None
    if "salePrice" not in payload:
        errors.add("salePrice", "salePrice is required")
    else:
        sale_price = errors.check(coerce_money, "salePrice", payload["salePrice"], "salePrice")
    unit_cost = None
    if "unitCost" not in payload:
        errors.add("unitCost", "unitCost is required")
    else:
        unit_cost = errors.check(coerce_money, "unitCost", payload["unitCost"], "unitCost")
    active = True
    if payload.get("active") is not None:
        active = errors.check(coerce_bool, "active", payload["active"], "active")

    errors.raise_if_any()
    return ProductInput(name=name, sale_price=sale_price, unit_cost=unit_cost, active=active)


def validate_order_payload(payload: Any) -> tuple[Optional[str], list[OrderLineInput]]:
    payload = _require_dict(payload)
    errors = _FieldErrors()

    customer_name = errors.check(
        coerce_text, "customerName", payload.get("customerName"), "customerName",
        max_length=MAX_NAME_LENGTH, required=False,
    )

    raw_lines = payload.get("lines")
    lines: list[OrderLineInput] = []
    if not isinstance(raw_lines, list) or not raw_lines:
        errors.add("lines", "lines must be a non-empty list")
    else:
        for i, raw in enumerate(raw_lines):
            prefix = f"lines[{i}]"
            if not isinstance(raw, dict):
                errors.add(prefix, "line must be an object")
                continue
            product_id = errors.check(coerce_int, f"{prefix}.productId", raw.get("productId"), "productId")
            if product_id is not None and product_id < 1:
                errors.add(f"{prefix}.productId", "productId must be >= 1")
            quantity = errors.check(coerce_quantity, f"{prefix}.quantity", raw.get("quantity"), "quantity")
            unit_price = None
            if raw.get("unitPrice") is not None:
                unit_price = errors.check(coerce_money, f"{prefix}.unitPrice", raw["unitPrice"], "unitPrice")
            if product_id is not None and quantity is not None:
                lines.append(OrderLineInput(product_id=product_id, quantity=quantity, unit_price=unit_price))

    errors.raise_if_any()
    if not any(line.quantity > 0 for line in lines):
        raise ValidationError(
            "Order must have at least one line with quantity greater than zero",
            fields={"lines": "no line with quantity > 0"},
        )
    return customer_name, lines


def validate_transition_payload(payload: Any) -> tuple[Optional[str], Optional[Decimal]]:
    """Shape checks only; whether a field is required depends on the target status."""
    payload = _require_dict(payload)
    errors = _FieldErrors()
    tracking_code = errors.check(
        coerce_text, "trackingCode", payload.get("trackingCode"), "trackingCode",
        max_length=MAX_TRACKING_CODE_LENGTH, required=False,
    )
    shipping_cost = None
    if payload.get("shippingCost") is not None:
        shipping_cost = errors.check(coerce_money, "shippingCost", payload["shippingCost"], "shippingCost")
    errors.raise_if_any()
    return tracking_code, shipping_cost


def validate_ledger_entry_payload(payload: Any) -> dict:
    """Returns keyword arguments for CashLedger.create_entry."""
    payload = _require_dict(payload)
    errors = _FieldErrors()

    kind = None
    try:
        kind = EntryKind.parse(payload.get("kind"))
    except ValueError:
        errors.add("kind", "kind must be Inflow or Outflow")
    category = errors.check(
        coerce_text, "category", payload.get("category"), "category",
        max_length=MAX_CATEGORY_LENGTH, required=True,
    )
    amount = None
    if payload.get("amount") is None:
        errors.add("amount", "amount is required")
    else:
        amount = errors.check(coerce_money, "amount", payload["amount"], "amount", positive=True)
    date = errors.check(coerce_datetime, "date", payload.get("date"), "date")
    order_id = errors.check(coerce_text, "orderId", payload.get("orderId"), "orderId", max_length=32, required=False)
    receipt = payload.get("receiptImage")
    if receipt is not None and not isinstance(receipt, str):
        errors.add("receiptImage", "receiptImage must be a string")

    errors.raise_if_any()
    return {
        "kind": kind,
        "category": category,
        "amount": amount,
        "date": date,
        "order_id": order_id,
        "receipt_image": receipt or None,
    }


def validate_user_payload(payload: Any) -> tuple[str, Role]:
    payload = _require_dict(payload)
    errors = _FieldErrors()
    name = errors.check(coerce_text, "name", payload.get("name"), "name", max_length=120, required=True)
    role = Role.REGULAR
    if payload.get("role") is not None:
        try:
            role = Role.parse(payload["role"])
        except ValueError:
            errors.add("role", "role must be Admin or RegularUser")
    errors.raise_if_any()
    return name, role
