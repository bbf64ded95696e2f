# Overview: Store-independent domain records returned by every service.

"""
Domain records

Stores map their rows into these frozen dataclasses so that services and
routes never depend on which store implementation is active.

Money is Decimal with two places. Persisted SQL rows keep money in integer
cents; `to_cents` / `from_cents` are the only conversions.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from .time_utils import to_utc_z

CENT = Decimal("0.01")
QUANTITY_STEP = Decimal("0.001")

PRODUCTION_COST_CATEGORY = "Production Cost"
FREIGHT_CATEGORY = "Freight"
SALE_REVENUE_CATEGORY = "Sale Revenue"


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_cents(value: Decimal) -> int:
    return int(quantize_money(value) * 100)


def from_cents(cents: int | None) -> Decimal:
    return (Decimal(cents or 0) / 100).quantize(CENT)


def format_money(value: Decimal) -> str:
    return str(quantize_money(value))


def format_quantity(value: Decimal) -> str:
    return format(value.quantize(QUANTITY_STEP).normalize(), "f")


class OrderStatus(str, enum.Enum):
    IN_PRODUCTION = "InProduction"
    SHIPPED = "Shipped"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.COMPLETED, OrderStatus.CANCELLED)

    @classmethod
    def parse(cls, raw) -> "OrderStatus":
        """Accept canonical names, the legacy Portuguese names and codes 1-4."""
        if isinstance(raw, cls):
            return raw
        key = str(raw).strip()
        status = _STATUS_ALIASES.get(key.lower())
        if status is None:
            raise ValueError(f"Unknown order status '{raw}'")
        return status


_STATUS_ALIASES = {
    "inproduction": OrderStatus.IN_PRODUCTION,
    "emproducao": OrderStatus.IN_PRODUCTION,
    "1": OrderStatus.IN_PRODUCTION,
    "shipped": OrderStatus.SHIPPED,
    "enviado": OrderStatus.SHIPPED,
    "2": OrderStatus.SHIPPED,
    "completed": OrderStatus.COMPLETED,
    "concluido": OrderStatus.COMPLETED,
    "3": OrderStatus.COMPLETED,
    "cancelled": OrderStatus.CANCELLED,
    "cancelado": OrderStatus.CANCELLED,
    "4": OrderStatus.CANCELLED,
}


class EntryKind(str, enum.Enum):
    INFLOW = "Inflow"
    OUTFLOW = "Outflow"

    @classmethod
    def parse(cls, raw) -> "EntryKind":
        if isinstance(raw, cls):
            return raw
        key = str(raw).strip().lower()
        if key in ("inflow", "entrada", "1"):
            return cls.INFLOW
        if key in ("outflow", "saida", "2"):
            return cls.OUTFLOW
        raise ValueError(f"Unknown ledger entry kind '{raw}'")


class Role(str, enum.Enum):
    ADMIN = "Admin"
    REGULAR = "RegularUser"

    @classmethod
    def parse(cls, raw) -> "Role":
        if isinstance(raw, cls):
            return raw
        key = str(raw).strip().lower()
        if key in ("admin", "administrador"):
            return cls.ADMIN
        if key in ("regularuser", "regular", "usuario", "user"):
            return cls.REGULAR
        raise ValueError(f"Unknown role '{raw}'")


@dataclass(frozen=True)
class Product:
    id: int
    name: str
    sale_price: Decimal
    unit_cost: Decimal
    active: bool = True

    @property
    def margin(self) -> Decimal:
        return self.sale_price - self.unit_cost

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "salePrice": format_money(self.sale_price),
            "unitCost": format_money(self.unit_cost),
            "margin": format_money(self.margin),
            "active": self.active,
        }


@dataclass(frozen=True)
class ProductInput:
    """Full replacement of a product's editable fields."""
    name: str
    sale_price: Decimal
    unit_cost: Decimal
    active: bool = True


@dataclass(frozen=True)
class OrderLine:
    id: str
    order_id: str
    product_id: int
    quantity: Decimal
    unit_price: Decimal
    product: Optional[Product] = None

    @property
    def total(self) -> Decimal:
        return self.quantity * self.unit_price

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "orderId": self.order_id,
            "productId": self.product_id,
            "quantity": format_quantity(self.quantity),
            "unitPrice": format_money(self.unit_price),
            "lineTotal": format_money(self.total),
            "product": self.product.to_dict() if self.product else None,
        }


@dataclass(frozen=True)
class OrderLineInput:
    product_id: int
    quantity: Decimal
    unit_price: Optional[Decimal] = None


@dataclass(frozen=True)
class Order:
    id: str
    number: str
    customer_name: Optional[str]
    status: OrderStatus
    tracking_code: Optional[str]
    shipping_cost: Decimal
    created_at: datetime
    updated_at: datetime
    lines: tuple[OrderLine, ...] = field(default_factory=tuple)

    @property
    def total(self) -> Decimal:
        """Sum of line totals, rounded to cents. Used for revenue and display."""
        return quantize_money(sum((line.total for line in self.lines), Decimal("0")))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "number": self.number,
            "customerName": self.customer_name,
            "status": self.status.value,
            "trackingCode": self.tracking_code,
            "shippingCost": format_money(self.shipping_cost),
            "total": format_money(self.total),
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
            "lines": [line.to_dict() for line in self.lines],
        }


@dataclass(frozen=True)
class LedgerEntry:
    """
    Single dated cash movement. `amount` is always positive; `kind` carries the sign.

    `date` is business time (may be backdated); `created_at` is system time.
    """
    id: str
    kind: EntryKind
    category: str
    amount: Decimal
    date: datetime
    order_id: Optional[str] = None
    receipt_image: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def signed_amount(self) -> Decimal:
        return self.amount if self.kind is EntryKind.INFLOW else -self.amount

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "category": self.category,
            "amount": format_money(self.amount),
            "date": to_utc_z(self.date),
            "orderId": self.order_id,
            "receiptImage": self.receipt_image,
            "createdAt": to_utc_z(self.created_at),
        }


@dataclass(frozen=True)
class NewLedgerEntry:
    kind: EntryKind
    category: str
    amount: Decimal
    date: datetime
    order_id: Optional[str] = None
    receipt_image: Optional[str] = None


@dataclass(frozen=True)
class CashSummary:
    inflows: Decimal
    outflows: Decimal

    @property
    def balance(self) -> Decimal:
        return self.inflows - self.outflows

    def to_dict(self) -> dict:
        return {
            "inflows": format_money(self.inflows),
            "outflows": format_money(self.outflows),
            "balance": format_money(self.balance),
        }


@dataclass(frozen=True)
class User:
    id: int
    name: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "role": self.role.value}
