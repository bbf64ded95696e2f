from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..domain import Order, OrderLine, OrderStatus, from_cents


class OrderRow(db.Model):
    """
    Order header.

    `number` is the human-readable YYYY-NNNN identifier; the unique constraint
    is the last line of defence against two creations picking the same number.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("number", name="uq_orders_number"),
        db.Index("ix_orders_status_created", "status", "created_at"),
    )

    # Opaque identifier (uuid4 hex)
    id = db.Column(db.String(32), primary_key=True)
    number = db.Column(db.String(16), nullable=False)
    customer_name = db.Column(db.String(255), nullable=True)

    # Lifecycle status
    status = db.Column(db.String(16), nullable=False, default=OrderStatus.IN_PRODUCTION.value, index=True)

    # Set on shipment
    tracking_code = db.Column(db.String(64), nullable=True)
    shipping_cost_cents = db.Column(db.BigInteger, nullable=False, default=0)

    created_at = db.Column(db.DateTime, nullable=False, index=True)
    updated_at = db.Column(db.DateTime, nullable=False)

    lines = db.relationship(
        "OrderLineRow",
        back_populates="order",
        lazy="selectin",
        order_by="OrderLineRow.position",
    )

    def __repr__(self) -> str:
        return f"<OrderRow id={self.id} number={self.number!r} status={self.status}>"

    def to_domain(self) -> Order:
        return Order(
            id=self.id,
            number=self.number,
            customer_name=self.customer_name,
            status=OrderStatus(self.status),
            tracking_code=self.tracking_code,
            shipping_cost=from_cents(self.shipping_cost_cents),
            created_at=self.created_at,
            updated_at=self.updated_at,
            lines=tuple(line.to_domain() for line in self.lines),
        )


class OrderLineRow(db.Model):
    """Line items are written once at order creation and never edited."""
    __tablename__ = "order_lines"

    id = db.Column(db.String(32), primary_key=True)
    order_id = db.Column(db.String(32), db.ForeignKey("orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)

    quantity = db.Column(db.Numeric(12, 3), nullable=False)
    # Price snapshot at order time, not a live reference to the product
    unit_price_cents = db.Column(db.BigInteger, nullable=False)

    order = db.relationship("OrderRow", back_populates="lines")
    product = db.relationship("ProductRow", lazy="joined")

    def to_domain(self) -> OrderLine:
        return OrderLine(
            id=self.id,
            order_id=self.order_id,
            product_id=self.product_id,
            quantity=Decimal(self.quantity),
            unit_price=from_cents(self.unit_price_cents),
            product=self.product.to_domain() if self.product else None,
        )


class OrderSequenceRow(db.Model):
    """
    Per-year order number counter.

    Incremented with a single UPDATE under the order-creation transaction so
    concurrent creations serialize on this row instead of re-scanning orders.
    """
    __tablename__ = "order_sequences"

    year = db.Column(db.Integer, primary_key=True, autoincrement=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
