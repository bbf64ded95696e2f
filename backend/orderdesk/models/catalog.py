from __future__ import annotations

from ..extensions import db
from ..domain import Product, Role, User, from_cents


class ProductRow(db.Model):
    """
    Product reference data.

    Products are never deleted, only deactivated. Names are not unique.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("sale_price_cents >= 0", name="ck_products_sale_price_nonneg"),
        db.CheckConstraint("unit_cost_cents >= 0", name="ck_products_unit_cost_nonneg"),
        db.Index("ix_products_active", "active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)

    # Authoritative storage in cents
    sale_price_cents = db.Column(db.BigInteger, nullable=False)
    unit_cost_cents = db.Column(db.BigInteger, nullable=False)

    active = db.Column(db.Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<ProductRow id={self.id} name={self.name!r} active={self.active}>"

    def to_domain(self) -> Product:
        return Product(
            id=self.id,
            name=self.name,
            sale_price=from_cents(self.sale_price_cents),
            unit_cost=from_cents(self.unit_cost_cents),
            active=bool(self.active),
        )


class UserRow(db.Model):
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True)
    role = db.Column(db.String(16), nullable=False, default=Role.REGULAR.value)

    def __repr__(self) -> str:
        return f"<UserRow id={self.id} name={self.name!r} role={self.role}>"

    def to_domain(self) -> User:
        return User(id=self.id, name=self.name, role=Role(self.role))
