# Overview: Product catalog; read-mostly reference data for ordering.

from __future__ import annotations

from decimal import Decimal

from ..domain import Product, ProductInput
from ..errors import NotFoundError, ValidationError
from ..storage import ProductStore


def check_product_input(data: ProductInput) -> None:
    fields = {}
    if not (data.name or "").strip():
        fields["name"] = "name cannot be blank"
    if data.sale_price is None or data.sale_price < Decimal("0"):
        fields["salePrice"] = "salePrice must be >= 0"
    if data.unit_cost is None or data.unit_cost < Decimal("0"):
        fields["unitCost"] = "unitCost must be >= 0"
    if fields:
        raise ValidationError("Invalid product", fields=fields)


class ProductCatalog:
    """
    Products are created and edited here, never deleted; deactivation hides
    them from `list_active`. Duplicate names are allowed.
    """

    def __init__(self, store: ProductStore):
        self.store = store

    def list_active(self) -> list[Product]:
        return self.store.list_products(active_only=True)

    def list_all(self) -> list[Product]:
        return self.store.list_products(active_only=False)

    def get(self, product_id: int) -> Product:
        product = self.store.get_product(product_id)
        if product is None:
            raise NotFoundError("Product", product_id)
        return product

    def create(self, data: ProductInput) -> Product:
        check_product_input(data)
        return self.store.create_product(data)

    def update(self, product_id: int, data: ProductInput) -> Product:
        """Full replace of name, prices and active flag."""
        check_product_input(data)
        product = self.store.update_product(product_id, data)
        if product is None:
            raise NotFoundError("Product", product_id)
        return product
