"""
Unit conversion between a product's alternate units and its base unit.

quantity_in_base = quantity_in_unit * factor
price_in_unit    = price_per_base * factor
"""
from __future__ import annotations

from decimal import Decimal

from ..utils.helpers import ZERO
from .errors import InvalidConversionFactor, UnknownUnitForProduct
from .models import Product

ONE = Decimal("1")


class UnitConversionResolver:
    """Stateless; one shared instance is safe to use from any thread."""

    def resolve(self, product: Product, uom_id: int) -> Decimal:
        """Factor converting a quantity in `uom_id` to the product's base unit."""
        if uom_id == product.base_uom_id:
            return ONE
        link = product.link_for(uom_id)
        if link is None:
            raise UnknownUnitForProduct(product.product_id, uom_id)
        if link.factor_to_base <= ZERO:
            raise InvalidConversionFactor(product.product_id, uom_id, link.factor_to_base)
        return link.factor_to_base

    def is_linked(self, product: Product, uom_id: int) -> bool:
        return uom_id == product.base_uom_id or product.link_for(uom_id) is not None

    def to_base(self, product: Product, quantity: Decimal, uom_id: int) -> Decimal:
        return quantity * self.resolve(product, uom_id)

    def from_base(self, product: Product, quantity_in_base: Decimal, uom_id: int) -> Decimal:
        return quantity_in_base / self.resolve(product, uom_id)

    def convert_price(self, product: Product, price: Decimal, from_uom_id: int, to_uom_id: int) -> Decimal:
        """
        Re-express a per-unit price in another unit of the same product.
        A box of 12 costs 12x a piece, so price scales with the factor.
        """
        if from_uom_id == to_uom_id:
            return price
        per_base = price / self.resolve(product, from_uom_id)
        return per_base * self.resolve(product, to_uom_id)


default_resolver = UnitConversionResolver()
