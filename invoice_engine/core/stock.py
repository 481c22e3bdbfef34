"""
Stock sufficiency checks.

Stock is held in the product's base unit; requests arrive in any unit the
product carries. Nothing here changes stock: the posting collaborator applies
the movement once, after the check has passed.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Mapping

from ..utils.helpers import ZERO
from ..utils.validators import try_parse_decimal
from .errors import InsufficientStock, InvalidLineInput
from .models import Invoice, InvoiceKind, Product, StockMovement
from .units import UnitConversionResolver, default_resolver


class StockValidator:
    def __init__(self, units: UnitConversionResolver = default_resolver):
        self.units = units

    def available(self, product: Product, uom_id: int) -> Decimal:
        """On-hand stock expressed in `uom_id` (unrounded)."""
        return product.stock_qty / self.units.resolve(product, uom_id)

    def check(self, product: Product, requested_quantity, uom_id: int) -> Decimal:
        """
        Returns the requested quantity in base units when it can be served.
        Raises InsufficientStock with the shortfall in the requested unit otherwise.
        """
        qty = self._quantity(requested_quantity)
        factor = self.units.resolve(product, uom_id)
        required_in_base = qty * factor
        if required_in_base > product.stock_qty:
            raise InsufficientStock(
                product.product_id,
                uom_id,
                requested=qty,
                available=product.stock_qty / factor,
                shortfall=(required_in_base - product.stock_qty) / factor,
            )
        return required_in_base

    def check_merge(self, product: Product, existing_quantity, added_quantity, uom_id: int) -> Decimal:
        """Re-validate a line whose quantity grows because a duplicate was merged into it."""
        total = self._quantity(existing_quantity) + self._quantity(added_quantity)
        return self.check(product, total, uom_id)

    def is_available(self, product: Product, requested_quantity, uom_id: int) -> bool:
        qty = self._quantity(requested_quantity)
        return qty * self.units.resolve(product, uom_id) <= product.stock_qty

    @staticmethod
    def _quantity(value) -> Decimal:
        ok, qty = try_parse_decimal(value)
        if not ok:
            raise InvalidLineInput("quantity", f"could not parse {value!r} as a number")
        if qty <= ZERO:
            raise InvalidLineInput("quantity", "must be greater than zero")
        return qty


def invoice_stock_movements(
    invoice: Invoice,
    products: Mapping[int, Product],
    units: UnitConversionResolver = default_resolver,
) -> list[StockMovement]:
    """Base-unit deltas a posted invoice applies: sales take stock out, purchases bring it in."""
    sign = Decimal(-1) if invoice.kind == InvoiceKind.SALE else Decimal(1)
    out: list[StockMovement] = []
    for line in invoice.lines:
        product = products[line.product_id]
        out.append(StockMovement(
            product_id=line.product_id,
            uom_id=line.uom_id,
            quantity=line.quantity,
            qty_in_base=sign * units.to_base(product, line.quantity, line.uom_id),
            item_id=line.item_id,
        ))
    return out
