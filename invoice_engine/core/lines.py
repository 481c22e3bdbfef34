"""
Single-line arithmetic shared by sales, purchases and POS.

    gross           = quantity * unit_price
    discount_amount = gross * pct / 100      (percentage discount)
                    = value                  (fixed discount)
    net             = max(0, gross - discount_amount)

Inputs are validated up front. Gross and discount are rounded to money once,
after the full-precision computation; net is taken from the rounded pair so
that gross - discount == net holds on every line.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Optional

from ..utils.helpers import HUNDRED, ZERO, money
from ..utils.validators import try_parse_decimal
from .errors import InvalidLineInput
from .models import DiscountSpec, InvoiceLine, LineTotals


def _number(field: str, value) -> Decimal:
    ok, parsed = try_parse_decimal(value)
    if not ok:
        raise InvalidLineInput(field, f"could not parse {value!r} as a number")
    return parsed


class LineCalculator:
    def compute(self, quantity, unit_price, discount: Optional[DiscountSpec] = None) -> LineTotals:
        qty, price, spec = self._validated(quantity, unit_price, discount)
        gross = qty * price
        if spec.is_percentage:
            discount_amount = gross * spec.value / HUNDRED
        else:
            discount_amount = spec.value
            if discount_amount > gross:
                raise InvalidLineInput("discount", "fixed discount exceeds the line total")
        gross = money(gross)
        discount_amount = money(discount_amount)
        # net is derived from the rounded amounts so the printed line balances
        net = gross - discount_amount
        if net < ZERO:
            net = ZERO
        return LineTotals(gross=gross, discount_amount=discount_amount, net=net)

    def build_line(
        self,
        product_id: int,
        uom_id: int,
        quantity,
        unit_price,
        discount: Optional[DiscountSpec] = None,
        *,
        item_id: Optional[int] = None,
    ) -> InvoiceLine:
        qty, price, spec = self._validated(quantity, unit_price, discount)
        return InvoiceLine(
            product_id=product_id,
            uom_id=uom_id,
            quantity=qty,
            unit_price=price,
            discount=spec,
            totals=self.compute(qty, price, spec),
            item_id=item_id,
        )

    @staticmethod
    def _validated(quantity, unit_price, discount: Optional[DiscountSpec]):
        qty = _number("quantity", quantity)
        if qty <= ZERO:
            raise InvalidLineInput("quantity", "must be greater than zero")

        price = _number("unit_price", unit_price)
        if price < ZERO:
            raise InvalidLineInput("unit_price", "cannot be negative")

        spec = discount or DiscountSpec.none()
        value = _number("discount", spec.value)
        if value < ZERO:
            raise InvalidLineInput("discount", "cannot be negative")
        if spec.is_percentage and value > HUNDRED:
            raise InvalidLineInput("discount", "percentage must be between 0 and 100")
        if value != spec.value:
            spec = DiscountSpec(value, spec.is_percentage)
        return qty, price, spec
