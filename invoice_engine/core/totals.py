"""
Invoice-level roll-up of line totals.

    subtotal         = sum(line.gross)
    total_discount   = sum(line.discount_amount)
    tax_base         = max(0, subtotal - total_discount)   NET_OF_DISCOUNT
                     = subtotal                            GROSS
    tax_amount       = round(tax_base * rate / 100, 2)
    net_total        = tax_base + tax_amount
    remaining_amount = net_total - paid_amount             (signed, never clamped)

Lines are summed from their stored (already rounded) amounts so the invoice
always agrees with the lines printed on it. No state is kept between calls.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Protocol

from ..utils.helpers import HUNDRED, ZERO, money
from ..utils.validators import try_parse_decimal
from .errors import InvalidInvoiceInput
from .models import InvoiceTotals, TaxBasePolicy


class _LineAmounts(Protocol):
    gross: Decimal
    discount_amount: Decimal


def _amount(field: str, value, *, allow_negative: bool = False) -> Decimal:
    ok, parsed = try_parse_decimal(value)
    if not ok:
        raise InvalidInvoiceInput(field, f"could not parse {value!r} as a number")
    if not allow_negative and parsed < ZERO:
        raise InvalidInvoiceInput(field, "cannot be negative")
    return parsed


def tax_on(base: Decimal, tax_rate_percent) -> Decimal:
    rate = _amount("tax_rate_percent", tax_rate_percent)
    return money(base * rate / HUNDRED)


class InvoiceAggregator:
    def aggregate(
        self,
        lines: Iterable[_LineAmounts],
        tax_rate_percent,
        tax_base_policy: TaxBasePolicy = TaxBasePolicy.NET_OF_DISCOUNT,
        paid_amount=ZERO,
    ) -> InvoiceTotals:
        policy = TaxBasePolicy(tax_base_policy)
        paid = _amount("paid_amount", paid_amount)

        subtotal = ZERO
        total_discount = ZERO
        for line in lines:
            subtotal += line.gross
            total_discount += line.discount_amount

        if policy == TaxBasePolicy.NET_OF_DISCOUNT:
            tax_base = subtotal - total_discount
            if tax_base < ZERO:
                tax_base = ZERO
        else:
            tax_base = subtotal

        tax_amount = tax_on(tax_base, tax_rate_percent)
        net_total = tax_base + tax_amount

        return InvoiceTotals(
            subtotal=money(subtotal),
            total_discount=money(total_discount),
            tax_base=money(tax_base),
            tax_amount=tax_amount,
            net_total=money(net_total),
            paid_amount=money(paid),
            remaining_amount=money(net_total - paid),
        )


def payment_status(net_total: Decimal, paid: Decimal) -> str:
    """
    Threshold helper for status badges:
      - 'paid'    if paid >= total
      - 'partial' if 0 < paid < total
      - 'unpaid'  if paid == 0
    """
    if paid >= net_total:
        return "paid"
    if paid > ZERO:
        return "partial"
    return "unpaid"
