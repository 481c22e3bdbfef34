"""
Draft invoice: the line collection an invoice/POS screen edits before posting.

The draft is owned by one caller at a time; it does no locking. Adding a
product+unit that is already on the draft merges into the existing line
(keeping its price and discount). For sales every add is checked against
stock, counting what the product's lines in other units already hold.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Optional

from ..utils.helpers import ZERO, to_decimal
from .errors import InvoiceAlreadyPosted
from .lines import LineCalculator
from .models import (
    DiscountSpec,
    Invoice,
    InvoiceKind,
    InvoiceLine,
    InvoiceTotals,
    Product,
    TaxBasePolicy,
)
from .stock import StockValidator
from .totals import InvoiceAggregator


class InvoiceDraft:
    def __init__(
        self,
        kind: InvoiceKind = InvoiceKind.SALE,
        *,
        tax_rate_percent=ZERO,
        tax_base_policy: TaxBasePolicy = TaxBasePolicy.NET_OF_DISCOUNT,
        enforce_stock: bool = True,
        calculator: Optional[LineCalculator] = None,
        stock: Optional[StockValidator] = None,
        aggregator: Optional[InvoiceAggregator] = None,
    ):
        self.kind = InvoiceKind(kind)
        self.tax_rate_percent = to_decimal(tax_rate_percent)
        self.tax_base_policy = TaxBasePolicy(tax_base_policy)
        # only outgoing goods are limited by what is on hand
        self.enforce_stock = enforce_stock and self.kind == InvoiceKind.SALE
        self.calculator = calculator or LineCalculator()
        self.stock = stock or StockValidator()
        self.aggregator = aggregator or InvoiceAggregator()
        self._lines: list[InvoiceLine] = []
        self._posted = False

    @property
    def lines(self) -> tuple[InvoiceLine, ...]:
        return tuple(self._lines)

    @property
    def posted(self) -> bool:
        return self._posted

    def _find(self, product_id: int, uom_id: int) -> Optional[int]:
        for i, ln in enumerate(self._lines):
            if ln.product_id == product_id and ln.uom_id == uom_id:
                return i
        return None

    def _unreserved(self, product: Product, uom_id: int) -> Product:
        """The product with stock already held by its lines in other units taken off."""
        held = ZERO
        for ln in self._lines:
            if ln.product_id == product.product_id and ln.uom_id != uom_id:
                held += self.stock.units.to_base(product, ln.quantity, ln.uom_id)
        return product.with_stock(product.stock_qty - held) if held else product

    def _ensure_editable(self) -> None:
        if self._posted:
            raise InvoiceAlreadyPosted()

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------
    def add_line(
        self,
        product: Product,
        uom_id: int,
        quantity,
        unit_price,
        discount: Optional[DiscountSpec] = None,
    ) -> InvoiceLine:
        self._ensure_editable()
        line = self.calculator.build_line(product.product_id, uom_id, quantity, unit_price, discount)
        idx = self._find(product.product_id, uom_id)

        if idx is None:
            if self.enforce_stock:
                self.stock.check(self._unreserved(product, uom_id), line.quantity, uom_id)
            self._lines.append(line)
            return line

        existing = self._lines[idx]
        added = line.quantity
        if self.enforce_stock:
            self.stock.check_merge(self._unreserved(product, uom_id), existing.quantity, added, uom_id)
        merged = self.calculator.build_line(
            existing.product_id,
            existing.uom_id,
            existing.quantity + added,
            existing.unit_price,
            existing.discount,
            item_id=existing.item_id,
        )
        self._lines[idx] = merged
        return merged

    def remove_line(self, index: int) -> InvoiceLine:
        self._ensure_editable()
        return self._lines.pop(index)

    def clear(self) -> None:
        self._ensure_editable()
        self._lines.clear()

    def mark_posted(self) -> None:
        self._posted = True

    # ------------------------------------------------------------------
    # Totals
    # ------------------------------------------------------------------
    def totals(self, paid_amount=ZERO) -> InvoiceTotals:
        return self.aggregator.aggregate(
            self._lines, self.tax_rate_percent, self.tax_base_policy, paid_amount
        )

    def to_invoice(self, paid_amount=ZERO, *, party_id: Optional[int] = None, date: Optional[str] = None) -> Invoice:
        return Invoice(
            kind=self.kind,
            lines=self.lines,
            totals=self.totals(paid_amount),
            tax_rate_percent=self.tax_rate_percent,
            tax_base_policy=self.tax_base_policy,
            posted=self._posted,
            party_id=party_id,
            date=date,
        )

    def quantity_on_draft(self, product_id: int, uom_id: int) -> Decimal:
        idx = self._find(product_id, uom_id)
        return self._lines[idx].quantity if idx is not None else ZERO
