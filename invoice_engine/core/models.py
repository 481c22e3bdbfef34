"""
Value types shared by the engine.

All records are frozen dataclasses: the engine computes new values and never
mutates what the caller handed in. Numeric fields are Decimal; constructors
that receive user/DB data coerce int/str input to Decimal.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum
from typing import Optional

from ..utils.helpers import ZERO, to_decimal


class InvoiceKind(str, Enum):
    SALE = "sale"
    PURCHASE = "purchase"


class TaxBasePolicy(str, Enum):
    """Whether tax is computed before or after line discounts are subtracted."""

    NET_OF_DISCOUNT = "net_of_discount"
    GROSS = "gross"


class PriceSource(str, Enum):
    CUSTOMER_HISTORY = "customer_history"
    PRODUCT_DEFAULT = "product_default"


class ReturnState(str, Enum):
    OPEN = "open"
    PARTIALLY_RETURNED = "partially_returned"
    FULLY_RETURNED = "fully_returned"


def _coerce(obj, *names: str) -> None:
    for name in names:
        object.__setattr__(obj, name, to_decimal(getattr(obj, name)))


# ---------------------------------------------------------------------
# Catalogue
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class Unit:
    uom_id: int
    unit_name: str


@dataclass(frozen=True)
class ProductUnitLink:
    """quantity_in_base = quantity_in_this_unit * factor_to_base"""

    product_id: int
    uom_id: int
    factor_to_base: Decimal

    def __post_init__(self):
        _coerce(self, "factor_to_base")


@dataclass(frozen=True)
class Product:
    product_id: int
    name: str
    base_uom_id: int
    sale_price: Decimal = ZERO
    purchase_price: Decimal = ZERO
    stock_qty: Decimal = ZERO  # always in the base unit
    code: Optional[str] = None
    units: tuple[ProductUnitLink, ...] = ()

    def __post_init__(self):
        _coerce(self, "sale_price", "purchase_price", "stock_qty")
        object.__setattr__(self, "units", tuple(self.units))

    def link_for(self, uom_id: int) -> Optional[ProductUnitLink]:
        for link in self.units:
            if link.uom_id == uom_id:
                return link
        return None

    def list_price(self, kind: InvoiceKind) -> Decimal:
        return self.purchase_price if kind == InvoiceKind.PURCHASE else self.sale_price

    def with_stock(self, stock_qty) -> "Product":
        return replace(self, stock_qty=to_decimal(stock_qty))


@dataclass(frozen=True)
class PriceObservation:
    """A price a customer actually paid, taken from a posted sale line."""

    customer_id: int
    product_id: int
    uom_id: int
    price: Decimal
    observed_at: str  # ISO date or datetime; sorts lexically
    sequence: int = 0  # tie-break for observations on the same date

    def __post_init__(self):
        _coerce(self, "price")


# ---------------------------------------------------------------------
# Invoice lines & totals
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class DiscountSpec:
    value: Decimal = ZERO
    is_percentage: bool = False

    @classmethod
    def none(cls) -> "DiscountSpec":
        return cls()

    @classmethod
    def percent(cls, value) -> "DiscountSpec":
        return cls(to_decimal(value), True)

    @classmethod
    def amount(cls, value) -> "DiscountSpec":
        return cls(to_decimal(value), False)


@dataclass(frozen=True)
class LineTotals:
    gross: Decimal
    discount_amount: Decimal
    net: Decimal


@dataclass(frozen=True)
class InvoiceLine:
    product_id: int
    uom_id: int
    quantity: Decimal
    unit_price: Decimal
    discount: DiscountSpec
    totals: LineTotals
    item_id: Optional[int] = None

    @property
    def gross(self) -> Decimal:
        return self.totals.gross

    @property
    def discount_amount(self) -> Decimal:
        return self.totals.discount_amount

    @property
    def net(self) -> Decimal:
        return self.totals.net


@dataclass(frozen=True)
class InvoiceTotals:
    subtotal: Decimal
    total_discount: Decimal
    tax_base: Decimal
    tax_amount: Decimal
    net_total: Decimal
    paid_amount: Decimal
    remaining_amount: Decimal  # signed; negative means overpaid


@dataclass(frozen=True)
class Invoice:
    kind: InvoiceKind
    lines: tuple[InvoiceLine, ...]
    totals: InvoiceTotals
    tax_rate_percent: Decimal
    tax_base_policy: TaxBasePolicy
    posted: bool = False
    invoice_id: Optional[str] = None
    party_id: Optional[int] = None
    date: Optional[str] = None


# ---------------------------------------------------------------------
# Returns
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class ReturnRequest:
    item_id: int
    quantity: Decimal
    reason: str

    def __post_init__(self):
        _coerce(self, "quantity")


@dataclass(frozen=True)
class ReturnLine:
    original_item_id: Optional[int]
    product_id: int
    uom_id: int
    quantity: Decimal
    unit_price: Decimal  # copied from the original line
    total: Decimal
    reason: str


@dataclass(frozen=True)
class ReturnTotals:
    subtotal: Decimal
    tax_amount: Decimal
    net_total: Decimal


@dataclass(frozen=True)
class Return:
    kind: InvoiceKind  # kind of the original invoice
    invoice_id: Optional[str]
    lines: tuple[ReturnLine, ...]
    totals: ReturnTotals
    return_id: Optional[str] = None


# ---------------------------------------------------------------------
# Consequences handed to the posting collaborator
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class StockMovement:
    product_id: int
    uom_id: int
    quantity: Decimal  # in uom_id, always positive
    qty_in_base: Decimal  # signed delta to apply to products.stock_qty
    item_id: Optional[int] = None


@dataclass(frozen=True)
class BalanceAdjustment:
    party: str  # "customer" | "vendor"
    amount: Decimal  # signed delta to the counter-party's outstanding balance
