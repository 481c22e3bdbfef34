"""
Pricing / unit conversion / stock & return reconciliation engine.

Usage:
    from invoice_engine.core import (
        UnitConversionResolver, PriceResolver, LineCalculator,
        InvoiceAggregator, StockValidator, ReturnReconciler, InvoiceDraft,
    )

Everything here is synchronous and performs no I/O. Apart from InvoiceDraft
nothing keeps state between calls; repositories under
`invoice_engine.database` supply the snapshots.
"""

from .drafts import InvoiceDraft
from .errors import (
    DomainError,
    ExceedsOriginalQuantity,
    InsufficientStock,
    InvalidConversionFactor,
    InvalidInvoiceInput,
    InvalidLineInput,
    InvalidReturnQuantity,
    InvoiceAlreadyPosted,
    InvoiceNotFound,
    MissingReason,
    ReturnRejected,
    UnitSetupError,
    UnknownInvoiceLine,
    UnknownUnitForProduct,
)
from .lines import LineCalculator
from .models import (
    BalanceAdjustment,
    DiscountSpec,
    Invoice,
    InvoiceKind,
    InvoiceLine,
    InvoiceTotals,
    LineTotals,
    PriceObservation,
    PriceSource,
    Product,
    ProductUnitLink,
    Return,
    ReturnLine,
    ReturnRequest,
    ReturnState,
    ReturnTotals,
    StockMovement,
    TaxBasePolicy,
    Unit,
)
from .prices import InMemoryPriceHistory, PriceHistorySource, PriceResolver
from .returns import ReturnReconciler
from .stock import StockValidator, invoice_stock_movements
from .totals import InvoiceAggregator, payment_status
from .units import UnitConversionResolver

__all__ = [
    # components
    "UnitConversionResolver",
    "PriceResolver",
    "PriceHistorySource",
    "InMemoryPriceHistory",
    "LineCalculator",
    "InvoiceAggregator",
    "payment_status",
    "StockValidator",
    "invoice_stock_movements",
    "ReturnReconciler",
    "InvoiceDraft",
    # models
    "BalanceAdjustment",
    "DiscountSpec",
    "Invoice",
    "InvoiceKind",
    "InvoiceLine",
    "InvoiceTotals",
    "LineTotals",
    "PriceObservation",
    "PriceSource",
    "Product",
    "ProductUnitLink",
    "Return",
    "ReturnLine",
    "ReturnRequest",
    "ReturnState",
    "ReturnTotals",
    "StockMovement",
    "TaxBasePolicy",
    "Unit",
    # errors
    "DomainError",
    "UnitSetupError",
    "UnknownUnitForProduct",
    "InvalidConversionFactor",
    "InvalidLineInput",
    "InvalidInvoiceInput",
    "InsufficientStock",
    "ReturnRejected",
    "InvalidReturnQuantity",
    "ExceedsOriginalQuantity",
    "MissingReason",
    "UnknownInvoiceLine",
    "InvoiceNotFound",
    "InvoiceAlreadyPosted",
]
