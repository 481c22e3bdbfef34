"""
Typed failures raised by the pricing / stock / returns engine.

Every error is recoverable and meant for the caller to surface (toast,
re-prompt, override confirmation). Nothing here is process-fatal and the
engine never catches its own errors.
"""
from __future__ import annotations

from decimal import Decimal


class DomainError(Exception):
    """Domain-level error the controller/UI can surface."""

    code = "DOMAIN_ERROR"


# ---------------------------------------------------------------------
# Unit setup (data integrity)
# ---------------------------------------------------------------------

class UnitSetupError(DomainError):
    """The product's unit configuration is inconsistent."""

    code = "UNIT_SETUP"


class UnknownUnitForProduct(UnitSetupError):
    code = "UNKNOWN_UNIT"

    def __init__(self, product_id, uom_id):
        self.product_id = product_id
        self.uom_id = uom_id
        super().__init__(
            f"Unit {uom_id} is not configured for product {product_id}."
        )


class InvalidConversionFactor(UnitSetupError):
    code = "INVALID_CONVERSION_FACTOR"

    def __init__(self, product_id, uom_id, factor):
        self.product_id = product_id
        self.uom_id = uom_id
        self.factor = factor
        super().__init__(
            f"Conversion factor {factor} for unit {uom_id} of product {product_id} must be > 0."
        )


# ---------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------

class InvalidLineInput(DomainError, ValueError):
    code = "INVALID_LINE_INPUT"

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"{field}: {message}")


class InvalidInvoiceInput(DomainError, ValueError):
    code = "INVALID_INVOICE_INPUT"

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"{field}: {message}")


# ---------------------------------------------------------------------
# Stock
# ---------------------------------------------------------------------

class InsufficientStock(DomainError):
    """
    Requested quantity is more than what is on hand.

    `requested`, `available` and `shortfall` are expressed in the unit the
    caller asked for, so they can be shown as-is.
    """

    code = "INSUFFICIENT_STOCK"

    def __init__(self, product_id, uom_id, requested: Decimal, available: Decimal, shortfall: Decimal):
        self.product_id = product_id
        self.uom_id = uom_id
        self.requested = requested
        self.available = available
        self.shortfall = shortfall
        super().__init__(
            f"Insufficient stock for product {product_id}: requested {requested}, "
            f"available {available}, short by {shortfall}."
        )


# ---------------------------------------------------------------------
# Returns
# ---------------------------------------------------------------------

class ReturnRejected(DomainError):
    code = "RETURN_REJECTED"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class InvalidReturnQuantity(ReturnRejected):
    code = "INVALID_RETURN_QUANTITY"

    def __init__(self, requested):
        self.requested = requested
        super().__init__(f"Return quantity must be greater than zero (got {requested}).")


class ExceedsOriginalQuantity(ReturnRejected):
    code = "EXCEEDS_ORIGINAL_QUANTITY"

    def __init__(self, item_id, requested: Decimal, returnable: Decimal):
        self.item_id = item_id
        self.requested = requested
        self.returnable = returnable
        super().__init__(
            f"Return qty exceeds remaining for item {item_id}: "
            f"requested {requested}, remaining {returnable}."
        )


class MissingReason(ReturnRejected):
    code = "MISSING_REASON"

    def __init__(self):
        super().__init__("A return reason is required.")


class UnknownInvoiceLine(DomainError):
    code = "UNKNOWN_INVOICE_LINE"

    def __init__(self, item_id):
        self.item_id = item_id
        super().__init__(f"Invoice line {item_id} is not part of the original invoice.")


# ---------------------------------------------------------------------
# Invoices
# ---------------------------------------------------------------------

class InvoiceNotFound(DomainError):
    code = "INVOICE_NOT_FOUND"

    def __init__(self, invoice_id):
        self.invoice_id = invoice_id
        super().__init__(f"Unknown invoice: {invoice_id}")


class InvoiceAlreadyPosted(DomainError):
    code = "INVOICE_POSTED"

    def __init__(self, invoice_id=None):
        self.invoice_id = invoice_id
        label = f" {invoice_id}" if invoice_id else ""
        super().__init__(f"Invoice{label} is posted; its lines can no longer change.")
