# invoice_engine/database/repositories/__init__.py
"""
Repository layer public API.

Usage:
    from invoice_engine.database.repositories import (
        # Catalogue
        ProductsRepo,
        # Customer price history (PriceHistorySource)
        PriceHistoryRepo,
        # Settings provider
        SettingsRepo, InvoiceSettings,
        # Customers / vendors
        PartiesRepo, Party,
        # Posting
        InvoicesRepo, ReturnsRepo, get_returnable_quantities,
    )
"""

# ---------------- Catalogue ----------------
from .products_repo import ProductsRepo

# ---------------- Prices / settings --------
from .price_history_repo import PriceHistoryRepo
from .settings_repo import InvoiceSettings, SettingsRepo

# ---------------- Parties ------------------
from .parties_repo import PartiesRepo, Party

# ---------------- Posting ------------------
from .invoices_repo import InvoicesRepo
from .returns_helpers import get_returnable_quantities, get_returned_quantities
from .returns_repo import ReturnsRepo

__all__ = [
    "ProductsRepo",
    "PriceHistoryRepo",
    "SettingsRepo",
    "InvoiceSettings",
    "PartiesRepo",
    "Party",
    "InvoicesRepo",
    "ReturnsRepo",
    "get_returnable_quantities",
    "get_returned_quantities",
]
