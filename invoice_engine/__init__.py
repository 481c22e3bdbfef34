"""Invoice pricing, unit conversion and stock/return reconciliation."""

__version__ = "0.1.0"
