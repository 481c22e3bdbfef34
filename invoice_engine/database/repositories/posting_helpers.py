"""
Shared write helpers for posting invoices and returns: document numbering,
the stock ledger and counter-party balances. Callers own the transaction.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Iterable
import sqlite3

from ...core.errors import DomainError
from ...core.models import StockMovement

_DOC_TABLES = {
    "invoices": "invoice_id",
    "returns": "return_id",
}

_PARTY_TABLES = {
    "customer": ("customers", "customer_id"),
    "vendor": ("vendors", "vendor_id"),
}


def next_document_id(conn: sqlite3.Connection, table: str, prefix: str, date: str) -> str:
    """PREFIX + YYYYMMDD + '-' + 4-digit daily sequence, e.g. SI20250114-0003."""
    column = _DOC_TABLES[table]
    stem = f"{prefix}{date.replace('-', '')}-"
    row = conn.execute(
        f"SELECT MAX({column}) AS last_id FROM {table} WHERE {column} LIKE ?",
        (stem + "%",),
    ).fetchone()
    last = row[0] if row else None
    seq = int(last[len(stem):]) + 1 if last else 1
    return f"{stem}{seq:04d}"


def apply_stock_movements(
    conn: sqlite3.Connection,
    movements: Iterable[StockMovement],
    *,
    transaction_type: str,
    reference_table: str,
    reference_id: str,
    date: str,
    notes: str | None = None,
) -> None:
    """Append ledger rows and apply each signed base-unit delta to products.stock_qty."""
    for mv in movements:
        conn.execute(
            """
            INSERT INTO inventory_transactions (
                product_id, quantity, uom_id, qty_in_base, transaction_type,
                reference_table, reference_id, reference_item_id, date, notes
            ) VALUES (?,?,?,?,?,?,?,?,?,?)
            """,
            (
                mv.product_id,
                str(mv.quantity),
                mv.uom_id,
                str(mv.qty_in_base),
                transaction_type,
                reference_table,
                reference_id,
                mv.item_id,
                date,
                notes,
            ),
        )
        row = conn.execute(
            "SELECT stock_qty FROM products WHERE product_id=?", (mv.product_id,)
        ).fetchone()
        if not row:
            raise DomainError(f"Unknown product: {mv.product_id}")
        conn.execute(
            "UPDATE products SET stock_qty=? WHERE product_id=?",
            (str(Decimal(row[0]) + mv.qty_in_base), mv.product_id),
        )


def party_exists(conn: sqlite3.Connection, party: str, party_id: int) -> bool:
    table, column = _PARTY_TABLES[party]
    return conn.execute(f"SELECT 1 FROM {table} WHERE {column}=?", (party_id,)).fetchone() is not None


def adjust_balance(conn: sqlite3.Connection, party: str, party_id: int, amount: Decimal) -> Decimal:
    """Add a signed amount to a customer's or vendor's outstanding balance; returns the new balance."""
    table, column = _PARTY_TABLES[party]
    row = conn.execute(f"SELECT balance FROM {table} WHERE {column}=?", (party_id,)).fetchone()
    if not row:
        raise DomainError(f"Unknown {party}: {party_id}")
    new_balance = Decimal(row[0]) + amount
    conn.execute(f"UPDATE {table} SET balance=? WHERE {column}=?", (str(new_balance), party_id))
    return new_balance
