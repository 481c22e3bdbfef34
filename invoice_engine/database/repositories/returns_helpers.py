from __future__ import annotations

from decimal import Decimal
from typing import Dict
import sqlite3

from ...utils.helpers import ZERO, clamp_non_negative


def get_returned_quantities(conn: sqlite3.Connection, invoice_id: str) -> Dict[int, Decimal]:
    """item_id -> quantity already returned (in the line's own unit)."""
    rows = conn.execute(
        """
        SELECT ri.invoice_item_id AS item_id, ri.quantity
        FROM return_items ri
        JOIN returns r ON r.return_id = ri.return_id
        WHERE r.invoice_id = ?
        """,
        (invoice_id,),
    ).fetchall()
    out: Dict[int, Decimal] = {}
    for r in rows:
        item_id = int(r[0])
        out[item_id] = out.get(item_id, ZERO) + Decimal(r[1])
    return out


def get_returnable_quantities(conn: sqlite3.Connection, invoice_id: str) -> Dict[int, Decimal]:
    """
    Compute remaining returnable quantity per invoice item for a given invoice.

    Returns a dict mapping item_id -> remaining_qty (clamped to >= 0).
    """
    returned = get_returned_quantities(conn, invoice_id)
    rows = conn.execute(
        "SELECT item_id, quantity FROM invoice_items WHERE invoice_id = ?",
        (invoice_id,),
    ).fetchall()
    return {
        int(r[0]): clamp_non_negative(Decimal(r[1]) - returned.get(int(r[0]), ZERO))
        for r in rows
    }
