# invoice_engine/database/repositories/price_history_repo.py
from __future__ import annotations

from typing import List, Optional
import sqlite3

from ...core.models import PriceObservation


def _observation(r: sqlite3.Row) -> PriceObservation:
    return PriceObservation(
        customer_id=int(r["customer_id"]),
        product_id=int(r["product_id"]),
        uom_id=int(r["uom_id"]),
        price=r["unit_price"],
        observed_at=r["observed_at"],
        sequence=int(r["item_id"]),
    )


class PriceHistoryRepo:
    """
    Prices customers actually paid, read from posted sale lines.
    Satisfies the PriceHistorySource protocol used by PriceResolver.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row

    def latest_observation(self, customer_id: int, product_id: int) -> Optional[PriceObservation]:
        # Assumes invoices.date is stored as ISO 'YYYY-MM-DD'; item_id breaks same-day ties.
        row = self.conn.execute(
            """
            SELECT customer_id, product_id, uom_id, unit_price, observed_at, item_id
            FROM v_customer_price_history
            WHERE customer_id = ? AND product_id = ?
            ORDER BY observed_at DESC, item_id DESC
            LIMIT 1
            """,
            (customer_id, product_id),
        ).fetchone()
        return _observation(row) if row else None

    def observations(self, customer_id: int, product_id: int, limit: int = 20) -> List[PriceObservation]:
        rows = self.conn.execute(
            """
            SELECT customer_id, product_id, uom_id, unit_price, observed_at, item_id
            FROM v_customer_price_history
            WHERE customer_id = ? AND product_id = ?
            ORDER BY observed_at DESC, item_id DESC
            LIMIT ?
            """,
            (customer_id, product_id, limit),
        ).fetchall()
        return [_observation(r) for r in rows]
