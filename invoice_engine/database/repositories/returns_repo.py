# invoice_engine/database/repositories/returns_repo.py
from __future__ import annotations

from decimal import Decimal
from typing import Dict, Iterable, Optional
import logging
import sqlite3

from ...constants import DOC_PREFIXES
from ...core.models import InvoiceKind, Return, ReturnLine, ReturnRequest, ReturnTotals
from ...core.returns import ReturnReconciler
from ...core.stock import StockValidator
from ...utils.helpers import today_str, to_decimal
from .invoices_repo import InvoicesRepo
from .posting_helpers import adjust_balance, apply_stock_movements, next_document_id
from .products_repo import ProductsRepo
from .returns_helpers import get_returnable_quantities, get_returned_quantities

_log = logging.getLogger(__name__)


class ReturnsRepo:
    """
    Sales and purchase returns against posted invoices.

    A return document is validated as a whole (several requests against the
    same line share its returnable quantity) and posted atomically.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        reconciler: Optional[ReturnReconciler] = None,
        stock: Optional[StockValidator] = None,
    ):
        conn.row_factory = sqlite3.Row
        self.conn = conn
        self.invoices = InvoicesRepo(conn, stock)
        self.products = ProductsRepo(conn)
        self.reconciler = reconciler or ReturnReconciler()
        self.stock = stock or StockValidator()

    def returned_quantities(self, invoice_id: str) -> Dict[int, Decimal]:
        return get_returned_quantities(self.conn, invoice_id)

    def returnable_quantities(self, invoice_id: str) -> Dict[int, Decimal]:
        return get_returnable_quantities(self.conn, invoice_id)

    def _check_stock(self, lines: Iterable[ReturnLine], products) -> None:
        # goods going back to a vendor must still be on hand
        remaining = {pid: p.stock_qty for pid, p in products.items()}
        for ln in lines:
            product = products[ln.product_id].with_stock(remaining[ln.product_id])
            remaining[ln.product_id] -= self.stock.check(product, ln.quantity, ln.uom_id)

    def _insert_header(self, return_id: str, kind: InvoiceKind, invoice_id: str, date: str,
                       rate: Decimal, totals: ReturnTotals, notes: str | None):
        self.conn.execute(
            """
            INSERT INTO returns (
                return_id, doc_type, invoice_id, date,
                subtotal, tax_rate_percent, tax_amount, net_total, notes
            ) VALUES (?,?,?,?,?,?,?,?,?)
            """,
            (
                return_id,
                f"{kind.value}_return",
                invoice_id,
                date,
                str(totals.subtotal),
                str(rate),
                str(totals.tax_amount),
                str(totals.net_total),
                notes,
            ),
        )

    def _insert_item(self, return_id: str, ln: ReturnLine) -> int:
        cur = self.conn.execute(
            """
            INSERT INTO return_items (
                return_id, invoice_item_id, product_id, uom_id,
                quantity, unit_price, total, reason
            ) VALUES (?,?,?,?,?,?,?,?)
            """,
            (
                return_id,
                ln.original_item_id,
                ln.product_id,
                ln.uom_id,
                str(ln.quantity),
                str(ln.unit_price),
                str(ln.total),
                ln.reason,
            ),
        )
        return int(cur.lastrowid)

    def record_return(
        self,
        invoice_id: str,
        requests: Iterable[ReturnRequest],
        *,
        date: Optional[str] = None,
        notes: Optional[str] = None,
        tax_rate_percent=None,
    ) -> Return:
        """
        Validate and post a return against `invoice_id`.

        Lines are priced at the original unit price; tax uses the original
        invoice's rate unless `tax_rate_percent` is given. Stock goes back on
        the shelf for sales returns and off it for purchase returns; the
        counter-party's balance drops by the return's net total.
        """
        requests = list(requests)
        date = date or today_str()

        with self.conn:
            invoice = self.invoices.get_invoice(invoice_id)
            kind = InvoiceKind(invoice.kind)
            rate = invoice.tax_rate_percent if tax_rate_percent is None else to_decimal(tax_rate_percent)

            lines = self.reconciler.reconcile_batch(
                invoice.lines, self.returned_quantities(invoice_id), requests
            )
            totals = self.reconciler.aggregate_return(lines, rate)
            products = self.products.get_many(ln.product_id for ln in lines)
            if kind == InvoiceKind.PURCHASE:
                self._check_stock(lines, products)

            return_id = next_document_id(self.conn, "returns", DOC_PREFIXES[f"{kind.value}_return"], date)
            self._insert_header(return_id, kind, invoice_id, date, rate, totals, notes)
            for ln in lines:
                self._insert_item(return_id, ln)

            apply_stock_movements(
                self.conn,
                [self.reconciler.stock_movement(ln, products[ln.product_id], kind) for ln in lines],
                transaction_type=f"{kind.value}_return",
                reference_table="returns",
                reference_id=return_id,
                date=date,
                notes=notes,
            )
            adj = self.reconciler.balance_adjustment(totals, kind)
            adjust_balance(self.conn, adj.party, invoice.party_id, adj.amount)

        _log.info(
            "recorded %s return %s against %s: %d line(s), net %s",
            kind.value, return_id, invoice_id, len(lines), totals.net_total,
        )
        return Return(kind=kind, invoice_id=invoice_id, lines=tuple(lines), totals=totals, return_id=return_id)

    def list_returns(self, invoice_id: str) -> list[dict]:
        rows = self.conn.execute(
            "SELECT * FROM returns WHERE invoice_id=? ORDER BY date, return_id",
            (invoice_id,),
        ).fetchall()
        return [dict(r) for r in rows]
