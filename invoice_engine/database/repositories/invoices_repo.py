# invoice_engine/database/repositories/invoices_repo.py
from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from typing import Optional
import logging
import sqlite3

from ...constants import DOC_PREFIXES
from ...core.drafts import InvoiceDraft
from ...core.errors import DomainError, InvalidInvoiceInput, InvoiceAlreadyPosted, InvoiceNotFound
from ...core.models import (
    DiscountSpec,
    Invoice,
    InvoiceKind,
    InvoiceLine,
    InvoiceTotals,
    LineTotals,
    TaxBasePolicy,
)
from ...core.stock import StockValidator, invoice_stock_movements
from ...core.totals import payment_status
from ...utils.helpers import today_str
from .posting_helpers import adjust_balance, apply_stock_movements, next_document_id, party_exists
from .products_repo import ProductsRepo

_log = logging.getLogger(__name__)


class InvoicesRepo:
    """
    Posting service for sales and purchase invoices.

    Posting is one transaction: header, lines, stock ledger, stock on hand and
    the counter-party balance are written together or not at all. Posted
    lines are immutable (enforced by schema triggers).
    """

    def __init__(self, conn: sqlite3.Connection, stock: Optional[StockValidator] = None):
        conn.row_factory = sqlite3.Row
        self.conn = conn
        self.products = ProductsRepo(conn)
        self.stock = stock or StockValidator()

    # ---------------------------------------------------------------------
    # WRITE
    # ---------------------------------------------------------------------
    def next_document_id(self, kind: InvoiceKind, date: str) -> str:
        return next_document_id(self.conn, "invoices", DOC_PREFIXES[InvoiceKind(kind).value], date)

    def _check_stock(self, invoice: Invoice, products) -> None:
        """
        Re-validate a sale against stock on hand at posting time. Several lines
        of the same product draw from the same stock.
        """
        remaining = {pid: p.stock_qty for pid, p in products.items()}
        for line in invoice.lines:
            product = products[line.product_id].with_stock(remaining[line.product_id])
            remaining[line.product_id] -= self.stock.check(product, line.quantity, line.uom_id)

    def _insert_header(self, invoice_id: str, invoice: Invoice, party_id: int, date: str, notes: str | None):
        t = invoice.totals
        is_sale = invoice.kind == InvoiceKind.SALE
        self.conn.execute(
            """
            INSERT INTO invoices (
                invoice_id, doc_type, customer_id, vendor_id, date,
                subtotal, discount_total, tax_base, tax_rate_percent, tax_base_policy,
                tax_amount, net_total, paid_amount, remaining_amount, payment_status,
                posted, notes
            )
            VALUES (?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,1,?)
            """,
            (
                invoice_id,
                invoice.kind.value,
                party_id if is_sale else None,
                None if is_sale else party_id,
                date,
                str(t.subtotal),
                str(t.total_discount),
                str(t.tax_base),
                str(invoice.tax_rate_percent),
                invoice.tax_base_policy.value,
                str(t.tax_amount),
                str(t.net_total),
                str(t.paid_amount),
                str(t.remaining_amount),
                payment_status(t.net_total, t.paid_amount),
                notes,
            ),
        )

    def _insert_item(self, invoice_id: str, line: InvoiceLine) -> int:
        cur = self.conn.execute(
            """
            INSERT INTO invoice_items (
                invoice_id, product_id, uom_id, quantity, unit_price,
                discount_value, discount_is_percentage, gross, discount_amount, net
            ) VALUES (?,?,?,?,?,?,?,?,?,?)
            """,
            (
                invoice_id,
                line.product_id,
                line.uom_id,
                str(line.quantity),
                str(line.unit_price),
                str(line.discount.value),
                1 if line.discount.is_percentage else 0,
                str(line.gross),
                str(line.discount_amount),
                str(line.net),
            ),
        )
        return int(cur.lastrowid)

    def post_invoice(
        self,
        invoice: Invoice,
        *,
        party_id: Optional[int] = None,
        date: Optional[str] = None,
        notes: Optional[str] = None,
        allow_negative_stock: bool = False,
    ) -> str:
        """
        Persist `invoice` and apply its consequences. Returns the new invoice id.

        Sales are checked against current stock unless the caller explicitly
        allows negative stock (an override the caller must have confirmed).
        """
        if invoice.posted or invoice.invoice_id is not None:
            raise InvoiceAlreadyPosted(invoice.invoice_id)
        if not invoice.lines:
            raise InvalidInvoiceInput("lines", "an invoice needs at least one line")
        party_id = party_id if party_id is not None else invoice.party_id
        if party_id is None:
            raise InvalidInvoiceInput("party_id", "a customer or vendor is required")
        date = date or invoice.date or today_str()
        kind = InvoiceKind(invoice.kind)
        party = "customer" if kind == InvoiceKind.SALE else "vendor"

        with self.conn:
            if not party_exists(self.conn, party, party_id):
                raise DomainError(f"Unknown {party}: {party_id}")
            products = self.products.get_many(ln.product_id for ln in invoice.lines)
            if kind == InvoiceKind.SALE and not allow_negative_stock:
                self._check_stock(invoice, products)

            invoice_id = self.next_document_id(kind, date)
            self._insert_header(invoice_id, invoice, party_id, date, notes)
            lines = tuple(
                replace(ln, item_id=self._insert_item(invoice_id, ln)) for ln in invoice.lines
            )
            posted = replace(
                invoice, lines=lines, posted=True, invoice_id=invoice_id, party_id=party_id, date=date
            )
            apply_stock_movements(
                self.conn,
                invoice_stock_movements(posted, products, self.stock.units),
                transaction_type=kind.value,
                reference_table="invoices",
                reference_id=invoice_id,
                date=date,
                notes=notes,
            )
            adjust_balance(self.conn, party, party_id, invoice.totals.remaining_amount)

        _log.info(
            "posted %s invoice %s: %d line(s), net %s, remaining %s",
            kind.value, invoice_id, len(lines), invoice.totals.net_total, invoice.totals.remaining_amount,
        )
        return invoice_id

    def post_draft(
        self,
        draft: InvoiceDraft,
        paid_amount=0,
        *,
        party_id: int,
        date: Optional[str] = None,
        notes: Optional[str] = None,
        allow_negative_stock: bool = False,
    ) -> str:
        """Post a draft and freeze it, so the same draft cannot be posted twice."""
        if draft.posted:
            raise InvoiceAlreadyPosted()
        invoice_id = self.post_invoice(
            draft.to_invoice(paid_amount, party_id=party_id, date=date),
            notes=notes,
            allow_negative_stock=allow_negative_stock,
        )
        draft.mark_posted()
        return invoice_id

    # ---------------------------------------------------------------------
    # READ
    # ---------------------------------------------------------------------
    def list_items(self, invoice_id: str) -> list[InvoiceLine]:
        rows = self.conn.execute(
            """
            SELECT item_id, product_id, uom_id, quantity, unit_price,
                   discount_value, discount_is_percentage, gross, discount_amount, net
            FROM invoice_items
            WHERE invoice_id=?
            ORDER BY item_id
            """,
            (invoice_id,),
        ).fetchall()
        return [
            InvoiceLine(
                product_id=int(r["product_id"]),
                uom_id=int(r["uom_id"]),
                quantity=Decimal(r["quantity"]),
                unit_price=Decimal(r["unit_price"]),
                discount=DiscountSpec(Decimal(r["discount_value"]), bool(r["discount_is_percentage"])),
                totals=LineTotals(Decimal(r["gross"]), Decimal(r["discount_amount"]), Decimal(r["net"])),
                item_id=int(r["item_id"]),
            )
            for r in rows
        ]

    def get_header(self, invoice_id: str) -> dict | None:
        r = self.conn.execute("SELECT * FROM invoices WHERE invoice_id=?", (invoice_id,)).fetchone()
        return dict(r) if r else None

    def get_invoice(self, invoice_id: str) -> Invoice:
        h = self.get_header(invoice_id)
        if h is None:
            raise InvoiceNotFound(invoice_id)
        kind = InvoiceKind(h["doc_type"])
        _log.debug("loaded invoice %s", invoice_id)
        return Invoice(
            kind=kind,
            lines=tuple(self.list_items(invoice_id)),
            totals=InvoiceTotals(
                subtotal=Decimal(h["subtotal"]),
                total_discount=Decimal(h["discount_total"]),
                tax_base=Decimal(h["tax_base"]),
                tax_amount=Decimal(h["tax_amount"]),
                net_total=Decimal(h["net_total"]),
                paid_amount=Decimal(h["paid_amount"]),
                remaining_amount=Decimal(h["remaining_amount"]),
            ),
            tax_rate_percent=Decimal(h["tax_rate_percent"]),
            tax_base_policy=TaxBasePolicy(h["tax_base_policy"]),
            posted=bool(h["posted"]),
            invoice_id=h["invoice_id"],
            party_id=h["customer_id"] if kind == InvoiceKind.SALE else h["vendor_id"],
            date=h["date"],
        )
