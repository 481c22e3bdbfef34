import sqlite3
from dataclasses import replace
from decimal import Decimal

import pytest

from invoice_engine.core import (
    DomainError,
    InsufficientStock,
    InvalidInvoiceInput,
    InvoiceAlreadyPosted,
    InvoiceDraft,
    InvoiceKind,
    InvoiceNotFound,
    PriceResolver,
    PriceSource,
    TaxBasePolicy,
)
from invoice_engine.database.repositories import (
    InvoicesRepo,
    PartiesRepo,
    PriceHistoryRepo,
    ProductsRepo,
)


def _sale(conn, ids, lines, *, paid=0, rate=15, enforce_stock=True, customer_id=None):
    widget = ProductsRepo(conn).get(ids["widget"])
    draft = InvoiceDraft(tax_rate_percent=rate, enforce_stock=enforce_stock)
    for uom_key, qty, price in lines:
        draft.add_line(widget, ids[uom_key], qty, price)
    party = customer_id if customer_id is not None else ids["customer_id"]
    return draft.to_invoice(paid, party_id=party)


def test_post_sale_updates_stock_and_balance(conn, ids):
    repo = InvoicesRepo(conn)
    invoice = _sale(conn, ids, [("uom_box", 2, "30.00")], paid=50)
    assert invoice.totals.net_total == Decimal("69.00")

    invoice_id = repo.post_invoice(invoice, date="2025-01-14")

    assert invoice_id == "SI20250114-0001"
    assert ProductsRepo(conn).on_hand_base(ids["widget"]) == Decimal("76")
    assert PartiesRepo(conn).get_customer(ids["customer_id"]).balance == Decimal("19.00")

    rows = conn.execute(
        "SELECT qty_in_base, transaction_type, reference_id FROM inventory_transactions"
    ).fetchall()
    assert len(rows) == 1
    assert Decimal(rows[0]["qty_in_base"]) == Decimal("-24")
    assert rows[0]["transaction_type"] == "sale"
    assert rows[0]["reference_id"] == invoice_id

    header = repo.get_header(invoice_id)
    assert header["payment_status"] == "partial"


def test_document_ids_count_up_per_day(conn, ids):
    repo = InvoicesRepo(conn)
    first = repo.post_invoice(_sale(conn, ids, [("uom_piece", 1, "2.50")]), date="2025-01-14")
    second = repo.post_invoice(_sale(conn, ids, [("uom_piece", 1, "2.50")]), date="2025-01-14")
    other_day = repo.post_invoice(_sale(conn, ids, [("uom_piece", 1, "2.50")]), date="2025-01-15")
    assert (first, second, other_day) == ("SI20250114-0001", "SI20250114-0002", "SI20250115-0001")


def test_posted_invoice_reads_back(conn, ids):
    repo = InvoicesRepo(conn)
    invoice = _sale(conn, ids, [("uom_box", 1, "30"), ("uom_piece", 3, "2.50")], paid=10)
    invoice_id = repo.post_invoice(invoice, date="2025-01-14")

    loaded = repo.get_invoice(invoice_id)
    assert loaded.kind == InvoiceKind.SALE
    assert loaded.posted
    assert loaded.party_id == ids["customer_id"]
    assert loaded.totals == invoice.totals
    assert loaded.tax_base_policy == TaxBasePolicy.NET_OF_DISCOUNT
    assert [ln.quantity for ln in loaded.lines] == [Decimal("1"), Decimal("3")]
    assert all(ln.item_id is not None for ln in loaded.lines)


def test_posted_lines_are_immutable(conn, ids):
    repo = InvoicesRepo(conn)
    invoice_id = repo.post_invoice(_sale(conn, ids, [("uom_piece", 1, "2.50")]), date="2025-01-14")
    with pytest.raises(sqlite3.IntegrityError, match="Posted invoice lines cannot be modified"):
        conn.execute("UPDATE invoice_items SET quantity='5' WHERE invoice_id=?", (invoice_id,))
    conn.rollback()


def test_posting_rechecks_stock(conn, ids):
    repo = InvoicesRepo(conn)
    invoice = _sale(conn, ids, [("uom_box", 9, "30")], enforce_stock=False)
    with pytest.raises(InsufficientStock):
        repo.post_invoice(invoice, date="2025-01-14")
    assert conn.execute("SELECT COUNT(*) FROM invoices").fetchone()[0] == 0
    assert ProductsRepo(conn).on_hand_base(ids["widget"]) == Decimal("100")


def test_stock_check_spans_lines_in_different_units(conn, ids):
    invoice = _sale(conn, ids, [("uom_box", 8, "30"), ("uom_piece", 5, "2.50")], enforce_stock=False)
    with pytest.raises(InsufficientStock):
        InvoicesRepo(conn).post_invoice(invoice, date="2025-01-14")


def test_negative_stock_override(conn, ids):
    invoice = _sale(conn, ids, [("uom_box", 9, "30")], enforce_stock=False)
    InvoicesRepo(conn).post_invoice(invoice, date="2025-01-14", allow_negative_stock=True)
    assert ProductsRepo(conn).on_hand_base(ids["widget"]) == Decimal("-8")


def test_post_purchase(conn, ids):
    widget = ProductsRepo(conn).get(ids["widget"])
    draft = InvoiceDraft(InvoiceKind.PURCHASE, tax_rate_percent=15, tax_base_policy=TaxBasePolicy.GROSS)
    draft.add_line(widget, ids["uom_box"], 5, "18")
    invoice_id = InvoicesRepo(conn).post_invoice(
        draft.to_invoice(party_id=ids["vendor_id"]), date="2025-01-14"
    )

    assert invoice_id == "PI20250114-0001"
    assert ProductsRepo(conn).on_hand_base(ids["widget"]) == Decimal("160")
    assert PartiesRepo(conn).get_vendor(ids["vendor_id"]).balance == Decimal("103.50")


def test_rejects_empty_or_unaddressed_invoices(conn, ids):
    repo = InvoicesRepo(conn)
    empty = InvoiceDraft().to_invoice(party_id=ids["customer_id"])
    with pytest.raises(InvalidInvoiceInput):
        repo.post_invoice(empty)
    no_party = _sale(conn, ids, [("uom_piece", 1, "2.50")])
    no_party = replace(no_party, party_id=None)
    with pytest.raises(InvalidInvoiceInput):
        repo.post_invoice(no_party)
    with pytest.raises(DomainError):
        repo.post_invoice(_sale(conn, ids, [("uom_piece", 1, "2.50")], customer_id=999))


def test_unknown_invoice(conn):
    with pytest.raises(InvoiceNotFound):
        InvoicesRepo(conn).get_invoice("SI20990101-0001")


def test_posted_sales_feed_price_history(conn, ids):
    repo = InvoicesRepo(conn)
    repo.post_invoice(_sale(conn, ids, [("uom_box", 2, "27.00")]), date="2025-01-14")

    history = PriceHistoryRepo(conn)
    obs = history.latest_observation(ids["customer_id"], ids["widget"])
    assert obs.uom_id == ids["uom_box"]
    assert obs.price == Decimal("27.00")

    widget = ProductsRepo(conn).get(ids["widget"])
    resolver = PriceResolver(history)
    assert resolver.resolve(widget, ids["uom_piece"], ids["customer_id"]) == (
        Decimal("2.25"), PriceSource.CUSTOMER_HISTORY,
    )

    other = PartiesRepo(conn).create_customer("Someone Else")
    assert resolver.resolve(widget, ids["uom_piece"], other)[1] == PriceSource.PRODUCT_DEFAULT

    repo.post_invoice(_sale(conn, ids, [("uom_piece", 5, "2.40")]), date="2025-02-01")
    assert resolver.resolve(ProductsRepo(conn).get(ids["widget"]), ids["uom_box"], ids["customer_id"]) == (
        Decimal("28.80"), PriceSource.CUSTOMER_HISTORY,
    )
    assert len(history.observations(ids["customer_id"], ids["widget"])) == 2


def test_posted_invoice_cannot_be_posted_again(conn, ids):
    repo = InvoicesRepo(conn)
    first = repo.post_invoice(_sale(conn, ids, [("uom_box", 2, "30")]), date="2025-01-14")

    with pytest.raises(InvoiceAlreadyPosted) as ei:
        repo.post_invoice(repo.get_invoice(first))
    assert ei.value.invoice_id == first
    assert conn.execute("SELECT COUNT(*) FROM invoices").fetchone()[0] == 1
    assert ProductsRepo(conn).on_hand_base(ids["widget"]) == Decimal("76")


def test_post_draft_freezes_the_draft(conn, ids):
    widget = ProductsRepo(conn).get(ids["widget"])
    draft = InvoiceDraft(tax_rate_percent=15)
    draft.add_line(widget, ids["uom_piece"], 4, "2.50")
    repo = InvoicesRepo(conn)

    invoice_id = repo.post_draft(draft, party_id=ids["customer_id"], date="2025-01-14")

    assert invoice_id == "SI20250114-0001"
    assert draft.posted
    with pytest.raises(InvoiceAlreadyPosted):
        repo.post_draft(draft, party_id=ids["customer_id"], date="2025-01-14")
    with pytest.raises(InvoiceAlreadyPosted):
        repo.post_invoice(draft.to_invoice(party_id=ids["customer_id"]))
    assert ProductsRepo(conn).on_hand_base(ids["widget"]) == Decimal("96")
