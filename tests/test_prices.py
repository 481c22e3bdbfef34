from decimal import Decimal

import pytest

from invoice_engine.core import (
    InMemoryPriceHistory,
    InvoiceKind,
    PriceObservation,
    PriceResolver,
    PriceSource,
    UnknownUnitForProduct,
)

PIECE = 1
BOX = 2

CUSTOMER = 7


def test_no_history_falls_back_to_list_price(widget):
    resolver = PriceResolver(InMemoryPriceHistory())
    assert resolver.resolve(widget, PIECE, CUSTOMER) == (Decimal("2.50"), PriceSource.PRODUCT_DEFAULT)
    assert resolver.resolve(widget, BOX, CUSTOMER) == (Decimal("30.00"), PriceSource.PRODUCT_DEFAULT)


def test_history_wins_once_observed(widget):
    history = InMemoryPriceHistory()
    resolver = PriceResolver(history)
    assert resolver.resolve(widget, PIECE, CUSTOMER)[1] == PriceSource.PRODUCT_DEFAULT

    history.add(PriceObservation(CUSTOMER, widget.product_id, PIECE, Decimal("2.40"), "2025-01-10"))

    price, source = resolver.resolve(widget, PIECE, CUSTOMER)
    assert price == Decimal("2.40")
    assert source == PriceSource.CUSTOMER_HISTORY


def test_history_price_converted_to_requested_unit(widget):
    history = InMemoryPriceHistory([
        PriceObservation(CUSTOMER, widget.product_id, BOX, Decimal("27.00"), "2025-01-10"),
    ])
    resolver = PriceResolver(history)
    assert resolver.resolve(widget, PIECE, CUSTOMER) == (Decimal("2.25"), PriceSource.CUSTOMER_HISTORY)
    assert resolver.resolve(widget, BOX, CUSTOMER) == (Decimal("27.00"), PriceSource.CUSTOMER_HISTORY)


def test_most_recent_observation_is_used(widget):
    history = InMemoryPriceHistory([
        PriceObservation(CUSTOMER, widget.product_id, PIECE, Decimal("2.10"), "2025-01-01"),
        PriceObservation(CUSTOMER, widget.product_id, PIECE, Decimal("2.30"), "2025-02-01", sequence=1),
        PriceObservation(CUSTOMER, widget.product_id, PIECE, Decimal("2.20"), "2025-02-01", sequence=2),
    ])
    price, _ = PriceResolver(history).resolve(widget, PIECE, CUSTOMER)
    assert price == Decimal("2.20")


def test_other_customers_history_is_ignored(widget):
    history = InMemoryPriceHistory([
        PriceObservation(99, widget.product_id, PIECE, Decimal("1.00"), "2025-01-01"),
    ])
    assert PriceResolver(history).resolve(widget, PIECE, CUSTOMER)[1] == PriceSource.PRODUCT_DEFAULT


def test_history_in_unlinked_unit_is_skipped(widget):
    history = InMemoryPriceHistory([
        PriceObservation(CUSTOMER, widget.product_id, 42, Decimal("99.00"), "2025-01-01"),
    ])
    assert PriceResolver(history).resolve(widget, PIECE, CUSTOMER) == (
        Decimal("2.50"), PriceSource.PRODUCT_DEFAULT,
    )


def test_no_customer_uses_list_price(widget):
    history = InMemoryPriceHistory([
        PriceObservation(CUSTOMER, widget.product_id, PIECE, Decimal("2.40"), "2025-01-10"),
    ])
    assert PriceResolver(history).resolve(widget, PIECE)[1] == PriceSource.PRODUCT_DEFAULT


def test_purchase_uses_purchase_price(widget):
    price, source = PriceResolver().resolve(widget, BOX, kind=InvoiceKind.PURCHASE)
    assert price == Decimal("18.00")
    assert source == PriceSource.PRODUCT_DEFAULT


def test_unknown_requested_unit_raises(widget):
    history = InMemoryPriceHistory([
        PriceObservation(CUSTOMER, widget.product_id, PIECE, Decimal("2.40"), "2025-01-10"),
    ])
    with pytest.raises(UnknownUnitForProduct):
        PriceResolver(history).resolve(widget, 77, CUSTOMER)


def test_purchase_ignores_customer_sale_history(widget):
    history = InMemoryPriceHistory([
        PriceObservation(CUSTOMER, widget.product_id, PIECE, Decimal("2.40"), "2025-01-10"),
    ])
    resolver = PriceResolver(history)
    assert resolver.resolve(widget, PIECE, CUSTOMER, kind=InvoiceKind.PURCHASE) == (
        Decimal("1.50"), PriceSource.PRODUCT_DEFAULT,
    )
    assert resolver.resolve(widget, PIECE, CUSTOMER) == (Decimal("2.40"), PriceSource.CUSTOMER_HISTORY)
