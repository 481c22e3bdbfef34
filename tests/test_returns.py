from decimal import Decimal

import pytest

from invoice_engine.core import (
    DiscountSpec,
    ExceedsOriginalQuantity,
    InvalidReturnQuantity,
    InvoiceKind,
    LineCalculator,
    MissingReason,
    ReturnReconciler,
    ReturnRejected,
    ReturnRequest,
    ReturnState,
    UnknownInvoiceLine,
)

PIECE = 1
BOX = 2


@pytest.fixture()
def reconciler():
    return ReturnReconciler()


@pytest.fixture()
def sold():
    # 10 pieces at 2.50, sold with a 10% line discount
    return LineCalculator().build_line(1, PIECE, 10, "2.50", DiscountSpec.percent(10), item_id=11)


def test_over_return_rejected(reconciler, sold):
    with pytest.raises(ExceedsOriginalQuantity) as ei:
        reconciler.propose_return(sold, 4, 7, "damaged")
    assert ei.value.requested == Decimal("7")
    assert ei.value.returnable == Decimal("6")
    assert "Return qty exceeds remaining for item 11" in str(ei.value)


def test_return_up_to_remaining(reconciler, sold):
    line = reconciler.propose_return(sold, 4, 6, " damaged ")
    assert line.quantity == Decimal("6")
    assert line.original_item_id == 11
    assert line.reason == "damaged"
    assert reconciler.returnable_quantity(sold, 4 + 6) == Decimal("0")
    assert reconciler.return_state(sold, 10) == ReturnState.FULLY_RETURNED


def test_return_priced_at_original_unit_price(reconciler, sold):
    line = reconciler.propose_return(sold, 0, 3, "wrong size")
    assert line.unit_price == Decimal("2.50")
    # the original line discount does not carry over
    assert line.total == Decimal("7.50")


def test_return_states(reconciler, sold):
    assert reconciler.return_state(sold, 0) == ReturnState.OPEN
    assert reconciler.return_state(sold, 3) == ReturnState.PARTIALLY_RETURNED
    assert reconciler.return_state(sold, 10) == ReturnState.FULLY_RETURNED


def test_fully_returned_line_rejects_more(reconciler, sold):
    with pytest.raises(ExceedsOriginalQuantity):
        reconciler.propose_return(sold, 10, "0.5", "late")


@pytest.mark.parametrize("qty", [0, -1])
def test_quantity_must_be_positive(reconciler, sold, qty):
    with pytest.raises(InvalidReturnQuantity):
        reconciler.propose_return(sold, 0, qty, "damaged")


@pytest.mark.parametrize("reason", ["", "   ", None])
def test_reason_required(reconciler, sold, reason):
    with pytest.raises(MissingReason) as ei:
        reconciler.propose_return(sold, 0, 1, reason)
    assert isinstance(ei.value, ReturnRejected)


def test_quantity_checked_before_reason(reconciler, sold):
    with pytest.raises(InvalidReturnQuantity):
        reconciler.propose_return(sold, 0, 0, "")


def test_batch_counts_requests_against_same_line(reconciler, sold):
    ok = reconciler.reconcile_batch(
        [sold], {11: Decimal("2")},
        [ReturnRequest(11, 3, "damaged"), ReturnRequest(11, 5, "damaged")],
    )
    assert [ln.quantity for ln in ok] == [Decimal("3"), Decimal("5")]

    with pytest.raises(ExceedsOriginalQuantity):
        reconciler.reconcile_batch(
            [sold], {11: Decimal("2")},
            [ReturnRequest(11, 5, "damaged"), ReturnRequest(11, 4, "damaged")],
        )


def test_batch_unknown_line(reconciler, sold):
    with pytest.raises(UnknownInvoiceLine) as ei:
        reconciler.reconcile_batch([sold], {}, [ReturnRequest(12, 1, "damaged")])
    assert ei.value.item_id == 12


def test_return_totals(reconciler, sold):
    lines = [reconciler.propose_return(sold, 0, 6, "damaged")]
    t = reconciler.aggregate_return(lines, 15)
    assert t.subtotal == Decimal("15.00")
    assert t.tax_amount == Decimal("2.25")
    assert t.net_total == Decimal("17.25")


def test_stock_and_balance_consequences(reconciler, widget):
    sold_boxes = LineCalculator().build_line(widget.product_id, BOX, 3, "30", item_id=5)
    line = reconciler.propose_return(sold_boxes, 0, 2, "damaged")
    totals = reconciler.aggregate_return([line], 0)

    mv = reconciler.stock_movement(line, widget, InvoiceKind.SALE)
    assert mv.qty_in_base == Decimal("24")
    assert mv.item_id == 5
    assert reconciler.stock_movement(line, widget, InvoiceKind.PURCHASE).qty_in_base == Decimal("-24")

    adj = reconciler.balance_adjustment(totals, InvoiceKind.SALE)
    assert (adj.party, adj.amount) == ("customer", Decimal("-60.00"))
    assert reconciler.balance_adjustment(totals, InvoiceKind.PURCHASE).party == "vendor"
