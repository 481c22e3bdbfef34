"""
Return reconciliation against an original (posted) invoice.

Per original line:

    OPEN --partial return--> PARTIALLY_RETURNED --rest--> FULLY_RETURNED

FULLY_RETURNED is terminal: the returnable quantity is zero and every
further request is rejected with ExceedsOriginalQuantity.

Returns are priced at the original line's unit price and carry no discount
of their own. Stock/balance consequences are computed here and applied by
the posting collaborator.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Mapping

from ..utils.helpers import ZERO, money, to_decimal
from ..utils.validators import non_empty
from .errors import (
    ExceedsOriginalQuantity,
    InvalidReturnQuantity,
    MissingReason,
    UnknownInvoiceLine,
)
from .models import (
    BalanceAdjustment,
    InvoiceKind,
    InvoiceLine,
    Product,
    ReturnLine,
    ReturnRequest,
    ReturnState,
    ReturnTotals,
    StockMovement,
)
from .totals import tax_on
from .units import UnitConversionResolver, default_resolver


class ReturnReconciler:
    def __init__(self, units: UnitConversionResolver = default_resolver):
        self.units = units

    # ------------------------------------------------------------------
    # State of an original line
    # ------------------------------------------------------------------
    @staticmethod
    def returnable_quantity(original_line: InvoiceLine, previously_returned_qty=ZERO) -> Decimal:
        remaining = original_line.quantity - to_decimal(previously_returned_qty)
        return remaining if remaining > ZERO else ZERO

    def return_state(self, original_line: InvoiceLine, previously_returned_qty=ZERO) -> ReturnState:
        if self.returnable_quantity(original_line, previously_returned_qty) == ZERO:
            return ReturnState.FULLY_RETURNED
        if to_decimal(previously_returned_qty) > ZERO:
            return ReturnState.PARTIALLY_RETURNED
        return ReturnState.OPEN

    # ------------------------------------------------------------------
    # Proposals
    # ------------------------------------------------------------------
    def propose_return(
        self,
        original_line: InvoiceLine,
        previously_returned_qty,
        requested_return_qty,
        reason: str,
    ) -> ReturnLine:
        requested = to_decimal(requested_return_qty)
        previous = to_decimal(previously_returned_qty)
        if requested <= ZERO:
            raise InvalidReturnQuantity(requested)
        if previous + requested > original_line.quantity:
            raise ExceedsOriginalQuantity(
                original_line.item_id,
                requested=requested,
                returnable=self.returnable_quantity(original_line, previous),
            )
        if not non_empty(reason):
            raise MissingReason()

        return ReturnLine(
            original_item_id=original_line.item_id,
            product_id=original_line.product_id,
            uom_id=original_line.uom_id,
            quantity=requested,
            unit_price=original_line.unit_price,
            total=money(requested * original_line.unit_price),
            reason=reason.strip(),
        )

    def reconcile_batch(
        self,
        original_lines: Iterable[InvoiceLine],
        returned_so_far: Mapping[int, Decimal],
        requests: Iterable[ReturnRequest],
    ) -> list[ReturnLine]:
        """
        Validate all requests of one return document together. Several
        requests against the same line count against the same returnable
        quantity. All-or-nothing: the first rejection aborts the batch.
        """
        by_id = {ln.item_id: ln for ln in original_lines}
        in_batch: dict[int, Decimal] = {}
        out: list[ReturnLine] = []
        for req in requests:
            line = by_id.get(req.item_id)
            if line is None:
                raise UnknownInvoiceLine(req.item_id)
            previous = to_decimal(returned_so_far.get(req.item_id, ZERO)) + in_batch.get(req.item_id, ZERO)
            out.append(self.propose_return(line, previous, req.quantity, req.reason))
            in_batch[req.item_id] = in_batch.get(req.item_id, ZERO) + req.quantity
        return out

    # ------------------------------------------------------------------
    # Totals
    # ------------------------------------------------------------------
    @staticmethod
    def aggregate_return(return_lines: Iterable[ReturnLine], tax_rate_percent) -> ReturnTotals:
        subtotal = sum((ln.total for ln in return_lines), ZERO)
        tax_amount = tax_on(subtotal, tax_rate_percent)
        return ReturnTotals(
            subtotal=money(subtotal),
            tax_amount=tax_amount,
            net_total=money(subtotal + tax_amount),
        )

    # ------------------------------------------------------------------
    # Consequences for posting
    # ------------------------------------------------------------------
    def stock_movement(self, return_line: ReturnLine, product: Product, kind: InvoiceKind) -> StockMovement:
        """Sales returns put goods back on the shelf; purchase returns take them off."""
        qty_in_base = self.units.to_base(product, return_line.quantity, return_line.uom_id)
        sign = Decimal(1) if InvoiceKind(kind) == InvoiceKind.SALE else Decimal(-1)
        return StockMovement(
            product_id=return_line.product_id,
            uom_id=return_line.uom_id,
            quantity=return_line.quantity,
            qty_in_base=sign * qty_in_base,
            item_id=return_line.original_item_id,
        )

    @staticmethod
    def balance_adjustment(totals: ReturnTotals, kind: InvoiceKind) -> BalanceAdjustment:
        """The counter-party is owed (or owes) `net_total` less than before."""
        party = "customer" if InvoiceKind(kind) == InvoiceKind.SALE else "vendor"
        return BalanceAdjustment(party=party, amount=-totals.net_total)
