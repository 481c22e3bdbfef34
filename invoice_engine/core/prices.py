"""
Default unit price for a new invoice line.

Lookup order:
  1. for sales only, the most recent price this customer paid for the
     product (any unit), re-expressed in the requested unit;
  2. the product's list price (sale price for sales, purchase price for
     purchases) re-expressed in the requested unit.

This is a read path only. Missing history is the normal case, not an error.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Optional, Protocol

from ..utils.helpers import money
from .models import InvoiceKind, PriceObservation, PriceSource, Product
from .units import UnitConversionResolver, default_resolver


class PriceHistorySource(Protocol):
    def latest_observation(self, customer_id: int, product_id: int) -> Optional[PriceObservation]:
        ...


def _recency_key(obs: PriceObservation):
    return (obs.observed_at, obs.sequence)


class InMemoryPriceHistory:
    """PriceHistorySource over a plain list of observations."""

    def __init__(self, observations: Iterable[PriceObservation] = ()):
        self._observations: list[PriceObservation] = list(observations)

    def add(self, observation: PriceObservation) -> None:
        self._observations.append(observation)

    def latest_observation(self, customer_id: int, product_id: int) -> Optional[PriceObservation]:
        matches = [
            o for o in self._observations
            if o.customer_id == customer_id and o.product_id == product_id
        ]
        if not matches:
            return None
        return max(matches, key=_recency_key)


class PriceResolver:
    def __init__(
        self,
        history: Optional[PriceHistorySource] = None,
        units: UnitConversionResolver = default_resolver,
    ):
        self.history = history
        self.units = units

    def resolve(
        self,
        product: Product,
        uom_id: int,
        customer_id: Optional[int] = None,
        *,
        kind: InvoiceKind = InvoiceKind.SALE,
    ) -> tuple[Decimal, PriceSource]:
        """
        Returns (price_in_requested_unit, source).

        Raises UnknownUnitForProduct / InvalidConversionFactor only when the
        *requested* unit is misconfigured. A historical price recorded in a
        unit the product no longer carries is skipped.
        """
        factor = self.units.resolve(product, uom_id)

        # history holds what customers paid on sales; purchases never consult it
        if kind == InvoiceKind.SALE and customer_id is not None and self.history is not None:
            obs = self.history.latest_observation(customer_id, product.product_id)
            if obs is not None and self.units.is_linked(product, obs.uom_id):
                price = self.units.convert_price(product, obs.price, obs.uom_id, uom_id)
                return money(price), PriceSource.CUSTOMER_HISTORY

        return money(product.list_price(kind) * factor), PriceSource.PRODUCT_DEFAULT
