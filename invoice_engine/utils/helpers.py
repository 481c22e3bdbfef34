# invoice_engine/utils/helpers.py
from datetime import date
from decimal import Decimal, ROUND_HALF_EVEN
from typing import Union

from ..constants import MONEY_PLACES
from .validators import parse_decimal

NumberLike = Union[Decimal, int, float, str]

ZERO = Decimal("0")
HUNDRED = Decimal("100")
_MONEY_QUANTUM = Decimal(1).scaleb(-MONEY_PLACES)  # 0.01


def today_str() -> str:
    """Return today's date as ISO string (YYYY-MM-DD)."""
    return date.today().isoformat()


def to_decimal(v: NumberLike) -> Decimal:
    """Coerce to Decimal; raises ValueError if `v` is not a finite number."""
    return parse_decimal(v)


def money(v: NumberLike) -> Decimal:
    """
    Round an amount to MONEY_PLACES using banker's rounding.

    Only the amounts a computation hands back are passed through here;
    intermediate arithmetic stays at full precision.
    """
    return to_decimal(v).quantize(_MONEY_QUANTUM, rounding=ROUND_HALF_EVEN)


def clamp_non_negative(x: Decimal) -> Decimal:
    """Return x if x > 0, else 0."""
    return x if x > ZERO else ZERO
