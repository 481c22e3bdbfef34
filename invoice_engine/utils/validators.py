# invoice_engine/utils/validators.py
from decimal import Decimal, InvalidOperation


def non_empty(text) -> bool:
    """
    True if `text` is not None/empty after stripping whitespace.
    """
    return bool(text and str(text).strip())


# ---- Numeric parsing ----

def try_parse_decimal(x):
    """
    Best-effort parse to Decimal.

    Floats go through str() first so 0.1 parses as Decimal("0.1") rather than
    its binary expansion. NaN and infinities are rejected.

    Returns:
        (ok: bool, value: Decimal|None)
    """
    if isinstance(x, bool) or x is None:
        return False, None
    if isinstance(x, Decimal):
        value = x
    else:
        try:
            value = Decimal(str(x).strip())
        except (InvalidOperation, ValueError):
            return False, None
    if not value.is_finite():
        return False, None
    return True, value


def parse_decimal(x) -> Decimal:
    """
    Strict parse to Decimal; raises ValueError with a clear message on failure.
    """
    ok, val = try_parse_decimal(x)
    if not ok:
        raise ValueError(f"Could not parse '{x}' as a number.")
    return val  # type: ignore[return-value]
