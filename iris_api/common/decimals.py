# iris_api/common/decimals.py
from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Optional

ZERO = Decimal("0")
CENT = Decimal("0.01")


def dec(x, default: Optional[Decimal] = ZERO) -> Optional[Decimal]:
    if x is None or x == "":
        return default
    if isinstance(x, Decimal):
        return x
    try:
        return Decimal(str(x))
    except (InvalidOperation, ValueError):
        return default


def q2(x) -> Decimal:
    """Quantize to cents, half-up."""
    return dec(x).quantize(CENT, rounding=ROUND_HALF_UP)


def as_float(x) -> float:
    return float(x) if x is not None else 0.0
