"""
Decimal bridge and formatting helpers.

All pool arithmetic runs on Decimal. Values enter through `to_decimal` at the
I/O boundary (ledger strings, CLI arguments, plain numbers) and leave through
`fmt_amount` when a ledger operation needs a 7-place amount string.
"""

from decimal import Decimal, InvalidOperation, getcontext, ROUND_DOWN
from typing import Union

from .constants import AMOUNT_PLACES, AMOUNT_QUANTUM
from .exc import AmountDomainError

DecimalLike = Union[Decimal, int, float, str]


# ---------------------------------------------------------------------------
# Global Decimal precision
# ---------------------------------------------------------------------------

#: Significant digits for pool arithmetic. Large enough that products of two
#: ledger amounts (max ~9.2e11 with 7 places) stay exact.
DEFAULT_DECIMAL_PRECISION: int = 40
getcontext().prec = DEFAULT_DECIMAL_PRECISION


def to_decimal(x: DecimalLike) -> Decimal:
    """Normalise numeric-like input to Decimal (floats go through str())."""
    if isinstance(x, Decimal):
        d = x
    else:
        try:
            d = Decimal(str(x))
        except InvalidOperation as exc:
            raise AmountDomainError(f"not a number: {x!r}") from exc
    if not d.is_finite():
        raise AmountDomainError(f"amount must be finite, got {x!r}")
    return d


def quantize_down(x: Decimal, quantum: Decimal = AMOUNT_QUANTUM) -> Decimal:
    """Quantise down to the grid (never states more than is available)."""
    if x < 0:
        raise AmountDomainError("negative input not allowed for quantize_down")
    if x == 0:
        return Decimal("0")
    return (x / quantum).to_integral_value(rounding=ROUND_DOWN) * quantum


def fmt_amount(x: DecimalLike) -> str:
    """Ledger amount string: 7 fractional digits, rounded down."""
    q = quantize_down(to_decimal(x))
    return f"{q:.{AMOUNT_PLACES}f}"


__all__ = [
    "DecimalLike",
    "DEFAULT_DECIMAL_PRECISION",
    "to_decimal",
    "quantize_down",
    "fmt_amount",
]
