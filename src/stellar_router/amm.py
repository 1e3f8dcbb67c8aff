"""
AMM base math (constant product, fee on input). Pool math only.

Pure functions over Decimal; no I/O, no state. Discovery, routing and planning
all price through this module so that swap output and price impact are
computed one way everywhere.

Pool fee is given in basis points and deducted on the *input* side:

    effective_in = dx * (10000 - fee_bps) / 10000
    dy           = effective_in * y / (x + effective_in)

Callers validate amounts (positive inputs, non-negative reserves) before
calling; these functions do not.
"""
from __future__ import annotations

from decimal import Decimal
from typing import NamedTuple

from .core import LiquiditySource, PoolHealth, to_decimal
from .core.constants import (
    BPS_DENOMINATOR,
    HEALTH_MAX_SCORE,
    HEALTH_MIN_HEALTHY_SCORE,
    HEALTH_MIN_TVL,
    HEALTH_LOW_TVL_PENALTY,
    HEALTH_RATIO_LOW,
    HEALTH_RATIO_HIGH,
    HEALTH_IMBALANCE_PENALTY,
    HEALTH_NO_SHARES_PENALTY,
)
from .core.fmt import DecimalLike

_ZERO = Decimal(0)
_ONE = Decimal(1)
_HUNDRED = Decimal(100)


class SwapQuote(NamedTuple):
    output_amount: Decimal
    price_impact: Decimal


# ---------------------------------------------------------------------------
# Pricing
# ---------------------------------------------------------------------------

def spot_price(reserve_a: DecimalLike, reserve_b: DecimalLike) -> Decimal:
    """reserve_b / reserve_a; 0 when reserve_a is 0."""
    ra = to_decimal(reserve_a)
    if ra == 0:
        return _ZERO
    return to_decimal(reserve_b) / ra


def swap_output(input_amount: DecimalLike,
                input_reserve: DecimalLike,
                output_reserve: DecimalLike,
                fee_bps: int) -> Decimal:
    """Constant-product OUT for a given IN, fee deducted from IN first."""
    dx = to_decimal(input_amount)
    x = to_decimal(input_reserve)
    y = to_decimal(output_reserve)
    keep = Decimal(BPS_DENOMINATOR - int(fee_bps)) / Decimal(BPS_DENOMINATOR)
    dx_eff = dx * keep
    denom = x + dx_eff
    if denom == 0:
        return _ZERO
    return dx_eff * y / denom


def price_impact(input_amount: DecimalLike,
                 output_amount: DecimalLike,
                 input_reserve: DecimalLike,
                 output_reserve: DecimalLike) -> Decimal:
    """1 - execution_price / spot_price, with execution_price = out / in.

    Zero when there is no input or the pool has no spot price.
    """
    dx = to_decimal(input_amount)
    spot = spot_price(input_reserve, output_reserve)
    if dx == 0 or spot == 0:
        return _ZERO
    execution_price = to_decimal(output_amount) / dx
    return _ONE - execution_price / spot


def swap_quote(input_amount: DecimalLike,
               input_reserve: DecimalLike,
               output_reserve: DecimalLike,
               fee_bps: int) -> SwapQuote:
    """Swap output together with the price impact it implies."""
    out = swap_output(input_amount, input_reserve, output_reserve, fee_bps)
    return SwapQuote(out, price_impact(input_amount, out, input_reserve, output_reserve))


def quote_source(source: LiquiditySource, input_amount: DecimalLike) -> SwapQuote:
    """Quote selling `input_amount` of asset A into a source for asset B."""
    return swap_quote(input_amount, source.reserve_a, source.reserve_b, source.fee)


# ---------------------------------------------------------------------------
# Share accounting
# ---------------------------------------------------------------------------

def deposit_share_estimate(amount_a: DecimalLike,
                           amount_b: DecimalLike,
                           reserve_a: DecimalLike,
                           reserve_b: DecimalLike,
                           total_shares: DecimalLike) -> Decimal:
    """Shares minted for a deposit.

    First deposit mints the geometric mean sqrt(a*b). Otherwise the binding
    (smaller) side ratio decides: min(a/ra, b/rb) * total_shares.
    """
    a = to_decimal(amount_a)
    b = to_decimal(amount_b)
    total = to_decimal(total_shares)
    if total == 0:
        return (a * b).sqrt()
    ra = to_decimal(reserve_a)
    rb = to_decimal(reserve_b)
    if ra == 0 or rb == 0:
        # shares outstanding against an emptied side: nothing to measure against
        return _ZERO
    return min(a / ra, b / rb) * total


def withdraw_estimate(shares: DecimalLike,
                      total_shares: DecimalLike,
                      reserve_a: DecimalLike,
                      reserve_b: DecimalLike) -> tuple[Decimal, Decimal]:
    """Proportional (amount_a, amount_b) for redeeming `shares`."""
    total = to_decimal(total_shares)
    if total == 0:
        return _ZERO, _ZERO
    # fraction first: redeeming the whole supply is exactly 1 * reserves
    fraction = to_decimal(shares) / total
    return fraction * to_decimal(reserve_a), fraction * to_decimal(reserve_b)


def share_percentage(user_shares: DecimalLike, total_shares: DecimalLike) -> Decimal:
    total = to_decimal(total_shares)
    if total == 0:
        return _ZERO
    return to_decimal(user_shares) / total * _HUNDRED


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

def _is_imbalanced(reserve_a: Decimal, reserve_b: Decimal) -> bool:
    if reserve_b == 0:
        # a one-sided pool is imbalanced; an empty one has no ratio at all
        return reserve_a > 0
    ratio = reserve_a / reserve_b
    return ratio < HEALTH_RATIO_LOW or ratio > HEALTH_RATIO_HIGH


def pool_health(source: LiquiditySource) -> PoolHealth:
    """Score a single snapshot (0-100) and list its issues."""
    issues: list[str] = []
    score = HEALTH_MAX_SCORE

    if source.tvl < HEALTH_MIN_TVL:
        issues.append(f"Low TVL (< {HEALTH_MIN_TVL:,})")
        score -= HEALTH_LOW_TVL_PENALTY

    if _is_imbalanced(source.reserve_a, source.reserve_b):
        issues.append("Imbalanced reserves")
        score -= HEALTH_IMBALANCE_PENALTY

    if source.total_shares == 0:
        issues.append("No liquidity providers")
        score -= HEALTH_NO_SHARES_PENALTY

    return PoolHealth(
        healthy=score >= HEALTH_MIN_HEALTHY_SCORE,
        issues=tuple(issues),
        score=max(0, score),
    )


check_pool_health = pool_health


__all__ = [
    "SwapQuote",
    "spot_price",
    "swap_output",
    "price_impact",
    "swap_quote",
    "quote_source",
    "deposit_share_estimate",
    "withdraw_estimate",
    "share_percentage",
    "pool_health",
    "check_pool_health",
]
