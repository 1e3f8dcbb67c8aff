"""Routing interface: pick the best single source or split across several.

Both entry points sell `input_amount` of asset A for asset B and price every
source through `amm.quote_source`, so output and price impact are computed the
same way as everywhere else.

Split policy (`calculate_optimal_route`):
  1. rank every source by the price impact each would take absorbing the
     *whole* input alone (ascending; stable, so equal impacts keep discovery
     order);
  2. keep the first min(max_splits, n);
  3. split the input equally across them;
  4. quote each share and aggregate.
Equal splitting is the contract, not an optimum: a marginal-price-equalising
split would move more volume to deeper pools.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Iterable, List, Optional

from .amm import quote_source
from .core import AggregatedRoute, LiquiditySource, RouteAllocation, to_decimal
from .core.exc import RouteError
from .core.fmt import DecimalLike

DEFAULT_MAX_SPLITS = 3


def _validated_input(input_amount: DecimalLike) -> Decimal:
    if input_amount is None:
        raise RouteError("input_amount is None")
    dx = to_decimal(input_amount)
    if dx <= 0:
        raise RouteError("input_amount must be > 0")
    return dx


def find_best_source(sources: Iterable[LiquiditySource],
                     input_amount: DecimalLike) -> Optional[LiquiditySource]:
    """Source with strictly greatest output for the full amount; first wins ties."""
    dx = _validated_input(input_amount)
    best: Optional[LiquiditySource] = None
    best_out = Decimal(0)
    for source in sources:
        out = quote_source(source, dx).output_amount
        if out > best_out:
            best, best_out = source, out
    return best


def calculate_optimal_route(sources: Iterable[LiquiditySource],
                            input_amount: DecimalLike,
                            max_splits: int = DEFAULT_MAX_SPLITS) -> AggregatedRoute:
    """Equal split of `input_amount` over the lowest-impact sources.

    Parameters
    ----------
    sources : Iterable[LiquiditySource]
        Discovered sources, all of them ranked.
    input_amount : DecimalLike
        Amount of asset A to sell (> 0).
    max_splits : int
        Upper bound on the number of sources used (>= 1).
    """
    dx = _validated_input(input_amount)
    if max_splits < 1:
        raise RouteError("max_splits must be >= 1")

    candidates = list(sources)
    if not candidates:
        return AggregatedRoute()

    ranked = sorted(candidates, key=lambda s: quote_source(s, dx).price_impact)
    selected = ranked[:min(max_splits, len(ranked))]
    share = dx / Decimal(len(selected))

    allocations: List[RouteAllocation] = []
    for source in selected:
        quote = quote_source(source, share)
        allocations.append(RouteAllocation(
            pool_id=source.pool_id,
            input_amount=share,
            output_amount=quote.output_amount,
            price_impact=quote.price_impact,
        ))

    total_in = sum((a.input_amount for a in allocations), Decimal(0))
    total_out = sum((a.output_amount for a in allocations), Decimal(0))
    avg_impact = sum((a.price_impact for a in allocations), Decimal(0)) / Decimal(len(allocations))
    return AggregatedRoute(
        allocations=tuple(allocations),
        total_input=total_in,
        total_output=total_out,
        average_price_impact=avg_impact,
        effective_price=(total_in / total_out) if total_out > 0 else Decimal(0),
    )


__all__ = [
    "DEFAULT_MAX_SPLITS",
    "find_best_source",
    "calculate_optimal_route",
]
