"""Pool discovery: enumerate the liquidity visible for an asset pair.

For each fee tier the deterministic pool id of the canonical pair is looked up
on the ledger. A missing pool is skipped; a failed lookup is logged and treated
exactly like a missing pool, so discovery degrades to fewer sources instead of
failing. External adapters then append their own sources in the same record
shape. The tier lookups are independent reads and run concurrently; results
keep tier order, then adapter order, so tie-breaks downstream are stable.

`get_all_liquidity_pools` walks the ledger's full pool listing page by page.
"""
from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from typing import Iterable, List, Optional, Protocol, Sequence, Tuple, runtime_checkable

from .amm import check_pool_health
from .core import (
    AggregatedPrice,
    Asset,
    FEE_TIERS,
    LiquiditySource,
    PairHealthReport,
    PoolSnapshot,
    SourceKind,
    canonical_pair,
    pool_id as derive_pool_id,
)
from .core.exc import LedgerQueryError
from .ledger import LedgerQueryService

logger = logging.getLogger(__name__)


@runtime_checkable
class ExternalSourceAdapter(Protocol):
    """Pluggable non-native liquidity (another venue's pools, an aggregator API)."""

    name: str

    async def discover(self, asset_a: Asset, asset_b: Asset) -> List[LiquiditySource]: ...


#: No external venues are wired in yet.
DEFAULT_EXTERNAL_ADAPTERS: Tuple[ExternalSourceAdapter, ...] = ()


def source_from_snapshot(snapshot: PoolSnapshot,
                         asset_a: Asset,
                         asset_b: Asset,
                         *,
                         kind: SourceKind = SourceKind.LEDGER_NATIVE,
                         pool_id: Optional[str] = None) -> LiquiditySource:
    """Normalise a ledger pool record into a `LiquiditySource`.

    Reserves are matched to the canonical pair by asset; a record whose reserve
    assets cannot be matched falls back to positional order.
    """
    first, second = canonical_pair(asset_a, asset_b)
    if len(snapshot.reserves) < 2:
        raise LedgerQueryError(f"pool {snapshot.pool_id} reports {len(snapshot.reserves)} reserve(s)")
    by_asset = {r.asset: r.amount for r in snapshot.reserves}
    if first.canonical() in by_asset and second.canonical() in by_asset:
        reserve_a, reserve_b = by_asset[first.canonical()], by_asset[second.canonical()]
    else:
        reserve_a, reserve_b = snapshot.reserves[0].amount, snapshot.reserves[1].amount
    return LiquiditySource(
        pool_id=pool_id or snapshot.pool_id,
        kind=kind,
        asset_a=first,
        asset_b=second,
        reserve_a=reserve_a,
        reserve_b=reserve_b,
        total_shares=snapshot.total_shares,
        fee=snapshot.fee_bps,
    )


async def _lookup_tier(query: LedgerQueryService,
                       asset_a: Asset,
                       asset_b: Asset,
                       fee_bps: int) -> Optional[LiquiditySource]:
    try:
        pid = derive_pool_id(asset_a, asset_b, fee_bps)
    except Exception as exc:
        logger.warning("cannot derive pool id at %dbp tier: %s", fee_bps, exc)
        return None
    try:
        snapshot = await query.get_pool(pid)
        if snapshot is None:
            logger.debug("no pool at %dbp tier (%s)", fee_bps, pid[:12])
            return None
        source = source_from_snapshot(snapshot, asset_a, asset_b, pool_id=pid)
    except Exception as exc:
        logger.warning("pool lookup failed at %dbp tier (%s): %s", fee_bps, pid[:12], exc, exc_info=True)
        return None
    logger.debug("found pool %s: %dbp fee, tvl=%s", pid[:12], source.fee, source.tvl)
    return source


async def _discover_external(adapters: Sequence[ExternalSourceAdapter],
                             asset_a: Asset,
                             asset_b: Asset) -> List[LiquiditySource]:
    found: List[LiquiditySource] = []
    for adapter in adapters:
        try:
            found.extend(await adapter.discover(asset_a, asset_b))
        except Exception as exc:
            logger.warning("external source %s failed: %s", getattr(adapter, "name", adapter), exc, exc_info=True)
    return found


async def discover_liquidity_sources(query: LedgerQueryService,
                                     asset_a: Asset,
                                     asset_b: Asset,
                                     *,
                                     fee_tiers: Iterable[int] = FEE_TIERS,
                                     adapters: Sequence[ExternalSourceAdapter] = DEFAULT_EXTERNAL_ADAPTERS,
                                     ) -> List[LiquiditySource]:
    """Return the current sources for an unordered pair (possibly empty)."""
    first, second = canonical_pair(asset_a, asset_b)
    tiers = await asyncio.gather(*(_lookup_tier(query, first, second, fee) for fee in fee_tiers))
    sources = [s for s in tiers if s is not None]
    sources.extend(await _discover_external(adapters, first, second))
    logger.info("discovered %d source(s) for %s/%s", len(sources), first.short(), second.short())
    return sources


async def check_pool_exists(query: LedgerQueryService, pool_id: str) -> bool:
    """True if the ledger reports the pool; a failed lookup counts as absent."""
    try:
        return await query.get_pool(pool_id) is not None
    except LedgerQueryError as exc:
        logger.warning("pool existence check failed for %s: %s", pool_id[:12], exc)
        return False


async def get_all_liquidity_pools(query: LedgerQueryService,
                                  *,
                                  page_size: int = 200,
                                  max_pages: Optional[int] = None,
                                  ) -> List[PoolSnapshot]:
    """Every pool the ledger lists, newest first.

    Pages are requested with the last pool id seen as cursor until a page
    comes back short. `max_pages` caps the walk. A failed page raises
    `LedgerQueryError`; a partial listing is never returned as complete.
    """
    if page_size <= 0:
        raise ValueError(f"page_size must be positive, got {page_size}")
    pools: List[PoolSnapshot] = []
    cursor: Optional[str] = None
    pages = 0
    while max_pages is None or pages < max_pages:
        page = await query.get_liquidity_pools(limit=page_size, cursor=cursor)
        pages += 1
        pools.extend(page)
        if len(page) < page_size:
            break
        cursor = page[-1].pool_id
    logger.info("listed %d pool(s) over %d page(s)", len(pools), pages)
    return pools


def aggregate_price(sources: Sequence[LiquiditySource]) -> AggregatedPrice:
    """TVL-weighted price and max-min spread over a discovered set."""
    if not sources:
        return AggregatedPrice(price=Decimal(0), source_count=0, spread=Decimal(0))
    total_tvl = sum((s.tvl for s in sources), Decimal(0))
    if total_tvl == 0:
        weighted = Decimal(0)
    else:
        weighted = sum((s.price * (s.tvl / total_tvl) for s in sources), Decimal(0))
    prices = [s.price for s in sources]
    return AggregatedPrice(price=weighted, source_count=len(sources), spread=max(prices) - min(prices))


async def get_aggregated_price(query: LedgerQueryService,
                               asset_a: Asset,
                               asset_b: Asset,
                               *,
                               adapters: Sequence[ExternalSourceAdapter] = DEFAULT_EXTERNAL_ADAPTERS,
                               ) -> AggregatedPrice:
    sources = await discover_liquidity_sources(query, asset_a, asset_b, adapters=adapters)
    return aggregate_price(sources)


async def get_asset_price(query: LedgerQueryService, asset: Asset, base: Asset) -> Optional[Decimal]:
    """Top bid for `asset` in units of `base`, or None without bids."""
    try:
        book = await query.get_orderbook(asset, base)
    except LedgerQueryError as exc:
        logger.warning("order book lookup failed for %s/%s: %s", asset.short(), base.short(), exc)
        return None
    if not book.bids:
        return None
    return book.bids[0].price


async def monitor_pools_health(query: LedgerQueryService,
                               pairs: Iterable[Tuple[Asset, Asset]],
                               *,
                               adapters: Sequence[ExternalSourceAdapter] = DEFAULT_EXTERNAL_ADAPTERS,
                               ) -> List[PairHealthReport]:
    reports: List[PairHealthReport] = []
    for asset_a, asset_b in pairs:
        sources = await discover_liquidity_sources(query, asset_a, asset_b, adapters=adapters)
        reports.append(PairHealthReport(
            pair=f"{asset_a.short()}/{asset_b.short()}",
            health=tuple(check_pool_health(s) for s in sources),
            sources=tuple(sources),
        ))
    return reports


__all__ = [
    "ExternalSourceAdapter",
    "DEFAULT_EXTERNAL_ADAPTERS",
    "source_from_snapshot",
    "discover_liquidity_sources",
    "check_pool_exists",
    "get_all_liquidity_pools",
    "aggregate_price",
    "get_aggregated_price",
    "get_asset_price",
    "monitor_pools_health",
]
