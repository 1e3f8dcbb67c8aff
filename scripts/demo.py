"""Offline demo: discovery, routing and bootstrap planning over an in-memory ledger.

Scenarios covered:
S1) One pool, best single source
S2) Three fee tiers, equal split across the lowest-impact pools
S3) Degraded discovery (one tier lookup fails at the transport level)
S4) Bootstrap plan drawn proportionally from existing pools
S5) Bootstrap refused: target exceeds observed liquidity
S6) Aggregated price and pool health across tiers
S7) Best direct swap path, selling the pool's second asset
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from decimal import Decimal
from typing import Callable, List, Optional

from stellar_sdk import StrKey

from stellar_router import (
    Asset,
    BootstrapConfig,
    bootstrap_new_pool,
    calculate_optimal_route,
    check_pool_health,
    discover_liquidity_sources,
    find_best_source,
    find_best_swap_path,
    get_aggregated_price,
)
from stellar_router.core import fmt_amount, pool_id
from stellar_router.ledger import InMemoryLedger

DEMO_ISSUER = StrKey.encode_ed25519_public_key(bytes(range(32)))
XLM = Asset.native()
PLAT = Asset("PLAT", DEMO_ISSUER)
USDC = Asset("USDC", DEMO_ISSUER)


# ---------- pretty printers ----------

def brief_sources(sources) -> str:
    if not sources:
        return "  (no sources)"
    return "\n".join(
        f"  • {s.pool_id[:12]}… fee={s.fee}bp A={fmt_amount(s.reserve_a)} B={fmt_amount(s.reserve_b)} "
        f"price={s.price:.6f} tvl={fmt_amount(s.tvl)}"
        for s in sources
    )


def print_route(route, *, compact: bool = False) -> None:
    if not compact:
        for a in route.allocations:
            print(f"  • {a.pool_id[:12]}… in={fmt_amount(a.input_amount)} out={fmt_amount(a.output_amount)} "
                  f"impact={a.price_impact:.6%}")
    print(f"- total in={fmt_amount(route.total_input)} out={fmt_amount(route.total_output)} "
          f"avg impact={route.average_price_impact:.6%} effective price={route.effective_price:.7f}")


def print_plan(plan) -> None:
    print(f"- success={plan.success}")
    if plan.success:
        print(f"- {plan.asset_a.short()}={fmt_amount(plan.amount_a)} {plan.asset_b.short()}={fmt_amount(plan.amount_b)}")
    print(f"- sources used={[p[:12] for p in plan.sources_used]}")
    print(f"- {plan.message}")


# ---------- ledger fixtures ----------

def tiered_ledger() -> InMemoryLedger:
    ledger = InMemoryLedger()
    ledger.add_pool(XLM, USDC, 30, "500000", "60000", "170000")
    ledger.add_pool(XLM, USDC, 100, "200000", "24400", "69000")
    ledger.add_pool(XLM, USDC, 300, "40000", "4700", "13700")
    return ledger


# ---------- scenarios ----------

async def s1(compact: bool) -> None:
    ledger = InMemoryLedger()
    ledger.add_pool(XLM, PLAT, 30, "100000", "250000", "158113")
    sources = await discover_liquidity_sources(ledger, PLAT, XLM)
    print(brief_sources(sources))
    best = find_best_source(sources, Decimal("1000"))
    print(f"- best source for 1000 A: {best.pool_id[:12] if best else None}…")


async def s2(compact: bool) -> None:
    sources = await discover_liquidity_sources(tiered_ledger(), XLM, USDC)
    print(brief_sources(sources))
    print_route(calculate_optimal_route(sources, Decimal("25000"), max_splits=2), compact=compact)


async def s3(compact: bool) -> None:
    ledger = tiered_ledger()
    ledger.fail_pool(pool_id(XLM, USDC, 100))
    sources = await discover_liquidity_sources(ledger, XLM, USDC)
    print(brief_sources(sources))
    print(f"- {len(sources)} of 3 tiers visible")


async def s4(compact: bool) -> None:
    plan = await bootstrap_new_pool(tiered_ledger(), BootstrapConfig(XLM, USDC, Decimal("50000")))
    print_plan(plan)


async def s5(compact: bool) -> None:
    plan = await bootstrap_new_pool(tiered_ledger(), BootstrapConfig(XLM, USDC, Decimal("5000000")))
    print_plan(plan)


async def s6(compact: bool) -> None:
    ledger = tiered_ledger()
    agg = await get_aggregated_price(ledger, XLM, USDC)
    print(f"- price={agg.price:.7f} sources={agg.source_count} spread={agg.spread:.7f}")
    for s in await discover_liquidity_sources(ledger, XLM, USDC):
        h = check_pool_health(s)
        print(f"  • {s.pool_id[:12]}… score={h.score} healthy={h.healthy} issues={list(h.issues)}")


async def s7(compact: bool) -> None:
    path = await find_best_swap_path(tiered_ledger(), USDC, XLM, Decimal("1000"))
    if path is None:
        print("- no swap path")
        return
    print(f"- sell 1000 {USDC.short()} via {path.pool_id[:12]}… fee={path.fee}bp "
          f"out={fmt_amount(path.dest_amount)} {XLM.short()} impact={path.price_impact:.6%}")


# -------- scenario registry --------
class Scenario:
    def __init__(self, sid: str, title: str, fn: Callable[[bool], object]):
        self.sid = sid
        self.title = title
        self.fn = fn


scenarios: List[Scenario] = [
    Scenario("S1", "S1) One pool, best single source (input=1000)", s1),
    Scenario("S2", "S2) Three tiers, split across 2 (input=25000)", s2),
    Scenario("S3", "S3) Degraded discovery (100bp lookup fails)", s3),
    Scenario("S4", "S4) Bootstrap plan (target=50000)", s4),
    Scenario("S5", "S5) Bootstrap refused (target=5000000)", s5),
    Scenario("S6", "S6) Aggregated price and pool health", s6),
    Scenario("S7", "S7) Best swap path (sell 1000 USDC)", s7),
]


def _ids(raw: Optional[str]) -> set[str]:
    return {x.strip().upper() for x in raw.split(",") if x.strip()} if raw else set()


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Stellar liquidity aggregation demo (offline)")
    parser.add_argument("--only", type=str, default=None, help="Comma-separated scenario ids to run (e.g., S2,S4)")
    parser.add_argument("--skip", type=str, default=None, help="Comma-separated scenario ids to skip")
    parser.add_argument("--compact", action="store_true", help="Compact output: totals only, no per-pool lines")
    parser.add_argument("--verbose", action="store_true", help="Log discovery and planning at DEBUG")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")

    only, skip = _ids(args.only), _ids(args.skip)
    for sc in scenarios:
        if (only and sc.sid not in only) or sc.sid in skip:
            continue
        print(f"\n=== {sc.title} ===")
        asyncio.run(sc.fn(args.compact))
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
