#!/usr/bin/env python3
"""Command-line entry point against a live Horizon endpoint.

Network comes from --network, else STELLAR_NETWORK / HORIZON_URL /
HORIZON_TIMEOUT. Assets are given in canonical form: 'native' or
'CODE:ISSUER'.

Examples:
  run_aggregator.py discover native USDC:GA...
  run_aggregator.py route native USDC:GA... 2500 --max-splits 2
  run_aggregator.py bootstrap native USDC:GA... 50000
  run_aggregator.py swap native USDC:GA... 100 --execute   (signs with STELLAR_SECRET_KEY)
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from typing import List, Optional

from stellar_router import (
    Asset,
    BootstrapConfig,
    NetworkConfig,
    bootstrap_new_pool,
    find_best_swap_path,
    get_all_liquidity_pools,
    swap_assets,
    calculate_optimal_route,
    discover_liquidity_sources,
    get_aggregated_price,
    get_user_liquidity_positions,
    monitor_pools_health,
)
from stellar_router.core import fmt_amount, to_decimal
from stellar_router.core.exc import AmountDomainError, AssetError, ConfigError, LedgerQueryError
from stellar_router.horizon import HorizonClient, HorizonTransactionService
from stellar_router.transactions import KeypairSigner

SECRET_ENV = "STELLAR_SECRET_KEY"


def _pair(args: argparse.Namespace) -> tuple[Asset, Asset]:
    return Asset.parse(args.asset_a), Asset.parse(args.asset_b)


async def cmd_discover(client: HorizonClient, args: argparse.Namespace) -> int:
    sources = await discover_liquidity_sources(client, *_pair(args))
    if not sources:
        print("no liquidity sources")
    for s in sources:
        print(f"{s.pool_id} fee={s.fee}bp A={fmt_amount(s.reserve_a)} B={fmt_amount(s.reserve_b)} "
              f"shares={fmt_amount(s.total_shares)} price={s.price:.7f}")
    return 0


async def cmd_route(client: HorizonClient, args: argparse.Namespace) -> int:
    sources = await discover_liquidity_sources(client, *_pair(args))
    route = calculate_optimal_route(sources, to_decimal(args.amount), max_splits=args.max_splits)
    if route.is_empty():
        print("no route: no liquidity sources")
        return 1
    for a in route.allocations:
        print(f"{a.pool_id} in={fmt_amount(a.input_amount)} out={fmt_amount(a.output_amount)} "
              f"impact={a.price_impact:.4%}")
    print(f"total out={fmt_amount(route.total_output)} effective price={route.effective_price:.7f}")
    return 0


async def cmd_price(client: HorizonClient, args: argparse.Namespace) -> int:
    agg = await get_aggregated_price(client, *_pair(args))
    print(f"price={agg.price:.7f} sources={agg.source_count} spread={agg.spread:.7f}")
    return 0


async def cmd_bootstrap(client: HorizonClient, args: argparse.Namespace) -> int:
    asset_a, asset_b = _pair(args)
    config = BootstrapConfig(asset_a, asset_b, to_decimal(args.target),
                             max_slippage=to_decimal(args.max_slippage),
                             sources=tuple(args.source or ()))
    plan = await bootstrap_new_pool(client, config)
    print(plan.message)
    if plan.success:
        print(f"{plan.asset_a.short()}={fmt_amount(plan.amount_a)} {plan.asset_b.short()}={fmt_amount(plan.amount_b)}")
    return 0 if plan.success else 1


async def cmd_health(client: HorizonClient, args: argparse.Namespace) -> int:
    for report in await monitor_pools_health(client, [_pair(args)]):
        print(report.pair)
        for source, health in zip(report.sources, report.health):
            print(f"  {source.pool_id} score={health.score} healthy={health.healthy} "
                  f"issues={', '.join(health.issues) or '-'}")
    return 0


async def cmd_positions(client: HorizonClient, args: argparse.Namespace) -> int:
    for p in await get_user_liquidity_positions(client, args.address):
        amounts = " ".join(f"{r.asset.split(':')[0]}={fmt_amount(r.amount)}" for r in p.amounts)
        print(f"{p.pool_id} shares={fmt_amount(p.shares)} ({p.share_percentage:.4f}%) {amounts}")
    return 0


async def cmd_pools(client: HorizonClient, args: argparse.Namespace) -> int:
    pools = await get_all_liquidity_pools(client, page_size=args.page_size, max_pages=args.max_pages)
    for p in pools:
        reserves = " ".join(f"{r.asset.split(':')[0]}={fmt_amount(r.amount)}" for r in p.reserves)
        print(f"{p.pool_id} fee={p.fee_bps}bp shares={fmt_amount(p.total_shares)} {reserves}")
    print(f"{len(pools)} pool(s)")
    return 0


def _signer(client: HorizonClient) -> KeypairSigner:
    secret = os.environ.get(SECRET_ENV)
    if not secret:
        raise ConfigError(f"{SECRET_ENV} is not set")
    return KeypairSigner.from_secret(secret, client.config.passphrase)


async def cmd_swap(client: HorizonClient, args: argparse.Namespace) -> int:
    send_asset, dest_asset = _pair(args)
    path = await find_best_swap_path(client, send_asset, dest_asset, to_decimal(args.amount))
    if path is None:
        print("no swap path: no liquidity sources")
        return 1
    print(f"{path.pool_id} fee={path.fee}bp out={fmt_amount(path.dest_amount)} {dest_asset.short()} "
          f"impact={path.price_impact:.4%}")
    if not args.execute:
        return 0
    result = await swap_assets(HorizonTransactionService(client), _signer(client), path,
                               max_slippage=to_decimal(args.max_slippage))
    print(result.message if result.tx_hash is None else f"{result.message}: {result.tx_hash}")
    return 0 if result.success else 1


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Stellar liquidity aggregation against Horizon.")
    parser.add_argument("--network", choices=["testnet", "mainnet"], default=None,
                        help="Override STELLAR_NETWORK")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    def with_pair(name: str, help_: str) -> argparse.ArgumentParser:
        p = sub.add_parser(name, help=help_)
        p.add_argument("asset_a")
        p.add_argument("asset_b")
        return p

    with_pair("discover", "List pools across fee tiers").set_defaults(fn=cmd_discover)
    p = with_pair("route", "Split a sell of asset A across pools")
    p.add_argument("amount")
    p.add_argument("--max-splits", type=int, default=3)
    p.set_defaults(fn=cmd_route)
    with_pair("price", "TVL-weighted price and spread").set_defaults(fn=cmd_price)
    p = with_pair("bootstrap", "Plan bootstrap liquidity for a new pool")
    p.add_argument("target")
    p.add_argument("--max-slippage", default="1.0", help="Deposit price band, percent")
    p.add_argument("--source", action="append", help="Restrict to a source kind or pool id (repeatable)")
    p.set_defaults(fn=cmd_bootstrap)
    with_pair("health", "Health score per pool").set_defaults(fn=cmd_health)
    p = sub.add_parser("pools", help="List every pool on the ledger, newest first")
    p.add_argument("--page-size", type=int, default=200)
    p.add_argument("--max-pages", type=int, default=None)
    p.set_defaults(fn=cmd_pools)
    p = with_pair("swap", "Quote (and optionally execute) a strict-send swap of asset A")
    p.add_argument("amount")
    p.add_argument("--max-slippage", default="1.0", help="Minimum output floor, percent below quote")
    p.add_argument("--execute", action="store_true", help=f"Sign with {SECRET_ENV} and submit")
    p.set_defaults(fn=cmd_swap)
    p = sub.add_parser("positions", help="Liquidity positions held by an account")
    p.add_argument("address")
    p.set_defaults(fn=cmd_positions)
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    try:
        config = NetworkConfig.for_network(args.network) if args.network else NetworkConfig.from_env()
        with HorizonClient(config) as client:
            return asyncio.run(args.fn(client, args))
    except (ConfigError, AssetError, AmountDomainError, LedgerQueryError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
