# Top-level API for stellar_router.
"""
Top-level API for stellar_router.

Liquidity aggregation and routing over the ledger's native constant-product
pools:
  - discovery: find the pools of a pair across fee tiers and external adapters
  - router: best single source, or an equal split across the lowest-impact ones
  - bootstrap: proportional liquidity plans for a new pool (and their execution)
  - liquidity: create, deposit into, withdraw from and swap through one pool
  - amm: the pool math every layer prices through

Collaborators (ledger queries, transaction submission, metadata) are passed in
explicitly; see `stellar_router.ledger`, `stellar_router.horizon` and
`stellar_router.transactions`.
"""

from __future__ import annotations

from .amm import (
    spot_price,
    swap_output,
    price_impact,
    swap_quote,
    deposit_share_estimate,
    withdraw_estimate,
    share_percentage,
    check_pool_health,
)
from .discovery import (
    discover_liquidity_sources,
    get_aggregated_price,
    get_asset_price,
    check_pool_exists,
    get_all_liquidity_pools,
    monitor_pools_health,
)
from .router import find_best_source, calculate_optimal_route
from .bootstrap import bootstrap_new_pool, trigger_initial_liquidity, execute_bootstrap
from .liquidity import (
    create_liquidity_pool,
    deposit_liquidity,
    withdraw_liquidity,
    find_best_swap_path,
    swap_assets,
)
from .positions import get_user_liquidity_positions
from .config import Network, NetworkConfig

from .core import (
    Asset,
    SourceKind,
    LiquiditySource,
    AggregatedRoute,
    RouteAllocation,
    BootstrapConfig,
    BootstrapPlan,
    ExecutionResult,
    SwapPath,
    PoolHealth,
    AggregatedPrice,
)

__all__ = [
    # pool math
    "spot_price",
    "swap_output",
    "price_impact",
    "swap_quote",
    "deposit_share_estimate",
    "withdraw_estimate",
    "share_percentage",
    "check_pool_health",
    # discovery
    "discover_liquidity_sources",
    "get_aggregated_price",
    "get_asset_price",
    "check_pool_exists",
    "get_all_liquidity_pools",
    "monitor_pools_health",
    # routing
    "find_best_source",
    "calculate_optimal_route",
    # bootstrap
    "bootstrap_new_pool",
    "trigger_initial_liquidity",
    "execute_bootstrap",
    # pool operations
    "create_liquidity_pool",
    "deposit_liquidity",
    "withdraw_liquidity",
    "find_best_swap_path",
    "swap_assets",
    # positions
    "get_user_liquidity_positions",
    # configuration
    "Network",
    "NetworkConfig",
    # datatypes
    "Asset",
    "SourceKind",
    "LiquiditySource",
    "AggregatedRoute",
    "RouteAllocation",
    "BootstrapConfig",
    "BootstrapPlan",
    "ExecutionResult",
    "SwapPath",
    "PoolHealth",
    "AggregatedPrice",
]
