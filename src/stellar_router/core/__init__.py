"""
Stellar Router Core
===================

Unified exports for asset identity, immutable datatypes, constants and the
Decimal bridge. Nothing in `core` performs I/O.
"""

from .constants import (
    BPS_DENOMINATOR,
    FEE_TIERS,
    DEFAULT_FEE_BPS,
    AMOUNT_PLACES,
    AMOUNT_QUANTUM,
    BOOTSTRAP_SIDE_FACTOR,
    DEFAULT_MAX_SLIPPAGE_PCT,
)

from .fmt import (
    DecimalLike,
    to_decimal,
    fmt_amount,
    quantize_down,
)

from .assets import (
    Asset,
    canonical_pair,
    pool_id,
    pool_share_asset,
)

from .datatypes import (
    SourceKind,
    LiquiditySource,
    RouteAllocation,
    AggregatedRoute,
    BootstrapConfig,
    BootstrapPlan,
    PoolTrustOperation,
    DepositOperation,
    WithdrawOperation,
    SwapOperation,
    LedgerOperation,
    ExecutionResult,
    SwapPath,
    PoolHealth,
    AggregatedPrice,
    PairHealthReport,
    Reserve,
    PoolSnapshot,
    AccountBalance,
    OrderbookLevel,
    Orderbook,
    LiquidityPosition,
)

from .exc import (
    AmountDomainError,
    AssetError,
    RouteError,
    LedgerQueryError,
    TransactionError,
    ConfigError,
)

__all__ = [
    # constants
    "BPS_DENOMINATOR",
    "FEE_TIERS",
    "DEFAULT_FEE_BPS",
    "AMOUNT_PLACES",
    "AMOUNT_QUANTUM",
    "BOOTSTRAP_SIDE_FACTOR",
    "DEFAULT_MAX_SLIPPAGE_PCT",
    # fmt
    "DecimalLike",
    "to_decimal",
    "fmt_amount",
    "quantize_down",
    # assets
    "Asset",
    "canonical_pair",
    "pool_id",
    "pool_share_asset",
    # datatypes
    "SourceKind",
    "LiquiditySource",
    "RouteAllocation",
    "AggregatedRoute",
    "BootstrapConfig",
    "BootstrapPlan",
    "PoolTrustOperation",
    "DepositOperation",
    "WithdrawOperation",
    "SwapOperation",
    "LedgerOperation",
    "ExecutionResult",
    "SwapPath",
    "PoolHealth",
    "AggregatedPrice",
    "PairHealthReport",
    "Reserve",
    "PoolSnapshot",
    "AccountBalance",
    "OrderbookLevel",
    "Orderbook",
    "LiquidityPosition",
    # exceptions
    "AmountDomainError",
    "AssetError",
    "RouteError",
    "LedgerQueryError",
    "TransactionError",
    "ConfigError",
]
