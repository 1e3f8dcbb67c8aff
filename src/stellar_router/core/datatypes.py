"""
Core datatypes shared by discovery, routing and planning.

These datatypes are immutable snapshots: a `LiquiditySource` is built fresh on
every discovery call and superseded by the next one; route and plan results are
constructed once per call.

Notes:
- Amounts are Decimal.
- `LiquiditySource.price` and `.tvl` are derived from the reserves on access,
  never stored.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple, Union

from .assets import Asset
from .constants import DEFAULT_MAX_SLIPPAGE_PCT
from .exc import AmountDomainError


# ---------------------------------------------------------------------------
# Liquidity source
# ---------------------------------------------------------------------------

class SourceKind(str, Enum):
    LEDGER_NATIVE = "ledger_native"
    EXTERNAL = "external"


@dataclass(frozen=True)
class LiquiditySource:
    """A discovered constant-product pool for a pair (assets in canonical order).

    Fields:
    - pool_id: deterministic id from (sorted pair, fee).
    - kind: where the pool lives (ledger-native or an external adapter).
    - asset_a, asset_b: canonical order.
    - reserve_a, reserve_b, total_shares: non-negative snapshot values.
    - fee: fee rate in basis points.
    """

    pool_id: str
    kind: SourceKind
    asset_a: Asset
    asset_b: Asset
    reserve_a: Decimal
    reserve_b: Decimal
    total_shares: Decimal
    fee: int

    def __post_init__(self) -> None:
        if self.reserve_a < 0 or self.reserve_b < 0:
            raise AmountDomainError(f"negative reserves on pool {self.pool_id}")
        if self.total_shares < 0:
            raise AmountDomainError(f"negative total shares on pool {self.pool_id}")
        if self.fee < 0:
            raise AmountDomainError(f"negative fee on pool {self.pool_id}")

    @property
    def price(self) -> Decimal:
        """reserve_b / reserve_a, or 0 for an empty A side."""
        if self.reserve_a == 0:
            return Decimal(0)
        return self.reserve_b / self.reserve_a

    @property
    def tvl(self) -> Decimal:
        # Unit simplification: only a true valuation when asset_b is a USD quote.
        return self.reserve_a + self.reserve_b


# ---------------------------------------------------------------------------
# Routing
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RouteAllocation:
    pool_id: str
    input_amount: Decimal
    output_amount: Decimal
    price_impact: Decimal


@dataclass(frozen=True)
class AggregatedRoute:
    """Ordered allocations plus aggregate totals.

    `effective_price` is total_input / total_output, defined as 0 when nothing
    was routed.
    """

    allocations: Tuple[RouteAllocation, ...] = ()
    total_input: Decimal = Decimal(0)
    total_output: Decimal = Decimal(0)
    average_price_impact: Decimal = Decimal(0)
    effective_price: Decimal = Decimal(0)

    def is_empty(self) -> bool:
        return not self.allocations


# ---------------------------------------------------------------------------
# Bootstrap
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BootstrapConfig:
    """Bootstrap request.

    `sources` restricts the candidate pools by kind value (e.g.
    "ledger_native") or explicit pool id; empty means every discovered pool.
    `max_slippage` is a percentage used for the deposit price band.
    """

    asset_a: Asset
    asset_b: Asset
    target_liquidity_usd: Decimal
    max_slippage: Decimal = DEFAULT_MAX_SLIPPAGE_PCT
    sources: Tuple[str, ...] = ()


@dataclass(frozen=True)
class BootstrapPlan:
    """Advisory result of planning; producing one moves no funds.

    `amount_a` / `amount_b` belong to `asset_a` / `asset_b`, the pool's
    canonical order, which need not match the order of the request. Use
    `amount_of` to read an amount by asset.
    """

    success: bool
    amount_a: Decimal
    amount_b: Decimal
    sources_used: Tuple[str, ...]
    message: str
    asset_a: Optional[Asset] = None
    asset_b: Optional[Asset] = None

    def amount_of(self, asset: Asset) -> Decimal:
        if asset == self.asset_a:
            return self.amount_a
        if asset == self.asset_b:
            return self.amount_b
        raise KeyError(f"{asset} is not part of this plan")

    @staticmethod
    def failure(message: str) -> "BootstrapPlan":
        return BootstrapPlan(
            success=False,
            amount_a=Decimal(0),
            amount_b=Decimal(0),
            sources_used=(),
            message=message,
        )


# ---------------------------------------------------------------------------
# Ledger operations (built into a transaction by the TransactionService)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PoolTrustOperation:
    """Trustline to a pool's share asset; the first one creates the pool."""

    asset_a: Asset
    asset_b: Asset
    fee_bps: int
    limit: Optional[str] = None


@dataclass(frozen=True)
class DepositOperation:
    """Ledger deposit into a pool; amounts and price bounds as 7-place strings.

    Amounts follow the pool's canonical order; prices are amount_a / amount_b.
    """

    pool_id: str
    max_amount_a: str
    max_amount_b: str
    min_price: str
    max_price: str


@dataclass(frozen=True)
class WithdrawOperation:
    pool_id: str
    amount: str
    min_amount_a: str
    min_amount_b: str


@dataclass(frozen=True)
class SwapOperation:
    """Strict-send path payment; `destination` None means back to the sender."""

    send_asset: Asset
    send_amount: str
    dest_asset: Asset
    dest_min: str
    path: Tuple[Asset, ...] = ()
    destination: Optional[str] = None


LedgerOperation = Union[PoolTrustOperation, DepositOperation, WithdrawOperation, SwapOperation]


@dataclass(frozen=True)
class ExecutionResult:
    success: bool
    message: str
    tx_hash: Optional[str] = None
    pool_id: Optional[str] = None


@dataclass(frozen=True)
class SwapPath:
    """Best direct pool for selling `send_amount` of `send_asset`."""

    pool_id: str
    send_asset: Asset
    dest_asset: Asset
    send_amount: Decimal
    dest_amount: Decimal
    price_impact: Decimal
    fee: int


# ---------------------------------------------------------------------------
# Health / price
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PoolHealth:
    healthy: bool
    issues: Tuple[str, ...]
    score: int


@dataclass(frozen=True)
class AggregatedPrice:
    """TVL-weighted price across sources and max-min spread of source prices."""

    price: Decimal
    source_count: int
    spread: Decimal


@dataclass(frozen=True)
class PairHealthReport:
    pair: str
    health: Tuple[PoolHealth, ...]
    sources: Tuple[LiquiditySource, ...]


# ---------------------------------------------------------------------------
# Ledger query shapes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Reserve:
    asset: str  # canonical asset string
    amount: Decimal


@dataclass(frozen=True)
class PoolSnapshot:
    pool_id: str
    reserves: Tuple[Reserve, ...]
    total_shares: Decimal
    fee_bps: int


@dataclass(frozen=True)
class AccountBalance:
    asset_type: str
    balance: Decimal
    asset_code: Optional[str] = None
    asset_issuer: Optional[str] = None
    liquidity_pool_id: Optional[str] = None


@dataclass(frozen=True)
class OrderbookLevel:
    price: Decimal
    amount: Decimal


@dataclass(frozen=True)
class Orderbook:
    bids: Tuple[OrderbookLevel, ...] = ()
    asks: Tuple[OrderbookLevel, ...] = ()


@dataclass(frozen=True)
class LiquidityPosition:
    """A wallet's share of one pool, valued at the current reserves."""

    pool_id: str
    shares: Decimal
    share_percentage: Decimal
    amounts: Tuple[Reserve, ...] = field(default_factory=tuple)


__all__ = [
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
]
