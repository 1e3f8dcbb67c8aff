"""
Stellar Router Core Constants
=============================

Fee tiers, fixed-point grids and scoring thresholds shared by the pool math,
discovery and planning layers.
"""

# NOTE: Fees are always carried as integer basis points; conversion to a
# multiplier happens only inside the pool math.

from decimal import Decimal

# ---------------------------------------------------------------------------
# Fees
# ---------------------------------------------------------------------------

#: Basis-point denominator (10000 bp == 100%).
BPS_DENOMINATOR: int = 10_000

#: Fee tiers looked up by discovery, in bp (0.30%, 1.00%, 3.00%).
FEE_TIERS: tuple[int, ...] = (30, 100, 300)

#: Fee tier used when a caller does not name one.
DEFAULT_FEE_BPS: int = 30


# ---------------------------------------------------------------------------
# Ledger amount grid
# ---------------------------------------------------------------------------

#: Stellar amounts carry 7 fractional digits (1 stroop = 1e-7).
AMOUNT_PLACES: int = 7
AMOUNT_QUANTUM: Decimal = Decimal("1e-7")


# ---------------------------------------------------------------------------
# Pool health scoring
# ---------------------------------------------------------------------------

HEALTH_MAX_SCORE: int = 100
HEALTH_MIN_HEALTHY_SCORE: int = 50

#: TVL below this is flagged as thin.
HEALTH_MIN_TVL: Decimal = Decimal("1000")
HEALTH_LOW_TVL_PENALTY: int = 30

#: reserveA / reserveB must stay within [low, high].
HEALTH_RATIO_LOW: Decimal = Decimal("0.1")
HEALTH_RATIO_HIGH: Decimal = Decimal("10")
HEALTH_IMBALANCE_PENALTY: int = 20

HEALTH_NO_SHARES_PENALTY: int = 50


# ---------------------------------------------------------------------------
# Bootstrap planning
# ---------------------------------------------------------------------------

#: Half of the target value goes to each side of the pair.
BOOTSTRAP_SIDE_FACTOR: Decimal = Decimal("0.5")

#: Default max slippage (percent) for bootstrap deposits.
DEFAULT_MAX_SLIPPAGE_PCT: Decimal = Decimal("1.0")


# ---------------------------------------------------------------------------
# Liquidity operations
# ---------------------------------------------------------------------------

#: Trustline limit placed on a pool-share asset when a pool is created.
POOL_TRUST_LIMIT: str = "1000000"


__all__ = [
    "BPS_DENOMINATOR",
    "FEE_TIERS",
    "DEFAULT_FEE_BPS",
    "AMOUNT_PLACES",
    "AMOUNT_QUANTUM",
    "HEALTH_MAX_SCORE",
    "HEALTH_MIN_HEALTHY_SCORE",
    "HEALTH_MIN_TVL",
    "HEALTH_LOW_TVL_PENALTY",
    "HEALTH_RATIO_LOW",
    "HEALTH_RATIO_HIGH",
    "HEALTH_IMBALANCE_PENALTY",
    "HEALTH_NO_SHARES_PENALTY",
    "BOOTSTRAP_SIDE_FACTOR",
    "DEFAULT_MAX_SLIPPAGE_PCT",
    "POOL_TRUST_LIMIT",
]
