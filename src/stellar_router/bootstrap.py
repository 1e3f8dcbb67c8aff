"""Bootstrap planning (and optional execution) for a newly created pool.

Planning draws the target value proportionally from the liquidity already
observed for the pair:

    proportion_i = min(tvl_i / sum(tvl), 1)
    side_i       = target * proportion_i * 0.5      # half of the value per asset
    amount_b    += side_i
    amount_a    += side_i / price_i

A plan is advisory. Every failure comes back as
`BootstrapPlan(success=False, ...)` with zero amounts and a message; callers
branch on `success`. Only `execute_bootstrap` moves funds, through the injected
`TransactionService`.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import List, Optional, Sequence

from .amm import deposit_share_estimate
from .core import (
    Asset,
    BootstrapConfig,
    BootstrapPlan,
    DEFAULT_FEE_BPS,
    DepositOperation,
    ExecutionResult,
    LiquiditySource,
    fmt_amount,
    to_decimal,
)
from .core.constants import BOOTSTRAP_SIDE_FACTOR, DEFAULT_MAX_SLIPPAGE_PCT
from .core.exc import AmountDomainError, AssetError, TransactionError
from .core.fmt import DecimalLike
from .discovery import DEFAULT_EXTERNAL_ADAPTERS, ExternalSourceAdapter, discover_liquidity_sources
from .ledger import LedgerQueryService, Signer, TransactionService
from .store import MetadataStore, PoolRecord, PositionRecord

logger = logging.getLogger(__name__)

NATIVE_CODE_ALIASES = ("XLM",)


def _select_candidates(sources: Sequence[LiquiditySource], wanted: Sequence[str]) -> List[LiquiditySource]:
    if not wanted:
        return list(sources)
    allowed = set(wanted)
    return [s for s in sources if s.kind.value in allowed or s.pool_id in allowed]


def plan_from_sources(sources: Sequence[LiquiditySource], target: Decimal) -> BootstrapPlan:
    """Proportional allocation of `target` across an already discovered set."""
    if not sources:
        logger.warning("no existing liquidity sources found")
        return BootstrapPlan.failure("No liquidity sources available for bootstrapping")

    total_available = sum((s.tvl for s in sources), Decimal(0))
    logger.info("total available liquidity: %s", total_available)
    if total_available < target:
        shortfall = target - total_available
        logger.warning("insufficient liquidity: short by %s", shortfall)
        return BootstrapPlan.failure(
            f"Insufficient liquidity. Available: {total_available:.2f}, "
            f"Required: {target:.2f}, Shortfall: {shortfall:.2f}"
        )

    amount_a = Decimal(0)
    amount_b = Decimal(0)
    used: List[str] = []
    for source in sources:
        proportion = min(source.tvl / total_available, Decimal(1))
        side = target * proportion * BOOTSTRAP_SIDE_FACTOR
        if source.price == 0:
            logger.warning("skipping pool %s: no reference price", source.pool_id[:12])
            continue
        amount_a += side / source.price
        amount_b += side
        used.append(source.pool_id)
        logger.debug("using %.2f%% from pool %s", proportion * 100, source.pool_id[:12])

    if not used:
        return BootstrapPlan.failure("No priced liquidity sources available for bootstrapping")

    # every source carries the pair in canonical order
    asset_a, asset_b = sources[0].asset_a, sources[0].asset_b
    logger.info("bootstrap plan created: %s %s, %s %s",
                fmt_amount(amount_a), asset_a.short(), fmt_amount(amount_b), asset_b.short())
    return BootstrapPlan(
        success=True,
        amount_a=amount_a,
        amount_b=amount_b,
        sources_used=tuple(used),
        message=f"Successfully planned bootstrap with {target} liquidity from {len(used)} sources",
        asset_a=asset_a,
        asset_b=asset_b,
    )


async def bootstrap_new_pool(query: LedgerQueryService,
                             config: BootstrapConfig,
                             *,
                             adapters: Sequence[ExternalSourceAdapter] = DEFAULT_EXTERNAL_ADAPTERS,
                             ) -> BootstrapPlan:
    """Discover the pair's liquidity and plan a proportional bootstrap."""
    try:
        target = to_decimal(config.target_liquidity_usd)
        if target <= 0:
            return BootstrapPlan.failure("Target liquidity must be positive")
        logger.info("bootstrapping %s/%s, target liquidity %s",
                    config.asset_a.short(), config.asset_b.short(), target)
        sources = await discover_liquidity_sources(query, config.asset_a, config.asset_b, adapters=adapters)
    except (AssetError, AmountDomainError) as exc:
        return BootstrapPlan.failure(f"Failed to bootstrap pool: {exc}")
    return plan_from_sources(_select_candidates(sources, config.sources), target)


def _asset_for_code(code: str, issuer: str) -> Asset:
    return Asset.native() if code in NATIVE_CODE_ALIASES else Asset(code, issuer)


async def trigger_initial_liquidity(query: LedgerQueryService,
                                    pool_id: str,
                                    issuer_address: str,
                                    asset_a_code: str,
                                    asset_b_code: str,
                                    target_liquidity_usd: DecimalLike,
                                    *,
                                    adapters: Sequence[ExternalSourceAdapter] = DEFAULT_EXTERNAL_ADAPTERS,
                                    ) -> BootstrapPlan:
    """Build the pair from codes and plan its bootstrap; the plan is returned as is."""
    logger.info("triggering initial liquidity for pool %s", pool_id[:16])
    try:
        config = BootstrapConfig(
            asset_a=_asset_for_code(asset_a_code, issuer_address),
            asset_b=_asset_for_code(asset_b_code, issuer_address),
            target_liquidity_usd=to_decimal(target_liquidity_usd),
            max_slippage=DEFAULT_MAX_SLIPPAGE_PCT,
            sources=("ledger_native",),
        )
    except (AssetError, AmountDomainError) as exc:
        return BootstrapPlan.failure(f"Failed to trigger initial liquidity: {exc}")
    return await bootstrap_new_pool(query, config, adapters=adapters)


def deposit_operation(plan: BootstrapPlan, pool_id: str, max_slippage: DecimalLike) -> DepositOperation:
    """Deposit of the planned amounts with a +/- max_slippage% price band.

    Amounts are in the plan's (canonical) order, which is the order the
    ledger expects; it prices deposits as amount_a / amount_b.
    """
    if plan.amount_a <= 0 or plan.amount_b <= 0:
        raise AmountDomainError("plan has no amounts to deposit")
    reference = plan.amount_a / plan.amount_b
    band = to_decimal(max_slippage) / Decimal(100)
    low = max(reference * (Decimal(1) - band), Decimal(0))
    high = reference * (Decimal(1) + band)
    return DepositOperation(
        pool_id=pool_id,
        max_amount_a=fmt_amount(plan.amount_a),
        max_amount_b=fmt_amount(plan.amount_b),
        min_price=fmt_amount(low),
        max_price=fmt_amount(high),
    )


async def _record(store: MetadataStore,
                  config: BootstrapConfig,
                  plan: BootstrapPlan,
                  pool_id: str,
                  fee_bps: int,
                  wallet: str,
                  tx_hash: str) -> None:
    existing = await store.get_pool(pool_id)
    if existing is None:
        existing = PoolRecord(pool_id=pool_id, creator_wallet_address=wallet,
                              asset_a=plan.asset_a or config.asset_a,
                              asset_b=plan.asset_b or config.asset_b,
                              fee_bps=fee_bps)
    # book amounts against the record's own asset order
    if plan.asset_a is None:
        deposit_a, deposit_b = plan.amount_a, plan.amount_b
    else:
        deposit_a, deposit_b = plan.amount_of(existing.asset_a), plan.amount_of(existing.asset_b)
    shares = deposit_share_estimate(deposit_a, deposit_b,
                                    existing.total_asset_a, existing.total_asset_b, existing.total_shares)
    await store.upsert_pool(PoolRecord(
        pool_id=pool_id,
        creator_wallet_address=existing.creator_wallet_address,
        asset_a=existing.asset_a,
        asset_b=existing.asset_b,
        total_asset_a=existing.total_asset_a + deposit_a,
        total_asset_b=existing.total_asset_b + deposit_b,
        total_shares=existing.total_shares + shares,
        fee_bps=existing.fee_bps,
        status=existing.status,
    ))
    await store.upsert_position(PositionRecord(
        pool_id=pool_id,
        wallet_address=wallet,
        shares=shares,
        asset_a_deposited=deposit_a,
        asset_b_deposited=deposit_b,
        deposit_tx_hash=tx_hash,
    ))


async def execute_bootstrap(plan: BootstrapPlan,
                            config: BootstrapConfig,
                            pool_id: str,
                            tx_service: TransactionService,
                            signer: Signer,
                            *,
                            fee_bps: int = DEFAULT_FEE_BPS,
                            store: Optional[MetadataStore] = None,
                            ) -> ExecutionResult:
    """Deposit a successful plan into `pool_id` and optionally book it."""
    if not plan.success:
        return ExecutionResult(success=False, message=f"Bootstrap not executed: {plan.message}")
    try:
        op = deposit_operation(plan, pool_id, config.max_slippage)
        tx_hash = await tx_service.build_and_submit([op], signer)
    except (AmountDomainError, TransactionError) as exc:
        logger.warning("bootstrap deposit into %s failed: %s", pool_id[:12], exc)
        return ExecutionResult(success=False, message=f"Bootstrap deposit failed: {exc}")

    logger.info("bootstrap deposit into %s submitted: %s", pool_id[:12], tx_hash)
    if store is not None:
        await _record(store, config, plan, pool_id, fee_bps, signer.public_key, tx_hash)
    return ExecutionResult(success=True, message=f"Deposited bootstrap liquidity into {pool_id}", tx_hash=tx_hash)


__all__ = [
    "plan_from_sources",
    "bootstrap_new_pool",
    "trigger_initial_liquidity",
    "deposit_operation",
    "execute_bootstrap",
]
