"""Direct pool operations: create, deposit, withdraw and swap.

Each operation builds one of the ledger operation records, hands it to the
injected `TransactionService` and reports an `ExecutionResult`. Failures
(invalid amounts, a missing pool, a rejected transaction) come back as
`ExecutionResult(success=False, ...)`; nothing here raises for them.

Slippage floors are computed from the pool math and rounded down to the
ledger's 7-place grid:

    min_out = estimate * (1 - max_slippage / 100)
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional, Sequence

from .amm import swap_quote, withdraw_estimate
from .core import (
    Asset,
    DEFAULT_FEE_BPS,
    DEFAULT_MAX_SLIPPAGE_PCT,
    DepositOperation,
    ExecutionResult,
    LedgerOperation,
    PoolTrustOperation,
    SourceKind,
    SwapOperation,
    SwapPath,
    WithdrawOperation,
    fmt_amount,
    pool_id as derive_pool_id,
    quantize_down,
    to_decimal,
)
from .core.constants import POOL_TRUST_LIMIT
from .core.exc import AmountDomainError, AssetError, LedgerQueryError, TransactionError
from .core.fmt import DecimalLike
from .discovery import check_pool_exists, discover_liquidity_sources
from .ledger import LedgerQueryService, Signer, TransactionService

logger = logging.getLogger(__name__)


def _positive(value: DecimalLike, name: str) -> Decimal:
    d = to_decimal(value)
    if d <= 0:
        raise AmountDomainError(f"{name} must be > 0, got {d}")
    return d


def slippage_floor(estimate: DecimalLike, max_slippage: DecimalLike) -> Decimal:
    """`estimate` less `max_slippage` percent, never below zero."""
    pct = to_decimal(max_slippage)
    if pct < 0 or pct > 100:
        raise AmountDomainError(f"max_slippage must be within [0, 100], got {pct}")
    return max(to_decimal(estimate) * (Decimal(1) - pct / Decimal(100)), Decimal(0))


async def _submit(tx_service: TransactionService,
                  signer: Signer,
                  op: LedgerOperation,
                  what: str,
                  pool_id: Optional[str] = None) -> ExecutionResult:
    try:
        tx_hash = await tx_service.build_and_submit([op], signer)
    except TransactionError as exc:
        logger.warning("%s failed: %s", what, exc)
        return ExecutionResult(success=False, message=f"{what} failed: {exc}", pool_id=pool_id)
    logger.info("%s submitted: %s", what, tx_hash)
    return ExecutionResult(success=True, message=f"{what} submitted", tx_hash=tx_hash, pool_id=pool_id)


async def create_liquidity_pool(query: LedgerQueryService,
                                tx_service: TransactionService,
                                signer: Signer,
                                asset_a: Asset,
                                asset_b: Asset,
                                fee_bps: int = DEFAULT_FEE_BPS,
                                *,
                                limit: str = POOL_TRUST_LIMIT,
                                ) -> ExecutionResult:
    """Create the pair's pool by opening a trustline to its share asset.

    A pool that already exists is reported as success without a transaction.
    """
    try:
        pid = derive_pool_id(asset_a, asset_b, fee_bps)
    except AssetError as exc:
        return ExecutionResult(success=False, message=f"Pool creation failed: {exc}")
    logger.info("creating pool %s (%s/%s, %dbp)", pid[:12], asset_a.short(), asset_b.short(), fee_bps)
    if await check_pool_exists(query, pid):
        logger.info("pool %s already exists, skipping creation", pid[:12])
        return ExecutionResult(success=True, message=f"Pool {pid} already exists", pool_id=pid)
    op = PoolTrustOperation(asset_a=asset_a, asset_b=asset_b, fee_bps=int(fee_bps), limit=limit)
    return await _submit(tx_service, signer, op, f"Pool creation for {pid}", pool_id=pid)


async def deposit_liquidity(tx_service: TransactionService,
                            signer: Signer,
                            pool_id: str,
                            max_amount_a: DecimalLike,
                            max_amount_b: DecimalLike,
                            min_price: DecimalLike,
                            max_price: DecimalLike,
                            ) -> ExecutionResult:
    """Deposit up to the given amounts (canonical order) within a price band."""
    try:
        a = _positive(max_amount_a, "max_amount_a")
        b = _positive(max_amount_b, "max_amount_b")
        low, high = to_decimal(min_price), to_decimal(max_price)
        if low < 0 or high <= 0 or low > high:
            raise AmountDomainError(f"invalid price band [{low}, {high}]")
    except AmountDomainError as exc:
        return ExecutionResult(success=False, message=f"Deposit rejected: {exc}", pool_id=pool_id)
    op = DepositOperation(
        pool_id=pool_id,
        max_amount_a=fmt_amount(a),
        max_amount_b=fmt_amount(b),
        min_price=fmt_amount(low),
        max_price=fmt_amount(high),
    )
    return await _submit(tx_service, signer, op, f"Deposit into {pool_id}", pool_id=pool_id)


async def withdraw_liquidity(query: LedgerQueryService,
                             tx_service: TransactionService,
                             signer: Signer,
                             pool_id: str,
                             shares: DecimalLike,
                             *,
                             max_slippage: DecimalLike = DEFAULT_MAX_SLIPPAGE_PCT,
                             ) -> ExecutionResult:
    """Redeem `shares`; the minimum amounts come from the current reserves."""
    try:
        amount = _positive(shares, "shares")
        snapshot = await query.get_pool(pool_id)
        if snapshot is None:
            return ExecutionResult(success=False, message=f"Pool {pool_id} not found", pool_id=pool_id)
        if len(snapshot.reserves) < 2:
            raise LedgerQueryError(f"pool {pool_id} reports {len(snapshot.reserves)} reserve(s)")
        if amount > snapshot.total_shares:
            raise AmountDomainError(f"cannot redeem {amount} of {snapshot.total_shares} shares")
        r0, r1 = snapshot.reserves[0].amount, snapshot.reserves[1].amount
        est_a, est_b = withdraw_estimate(amount, snapshot.total_shares, r0, r1)
        min_a, min_b = slippage_floor(est_a, max_slippage), slippage_floor(est_b, max_slippage)
    except (AmountDomainError, LedgerQueryError) as exc:
        return ExecutionResult(success=False, message=f"Withdrawal rejected: {exc}", pool_id=pool_id)
    op = WithdrawOperation(
        pool_id=pool_id,
        amount=fmt_amount(amount),
        min_amount_a=fmt_amount(min_a),
        min_amount_b=fmt_amount(min_b),
    )
    return await _submit(tx_service, signer, op, f"Withdrawal from {pool_id}", pool_id=pool_id)


async def find_best_swap_path(query: LedgerQueryService,
                              send_asset: Asset,
                              dest_asset: Asset,
                              send_amount: DecimalLike,
                              *,
                              fee_tiers: Optional[Sequence[int]] = None,
                              ) -> Optional[SwapPath]:
    """Ledger pool of the pair that returns the most `dest_asset` for the amount.

    Only the ledger's own pools are considered (they are what a path payment
    can cross). None when no pool returns anything; first tier wins ties.
    A non-positive `send_amount` raises `AmountDomainError`.
    """
    dx = _positive(send_amount, "send_amount")
    kwargs = {} if fee_tiers is None else {"fee_tiers": fee_tiers}
    sources = await discover_liquidity_sources(query, send_asset, dest_asset, adapters=(), **kwargs)
    best: Optional[SwapPath] = None
    for source in sources:
        if source.kind is not SourceKind.LEDGER_NATIVE:
            continue
        if send_asset == source.asset_a:
            quote = swap_quote(dx, source.reserve_a, source.reserve_b, source.fee)
        else:
            quote = swap_quote(dx, source.reserve_b, source.reserve_a, source.fee)
        if quote.output_amount <= 0:
            continue
        if best is None or quote.output_amount > best.dest_amount:
            best = SwapPath(
                pool_id=source.pool_id,
                send_asset=send_asset,
                dest_asset=dest_asset,
                send_amount=dx,
                dest_amount=quote.output_amount,
                price_impact=quote.price_impact,
                fee=source.fee,
            )
    if best is None:
        logger.info("no swap path for %s -> %s", send_asset.short(), dest_asset.short())
    else:
        logger.info("best swap path via %s: %s %s -> %s %s", best.pool_id[:12],
                    fmt_amount(dx), send_asset.short(), fmt_amount(best.dest_amount), dest_asset.short())
    return best


async def swap_assets(tx_service: TransactionService,
                      signer: Signer,
                      path: SwapPath,
                      *,
                      max_slippage: DecimalLike = DEFAULT_MAX_SLIPPAGE_PCT,
                      destination: Optional[str] = None,
                      ) -> ExecutionResult:
    """Strict-send swap along `path`; receives at least the quote less slippage.

    The pool is crossed directly, so the payment path is empty.
    """
    try:
        dest_min = quantize_down(slippage_floor(path.dest_amount, max_slippage))
        if dest_min <= 0:
            raise AmountDomainError("quoted output rounds to zero")
    except AmountDomainError as exc:
        return ExecutionResult(success=False, message=f"Swap rejected: {exc}", pool_id=path.pool_id)
    op = SwapOperation(
        send_asset=path.send_asset,
        send_amount=fmt_amount(path.send_amount),
        dest_asset=path.dest_asset,
        dest_min=fmt_amount(dest_min),
        destination=destination,
    )
    return await _submit(tx_service, signer, op,
                         f"Swap {path.send_asset.short()} -> {path.dest_asset.short()}", pool_id=path.pool_id)


__all__ = [
    "slippage_floor",
    "create_liquidity_pool",
    "deposit_liquidity",
    "withdraw_liquidity",
    "find_best_swap_path",
    "swap_assets",
]
