"""Wallet liquidity positions valued against current pool reserves."""
from __future__ import annotations

import logging
from typing import List

from .amm import share_percentage, withdraw_estimate
from .core import LiquidityPosition, Reserve
from .core.exc import LedgerQueryError
from .ledger import LedgerQueryService

logger = logging.getLogger(__name__)

POOL_SHARE_ASSET_TYPE = "liquidity_pool_shares"


async def get_user_liquidity_positions(query: LedgerQueryService, address: str) -> List[LiquidityPosition]:
    """Positions held by `address`; empty if the account cannot be read.

    A pool that cannot be looked up (or no longer exists) drops only its own
    position.
    """
    try:
        balances = await query.get_account_balances(address)
    except LedgerQueryError as exc:
        logger.warning("cannot load account %s: %s", address, exc)
        return []

    positions: List[LiquidityPosition] = []
    for bal in balances:
        if bal.asset_type != POOL_SHARE_ASSET_TYPE or not bal.liquidity_pool_id:
            continue
        try:
            snapshot = await query.get_pool(bal.liquidity_pool_id)
        except LedgerQueryError as exc:
            logger.warning("cannot load pool %s: %s", bal.liquidity_pool_id[:12], exc)
            continue
        if snapshot is None or len(snapshot.reserves) < 2:
            continue
        r0, r1 = snapshot.reserves[0], snapshot.reserves[1]
        amount_0, amount_1 = withdraw_estimate(bal.balance, snapshot.total_shares, r0.amount, r1.amount)
        positions.append(LiquidityPosition(
            pool_id=snapshot.pool_id,
            shares=bal.balance,
            share_percentage=share_percentage(bal.balance, snapshot.total_shares),
            amounts=(Reserve(r0.asset, amount_0), Reserve(r1.asset, amount_1)),
        ))
    return positions


__all__ = ["get_user_liquidity_positions", "POOL_SHARE_ASSET_TYPE"]
