"""Metadata store: pool and position bookkeeping keyed by pool id / wallet.

Only the bootstrap execution path writes here; discovery, routing and planning
never touch it. `InMemoryMetadataStore` is the reference implementation of the
async protocol; a relational backend implements the same four calls.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Dict, List, Literal, Optional, Protocol, Tuple, runtime_checkable

from .core import Asset

PoolStatus = Literal["active", "paused", "closed"]


@dataclass(frozen=True)
class PoolRecord:
    pool_id: str
    creator_wallet_address: str
    asset_a: Asset
    asset_b: Asset
    total_asset_a: Decimal = Decimal(0)
    total_asset_b: Decimal = Decimal(0)
    total_shares: Decimal = Decimal(0)
    fee_bps: int = 30
    status: PoolStatus = "active"


@dataclass(frozen=True)
class PositionRecord:
    pool_id: str
    wallet_address: str
    shares: Decimal = Decimal(0)
    asset_a_deposited: Decimal = Decimal(0)
    asset_b_deposited: Decimal = Decimal(0)
    deposit_tx_hash: Optional[str] = None


@runtime_checkable
class MetadataStore(Protocol):
    async def upsert_pool(self, record: PoolRecord) -> None: ...
    async def get_pool(self, pool_id: str) -> Optional[PoolRecord]: ...
    async def upsert_position(self, record: PositionRecord) -> None: ...
    async def positions_for_wallet(self, wallet_address: str) -> List[PositionRecord]: ...


class InMemoryMetadataStore:
    """Dictionary-backed store; one position per (pool, wallet)."""

    def __init__(self) -> None:
        self._pools: Dict[str, PoolRecord] = {}
        self._positions: Dict[Tuple[str, str], PositionRecord] = {}

    async def upsert_pool(self, record: PoolRecord) -> None:
        self._pools[record.pool_id] = record

    async def get_pool(self, pool_id: str) -> Optional[PoolRecord]:
        return self._pools.get(pool_id)

    async def upsert_position(self, record: PositionRecord) -> None:
        key = (record.pool_id, record.wallet_address)
        prev = self._positions.get(key)
        if prev is not None:
            # deposits accumulate; the latest tx hash wins
            record = replace(
                record,
                shares=prev.shares + record.shares,
                asset_a_deposited=prev.asset_a_deposited + record.asset_a_deposited,
                asset_b_deposited=prev.asset_b_deposited + record.asset_b_deposited,
            )
        self._positions[key] = record

    async def positions_for_wallet(self, wallet_address: str) -> List[PositionRecord]:
        return [p for (_, w), p in self._positions.items() if w == wallet_address]


__all__ = [
    "PoolStatus",
    "PoolRecord",
    "PositionRecord",
    "MetadataStore",
    "InMemoryMetadataStore",
]
