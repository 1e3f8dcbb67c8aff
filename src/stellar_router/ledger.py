"""Ledger collaborator interfaces and an in-process query service.

The core reaches the ledger only through these narrow protocols:

- `LedgerQueryService`: read-only pool / account / order book lookups and a
  paged listing of every pool (newest first, `cursor` = last pool id seen).
  `get_pool` returns None for a pool that does not exist and raises
  `LedgerQueryError` for transport failures.
- `TransactionService`: builds, signs (through an injected `Signer`) and
  submits operations, returning the transaction hash or raising
  `TransactionError`.
- `Signer`: signing capability; the core never holds secrets.

`InMemoryLedger` implements `LedgerQueryService` over dictionaries. It backs
the offline demo and tests, and can replay a captured ledger state.
"""
from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Protocol, Sequence, Set, Tuple, runtime_checkable

from .core import (
    AccountBalance,
    Asset,
    LedgerOperation,
    Orderbook,
    OrderbookLevel,
    PoolSnapshot,
    Reserve,
    canonical_pair,
    pool_id as derive_pool_id,
    to_decimal,
)
from .core.exc import LedgerQueryError
from .core.fmt import DecimalLike


@runtime_checkable
class LedgerQueryService(Protocol):
    async def get_pool(self, pool_id: str) -> Optional[PoolSnapshot]: ...
    async def get_account_balances(self, address: str) -> List[AccountBalance]: ...
    async def get_orderbook(self, selling: Asset, buying: Asset) -> Orderbook: ...
    async def get_liquidity_pools(self, limit: int = 200, cursor: Optional[str] = None) -> List[PoolSnapshot]: ...


@runtime_checkable
class Signer(Protocol):
    public_key: str

    def sign(self, transaction: bytes) -> bytes:
        """Unsigned envelope in, signed envelope out (base64 XDR, ascii bytes)."""
        ...


@runtime_checkable
class TransactionService(Protocol):
    async def build_and_submit(self, operations: Sequence[LedgerOperation], signer: Signer) -> str: ...


class InMemoryLedger:
    """Dictionary-backed `LedgerQueryService`.

    Pools registered with `add_pool` get the same deterministic id discovery
    derives. Ids passed to `fail_pool` raise `LedgerQueryError` on lookup,
    standing in for a transport failure.
    """

    def __init__(self) -> None:
        self._pools: Dict[str, PoolSnapshot] = {}
        self._balances: Dict[str, List[AccountBalance]] = {}
        self._books: Dict[Tuple[str, str], Orderbook] = {}
        self._failing: Set[str] = set()
        self.lookups: List[str] = []

    # --- setup ---
    def add_pool(self,
                 asset_a: Asset,
                 asset_b: Asset,
                 fee_bps: int,
                 reserve_a: DecimalLike,
                 reserve_b: DecimalLike,
                 total_shares: DecimalLike) -> str:
        """Register a pool; reserves are given for (asset_a, asset_b) as passed."""
        pid = derive_pool_id(asset_a, asset_b, fee_bps)
        amounts = {asset_a: to_decimal(reserve_a), asset_b: to_decimal(reserve_b)}
        first, second = canonical_pair(asset_a, asset_b)
        self._pools[pid] = PoolSnapshot(
            pool_id=pid,
            reserves=(
                Reserve(first.canonical(), amounts[first]),
                Reserve(second.canonical(), amounts[second]),
            ),
            total_shares=to_decimal(total_shares),
            fee_bps=int(fee_bps),
        )
        return pid

    def remove_pool(self, pool_id: str) -> None:
        self._pools.pop(pool_id, None)

    def fail_pool(self, pool_id: str) -> None:
        self._failing.add(pool_id)

    def set_balances(self, address: str, balances: Iterable[AccountBalance]) -> None:
        self._balances[address] = list(balances)

    def set_orderbook(self,
                      selling: Asset,
                      buying: Asset,
                      bids: Iterable[tuple[DecimalLike, DecimalLike]] = (),
                      asks: Iterable[tuple[DecimalLike, DecimalLike]] = ()) -> None:
        self._books[(selling.canonical(), buying.canonical())] = Orderbook(
            bids=tuple(OrderbookLevel(to_decimal(p), to_decimal(a)) for p, a in bids),
            asks=tuple(OrderbookLevel(to_decimal(p), to_decimal(a)) for p, a in asks),
        )

    # --- LedgerQueryService ---
    async def get_pool(self, pool_id: str) -> Optional[PoolSnapshot]:
        self.lookups.append(pool_id)
        if pool_id in self._failing:
            raise LedgerQueryError(f"simulated transport failure for pool {pool_id}")
        return self._pools.get(pool_id)

    async def get_account_balances(self, address: str) -> List[AccountBalance]:
        if address not in self._balances:
            raise LedgerQueryError(f"account {address} not found", status=404)
        return list(self._balances[address])

    async def get_orderbook(self, selling: Asset, buying: Asset) -> Orderbook:
        return self._books.get((selling.canonical(), buying.canonical()), Orderbook())

    async def get_liquidity_pools(self, limit: int = 200, cursor: Optional[str] = None) -> List[PoolSnapshot]:
        # newest first: pools registered later come first
        ids = list(reversed(self._pools))
        if cursor is not None:
            ids = ids[ids.index(cursor) + 1:] if cursor in ids else []
        return [self._pools[pid] for pid in ids[:limit]]


__all__ = [
    "LedgerQueryService",
    "Signer",
    "TransactionService",
    "InMemoryLedger",
]
