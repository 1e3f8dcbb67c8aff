"""Horizon REST collaborators.

`HorizonClient` implements `LedgerQueryService` on top of Horizon's REST API
with `requests`. Each blocking call runs in a worker thread
(`asyncio.to_thread`) so the async entry points never block the event loop.

Error mapping:
- HTTP 404 on a pool / order book  -> absence (None / empty book)
- any other HTTP error, transport error or malformed JSON -> LedgerQueryError

There is no retry here; a failed lookup is reported once and the caller
decides what absence means.
"""
from __future__ import annotations

import asyncio
import logging
from decimal import InvalidOperation
from typing import Any, Callable, Dict, List, Optional, Sequence

import requests

from .config import NetworkConfig
from .core import (
    AccountBalance,
    Asset,
    LedgerOperation,
    Orderbook,
    OrderbookLevel,
    PoolSnapshot,
    Reserve,
    to_decimal,
)
from .core.exc import AmountDomainError, LedgerQueryError, TransactionError
from .ledger import Signer
from .transactions import build_envelope

logger = logging.getLogger(__name__)

#: (operations, source account, current sequence, network passphrase) -> unsigned envelope
EnvelopeBuilder = Callable[[Sequence[LedgerOperation], str, int, str], bytes]


def _asset_params(prefix: str, asset: Asset) -> Dict[str, str]:
    params = {f"{prefix}_asset_type": asset.asset_type}
    if not asset.is_native:
        params[f"{prefix}_asset_code"] = asset.code
        params[f"{prefix}_asset_issuer"] = asset.issuer
    return params


def _levels(rows: Any) -> tuple[OrderbookLevel, ...]:
    return tuple(OrderbookLevel(to_decimal(r["price"]), to_decimal(r["amount"])) for r in rows or ())


def _snapshot(data: Dict[str, Any], pool_id: str) -> PoolSnapshot:
    try:
        return PoolSnapshot(
            pool_id=data.get("id", pool_id),
            reserves=tuple(Reserve(r["asset"], to_decimal(r["amount"])) for r in data["reserves"]),
            total_shares=to_decimal(data["total_shares"]),
            fee_bps=int(data["fee_bp"]),
        )
    except (KeyError, TypeError, ValueError, InvalidOperation, AmountDomainError) as exc:
        raise LedgerQueryError(f"malformed pool record {pool_id}: {exc}") from exc


class HorizonClient:
    """Read-only ledger queries (and envelope submission) against one network."""

    def __init__(self, config: NetworkConfig, *, session: Optional[requests.Session] = None) -> None:
        self.config = config
        self._session = session or requests.Session()

    # --- context management ---
    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> "HorizonClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # --- blocking transport ---
    def _url(self, path: str) -> str:
        return f"{self.config.horizon_url.rstrip('/')}/{path.lstrip('/')}"

    def _get(self, path: str, params: Optional[Dict[str, str]] = None) -> Optional[Dict[str, Any]]:
        """GET a JSON resource; None on 404."""
        url = self._url(path)
        logger.debug("GET %s params=%s", url, params)
        try:
            r = self._session.get(url, params=params, timeout=self.config.timeout)
        except requests.RequestException as exc:
            raise LedgerQueryError(f"request to {url} failed: {exc}", url=url) from exc
        if r.status_code == 404:
            return None
        if r.status_code >= 400:
            raise LedgerQueryError(f"Horizon returned HTTP {r.status_code} for {url}",
                                   status=r.status_code, url=url)
        try:
            return r.json()
        except ValueError as exc:
            raise LedgerQueryError(f"malformed JSON from {url}", status=r.status_code, url=url) from exc

    def _post_transaction(self, envelope_xdr: str) -> str:
        url = self._url("/transactions")
        try:
            r = self._session.post(url, data={"tx": envelope_xdr}, timeout=self.config.timeout)
        except requests.RequestException as exc:
            raise TransactionError(f"submission to {url} failed: {exc}") from exc
        try:
            body = r.json()
        except ValueError as exc:
            raise TransactionError(f"malformed JSON from {url} (HTTP {r.status_code})") from exc
        if r.status_code >= 400:
            codes = (body.get("extras") or {}).get("result_codes")
            raise TransactionError(f"transaction rejected: {body.get('title', r.status_code)}",
                                   result_codes=codes)
        tx_hash = body.get("hash")
        if not tx_hash:
            raise TransactionError("Horizon accepted the transaction but returned no hash")
        return tx_hash

    # --- LedgerQueryService ---
    async def get_pool(self, pool_id: str) -> Optional[PoolSnapshot]:
        data = await asyncio.to_thread(self._get, f"/liquidity_pools/{pool_id}")
        if data is None:
            return None
        return _snapshot(data, pool_id)

    async def get_liquidity_pools(self, limit: int = 200, cursor: Optional[str] = None) -> List[PoolSnapshot]:
        params = {"limit": str(limit), "order": "desc"}
        if cursor is not None:
            params["cursor"] = cursor
        data = await asyncio.to_thread(self._get, "/liquidity_pools", params)
        if data is None:
            return []
        try:
            records = data["_embedded"]["records"]
        except (KeyError, TypeError) as exc:
            raise LedgerQueryError(f"malformed pool page: {exc}") from exc
        return [_snapshot(r, r.get("id", "?")) for r in records]

    async def get_account_sequence(self, address: str) -> int:
        data = await asyncio.to_thread(self._get, f"/accounts/{address}")
        if data is None:
            raise LedgerQueryError(f"account {address} not found", status=404)
        try:
            return int(data["sequence"])
        except (KeyError, TypeError, ValueError) as exc:
            raise LedgerQueryError(f"malformed account record {address}: {exc}") from exc

    async def get_account_balances(self, address: str) -> List[AccountBalance]:
        data = await asyncio.to_thread(self._get, f"/accounts/{address}")
        if data is None:
            raise LedgerQueryError(f"account {address} not found", status=404)
        try:
            return [
                AccountBalance(
                    asset_type=b["asset_type"],
                    balance=to_decimal(b["balance"]),
                    asset_code=b.get("asset_code"),
                    asset_issuer=b.get("asset_issuer"),
                    liquidity_pool_id=b.get("liquidity_pool_id"),
                )
                for b in data["balances"]
            ]
        except (KeyError, TypeError, AmountDomainError) as exc:
            raise LedgerQueryError(f"malformed account record {address}: {exc}") from exc

    async def get_orderbook(self, selling: Asset, buying: Asset) -> Orderbook:
        params = {**_asset_params("selling", selling), **_asset_params("buying", buying)}
        data = await asyncio.to_thread(self._get, "/order_book", params)
        if data is None:
            return Orderbook()
        try:
            return Orderbook(bids=_levels(data.get("bids")), asks=_levels(data.get("asks")))
        except (KeyError, TypeError, AmountDomainError) as exc:
            raise LedgerQueryError(f"malformed order book {selling}/{buying}: {exc}") from exc

    async def submit_transaction(self, envelope_xdr: str) -> str:
        """Submit a signed base64 envelope; return its hash."""
        return await asyncio.to_thread(self._post_transaction, envelope_xdr)


class HorizonTransactionService:
    """`TransactionService` that builds with an envelope builder (by default
    `transactions.build_envelope`), signs with the caller's `Signer` and
    submits through a `HorizonClient`. The sequence number is read from
    Horizon right before building.
    """

    def __init__(self, client: HorizonClient, envelope_builder: EnvelopeBuilder = build_envelope) -> None:
        self.client = client
        self.envelope_builder = envelope_builder

    async def build_and_submit(self, operations: Sequence[LedgerOperation], signer: Signer) -> str:
        if not operations:
            raise TransactionError("no operations to submit")
        try:
            sequence = await self.client.get_account_sequence(signer.public_key)
        except LedgerQueryError as exc:
            raise TransactionError(f"cannot load source account {signer.public_key}: {exc}") from exc
        unsigned = self.envelope_builder(operations, signer.public_key, sequence, self.client.config.passphrase)
        signed = signer.sign(unsigned)
        tx_hash = await self.client.submit_transaction(signed.decode("ascii"))
        logger.info("submitted %d operation(s): %s", len(operations), tx_hash)
        return tx_hash


__all__ = [
    "EnvelopeBuilder",
    "HorizonClient",
    "HorizonTransactionService",
]
