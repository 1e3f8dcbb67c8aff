from __future__ import annotations
from decimal import Decimal
from typing import Callable, List, Optional, Sequence

import pytest
from stellar_sdk import StrKey

# Import project primitives
from stellar_router.core import Asset, LedgerOperation, LiquiditySource, SourceKind, TransactionError
from stellar_router.ledger import InMemoryLedger


# -----------------------------
# Test helpers (pure functions)
# -----------------------------

# deterministic, checksum-valid account ids
ISSUER = StrKey.encode_ed25519_public_key(bytes([1]) * 32)
OTHER_ISSUER = StrKey.encode_ed25519_public_key(bytes([2]) * 32)
WALLET = StrKey.encode_ed25519_public_key(bytes([3]) * 32)

XLM = Asset.native()
USDC = Asset("USDC", ISSUER)
PLAT = Asset("PLAT", ISSUER)


def make_source(reserve_a, reserve_b, total_shares="1000", fee: int = 30,
                pool_id: str = "p", kind: SourceKind = SourceKind.LEDGER_NATIVE) -> LiquiditySource:
    return LiquiditySource(
        pool_id=pool_id,
        kind=kind,
        asset_a=XLM,
        asset_b=USDC,
        reserve_a=Decimal(str(reserve_a)),
        reserve_b=Decimal(str(reserve_b)),
        total_shares=Decimal(str(total_shares)),
        fee=fee,
    )


class FakeSigner:
    """Signer stub: prefixes the envelope so signing is observable."""

    def __init__(self, public_key: str = WALLET) -> None:
        self.public_key = public_key
        self.signed: List[bytes] = []

    def sign(self, transaction: bytes) -> bytes:
        self.signed.append(transaction)
        return b"signed:" + transaction


class FakeTxService:
    """TransactionService stub recording submitted operations."""

    def __init__(self, tx_hash: str = "ab" * 32, error: Optional[str] = None) -> None:
        self.tx_hash = tx_hash
        self.error = error
        self.submitted: List[Sequence[LedgerOperation]] = []

    async def build_and_submit(self, operations, signer) -> str:
        if self.error:
            raise TransactionError(self.error, result_codes={"transaction": "tx_failed"})
        self.submitted.append(list(operations))
        signer.sign(b"envelope")
        return self.tx_hash


# -----------------------------
# Pytest fixtures
# -----------------------------

@pytest.fixture()
def source_factory() -> Callable[..., LiquiditySource]:
    return make_source


@pytest.fixture()
def empty_ledger() -> InMemoryLedger:
    return InMemoryLedger()


@pytest.fixture()
def tiered_ledger() -> InMemoryLedger:
    """XLM/USDC at all three fee tiers, deepest at 30bp."""
    ledger = InMemoryLedger()
    ledger.add_pool(XLM, USDC, 30, "500000", "60000", "170000")
    ledger.add_pool(XLM, USDC, 100, "200000", "24000", "69000")
    ledger.add_pool(XLM, USDC, 300, "40000", "5000", "14000")
    return ledger


@pytest.fixture()
def signer() -> FakeSigner:
    return FakeSigner()


@pytest.fixture()
def tx_service() -> FakeTxService:
    return FakeTxService()
