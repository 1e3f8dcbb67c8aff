import asyncio
from decimal import Decimal

import pytest

from stellar_router.bootstrap import (
    bootstrap_new_pool,
    deposit_operation,
    execute_bootstrap,
    plan_from_sources,
    trigger_initial_liquidity,
)
from stellar_router.core import AmountDomainError, BootstrapConfig, BootstrapPlan, pool_id
from stellar_router.ledger import InMemoryLedger
from stellar_router.store import InMemoryMetadataStore, PoolRecord

from conftest import ISSUER, PLAT, USDC, WALLET, XLM, FakeTxService, make_source

TVLS = (Decimal(560000), Decimal(224000), Decimal(45000))
PRICES = (Decimal("0.12"), Decimal("0.12"), Decimal("0.125"))


def _expected(target: Decimal):
    total = sum(TVLS)
    sides = [target * (t / total) * Decimal("0.5") for t in TVLS]
    return sum(s / p for s, p in zip(sides, PRICES)), sum(sides)


def _ready_plan() -> BootstrapPlan:
    return BootstrapPlan(True, Decimal("1000"), Decimal("250"), ("p",), "planned")



def _plat_ledger() -> InMemoryLedger:
    # given as PLAT/XLM; the ledger keeps XLM first: 10000 XLM, 40000 PLAT, 4 PLAT per XLM
    ledger = InMemoryLedger()
    ledger.add_pool(PLAT, XLM, 30, "40000", "10000", "20000")
    return ledger


# -----------------------------
# bootstrap_new_pool
# -----------------------------

def test_plan_draws_proportionally_from_every_pool(tiered_ledger):
    plan = asyncio.run(bootstrap_new_pool(tiered_ledger, BootstrapConfig(XLM, USDC, Decimal("50000"))))
    exp_a, exp_b = _expected(Decimal("50000"))
    print(f"[bootstrap] A={plan.amount_a} B={plan.amount_b} msg={plan.message}")
    assert plan.success is True
    assert abs(plan.amount_a - exp_a) < Decimal("1e-25")
    assert abs(plan.amount_b - Decimal("25000")) < Decimal("1e-25")
    assert abs(plan.amount_b - exp_b) < Decimal("1e-25")
    assert plan.sources_used == tuple(pool_id(XLM, USDC, f) for f in (30, 100, 300))
    assert plan.message == "Successfully planned bootstrap with 50000 liquidity from 3 sources"
    assert (plan.asset_a, plan.asset_b) == (XLM, USDC)


def test_plan_amounts_follow_pool_order_not_request_order():
    plan = asyncio.run(bootstrap_new_pool(_plat_ledger(), BootstrapConfig(PLAT, XLM, Decimal("1000"))))
    print(f"[bootstrap] {plan.asset_a.short()}={plan.amount_a} {plan.asset_b.short()}={plan.amount_b}")
    assert plan.success is True
    assert (plan.asset_a, plan.asset_b) == (XLM, PLAT)
    assert plan.amount_of(PLAT) == Decimal("500")
    assert plan.amount_of(XLM) == Decimal("125")
    with pytest.raises(KeyError):
        plan.amount_of(USDC)


def test_plan_refused_when_target_exceeds_liquidity(tiered_ledger):
    plan = asyncio.run(bootstrap_new_pool(tiered_ledger, BootstrapConfig(XLM, USDC, Decimal("1000000"))))
    print(f"[bootstrap] {plan.message}")
    assert plan.success is False
    assert plan.amount_a == 0 and plan.amount_b == 0
    assert plan.sources_used == ()
    assert plan.message == ("Insufficient liquidity. Available: 829000.00, "
                            "Required: 1000000.00, Shortfall: 171000.00")


def test_plan_without_sources(empty_ledger):
    plan = asyncio.run(bootstrap_new_pool(empty_ledger, BootstrapConfig(XLM, USDC, Decimal("10"))))
    assert plan.success is False
    assert plan.message == "No liquidity sources available for bootstrapping"


@pytest.mark.parametrize("target", [Decimal("0"), Decimal("-5")])
def test_plan_requires_positive_target(tiered_ledger, target):
    plan = asyncio.run(bootstrap_new_pool(tiered_ledger, BootstrapConfig(XLM, USDC, target)))
    assert plan.success is False
    assert plan.message == "Target liquidity must be positive"
    assert tiered_ledger.lookups == []


def test_plan_same_asset_twice_is_a_failure_result(tiered_ledger):
    plan = asyncio.run(bootstrap_new_pool(tiered_ledger, BootstrapConfig(USDC, USDC, Decimal("10"))))
    assert plan.success is False
    assert plan.message.startswith("Failed to bootstrap pool:")


def test_plan_restricted_to_named_pool(tiered_ledger):
    pid = pool_id(XLM, USDC, 30)
    config = BootstrapConfig(XLM, USDC, Decimal("3000"), sources=(pid,))
    plan = asyncio.run(bootstrap_new_pool(tiered_ledger, config))
    assert plan.sources_used == (pid,)
    assert plan.amount_b == Decimal("1500")
    assert plan.amount_a == Decimal("1500") / Decimal("0.12")


def test_plan_restricted_to_absent_kind(tiered_ledger):
    config = BootstrapConfig(XLM, USDC, Decimal("3000"), sources=("external",))
    plan = asyncio.run(bootstrap_new_pool(tiered_ledger, config))
    assert plan.success is False
    assert plan.message == "No liquidity sources available for bootstrapping"


def test_plan_skips_unpriced_sources_but_counts_their_tvl():
    sources = [make_source("0", "5000", pool_id="unpriced"), make_source("1000", "1000", pool_id="ok")]
    plan = plan_from_sources(sources, Decimal("2000"))
    assert plan.success is True
    assert plan.sources_used == ("ok",)
    # 'ok' holds 2000 of the 7000 observed
    assert plan.amount_b == Decimal("2000") * (Decimal("2000") / Decimal("7000")) * Decimal("0.5")


def test_plan_with_only_unpriced_sources():
    plan = plan_from_sources([make_source("0", "5000")], Decimal("100"))
    assert plan.success is False
    assert plan.amount_a == 0


# -----------------------------
# trigger_initial_liquidity
# -----------------------------

def test_trigger_initial_liquidity_treats_xlm_as_native(tiered_ledger):
    pid = pool_id(XLM, USDC, 30)
    plan = asyncio.run(trigger_initial_liquidity(tiered_ledger, pid, ISSUER, "XLM", "USDC", 50000))
    exp_a, _ = _expected(Decimal("50000"))
    assert plan.success is True
    assert len(plan.sources_used) == 3
    assert abs(plan.amount_a - exp_a) < Decimal("1e-25")


def test_trigger_initial_liquidity_bad_code(tiered_ledger):
    plan = asyncio.run(trigger_initial_liquidity(tiered_ledger, "pid", ISSUER, "NOT-A-CODE", "USDC", 10))
    assert plan.success is False
    assert plan.message.startswith("Failed to trigger initial liquidity:")


# -----------------------------
# deposit / execution
# -----------------------------

def test_deposit_operation_price_band():
    op = deposit_operation(_ready_plan(), "pool-1", Decimal("1"))
    print(f"[deposit] {op}")
    assert op.pool_id == "pool-1"
    assert op.max_amount_a == "1000.0000000"
    assert op.max_amount_b == "250.0000000"
    assert op.min_price == "3.9600000"
    assert op.max_price == "4.0400000"


def test_deposit_operation_needs_amounts():
    with pytest.raises(AmountDomainError):
        deposit_operation(BootstrapPlan.failure("x"), "pool-1", 1)


def test_execute_bootstrap_submits_and_books(signer, tx_service):
    store = InMemoryMetadataStore()
    config = BootstrapConfig(XLM, USDC, Decimal("2500"))
    res = asyncio.run(execute_bootstrap(_ready_plan(), config, "pool-1", tx_service, signer, store=store))
    print(f"[execute] {res}")
    assert res.success is True
    assert res.tx_hash == tx_service.tx_hash
    assert len(tx_service.submitted) == 1
    assert tx_service.submitted[0][0].min_price == "3.9600000"
    assert signer.signed == [b"envelope"]

    pool = asyncio.run(store.get_pool("pool-1"))
    assert pool.creator_wallet_address == WALLET
    assert (pool.total_asset_a, pool.total_asset_b, pool.total_shares) == (1000, 250, 500)
    positions = asyncio.run(store.positions_for_wallet(WALLET))
    assert [p.shares for p in positions] == [500]
    assert positions[0].deposit_tx_hash == tx_service.tx_hash


def test_execute_bootstrap_twice_accumulates(signer, tx_service):
    store = InMemoryMetadataStore()
    config = BootstrapConfig(XLM, USDC, Decimal("2500"))
    for _ in range(2):
        asyncio.run(execute_bootstrap(_ready_plan(), config, "pool-1", tx_service, signer, store=store))
    pool = asyncio.run(store.get_pool("pool-1"))
    assert (pool.total_asset_a, pool.total_shares) == (2000, 1000)
    positions = asyncio.run(store.positions_for_wallet(WALLET))
    assert positions[0].shares == 1000
    assert positions[0].asset_b_deposited == 500


def test_execute_bootstrap_books_reversed_pair_by_asset(signer, tx_service):
    store = InMemoryMetadataStore()
    config = BootstrapConfig(PLAT, XLM, Decimal("1000"))
    plan = asyncio.run(bootstrap_new_pool(_plat_ledger(), config))
    pid = pool_id(PLAT, XLM, 30)
    res = asyncio.run(execute_bootstrap(plan, config, pid, tx_service, signer, store=store))
    assert res.success is True

    op = tx_service.submitted[0][0]
    print(f"[execute] {op}")
    # deposit amounts in ledger order: XLM first
    assert (op.max_amount_a, op.max_amount_b) == ("125.0000000", "500.0000000")
    assert (op.min_price, op.max_price) == ("0.2475000", "0.2525000")

    pool = asyncio.run(store.get_pool(pid))
    assert (pool.asset_a, pool.asset_b) == (XLM, PLAT)
    assert (pool.total_asset_a, pool.total_asset_b, pool.total_shares) == (125, 500, 250)
    position = asyncio.run(store.positions_for_wallet(WALLET))[0]
    assert (position.asset_a_deposited, position.asset_b_deposited) == (125, 500)


def test_execute_bootstrap_into_record_kept_in_request_order(signer, tx_service):
    store = InMemoryMetadataStore()
    pid = pool_id(PLAT, XLM, 30)
    asyncio.run(store.upsert_pool(PoolRecord(pid, WALLET, asset_a=PLAT, asset_b=XLM, total_asset_a=Decimal(400),
                                             total_asset_b=Decimal(100), total_shares=Decimal(200))))
    config = BootstrapConfig(PLAT, XLM, Decimal("1000"))
    plan = asyncio.run(bootstrap_new_pool(_plat_ledger(), config))
    asyncio.run(execute_bootstrap(plan, config, pid, tx_service, signer, store=store))

    pool = asyncio.run(store.get_pool(pid))
    assert (pool.asset_a, pool.asset_b) == (PLAT, XLM)
    # 500 PLAT and 125 XLM land on the PLAT and XLM columns
    assert (pool.total_asset_a, pool.total_asset_b, pool.total_shares) == (900, 225, 450)
    position = asyncio.run(store.positions_for_wallet(WALLET))[0]
    assert (position.asset_a_deposited, position.asset_b_deposited) == (500, 125)


def test_execute_bootstrap_skips_failed_plan(signer, tx_service):
    config = BootstrapConfig(XLM, USDC, Decimal("2500"))
    res = asyncio.run(execute_bootstrap(BootstrapPlan.failure("short"), config, "pool-1", tx_service, signer))
    assert res.success is False
    assert res.message == "Bootstrap not executed: short"
    assert tx_service.submitted == []


def test_execute_bootstrap_reports_rejected_transaction(signer):
    store = InMemoryMetadataStore()
    rejecting = FakeTxService(error="tx_bad_seq")
    config = BootstrapConfig(XLM, USDC, Decimal("2500"))
    res = asyncio.run(execute_bootstrap(_ready_plan(), config, "pool-1", rejecting, signer, store=store))
    assert res.success is False
    assert res.tx_hash is None
    assert "tx_bad_seq" in res.message
    assert asyncio.run(store.get_pool("pool-1")) is None
