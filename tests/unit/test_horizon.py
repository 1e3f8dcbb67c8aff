import asyncio
from decimal import Decimal

import pytest
import requests
from stellar_sdk import Keypair, TransactionEnvelope

from stellar_router.config import NetworkConfig
from stellar_router.core import LedgerQueryError, TransactionError, WithdrawOperation, pool_id
from stellar_router.discovery import discover_liquidity_sources
from stellar_router.horizon import HorizonClient, HorizonTransactionService
from stellar_router.transactions import KeypairSigner

from conftest import USDC, WALLET, XLM, FakeSigner

CONFIG = NetworkConfig.for_network("testnet")


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        if self._payload is None:
            raise ValueError("no JSON")
        return self._payload


class FakeSession:
    """Routes GET paths to canned responses; records every call."""

    def __init__(self, routes=None, post=None, error=None):
        self.routes = routes or {}
        self.post_response = post
        self.error = error
        self.calls = []
        self.closed = False

    def get(self, url, params=None, timeout=None):
        self.calls.append(("GET", url, params, timeout))
        if self.error:
            raise self.error
        path = url.split("horizon-testnet.stellar.org", 1)[1]
        return self.routes.get(path, FakeResponse(404, {"status": 404}))

    def post(self, url, data=None, timeout=None):
        self.calls.append(("POST", url, data, timeout))
        return self.post_response

    def close(self):
        self.closed = True


def _pool_json(pid, fee=30):
    return {
        "id": pid,
        "fee_bp": fee,
        "total_shares": "5000.0000000",
        "reserves": [
            {"asset": "native", "amount": "1000.0000000"},
            {"asset": USDC.canonical(), "amount": "250.0000000"},
        ],
    }


# -----------------------------
# queries
# -----------------------------

def test_get_pool_parses_record():
    pid = pool_id(XLM, USDC, 30)
    session = FakeSession({f"/liquidity_pools/{pid}": FakeResponse(200, _pool_json(pid))})
    snap = asyncio.run(HorizonClient(CONFIG, session=session).get_pool(pid))
    assert snap.pool_id == pid
    assert snap.fee_bps == 30
    assert snap.total_shares == Decimal("5000")
    assert [r.amount for r in snap.reserves] == [Decimal("1000"), Decimal("250")]
    assert session.calls[0][3] == CONFIG.timeout


def test_get_pool_absent_on_404():
    client = HorizonClient(CONFIG, session=FakeSession())
    assert asyncio.run(client.get_pool("ab" * 32)) is None


@pytest.mark.parametrize("response", [FakeResponse(500, {"title": "oops"}), FakeResponse(200, None),
                                      FakeResponse(200, {"id": "x"})])
def test_get_pool_failures_raise(response):
    session = FakeSession({"/liquidity_pools/x": response})
    with pytest.raises(LedgerQueryError):
        asyncio.run(HorizonClient(CONFIG, session=session).get_pool("x"))


def test_transport_error_becomes_query_error():
    session = FakeSession(error=requests.ConnectionError("refused"))
    with pytest.raises(LedgerQueryError) as ei:
        asyncio.run(HorizonClient(CONFIG, session=session).get_pool("x"))
    assert ei.value.url.endswith("/liquidity_pools/x")


def test_discovery_over_horizon_degrades_on_server_error():
    p30, p100 = pool_id(XLM, USDC, 30), pool_id(XLM, USDC, 100)
    session = FakeSession({
        f"/liquidity_pools/{p30}": FakeResponse(200, _pool_json(p30)),
        f"/liquidity_pools/{p100}": FakeResponse(503, {"title": "unavailable"}),
    })
    sources = asyncio.run(discover_liquidity_sources(HorizonClient(CONFIG, session=session), XLM, USDC))
    assert [s.pool_id for s in sources] == [p30]
    assert sources[0].reserve_b == Decimal("250")


def test_account_balances():
    payload = {"balances": [
        {"asset_type": "liquidity_pool_shares", "balance": "10.0000000", "liquidity_pool_id": "ab" * 32},
        {"asset_type": "credit_alphanum4", "balance": "3.5", "asset_code": "USDC", "asset_issuer": USDC.issuer},
        {"asset_type": "native", "balance": "99.9"},
    ]}
    session = FakeSession({f"/accounts/{WALLET}": FakeResponse(200, payload)})
    balances = asyncio.run(HorizonClient(CONFIG, session=session).get_account_balances(WALLET))
    assert [b.asset_type for b in balances] == ["liquidity_pool_shares", "credit_alphanum4", "native"]
    assert balances[0].liquidity_pool_id == "ab" * 32
    assert balances[1].asset_code == "USDC"


def test_account_not_found_raises():
    with pytest.raises(LedgerQueryError) as ei:
        asyncio.run(HorizonClient(CONFIG, session=FakeSession()).get_account_balances(WALLET))
    assert ei.value.status == 404


def test_orderbook_params_and_levels():
    book = {"bids": [{"price": "0.1200000", "amount": "50"}], "asks": [{"price": "0.1300000", "amount": "20"}]}
    session = FakeSession({"/order_book": FakeResponse(200, book)})
    ob = asyncio.run(HorizonClient(CONFIG, session=session).get_orderbook(XLM, USDC))
    assert ob.bids[0].price == Decimal("0.12")
    assert ob.asks[0].amount == Decimal("20")
    params = session.calls[0][2]
    assert params["selling_asset_type"] == "native"
    assert "selling_asset_code" not in params
    assert params["buying_asset_code"] == "USDC"
    assert params["buying_asset_issuer"] == USDC.issuer


def test_liquidity_pool_page_params_and_records():
    p30, p100 = pool_id(XLM, USDC, 30), pool_id(XLM, USDC, 100)
    page = {"_embedded": {"records": [_pool_json(p100, fee=100), _pool_json(p30)]}}
    session = FakeSession({"/liquidity_pools": FakeResponse(200, page)})
    pools = asyncio.run(HorizonClient(CONFIG, session=session).get_liquidity_pools(limit=2, cursor="c0"))
    assert [p.pool_id for p in pools] == [p100, p30]
    assert pools[0].fee_bps == 100
    assert session.calls[0][2] == {"limit": "2", "order": "desc", "cursor": "c0"}


def test_liquidity_pool_page_malformed_raises():
    session = FakeSession({"/liquidity_pools": FakeResponse(200, {"records": []})})
    with pytest.raises(LedgerQueryError):
        asyncio.run(HorizonClient(CONFIG, session=session).get_liquidity_pools())


def test_account_sequence():
    session = FakeSession({f"/accounts/{WALLET}": FakeResponse(200, {"sequence": "1234567890123"})})
    assert asyncio.run(HorizonClient(CONFIG, session=session).get_account_sequence(WALLET)) == 1234567890123


def test_client_context_closes_session():
    session = FakeSession()
    with HorizonClient(CONFIG, session=session):
        pass
    assert session.closed


# -----------------------------
# submission
# -----------------------------

def _builder(ops, source, sequence, passphrase):
    return f"{len(ops)}|{source}|{sequence}|{passphrase}".encode()


def _account_route(sequence="41"):
    return {f"/accounts/{WALLET}": FakeResponse(200, {"sequence": sequence})}


def test_transaction_service_signs_and_submits():
    session = FakeSession(_account_route("41"), post=FakeResponse(200, {"hash": "cafe"}))
    service = HorizonTransactionService(HorizonClient(CONFIG, session=session), _builder)
    signer = FakeSigner()
    tx_hash = asyncio.run(service.build_and_submit(["op"], signer))
    assert tx_hash == "cafe"
    assert session.calls[0][:2] == ("GET", f"https://horizon-testnet.stellar.org/accounts/{WALLET}")
    method, url, data, _ = session.calls[1]
    assert (method, url) == ("POST", "https://horizon-testnet.stellar.org/transactions")
    assert data["tx"] == "signed:" + _builder(["op"], WALLET, 41, CONFIG.passphrase).decode()


def test_transaction_service_needs_source_account():
    session = FakeSession(post=FakeResponse(200, {"hash": "cafe"}))
    service = HorizonTransactionService(HorizonClient(CONFIG, session=session), _builder)
    with pytest.raises(TransactionError):
        asyncio.run(service.build_and_submit(["op"], FakeSigner()))
    assert all(method == "GET" for method, *_ in session.calls)


def test_transaction_rejected_carries_result_codes():
    body = {"title": "Transaction Failed", "extras": {"result_codes": {"transaction": "tx_bad_seq"}}}
    session = FakeSession(_account_route(), post=FakeResponse(400, body))
    service = HorizonTransactionService(HorizonClient(CONFIG, session=session), _builder)
    with pytest.raises(TransactionError) as ei:
        asyncio.run(service.build_and_submit(["op"], FakeSigner()))
    assert ei.value.result_codes == {"transaction": "tx_bad_seq"}


def test_transaction_service_rejects_empty_batch():
    service = HorizonTransactionService(HorizonClient(CONFIG, session=FakeSession()), _builder)
    with pytest.raises(TransactionError):
        asyncio.run(service.build_and_submit([], FakeSigner()))


def test_transaction_service_submits_signed_sdk_envelope():
    kp = Keypair.random()
    session = FakeSession({f"/accounts/{kp.public_key}": FakeResponse(200, {"sequence": "99"})},
                          post=FakeResponse(200, {"hash": "beef"}))
    service = HorizonTransactionService(HorizonClient(CONFIG, session=session))
    op = WithdrawOperation(pool_id(XLM, USDC, 30), "1.0000000", "0.5000000", "0.1000000")
    assert asyncio.run(service.build_and_submit([op], KeypairSigner(kp, CONFIG.passphrase))) == "beef"
    env = TransactionEnvelope.from_xdr(session.calls[1][2]["tx"], CONFIG.passphrase)
    assert env.transaction.sequence == 100
    assert len(env.transaction.operations) == 1
    assert len(env.signatures) == 1
