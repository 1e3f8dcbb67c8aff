"""Transaction building and signing with `stellar_sdk`.

`build_envelope` is the default `EnvelopeBuilder` of
`HorizonTransactionService`: it turns the package's operation records into
one unsigned transaction. `KeypairSigner` is the `Signer` for a locally held
secret key. Envelopes cross the `Signer` boundary as base64 XDR (ascii bytes).
"""
from __future__ import annotations

from typing import Sequence

from stellar_sdk import Account, Keypair, TransactionBuilder, TransactionEnvelope

from .core import (
    DepositOperation,
    LedgerOperation,
    PoolTrustOperation,
    SwapOperation,
    WithdrawOperation,
    pool_share_asset,
)
from .core.exc import TransactionError

BASE_FEE_STROOPS = 100
TX_TIMEOUT_S = 180


def _append(builder: TransactionBuilder, op: LedgerOperation, source_account: str) -> None:
    if isinstance(op, PoolTrustOperation):
        builder.append_change_trust_op(
            asset=pool_share_asset(op.asset_a, op.asset_b, op.fee_bps),
            limit=op.limit,
        )
    elif isinstance(op, DepositOperation):
        builder.append_liquidity_pool_deposit_op(
            liquidity_pool_id=op.pool_id,
            max_amount_a=op.max_amount_a,
            max_amount_b=op.max_amount_b,
            min_price=op.min_price,
            max_price=op.max_price,
        )
    elif isinstance(op, WithdrawOperation):
        builder.append_liquidity_pool_withdraw_op(
            liquidity_pool_id=op.pool_id,
            amount=op.amount,
            min_amount_a=op.min_amount_a,
            min_amount_b=op.min_amount_b,
        )
    elif isinstance(op, SwapOperation):
        builder.append_path_payment_strict_send_op(
            destination=op.destination or source_account,
            send_asset=op.send_asset.to_sdk(),
            send_amount=op.send_amount,
            dest_asset=op.dest_asset.to_sdk(),
            dest_min=op.dest_min,
            path=[a.to_sdk() for a in op.path],
        )
    else:
        raise TransactionError(f"unsupported operation {type(op).__name__}")


def build_envelope(operations: Sequence[LedgerOperation],
                   source_account: str,
                   sequence: int,
                   passphrase: str) -> bytes:
    """Unsigned transaction for `operations`, as base64 XDR bytes.

    `sequence` is the account's current sequence number; the built
    transaction uses the next one.
    """
    if not operations:
        raise TransactionError("no operations to build")
    builder = TransactionBuilder(
        source_account=Account(source_account, sequence),
        network_passphrase=passphrase,
        base_fee=BASE_FEE_STROOPS,
    )
    try:
        for op in operations:
            _append(builder, op, source_account)
        xdr = builder.set_timeout(TX_TIMEOUT_S).build().to_xdr()
    except ValueError as exc:
        raise TransactionError(f"cannot build transaction: {exc}") from exc
    return xdr.encode("ascii")


class KeypairSigner:
    """`Signer` over a secret key held in process."""

    def __init__(self, keypair: Keypair, passphrase: str) -> None:
        self._keypair = keypair
        self.passphrase = passphrase
        self.public_key = keypair.public_key

    @classmethod
    def from_secret(cls, secret: str, passphrase: str) -> "KeypairSigner":
        return cls(Keypair.from_secret(secret), passphrase)

    def sign(self, transaction: bytes) -> bytes:
        envelope = TransactionEnvelope.from_xdr(transaction.decode("ascii"), self.passphrase)
        envelope.sign(self._keypair)
        return envelope.to_xdr().encode("ascii")


__all__ = [
    "BASE_FEE_STROOPS",
    "TX_TIMEOUT_S",
    "build_envelope",
    "KeypairSigner",
]
