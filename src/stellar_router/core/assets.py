"""
Asset identity, canonical ordering and deterministic pool ids.

Alignment notes:
- An asset is either the ledger's native currency or a (code, issuer) pair.
  Equality is structural.
- Canonical order is the ledger's own: native first, then 4-char codes
  before 12-char codes, then code, then issuer. Every call site that derives
  a pool id goes through `canonical_pair`, so one logical pool has exactly
  one id.
- Code and issuer validation (strkey checksum included), the XDR of the pool
  parameters and the sha256 pool id all come from `stellar_sdk`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from stellar_sdk import Asset as SdkAsset
from stellar_sdk import LiquidityPoolAsset, StrKey

from .exc import AssetError

NATIVE_CODE = "XLM"
NATIVE_CANONICAL = "native"


@dataclass(frozen=True)
class Asset:
    """A fungible token: native (issuer is None) or (code, issuer)."""

    code: str
    issuer: Optional[str] = None

    def __post_init__(self) -> None:
        if self.issuer is None:
            if self.code != NATIVE_CODE:
                raise AssetError(f"credit asset {self.code!r} requires an issuer")
            return
        if not StrKey.is_valid_ed25519_public_key(self.issuer):
            raise AssetError(f"issuer is not a valid account id: {self.issuer!r}")
        try:
            SdkAsset(self.code, self.issuer)
        except ValueError as exc:
            raise AssetError(f"asset code must be 1-12 alphanumerics: {self.code!r}") from exc

    @staticmethod
    def native() -> "Asset":
        return Asset(NATIVE_CODE, None)

    @staticmethod
    def parse(canonical: str) -> "Asset":
        """Build an asset from Horizon's canonical form ('native' or 'CODE:ISSUER')."""
        if canonical == NATIVE_CANONICAL:
            return Asset.native()
        code, sep, issuer = (canonical or "").partition(":")
        if not sep:
            raise AssetError(f"not a canonical asset string: {canonical!r}")
        return Asset(code, issuer)

    @property
    def is_native(self) -> bool:
        return self.issuer is None

    @property
    def asset_type(self) -> str:
        """Horizon asset_type name."""
        if self.is_native:
            return "native"
        return "credit_alphanum4" if len(self.code) <= 4 else "credit_alphanum12"

    def canonical(self) -> str:
        return NATIVE_CANONICAL if self.is_native else f"{self.code}:{self.issuer}"

    def short(self) -> str:
        """Log label; keeps same-code assets of different issuers apart."""
        if self.is_native:
            return NATIVE_CODE
        return f"{self.code}:{self.issuer[:4]}...{self.issuer[-4:]}"

    def to_sdk(self) -> SdkAsset:
        return SdkAsset.native() if self.is_native else SdkAsset(self.code, self.issuer)

    def __str__(self) -> str:
        return self.canonical()


def canonical_pair(a: Asset, b: Asset) -> tuple[Asset, Asset]:
    """Return (a, b) in the ledger's canonical order."""
    if a == b:
        raise AssetError(f"a pool needs two distinct assets, got {a} twice")
    if LiquidityPoolAsset.is_valid_lexicographic_order(a.to_sdk(), b.to_sdk()):
        return a, b
    return b, a


def pool_share_asset(a: Asset, b: Asset, fee_bps: int) -> LiquidityPoolAsset:
    """Pool-share asset of the constant-product pool (what a trustline targets)."""
    if fee_bps < 0:
        raise AssetError(f"fee must be non-negative, got {fee_bps}")
    first, second = canonical_pair(a, b)
    return LiquidityPoolAsset(first.to_sdk(), second.to_sdk(), int(fee_bps))


def pool_id(a: Asset, b: Asset, fee_bps: int) -> str:
    """Deterministic pool id (hex) for an unordered pair and a fee tier."""
    return pool_share_asset(a, b, fee_bps).liquidity_pool_id


__all__ = [
    "NATIVE_CODE",
    "NATIVE_CANONICAL",
    "Asset",
    "canonical_pair",
    "pool_share_asset",
    "pool_id",
]
