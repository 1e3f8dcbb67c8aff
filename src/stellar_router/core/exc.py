"""
Core exception types for stellar_router.

These are dependency-free and may be imported by all modules. Absence of a
pool is never an exception; see `LedgerQueryService.get_pool`.
"""

__all__ = [
    "AmountDomainError",
    "AssetError",
    "RouteError",
    "LedgerQueryError",
    "TransactionError",
    "ConfigError",
]


class AmountDomainError(Exception):
    """Raised when inputs violate the non-negative domain or basic preconditions."""
    pass


class AssetError(ValueError):
    """Raised for a malformed asset code, issuer account or canonical string."""
    pass


class RouteError(AmountDomainError):
    """Raised when routing cannot proceed (e.g., non-positive input, max_splits < 1)."""
    pass


class LedgerQueryError(Exception):
    """Raised when the ledger query service fails (transport, HTTP status, payload).

    Attributes
    ----------
    status : int | None
        HTTP status code when the failure came from a response.
    url : str | None
        Requested resource, for context.
    """

    def __init__(self, message: str, *, status: int | None = None, url: str | None = None):
        super().__init__(message)
        self.status = status
        self.url = url


class TransactionError(Exception):
    """Raised when building, signing or submitting a ledger transaction fails."""

    def __init__(self, message: str, *, result_codes=None):
        super().__init__(message)
        self.result_codes = result_codes


class ConfigError(ValueError):
    """Raised when environment configuration cannot be interpreted."""
    pass
