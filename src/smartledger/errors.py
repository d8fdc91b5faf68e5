"""Ledger error kinds.

Every error is a rejected operation: it is raised before any mutation and
leaves account balances and pool reserves untouched.
"""


class LedgerError(Exception):
    """Base class for all rejected ledger operations."""

    code = "ledger_error"


class Unauthorized(LedgerError):
    """Caller is not the owner of the proxy account."""

    code = "unauthorized"


class InsufficientBalance(LedgerError):
    """Requested amount exceeds the holder's balance."""

    code = "insufficient_balance"


class InsufficientLiquidity(LedgerError):
    """Requested output exceeds the pool reserve."""

    code = "insufficient_liquidity"


class SlippageExceeded(LedgerError):
    """Quoted output is below the caller's declared minimum."""

    code = "slippage_exceeded"


class ZeroAmount(LedgerError):
    """A zero amount was supplied where a positive one is required."""

    code = "zero_amount"


class StaleOrInvalidPrice(LedgerError):
    """The price feed returned a non-positive, incomplete or stale sample."""

    code = "stale_or_invalid_price"


class AccountNotFound(LedgerError):
    """No proxy account exists at the given address."""

    code = "account_not_found"
