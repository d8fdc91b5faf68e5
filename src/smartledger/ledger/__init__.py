"""Ledger module for balances, proxy accounts, pool reserves and audit trail."""

from smartledger.ledger.database import get_db, init_db
from smartledger.ledger.models import (
    Balance,
    ProxyAccount,
    Swap,
    SwapDirection,
    SwapPoolState,
    Transfer,
    TransferKind,
)
from smartledger.ledger.repository import LedgerRepository, normalize_address

__all__ = [
    # Models
    "Balance",
    "ProxyAccount",
    "Swap",
    "SwapPoolState",
    "Transfer",
    # Enums
    "SwapDirection",
    "TransferKind",
    # Database
    "get_db",
    "init_db",
    "LedgerRepository",
    "normalize_address",
]
