"""Utility modules for smartledger."""

from smartledger.utils.locks import LedgerWriteLock, LockTimeoutError, ledger_write_lock

__all__ = ["LedgerWriteLock", "LockTimeoutError", "ledger_write_lock"]
