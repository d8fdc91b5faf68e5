"""Serialization of ledger mutations.

The ledger core assumes operations never interleave their reads and writes.
Inside one asyncio process that guarantee comes from a single write lock:
every mutating operation runs while holding it, reads never take it.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

logger = logging.getLogger(__name__)

_write_lock: Optional[asyncio.Lock] = None


class LockTimeoutError(Exception):
    """Raised when the write lock cannot be acquired within the timeout period."""

    pass


def get_write_lock() -> asyncio.Lock:
    """Get or create the ledger write lock."""
    global _write_lock
    if _write_lock is None:
        _write_lock = asyncio.Lock()
    return _write_lock


class LedgerWriteLock:
    """Context manager for exclusive access to ledger state.

    Example:
        async with LedgerWriteLock(operation="swap"):
            async with get_db() as session:
                ...
    """

    def __init__(self, timeout: Optional[float] = 30.0, operation: str = "ledger_write"):
        """Initialize the lock.

        Args:
            timeout: Maximum time to wait for lock (None = wait forever)
            operation: Description of the operation for logging
        """
        self.timeout = timeout
        self.operation = operation
        self._lock: Optional[asyncio.Lock] = None
        self._acquired = False

    async def __aenter__(self) -> "LedgerWriteLock":
        """Acquire the lock."""
        self._lock = get_write_lock()

        try:
            if self.timeout:
                await asyncio.wait_for(self._lock.acquire(), timeout=self.timeout)
            else:
                await self._lock.acquire()
        except asyncio.TimeoutError:
            logger.warning(f"Write lock timeout after {self.timeout}s: {self.operation}")
            raise LockTimeoutError(
                f"Could not acquire ledger write lock within {self.timeout}s"
            )

        self._acquired = True
        logger.debug(f"Write lock acquired: {self.operation}")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Release the lock."""
        if self._acquired and self._lock:
            self._lock.release()
            self._acquired = False
            logger.debug(f"Write lock released: {self.operation}")
        return False


@asynccontextmanager
async def ledger_write_lock(timeout: Optional[float] = 30.0, operation: str = "ledger_write"):
    """Functional form of LedgerWriteLock.

    Example:
        async with ledger_write_lock(operation="deposit"):
            # Serialized ledger mutation here
            pass
    """
    async with LedgerWriteLock(timeout=timeout, operation=operation):
        yield


def reset_write_lock() -> None:
    """Drop the write lock (useful for testing across event loops)."""
    global _write_lock
    _write_lock = None
