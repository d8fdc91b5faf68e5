"""Swap pool exchanging the native asset for the pegged token."""

from smartledger.pool.swap_pool import (
    PoolReserves,
    Quote,
    SwapPool,
    require_base_units,
    require_positive,
)

__all__ = ["PoolReserves", "Quote", "SwapPool", "require_base_units", "require_positive"]
