"""Shared FastAPI dependencies."""

import logging

from fastapi import Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from smartledger.api.contracts import validate_address
from smartledger.config import get_settings
from smartledger.ledger.repository import LedgerRepository
from smartledger.oracle.factory import get_oracle
from smartledger.pool.swap_pool import SwapPool
from smartledger.wallets.smart_wallet import SmartWalletService

logger = logging.getLogger(__name__)


async def require_caller(x_caller_address: str = Header(None)) -> str:
    """Identity of the authenticated caller.

    Authentication happens upstream; this header carries its result.
    """
    if not x_caller_address:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-Caller-Address header",
        )
    try:
        return validate_address(x_caller_address)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


async def require_admin_token(x_admin_token: str = Header(None)) -> bool:
    """Verify the operator token from header.

    If ADMIN_TOKEN is not set, allows access (dev mode).
    """
    settings = get_settings()

    if not settings.admin_token:
        if settings.is_production:
            logger.warning("ADMIN_TOKEN is not set - operator endpoints are open")
        return True

    if x_admin_token != settings.admin_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid admin token"
        )

    return True


def build_pool(session: AsyncSession) -> SwapPool:
    """Swap pool bound to session."""
    return SwapPool(LedgerRepository(session), get_oracle())


def build_wallet_service(session: AsyncSession) -> SmartWalletService:
    """Proxy account service bound to session."""
    pool = build_pool(session)
    return SmartWalletService(pool.repo, pool)
