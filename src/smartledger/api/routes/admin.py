"""Operator endpoints (token-protected)."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from smartledger.api.contracts import BalanceResponse, CreditRequest
from smartledger.api.dependencies import require_admin_token
from smartledger.config import get_settings
from smartledger.ledger.database import get_db
from smartledger.ledger.models import TransferKind
from smartledger.ledger.repository import LedgerRepository
from smartledger.utils.locks import ledger_write_lock

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin")


@router.post("/credit", response_model=BalanceResponse)
async def credit_address(
    request: CreditRequest, _: bool = Depends(require_admin_token)
) -> BalanceResponse:
    """Fund an external address (e.g. a liquidity provider).

    Recorded as a deposit so the conservation check still holds.
    """
    settings = get_settings()
    assets = {settings.native_symbol.upper(), settings.token_symbol.upper()}
    if request.asset not in assets:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown asset {request.asset}, expected one of {sorted(assets)}",
        )

    amount = int(request.amount)
    async with ledger_write_lock(timeout=settings.lock_timeout_seconds, operation="admin_credit"):
        async with get_db() as session:
            repo = LedgerRepository(session)
            balance = await repo.credit_balance(request.address, request.asset, amount)
            await repo.record_transfer(TransferKind.DEPOSIT, request.asset, request.address, amount)
            new_balance = balance.amount

    logger.info(f"Operator credited {amount} {request.asset} to {request.address}")
    return BalanceResponse(address=request.address, asset=request.asset, balance=str(new_balance))
