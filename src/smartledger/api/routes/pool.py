"""Swap pool endpoints: reserves, quotes, direct swaps and operator liquidity."""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from smartledger.api.contracts import (
    LiquidityRequest,
    PoolResponse,
    QuoteResponse,
    SwapRequest,
    SwapResponse,
    parse_base_units,
)
from smartledger.api.dependencies import build_pool, require_admin_token, require_caller
from smartledger.config import PRICE_DECIMALS, get_settings
from smartledger.ledger.database import get_db
from smartledger.ledger.models import SwapDirection
from smartledger.pool.swap_pool import PoolReserves
from smartledger.utils.locks import ledger_write_lock

router = APIRouter(prefix="/pool")


def _amount_param(amount: str) -> int:
    try:
        return int(parse_base_units(amount))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


def _pool_response(reserves: PoolReserves) -> PoolResponse:
    settings = get_settings()
    return PoolResponse(
        address=reserves.address,
        native_asset=settings.native_symbol.upper(),
        native_reserve=str(reserves.native_reserve),
        token_asset=settings.token_symbol.upper(),
        token_reserve=str(reserves.token_reserve),
    )


@router.get("", response_model=PoolResponse)
async def get_pool() -> PoolResponse:
    """Current pool reserves."""
    async with get_db() as session:
        reserves = await build_pool(session).reserves()
    return _pool_response(reserves)


@router.post("/liquidity", response_model=PoolResponse)
async def add_liquidity(
    request: LiquidityRequest, _: bool = Depends(require_admin_token)
) -> PoolResponse:
    """Move a provider's ledger balances into the pool reserves (operator only)."""
    settings = get_settings()
    async with ledger_write_lock(timeout=settings.lock_timeout_seconds, operation="add_liquidity"):
        async with get_db() as session:
            reserves = await build_pool(session).add_liquidity(
                request.provider, int(request.native_amount), int(request.token_amount)
            )
    return _pool_response(reserves)


@router.get("/quote/buy", response_model=QuoteResponse)
async def quote_buy(amount: str = Query(..., description="Native input in base units")) -> QuoteResponse:
    """Tokens received for a native input at the current oracle price."""
    settings = get_settings()
    native_in = _amount_param(amount)
    async with get_db() as session:
        quote = await build_pool(session).quote(SwapDirection.BUY, native_in)

    return QuoteResponse(
        asset_in=settings.native_symbol.upper(),
        amount_in=str(quote.amount_in),
        asset_out=settings.token_symbol.upper(),
        amount_out=str(quote.amount_out),
        price=str(quote.price),
        price_decimals=PRICE_DECIMALS,
    )


@router.get("/quote/sell", response_model=QuoteResponse)
async def quote_sell(amount: str = Query(..., description="Token input in base units")) -> QuoteResponse:
    """Native asset received for a token input at the current oracle price."""
    settings = get_settings()
    token_in = _amount_param(amount)
    async with get_db() as session:
        quote = await build_pool(session).quote(SwapDirection.SELL, token_in)

    return QuoteResponse(
        asset_in=settings.token_symbol.upper(),
        amount_in=str(quote.amount_in),
        asset_out=settings.native_symbol.upper(),
        amount_out=str(quote.amount_out),
        price=str(quote.price),
        price_decimals=PRICE_DECIMALS,
    )


@router.post("/buy", response_model=SwapResponse)
async def execute_buy(request: SwapRequest, caller: str = Depends(require_caller)) -> SwapResponse:
    """Swap the caller's own native balance for tokens."""
    settings = get_settings()
    async with ledger_write_lock(timeout=settings.lock_timeout_seconds, operation="pool_buy"):
        async with get_db() as session:
            token_out = await build_pool(session).execute_buy(
                caller, int(request.amount_in), int(request.min_amount_out)
            )

    return SwapResponse(
        caller=caller,
        asset_in=settings.native_symbol.upper(),
        amount_in=request.amount_in,
        asset_out=settings.token_symbol.upper(),
        amount_out=str(token_out),
    )


@router.post("/sell", response_model=SwapResponse)
async def execute_sell(request: SwapRequest, caller: str = Depends(require_caller)) -> SwapResponse:
    """Swap the caller's own tokens for native asset."""
    settings = get_settings()
    async with ledger_write_lock(timeout=settings.lock_timeout_seconds, operation="pool_sell"):
        async with get_db() as session:
            native_out = await build_pool(session).execute_sell(
                caller, int(request.amount_in), int(request.min_amount_out)
            )

    return SwapResponse(
        caller=caller,
        asset_in=settings.token_symbol.upper(),
        amount_in=request.amount_in,
        asset_out=settings.native_symbol.upper(),
        amount_out=str(native_out),
    )
