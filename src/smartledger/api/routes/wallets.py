"""Proxy account ("smart wallet") endpoints."""

import asyncio
import json
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import StreamingResponse

from smartledger.api.contracts import (
    AmountRequest,
    BalanceResponse,
    SendRequest,
    SwapRequest,
    SwapResponse,
    WalletListResponse,
    WalletResponse,
    validate_address,
)
from smartledger.api.dependencies import build_wallet_service, require_caller
from smartledger.config import get_settings
from smartledger.ledger.database import get_db
from smartledger.ledger.repository import LedgerRepository
from smartledger.notifications.events import AccountCreated, get_event_bus
from smartledger.utils.locks import ledger_write_lock
from smartledger.wallets.factory import WalletFactory
from smartledger.wallets.smart_wallet import WalletBalances

router = APIRouter(prefix="/wallets")

# Idle event streams get an SSE comment line this often
KEEPALIVE_SECONDS = 15.0


def _owner_param(owner: str) -> str:
    try:
        return validate_address(owner)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


def _wallet_response(balances: WalletBalances) -> WalletResponse:
    settings = get_settings()
    return WalletResponse(
        address=balances.address,
        owner=balances.owner,
        native_asset=settings.native_symbol.upper(),
        native_balance=str(balances.native_balance),
        token_asset=settings.token_symbol.upper(),
        token_balance=str(balances.token_balance),
    )


def _sse_message(event: AccountCreated) -> str:
    payload = {
        "owner": event.owner,
        "account_id": event.account_id,
        "created_at": event.created_at.isoformat(),
    }
    return f"event: account_created\ndata: {json.dumps(payload)}\n\n"


@router.post("", response_model=WalletResponse)
async def create_wallet(caller: str = Depends(require_caller)) -> WalletResponse:
    """Create a new proxy account owned by the caller."""
    settings = get_settings()
    async with ledger_write_lock(timeout=settings.lock_timeout_seconds, operation="create_wallet"):
        async with get_db() as session:
            factory = WalletFactory(LedgerRepository(session), get_event_bus())
            account = await factory.create_account(caller)

    # Committed and unlocked: subscribers only ever see persisted accounts
    await factory.publish_pending()

    return _wallet_response(
        WalletBalances(address=account.address, owner=account.owner, native_balance=0, token_balance=0)
    )


@router.get("", response_model=WalletListResponse)
async def list_wallets(owner: str = Query(..., description="Owner address")) -> WalletListResponse:
    """List an owner's proxy accounts in creation order."""
    owner = _owner_param(owner)
    async with get_db() as session:
        wallets = await WalletFactory(LedgerRepository(session)).list_accounts(owner)
    return WalletListResponse(owner=owner, wallets=wallets)


@router.get("/events")
async def stream_wallet_events(
    owner: Optional[str] = Query(None, description="Only events for this owner"),
    limit: Optional[int] = Query(None, ge=1, description="Close after this many events"),
) -> StreamingResponse:
    """Server-sent stream of AccountCreated events.

    Lets a client refresh an owner's account list when it changes instead of
    polling GET /wallets.
    """
    owner = _owner_param(owner) if owner is not None else None
    bus = get_event_bus()
    queue = bus.open_queue()

    async def event_stream():
        sent = 0
        try:
            while limit is None or sent < limit:
                try:
                    event = await asyncio.wait_for(queue.get(), timeout=KEEPALIVE_SECONDS)
                except asyncio.TimeoutError:
                    yield ": keepalive\n\n"
                    continue
                if owner is not None and event.owner != owner:
                    continue
                yield _sse_message(event)
                sent += 1
        finally:
            bus.close_queue(queue)

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )


@router.get("/{address}", response_model=WalletResponse)
async def get_wallet(address: str) -> WalletResponse:
    """Get a proxy account's owner and balances."""
    async with get_db() as session:
        balances = await build_wallet_service(session).balances(address)
    return _wallet_response(balances)


@router.get("/{address}/history")
async def get_wallet_history(address: str, limit: int = Query(20, ge=1, le=100)) -> dict:
    """Recent swaps and transfers of a proxy account, newest first."""
    async with get_db() as session:
        service = build_wallet_service(session)
        account = await service.get_account(address)
        swaps = await service.repo.get_swaps(account.address, limit=limit)
        transfers = await service.repo.get_transfers(account.address, limit=limit)

    return {
        "address": account.address,
        "swaps": [
            {
                "id": s.id,
                "direction": s.direction,
                "amount_in": str(s.amount_in),
                "amount_out": str(s.amount_out),
                "price": str(s.price),
                "created_at": s.created_at.isoformat() if s.created_at else None,
            }
            for s in swaps
        ],
        "transfers": [
            {
                "id": t.id,
                "kind": t.kind,
                "asset": t.asset,
                "from": t.from_address,
                "to": t.to_address,
                "amount": str(t.amount),
                "created_at": t.created_at.isoformat() if t.created_at else None,
            }
            for t in transfers
        ],
    }


@router.post("/{address}/deposit", response_model=BalanceResponse)
async def deposit(address: str, request: AmountRequest) -> BalanceResponse:
    """Fund a proxy account with the native asset. Open to anyone."""
    settings = get_settings()
    async with ledger_write_lock(timeout=settings.lock_timeout_seconds, operation="deposit"):
        async with get_db() as session:
            service = build_wallet_service(session)
            balance = await service.deposit(address, int(request.amount), request.from_address)

    return BalanceResponse(
        address=address.lower(), asset=settings.native_symbol.upper(), balance=str(balance)
    )


@router.post("/{address}/send", response_model=BalanceResponse)
async def send_native(
    address: str, request: SendRequest, caller: str = Depends(require_caller)
) -> BalanceResponse:
    """Send native asset out of a proxy account (owner only)."""
    settings = get_settings()
    async with ledger_write_lock(timeout=settings.lock_timeout_seconds, operation="send_native"):
        async with get_db() as session:
            service = build_wallet_service(session)
            balance = await service.send_native(address, caller, request.to, int(request.amount))

    return BalanceResponse(
        address=address.lower(), asset=settings.native_symbol.upper(), balance=str(balance)
    )


@router.post("/{address}/send-token", response_model=BalanceResponse)
async def send_token(
    address: str, request: SendRequest, caller: str = Depends(require_caller)
) -> BalanceResponse:
    """Send tokens out of a proxy account (owner only)."""
    settings = get_settings()
    async with ledger_write_lock(timeout=settings.lock_timeout_seconds, operation="send_token"):
        async with get_db() as session:
            service = build_wallet_service(session)
            balance = await service.send_token(address, caller, request.to, int(request.amount))

    return BalanceResponse(
        address=address.lower(), asset=settings.token_symbol.upper(), balance=str(balance)
    )


@router.post("/{address}/swap/buy", response_model=SwapResponse)
async def swap_native_to_token(
    address: str, request: SwapRequest, caller: str = Depends(require_caller)
) -> SwapResponse:
    """Swap the account's native asset for tokens (owner only)."""
    settings = get_settings()
    async with ledger_write_lock(timeout=settings.lock_timeout_seconds, operation="wallet_swap_buy"):
        async with get_db() as session:
            service = build_wallet_service(session)
            token_out = await service.swap_native_to_token(
                address, caller, int(request.amount_in), int(request.min_amount_out)
            )

    return SwapResponse(
        caller=address.lower(),
        asset_in=settings.native_symbol.upper(),
        amount_in=request.amount_in,
        asset_out=settings.token_symbol.upper(),
        amount_out=str(token_out),
    )


@router.post("/{address}/swap/sell", response_model=SwapResponse)
async def swap_token_to_native(
    address: str, request: SwapRequest, caller: str = Depends(require_caller)
) -> SwapResponse:
    """Swap the account's tokens for native asset (owner only)."""
    settings = get_settings()
    async with ledger_write_lock(timeout=settings.lock_timeout_seconds, operation="wallet_swap_sell"):
        async with get_db() as session:
            service = build_wallet_service(session)
            native_out = await service.swap_token_to_native(
                address, caller, int(request.amount_in), int(request.min_amount_out)
            )

    return SwapResponse(
        caller=address.lower(),
        asset_in=settings.token_symbol.upper(),
        amount_in=request.amount_in,
        asset_out=settings.native_symbol.upper(),
        amount_out=str(native_out),
    )
