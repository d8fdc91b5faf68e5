"""Repository for ledger operations.

The repository performs raw reads and writes only. Ownership, slippage and
liquidity rules live in the services that call it; the single guard kept here
is that a debit never drives a balance or reserve below zero.
"""

import hashlib
import secrets
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from smartledger.errors import InsufficientBalance
from smartledger.ledger.models import (
    Balance,
    ProxyAccount,
    Swap,
    SwapDirection,
    SwapPoolState,
    Transfer,
    TransferKind,
)


def normalize_address(address: str) -> str:
    """Canonical form of an address: stripped and lower-cased."""
    return address.strip().lower()


class LedgerRepository:
    """Repository for all ledger-related database operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # Proxy account operations
    async def create_proxy_account(self, owner: str) -> ProxyAccount:
        """Insert a new proxy account bound to owner."""
        owner = normalize_address(owner)
        account = ProxyAccount(address=self._generate_account_address(owner), owner=owner)
        self.session.add(account)
        await self.session.flush()
        return account

    async def get_proxy_account(self, address: str) -> Optional[ProxyAccount]:
        """Get proxy account by address."""
        stmt = select(ProxyAccount).where(ProxyAccount.address == normalize_address(address))
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_owner_accounts(self, owner: str) -> list[ProxyAccount]:
        """Get all proxy accounts of an owner in creation order."""
        stmt = (
            select(ProxyAccount)
            .where(ProxyAccount.owner == normalize_address(owner))
            .order_by(ProxyAccount.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    def _generate_account_address(self, owner: str) -> str:
        """Generate a unique 20-byte hex address for a new proxy account."""
        seed = f"{owner}:{secrets.token_hex(16)}"
        return "0x" + hashlib.sha256(seed.encode()).hexdigest()[:40]

    # Balance operations
    async def get_balance(self, holder: str, asset: str) -> Optional[Balance]:
        """Get balance record for holder/asset."""
        stmt = select(Balance).where(
            Balance.holder == normalize_address(holder), Balance.asset == asset.upper()
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_balance_amount(self, holder: str, asset: str) -> int:
        """Get balance amount in base units (0 when no record exists)."""
        balance = await self.get_balance(holder, asset)
        return balance.amount if balance else 0

    async def get_all_balances(self, holder: str) -> list[Balance]:
        """Get all balances for a holder."""
        stmt = (
            select(Balance)
            .where(Balance.holder == normalize_address(holder))
            .order_by(Balance.asset)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_asset_balances(self, asset: str) -> list[Balance]:
        """Get every holder's balance of one asset."""
        stmt = select(Balance).where(Balance.asset == asset.upper())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_or_create_balance(self, holder: str, asset: str) -> Balance:
        """Get or create a balance record for holder/asset."""
        balance = await self.get_balance(holder, asset)
        if balance is None:
            balance = Balance(holder=normalize_address(holder), asset=asset.upper(), amount=0)
            self.session.add(balance)
            await self.session.flush()
        return balance

    async def credit_balance(self, holder: str, asset: str, amount: int) -> Balance:
        """Add amount to holder balance."""
        balance = await self.get_or_create_balance(holder, asset)
        balance.amount += amount
        await self.session.flush()
        return balance

    async def debit_balance(self, holder: str, asset: str, amount: int) -> Balance:
        """Subtract amount from holder balance. Raises InsufficientBalance if short."""
        balance = await self.get_or_create_balance(holder, asset)
        if balance.amount < amount:
            raise InsufficientBalance(
                f"Insufficient balance: {holder} has {balance.amount} {asset.upper()}, "
                f"needs {amount}"
            )
        balance.amount -= amount
        await self.session.flush()
        return balance

    # Pool operations
    async def get_pool(self, address: str) -> Optional[SwapPoolState]:
        """Get pool state by address."""
        stmt = select(SwapPoolState).where(SwapPoolState.address == normalize_address(address))
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_or_create_pool(self, address: str) -> SwapPoolState:
        """Get pool state, creating an empty pool on first use."""
        pool = await self.get_pool(address)
        if pool is None:
            pool = SwapPoolState(
                address=normalize_address(address), native_reserve=0, token_reserve=0
            )
            self.session.add(pool)
            await self.session.flush()
        return pool

    # Audit trail
    async def record_swap(
        self,
        caller: str,
        direction: SwapDirection,
        amount_in: int,
        amount_out: int,
        min_amount_out: int,
        price: int,
    ) -> Swap:
        """Append an executed swap to the audit trail."""
        swap = Swap(
            caller=normalize_address(caller),
            direction=direction,
            amount_in=amount_in,
            amount_out=amount_out,
            min_amount_out=min_amount_out,
            price=price,
        )
        self.session.add(swap)
        await self.session.flush()
        return swap

    async def record_transfer(
        self,
        kind: TransferKind,
        asset: str,
        to_address: str,
        amount: int,
        from_address: Optional[str] = None,
    ) -> Transfer:
        """Append a value movement to the audit trail."""
        transfer = Transfer(
            kind=kind,
            asset=asset.upper(),
            from_address=normalize_address(from_address) if from_address else None,
            to_address=normalize_address(to_address),
            amount=amount,
        )
        self.session.add(transfer)
        await self.session.flush()
        return transfer

    async def get_swaps(self, caller: str, limit: int = 20, offset: int = 0) -> list[Swap]:
        """Get swap history for a caller, newest first."""
        stmt = (
            select(Swap)
            .where(Swap.caller == normalize_address(caller))
            .order_by(Swap.id.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_transfers(
        self,
        address: Optional[str] = None,
        kind: Optional[TransferKind] = None,
        limit: Optional[int] = None,
    ) -> list[Transfer]:
        """Get transfers touching an address (or all), newest first."""
        stmt = select(Transfer)
        if address is not None:
            address = normalize_address(address)
            stmt = stmt.where(
                (Transfer.from_address == address) | (Transfer.to_address == address)
            )
        if kind is not None:
            stmt = stmt.where(Transfer.kind == kind)
        stmt = stmt.order_by(Transfer.id.desc())
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
