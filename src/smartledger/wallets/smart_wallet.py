"""Proxy account operations.

Anyone may fund a proxy account; only its owner may move funds out of it or
trade with them. Ownership is checked here, inside each operation, before any
balance is read for mutation.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from smartledger.config import Settings, get_settings
from smartledger.errors import AccountNotFound, InsufficientBalance, Unauthorized
from smartledger.ledger.models import ProxyAccount, TransferKind
from smartledger.ledger.repository import LedgerRepository, normalize_address
from smartledger.pool.swap_pool import SwapPool, require_positive

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WalletBalances:
    """Read-only view of a proxy account."""

    address: str
    owner: str
    native_balance: int
    token_balance: int


class SmartWalletService:
    """Owner-gated operations on proxy accounts."""

    def __init__(
        self,
        repo: LedgerRepository,
        pool: SwapPool,
        settings: Optional[Settings] = None,
    ):
        settings = settings or get_settings()
        self.repo = repo
        self.pool = pool
        self.native_symbol = settings.native_symbol.upper()
        self.token_symbol = settings.token_symbol.upper()

    # Reads
    async def get_account(self, address: str) -> ProxyAccount:
        """Get proxy account or raise AccountNotFound."""
        account = await self.repo.get_proxy_account(address)
        if account is None:
            raise AccountNotFound(f"No proxy account at {address}")
        return account

    async def native_balance(self, address: str) -> int:
        account = await self.get_account(address)
        return await self.repo.get_balance_amount(account.address, self.native_symbol)

    async def token_balance(self, address: str) -> int:
        account = await self.get_account(address)
        return await self.repo.get_balance_amount(account.address, self.token_symbol)

    async def balances(self, address: str) -> WalletBalances:
        """Owner and both balances of a proxy account."""
        account = await self.get_account(address)
        return WalletBalances(
            address=account.address,
            owner=account.owner,
            native_balance=await self.repo.get_balance_amount(account.address, self.native_symbol),
            token_balance=await self.repo.get_balance_amount(account.address, self.token_symbol),
        )

    # Guards
    def _authorize(self, account: ProxyAccount, caller: str, operation: str) -> None:
        if not caller or normalize_address(caller) != account.owner:
            logger.warning(
                f"Unauthorized {operation} on {account.address} by {caller} "
                f"(owner {account.owner})"
            )
            raise Unauthorized(f"{caller} is not the owner of {account.address}")

    async def _require_funds(self, account: ProxyAccount, asset: str, amount: int) -> None:
        available = await self.repo.get_balance_amount(account.address, asset)
        if amount > available:
            raise InsufficientBalance(
                f"{account.address} has {available} {asset}, needs {amount}"
            )

    # Mutations
    async def deposit(self, address: str, amount: int, from_address: Optional[str] = None) -> int:
        """Credit native asset to a proxy account. Unrestricted.

        Returns:
            The account's new native balance
        """
        account = await self.get_account(address)
        amount = require_positive(amount)

        balance = await self.repo.credit_balance(account.address, self.native_symbol, amount)
        await self.repo.record_transfer(
            TransferKind.DEPOSIT,
            self.native_symbol,
            account.address,
            amount,
            from_address=from_address,
        )
        logger.info(f"Deposit of {amount} {self.native_symbol} into {account.address}")
        return balance.amount

    async def send_native(self, address: str, caller: str, to: str, amount: int) -> int:
        """Transfer native asset out of a proxy account. Owner only.

        Returns:
            The account's new native balance
        """
        return await self._send(address, caller, to, amount, self.native_symbol)

    async def send_token(self, address: str, caller: str, to: str, amount: int) -> int:
        """Transfer tokens out of a proxy account. Owner only.

        Returns:
            The account's new token balance
        """
        return await self._send(address, caller, to, amount, self.token_symbol)

    async def _send(self, address: str, caller: str, to: str, amount: int, asset: str) -> int:
        account = await self.get_account(address)
        self._authorize(account, caller, f"send {asset}")
        amount = require_positive(amount)
        if not to or not to.strip():
            raise ValueError("Destination address is required")
        await self._require_funds(account, asset, amount)

        balance = await self.repo.debit_balance(account.address, asset, amount)
        await self.repo.credit_balance(to, asset, amount)
        await self.repo.record_transfer(
            TransferKind.SEND, asset, to, amount, from_address=account.address
        )
        logger.info(f"Sent {amount} {asset} from {account.address} to {normalize_address(to)}")
        return balance.amount

    async def swap_native_to_token(
        self, address: str, caller: str, native_in: int, min_token_out: int
    ) -> int:
        """Swap the account's native asset for tokens through the pool. Owner only.

        Returns:
            Tokens credited to the account
        """
        account = await self.get_account(address)
        self._authorize(account, caller, "swap native->token")
        native_in = require_positive(native_in, "native_in")
        await self._require_funds(account, self.native_symbol, native_in)

        return await self.pool.execute_buy(account.address, native_in, min_token_out)

    async def swap_token_to_native(
        self, address: str, caller: str, token_in: int, min_native_out: int
    ) -> int:
        """Swap the account's tokens for native asset through the pool. Owner only.

        Returns:
            Native asset credited to the account
        """
        account = await self.get_account(address)
        self._authorize(account, caller, "swap token->native")
        token_in = require_positive(token_in, "token_in")
        await self._require_funds(account, self.token_symbol, token_in)

        return await self.pool.execute_sell(account.address, token_in, min_native_out)
