"""Account registry: creates proxy accounts and indexes them by owner."""

import logging
from typing import Optional

from smartledger.ledger.models import ProxyAccount
from smartledger.ledger.repository import LedgerRepository, normalize_address
from smartledger.notifications.events import AccountCreated, EventBus

logger = logging.getLogger(__name__)


class WalletFactory:
    """Registry of proxy accounts.

    Accounts are append-only: there is no deletion, ownership transfer or
    per-owner cap.

    Creation events are held back until the caller's unit of work has
    committed; call publish_pending() after that (a rolled-back account is
    never announced).
    """

    def __init__(self, repo: LedgerRepository, events: Optional[EventBus] = None):
        self.repo = repo
        self.events = events
        self.pending: list[AccountCreated] = []

    async def create_account(self, owner: str) -> ProxyAccount:
        """Create a proxy account bound to owner and queue its announcement."""
        if not owner or not owner.strip():
            raise ValueError("Owner address is required")

        account = await self.repo.create_proxy_account(owner)
        logger.info(f"Proxy account {account.address} created for {account.owner}")

        self.pending.append(AccountCreated(owner=account.owner, account_id=account.address))
        return account

    async def publish_pending(self) -> int:
        """Announce accounts created since the last call. Returns the count."""
        events, self.pending = self.pending, []
        if self.events is None:
            return 0
        for event in events:
            await self.events.publish(event)
        return len(events)

    async def list_accounts(self, owner: str) -> list[str]:
        """Addresses of owner's accounts in creation order (empty if none)."""
        accounts = await self.repo.get_owner_accounts(normalize_address(owner))
        return [account.address for account in accounts]
