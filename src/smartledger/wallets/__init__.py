"""Proxy accounts ("smart wallets") and the registry that creates them."""

from smartledger.wallets.factory import WalletFactory
from smartledger.wallets.smart_wallet import SmartWalletService, WalletBalances

__all__ = ["SmartWalletService", "WalletBalances", "WalletFactory"]
