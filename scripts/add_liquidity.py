#!/usr/bin/env python3
"""Move a provider's ledger balances into the swap pool reserves.

Fund the provider first (credit_balance.py or POST /api/v1/admin/credit),
or pass --credit to record the deposits in the same run.
"""

import asyncio
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from dotenv import load_dotenv
load_dotenv()

from smartledger.config import get_settings
from smartledger.ledger.database import close_db, get_db, init_db
from smartledger.ledger.models import TransferKind
from smartledger.ledger.repository import LedgerRepository
from smartledger.oracle.factory import close_oracle, get_oracle
from smartledger.pool.swap_pool import SwapPool


async def add_liquidity(provider: str, native_amount: int, token_amount: int, credit: bool):
    settings = get_settings()
    await init_db()
    async with get_db() as session:
        repo = LedgerRepository(session)
        if credit:
            for asset, amount in (
                (settings.native_symbol, native_amount),
                (settings.token_symbol, token_amount),
            ):
                if amount:
                    await repo.credit_balance(provider, asset, amount)
                    await repo.record_transfer(TransferKind.DEPOSIT, asset, provider, amount)

        reserves = await SwapPool(repo, get_oracle()).add_liquidity(provider, native_amount, token_amount)

        print(f"Added {native_amount} {settings.native_symbol.upper()} and "
              f"{token_amount} {settings.token_symbol.upper()} from {provider.lower()}")
        print(f"Pool {reserves.address}: {reserves.native_reserve} / {reserves.token_reserve}")
    await close_oracle()
    await close_db()


if __name__ == "__main__":
    args = [arg for arg in sys.argv[1:] if arg != "--credit"]
    if len(args) != 3:
        print("Usage: python add_liquidity.py <provider> <native_base_units> <token_base_units> [--credit]")
        print("Example: python add_liquidity.py 0xabc... 10000000000000000000 20000000000 --credit")
        sys.exit(1)

    provider = args[0]
    native_amount = int(args[1])
    token_amount = int(args[2])
    if native_amount < 0 or token_amount < 0:
        print("Amounts must be non-negative integers of base units")
        sys.exit(1)

    asyncio.run(add_liquidity(provider, native_amount, token_amount, "--credit" in sys.argv))
