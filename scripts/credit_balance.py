#!/usr/bin/env python3
"""Credit an external address directly in the ledger (local/dev funding).

The credit is recorded as a deposit so the conservation check still holds.
"""

import asyncio
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from dotenv import load_dotenv
load_dotenv()

from smartledger.ledger.database import close_db, get_db, init_db
from smartledger.ledger.models import TransferKind
from smartledger.ledger.repository import LedgerRepository


async def credit_balance(address: str, asset: str, amount: int):
    await init_db()
    async with get_db() as session:
        repo = LedgerRepository(session)
        balance = await repo.credit_balance(address, asset, amount)
        await repo.record_transfer(TransferKind.DEPOSIT, asset, address, amount)

        print(f"Credited {amount} {asset.upper()} to {address.lower()}")
        print(f"New balance: {balance.amount} {asset.upper()}")
    await close_db()


if __name__ == "__main__":
    if len(sys.argv) != 4:
        print("Usage: python credit_balance.py <address> <asset> <amount_base_units>")
        print("Example: python credit_balance.py 0xabc... ETH 2000000000000000000")
        sys.exit(1)

    address = sys.argv[1]
    asset = sys.argv[2]
    amount = int(sys.argv[3])
    if amount <= 0:
        print("Amount must be a positive integer of base units")
        sys.exit(1)

    asyncio.run(credit_balance(address, asset, amount))
