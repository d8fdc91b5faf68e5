#!/usr/bin/env python3
"""Ledger conservation check.

Value only enters the ledger through deposits; sends, swaps and liquidity
moves shift it between holders and the pool. So for each asset:

    sum(all balances) + pool reserve == sum(deposits)

Usage:
    python scripts/reconcile.py [--asset ETH] [--json]

Exit status is 1 when any asset is out of balance.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from dotenv import load_dotenv

from smartledger.config import get_settings
from smartledger.ledger.database import close_db, get_db, init_db
from smartledger.ledger.models import TransferKind
from smartledger.ledger.repository import LedgerRepository

load_dotenv()

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


async def reconcile_asset(repo: LedgerRepository, asset: str, reserve: int) -> dict:
    """Compare held value against deposited value for one asset."""
    balances = await repo.get_asset_balances(asset)
    deposits = [
        t for t in await repo.get_transfers(kind=TransferKind.DEPOSIT) if t.asset == asset
    ]

    held = sum(b.amount for b in balances)
    deposited = sum(t.amount for t in deposits)

    result = {
        "asset": asset,
        "holders": len(balances),
        "balances_total": held,
        "pool_reserve": reserve,
        "deposited_total": deposited,
        "discrepancy": held + reserve - deposited,
    }

    if result["discrepancy"]:
        logger.error(
            f"{asset}: OUT OF BALANCE by {result['discrepancy']} "
            f"(held {held} + reserve {reserve} != deposited {deposited})"
        )
    else:
        logger.info(f"{asset}: OK (held {held} + reserve {reserve} == deposited {deposited})")
    return result


async def reconcile(asset_filter: str = None) -> list[dict]:
    """Reconcile native and token ledgers."""
    settings = get_settings()
    await init_db()

    results = []
    async with get_db() as session:
        repo = LedgerRepository(session)
        pool = await repo.get_or_create_pool(settings.pool_address)

        for asset, reserve in (
            (settings.native_symbol.upper(), pool.native_reserve),
            (settings.token_symbol.upper(), pool.token_reserve),
        ):
            if asset_filter and asset != asset_filter.upper():
                continue
            results.append(await reconcile_asset(repo, asset, reserve))

    await close_db()
    return results


def main():
    parser = argparse.ArgumentParser(description="Check ledger value conservation")
    parser.add_argument("--asset", help="Only reconcile this asset")
    parser.add_argument("--json", action="store_true", help="Print results as JSON")
    args = parser.parse_args()

    results = asyncio.run(reconcile(args.asset))

    if args.json:
        print(json.dumps(results, indent=2, default=str))

    sys.exit(1 if any(r["discrepancy"] for r in results) else 0)


if __name__ == "__main__":
    main()
