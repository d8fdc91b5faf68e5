"""Pytest configuration and fixtures."""

import os
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["DEBUG"] = "false"
os.environ["PRICE_FEED"] = "mock"
os.environ["MAX_PRICE_AGE_SECONDS"] = "0"
os.environ["ADMIN_TOKEN"] = "test-admin-token"

from smartledger.config import Settings
from smartledger.ledger.models import Base, TransferKind
from smartledger.ledger.repository import LedgerRepository
from smartledger.notifications.events import EventBus
from smartledger.oracle.adapter import PriceOracle
from smartledger.oracle.mock import MockPriceFeed
from smartledger.pool.swap_pool import SwapPool
from smartledger.wallets.factory import WalletFactory
from smartledger.wallets.smart_wallet import SmartWalletService

# Test identities
U1 = "0x" + "a1" * 20
U2 = "0x" + "b2" * 20
LP = "0x" + "1f" * 20
POOL = "0x" + "5" * 40


@pytest_asyncio.fixture
async def db_engine():
    """Create in-memory database engine for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for testing."""
    session_factory = async_sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def ledger_repo(db_session: AsyncSession) -> LedgerRepository:
    """Create ledger repository for testing."""
    return LedgerRepository(db_session)


@pytest.fixture
def unit_settings() -> Settings:
    """Whole-unit assets (0 decimals) so amounts read like the worked examples."""
    return Settings(
        native_symbol="ETH",
        native_decimals=0,
        token_symbol="USDC",
        token_decimals=0,
        pool_address=POOL,
    )


@pytest.fixture
def price_feed() -> MockPriceFeed:
    """Mock feed fixed at 1 native = 1000 token."""
    return MockPriceFeed(decimals=8, initial_answer=1000 * 10**8)


@pytest.fixture
def oracle(price_feed: MockPriceFeed) -> PriceOracle:
    return PriceOracle(price_feed)


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest_asyncio.fixture
async def pool(ledger_repo, oracle, unit_settings) -> SwapPool:
    """Empty swap pool."""
    return SwapPool(ledger_repo, oracle, unit_settings)


@pytest_asyncio.fixture
async def funded_pool(pool: SwapPool, ledger_repo: LedgerRepository) -> SwapPool:
    """Pool holding 100 ETH and 100000 USDC, provided by LP."""
    await ledger_repo.credit_balance(LP, "ETH", 100)
    await ledger_repo.credit_balance(LP, "USDC", 100_000)
    await ledger_repo.record_transfer(TransferKind.DEPOSIT, "ETH", LP, 100)
    await ledger_repo.record_transfer(TransferKind.DEPOSIT, "USDC", LP, 100_000)
    await pool.add_liquidity(LP, 100, 100_000)
    return pool


@pytest.fixture
def wallet_factory(ledger_repo, event_bus) -> WalletFactory:
    return WalletFactory(ledger_repo, event_bus)


@pytest.fixture
def wallet_service(ledger_repo, funded_pool, unit_settings) -> SmartWalletService:
    return SmartWalletService(ledger_repo, funded_pool, unit_settings)


@pytest_asyncio.fixture
async def funded_wallet(wallet_factory, wallet_service) -> str:
    """Proxy account A1 owned by U1 holding 10 ETH."""
    account = await wallet_factory.create_account(U1)
    await wallet_service.deposit(account.address, 10)
    return account.address


class DriftingPriceFeed(MockPriceFeed):
    """Mock feed whose answer moves by step after every read."""

    def __init__(self, step: int = 10**8, **kwargs):
        super().__init__(**kwargs)
        self.step = step
        self.reads = 0

    async def latest_round_data(self):
        data = await super().latest_round_data()
        self.reads += 1
        self._answer += self.step
        return data
