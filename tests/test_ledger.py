"""Tests for the ledger module."""

import re

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker

from smartledger.errors import InsufficientBalance
from smartledger.ledger.database import async_database_url, build_engine, ensure_sqlite_directory
from smartledger.ledger.models import Base, SwapDirection, TransferKind
from smartledger.ledger.repository import LedgerRepository

from tests.conftest import POOL, U1, U2


class TestProxyAccountOperations:
    """Tests for proxy account persistence."""

    @pytest.mark.asyncio
    async def test_create_proxy_account(self, ledger_repo: LedgerRepository, db_session):
        """Test proxy account creation."""
        account = await ledger_repo.create_proxy_account(U1)
        await db_session.commit()

        assert account.id is not None
        assert account.owner == U1
        assert re.fullmatch(r"0x[0-9a-f]{40}", account.address)

    @pytest.mark.asyncio
    async def test_owner_is_normalized(self, ledger_repo: LedgerRepository):
        """Test owner addresses are stored lower-cased."""
        account = await ledger_repo.create_proxy_account(U1.upper().replace("0X", "0x"))
        assert account.owner == U1

    @pytest.mark.asyncio
    async def test_owner_accounts_in_creation_order(self, ledger_repo: LedgerRepository):
        """Test accounts are listed in insertion order."""
        first = await ledger_repo.create_proxy_account(U1)
        await ledger_repo.create_proxy_account(U2)
        second = await ledger_repo.create_proxy_account(U1)

        accounts = await ledger_repo.get_owner_accounts(U1)
        assert [a.address for a in accounts] == [first.address, second.address]

    @pytest.mark.asyncio
    async def test_unknown_account(self, ledger_repo: LedgerRepository):
        """Test lookup of a missing account returns None."""
        assert await ledger_repo.get_proxy_account("0x" + "0" * 40) is None


class TestBalanceOperations:
    """Tests for balance operations."""

    @pytest.mark.asyncio
    async def test_credit_balance(self, ledger_repo: LedgerRepository, db_session):
        """Test crediting balance."""
        balance = await ledger_repo.credit_balance(U1, "eth", 1500)
        await db_session.commit()

        assert balance.amount == 1500
        assert balance.asset == "ETH"

    @pytest.mark.asyncio
    async def test_debit_balance(self, ledger_repo: LedgerRepository):
        """Test debiting balance."""
        await ledger_repo.credit_balance(U1, "ETH", 2000)
        balance = await ledger_repo.debit_balance(U1, "ETH", 500)

        assert balance.amount == 1500

    @pytest.mark.asyncio
    async def test_insufficient_balance(self, ledger_repo: LedgerRepository):
        """Test debit with insufficient balance raises and leaves balance intact."""
        await ledger_repo.credit_balance(U1, "ETH", 100)

        with pytest.raises(InsufficientBalance, match="Insufficient balance"):
            await ledger_repo.debit_balance(U1, "ETH", 101)

        assert await ledger_repo.get_balance_amount(U1, "ETH") == 100

    @pytest.mark.asyncio
    async def test_missing_balance_reads_zero(self, ledger_repo: LedgerRepository):
        """Test a holder with no record has a zero balance."""
        assert await ledger_repo.get_balance_amount(U2, "USDC") == 0

    @pytest.mark.asyncio
    async def test_large_amounts_survive_round_trip(self, ledger_repo: LedgerRepository, db_session):
        """Test base-unit amounts beyond 64 bits keep full precision."""
        amount = 123_456_789 * 10**24 + 1
        await ledger_repo.credit_balance(U1, "ETH", amount)
        await db_session.commit()
        db_session.expire_all()

        assert await ledger_repo.get_balance_amount(U1, "ETH") == amount

    @pytest.mark.asyncio
    async def test_balances_are_per_asset(self, ledger_repo: LedgerRepository):
        """Test operations on one asset leave others untouched."""
        await ledger_repo.credit_balance(U1, "ETH", 5)
        await ledger_repo.credit_balance(U1, "USDC", 7000)
        await ledger_repo.debit_balance(U1, "ETH", 5)

        balances = {b.asset: b.amount for b in await ledger_repo.get_all_balances(U1)}
        assert balances == {"ETH": 0, "USDC": 7000}


class TestPoolState:
    """Tests for pool reserve persistence."""

    @pytest.mark.asyncio
    async def test_pool_created_empty(self, ledger_repo: LedgerRepository):
        """Test first access creates an empty pool."""
        pool = await ledger_repo.get_or_create_pool(POOL)
        assert pool.native_reserve == 0
        assert pool.token_reserve == 0

        again = await ledger_repo.get_or_create_pool(POOL.upper().replace("0X", "0x"))
        assert again.id == pool.id


class TestAuditTrail:
    """Tests for swap and transfer records."""

    @pytest.mark.asyncio
    async def test_record_and_filter_transfers(self, ledger_repo: LedgerRepository):
        """Test transfers are filtered by address and kind, newest first."""
        await ledger_repo.record_transfer(TransferKind.DEPOSIT, "ETH", U1, 10)
        await ledger_repo.record_transfer(TransferKind.SEND, "ETH", U2, 4, from_address=U1)
        await ledger_repo.record_transfer(TransferKind.DEPOSIT, "ETH", U2, 1)

        u1 = await ledger_repo.get_transfers(U1)
        assert [t.amount for t in u1] == [4, 10]

        deposits = await ledger_repo.get_transfers(kind=TransferKind.DEPOSIT)
        assert sorted(t.amount for t in deposits) == [1, 10]

    @pytest.mark.asyncio
    async def test_record_swap(self, ledger_repo: LedgerRepository):
        """Test swaps are listed per caller."""
        await ledger_repo.record_swap(U1, SwapDirection.BUY, 1, 1000, 990, 1000 * 10**8)

        swaps = await ledger_repo.get_swaps(U1)
        assert len(swaps) == 1
        assert swaps[0].amount_out == 1000
        assert swaps[0].price == 1000 * 10**8
        assert await ledger_repo.get_swaps(U2) == []


class TestDatabase:
    """Tests for engine construction."""

    def test_plain_sqlite_url_uses_aiosqlite(self):
        assert async_database_url("sqlite:///./data/ledger.db") == "sqlite+aiosqlite:///./data/ledger.db"
        assert async_database_url("sqlite+aiosqlite:///:memory:") == "sqlite+aiosqlite:///:memory:"

    def test_memory_database_needs_no_directory(self):
        assert ensure_sqlite_directory("sqlite+aiosqlite:///:memory:") is None
        assert ensure_sqlite_directory("sqlite+aiosqlite://") is None

    @pytest.mark.asyncio
    async def test_engine_creates_missing_directory(self, tmp_path):
        """Test a file database under a not-yet-existing directory can be opened."""
        db_file = tmp_path / "nested" / "data" / "ledger.db"
        engine = build_engine(f"sqlite:///{db_file}")

        try:
            assert db_file.parent.is_dir()
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

            async with async_sessionmaker(bind=engine, expire_on_commit=False)() as session:
                repo = LedgerRepository(session)
                await repo.credit_balance(U1, "ETH", 7)
                await session.commit()
        finally:
            await engine.dispose()

        assert db_file.is_file()
