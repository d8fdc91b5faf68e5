"""Tests for the oracle-priced swap pool."""

import pytest

from smartledger.config import Settings
from smartledger.errors import (
    InsufficientBalance,
    InsufficientLiquidity,
    SlippageExceeded,
    StaleOrInvalidPrice,
    ZeroAmount,
)
from smartledger.ledger.models import SwapDirection, TransferKind
from smartledger.ledger.repository import LedgerRepository
from smartledger.oracle.adapter import PriceOracle
from smartledger.oracle.mock import MockPriceFeed
from smartledger.pool.swap_pool import SwapPool, require_positive

from tests.conftest import LP, POOL, U1, DriftingPriceFeed


async def _fund(repo: LedgerRepository, holder: str, asset: str, amount: int) -> None:
    await repo.credit_balance(holder, asset, amount)
    await repo.record_transfer(TransferKind.DEPOSIT, asset, holder, amount)


class TestQuotes:
    """Tests for read-only quotes."""

    @pytest.mark.asyncio
    async def test_quote_buy_and_sell(self, funded_pool: SwapPool):
        assert await funded_pool.quote_buy(1) == 1000
        assert await funded_pool.quote_sell(1000) == 1

    @pytest.mark.asyncio
    async def test_quotes_do_not_touch_reserves(self, funded_pool: SwapPool):
        before = await funded_pool.reserves()
        await funded_pool.quote_buy(50)
        await funded_pool.quote_sell(50_000)
        assert await funded_pool.reserves() == before

    @pytest.mark.asyncio
    async def test_quote_zero_rejected(self, funded_pool: SwapPool):
        with pytest.raises(ZeroAmount):
            await funded_pool.quote_buy(0)
        with pytest.raises(ZeroAmount):
            await funded_pool.quote_sell(0)

    @pytest.mark.asyncio
    async def test_quote_negative_rejected(self, funded_pool: SwapPool):
        with pytest.raises(ValueError):
            await funded_pool.quote_buy(-1)

    @pytest.mark.asyncio
    async def test_quotes_with_real_decimals(self, ledger_repo: LedgerRepository):
        """Test 18-decimal native against a 6-decimal token at 2000."""
        settings = Settings(native_decimals=18, token_decimals=6, pool_address=POOL)
        pool = SwapPool(
            ledger_repo, PriceOracle(MockPriceFeed(initial_answer=2000 * 10**8)), settings
        )

        assert await pool.quote_buy(10**18) == 2000 * 10**6
        assert await pool.quote_sell(2000 * 10**6) == 10**18
        assert await pool.quote_buy(10**15) == 2 * 10**6

    @pytest.mark.asyncio
    async def test_quote_uses_normalized_price(self, ledger_repo: LedgerRepository, unit_settings):
        """Test an 18-decimal feed quotes identically to an 8-decimal one."""
        feed = MockPriceFeed(decimals=18, initial_answer=1000 * 10**18)
        pool = SwapPool(ledger_repo, PriceOracle(feed), unit_settings)

        assert await pool.quote_buy(3) == 3000

    @pytest.mark.asyncio
    async def test_quote_follows_price(self, funded_pool: SwapPool, price_feed: MockPriceFeed):
        price_feed.update_answer(1500 * 10**8)
        assert await funded_pool.quote_buy(2) == 3000

    @pytest.mark.asyncio
    async def test_quote_reads_price_once(self, ledger_repo: LedgerRepository, unit_settings):
        """Test the quoted output and the reported price come from the same read."""
        feed = DriftingPriceFeed(initial_answer=1000 * 10**8)
        pool = SwapPool(ledger_repo, PriceOracle(feed), unit_settings)

        quote = await pool.quote(SwapDirection.BUY, 3)

        assert feed.reads == 1
        assert quote.price == 1000 * 10**8
        assert quote.amount_out == 3000

        quote = await pool.quote(SwapDirection.SELL, 2002)
        assert quote.price == 1001 * 10**8
        assert quote.amount_out == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [1.7, 2.0, True, "3"])
    async def test_quote_non_integer_rejected(self, funded_pool: SwapPool, amount):
        """Test fractional and boolean amounts are refused, not truncated."""
        with pytest.raises(ValueError, match="integer of base units"):
            await funded_pool.quote_buy(amount)

    def test_require_positive(self):
        assert require_positive(5) == 5
        with pytest.raises(ZeroAmount):
            require_positive(0)
        with pytest.raises(ValueError):
            require_positive(-1)
        with pytest.raises(ValueError):
            require_positive(1.7)
        with pytest.raises(ValueError):
            require_positive(True)


class TestExecuteBuy:
    """Tests for native -> token swaps."""

    @pytest.mark.asyncio
    async def test_buy(self, funded_pool: SwapPool, ledger_repo: LedgerRepository):
        """Test pay 1 ETH at 1000, receive 1000 USDC."""
        await _fund(ledger_repo, U1, "ETH", 10)

        token_out = await funded_pool.execute_buy(U1, 1, 990)

        assert token_out == 1000
        assert await ledger_repo.get_balance_amount(U1, "ETH") == 9
        assert await ledger_repo.get_balance_amount(U1, "USDC") == 1000
        reserves = await funded_pool.reserves()
        assert (reserves.native_reserve, reserves.token_reserve) == (101, 99_000)

    @pytest.mark.asyncio
    async def test_buy_recorded(self, funded_pool: SwapPool, ledger_repo: LedgerRepository):
        await _fund(ledger_repo, U1, "ETH", 1)
        await funded_pool.execute_buy(U1, 1, 0)

        swaps = await ledger_repo.get_swaps(U1)
        assert len(swaps) == 1
        assert swaps[0].direction == SwapDirection.BUY
        assert (swaps[0].amount_in, swaps[0].amount_out) == (1, 1000)
        assert swaps[0].price == 1000 * 10**8

    @pytest.mark.asyncio
    async def test_slippage_leaves_state_unchanged(
        self, funded_pool: SwapPool, ledger_repo: LedgerRepository
    ):
        await _fund(ledger_repo, U1, "ETH", 10)

        with pytest.raises(SlippageExceeded):
            await funded_pool.execute_buy(U1, 1, 1001)

        assert await ledger_repo.get_balance_amount(U1, "ETH") == 10
        assert await ledger_repo.get_balance_amount(U1, "USDC") == 0
        reserves = await funded_pool.reserves()
        assert (reserves.native_reserve, reserves.token_reserve) == (100, 100_000)
        assert await ledger_repo.get_swaps(U1) == []

    @pytest.mark.asyncio
    async def test_insufficient_liquidity(self, funded_pool: SwapPool, ledger_repo: LedgerRepository):
        """Test a buy needing more tokens than the reserve holds is refused."""
        await _fund(ledger_repo, U1, "ETH", 200)

        with pytest.raises(InsufficientLiquidity):
            await funded_pool.execute_buy(U1, 101, 0)

        assert await ledger_repo.get_balance_amount(U1, "ETH") == 200
        assert (await funded_pool.reserves()).token_reserve == 100_000

    @pytest.mark.asyncio
    async def test_exact_reserve_can_be_drained(self, funded_pool: SwapPool, ledger_repo: LedgerRepository):
        await _fund(ledger_repo, U1, "ETH", 100)

        assert await funded_pool.execute_buy(U1, 100, 100_000) == 100_000
        assert (await funded_pool.reserves()).token_reserve == 0

    @pytest.mark.asyncio
    async def test_caller_without_funds(self, funded_pool: SwapPool, ledger_repo: LedgerRepository):
        with pytest.raises(InsufficientBalance):
            await funded_pool.execute_buy(U1, 1, 0)

        assert (await funded_pool.reserves()).native_reserve == 100

    @pytest.mark.asyncio
    async def test_zero_amount(self, funded_pool: SwapPool):
        with pytest.raises(ZeroAmount):
            await funded_pool.execute_buy(U1, 0, 0)

    @pytest.mark.asyncio
    async def test_fractional_amounts_rejected(
        self, funded_pool: SwapPool, ledger_repo: LedgerRepository
    ):
        """Test float inputs are refused before anything moves."""
        await _fund(ledger_repo, U1, "ETH", 10)

        with pytest.raises(ValueError):
            await funded_pool.execute_buy(U1, 1.0, 0)
        with pytest.raises(ValueError):
            await funded_pool.execute_buy(U1, 1, 0.5)

        assert await ledger_repo.get_balance_amount(U1, "ETH") == 10
        assert await ledger_repo.get_swaps(U1) == []

    @pytest.mark.asyncio
    async def test_stale_price_aborts(
        self, funded_pool: SwapPool, ledger_repo: LedgerRepository, price_feed: MockPriceFeed
    ):
        """Test an invalid oracle answer aborts before anything moves."""
        await _fund(ledger_repo, U1, "ETH", 10)
        price_feed.update_answer(0)

        with pytest.raises(StaleOrInvalidPrice):
            await funded_pool.execute_buy(U1, 1, 0)

        assert await ledger_repo.get_balance_amount(U1, "ETH") == 10
        assert (await funded_pool.reserves()).token_reserve == 100_000


class TestExecuteSell:
    """Tests for token -> native swaps."""

    @pytest.mark.asyncio
    async def test_sell(self, funded_pool: SwapPool, ledger_repo: LedgerRepository):
        await _fund(ledger_repo, U1, "USDC", 2500)

        native_out = await funded_pool.execute_sell(U1, 2500, 2)

        # 2500 USDC at 1000 floors to 2 ETH; the remainder stays in the pool
        assert native_out == 2
        assert await ledger_repo.get_balance_amount(U1, "USDC") == 0
        assert await ledger_repo.get_balance_amount(U1, "ETH") == 2
        reserves = await funded_pool.reserves()
        assert (reserves.native_reserve, reserves.token_reserve) == (98, 102_500)

    @pytest.mark.asyncio
    async def test_output_rounding_to_zero(self, funded_pool: SwapPool, ledger_repo: LedgerRepository):
        await _fund(ledger_repo, U1, "USDC", 999)

        with pytest.raises(ZeroAmount):
            await funded_pool.execute_sell(U1, 999, 0)

        assert await ledger_repo.get_balance_amount(U1, "USDC") == 999

    @pytest.mark.asyncio
    async def test_sell_slippage(self, funded_pool: SwapPool, ledger_repo: LedgerRepository):
        await _fund(ledger_repo, U1, "USDC", 1000)

        with pytest.raises(SlippageExceeded):
            await funded_pool.execute_sell(U1, 1000, 2)

    @pytest.mark.asyncio
    async def test_sell_insufficient_liquidity(
        self, funded_pool: SwapPool, ledger_repo: LedgerRepository
    ):
        await _fund(ledger_repo, U1, "USDC", 200_000)

        with pytest.raises(InsufficientLiquidity):
            await funded_pool.execute_sell(U1, 101_000, 0)


class TestPoolInvariants:
    """Tests for value conservation and rounding direction."""

    @pytest.mark.asyncio
    async def test_round_trip_never_gains(self, ledger_repo: LedgerRepository):
        """Test buying then selling back returns at most the starting input."""
        settings = Settings(native_decimals=18, token_decimals=6, pool_address=POOL)
        feed = MockPriceFeed(initial_answer=199_999_999_999)
        pool = SwapPool(ledger_repo, PriceOracle(feed), settings)
        await _fund(ledger_repo, LP, "ETH", 10**21)
        await _fund(ledger_repo, LP, "USDC", 10**12)
        await pool.add_liquidity(LP, 10**21, 10**12)

        start = 10**18
        await _fund(ledger_repo, U1, "ETH", start)
        token_out = await pool.execute_buy(U1, start, 0)
        native_back = await pool.execute_sell(U1, token_out, 0)

        assert native_back <= start

    @pytest.mark.asyncio
    async def test_value_is_conserved(self, funded_pool: SwapPool, ledger_repo: LedgerRepository):
        """Test balances plus reserves always equal what was deposited."""
        await _fund(ledger_repo, U1, "ETH", 7)
        await _fund(ledger_repo, U1, "USDC", 3333)

        await funded_pool.execute_buy(U1, 3, 0)
        await funded_pool.execute_sell(U1, 4321, 0)

        reserves = await funded_pool.reserves()
        for asset, reserve in (("ETH", reserves.native_reserve), ("USDC", reserves.token_reserve)):
            held = sum(b.amount for b in await ledger_repo.get_asset_balances(asset))
            deposited = sum(
                t.amount
                for t in await ledger_repo.get_transfers(kind=TransferKind.DEPOSIT)
                if t.asset == asset
            )
            assert held + reserve == deposited


class TestAddLiquidity:
    """Tests for funding the pool."""

    @pytest.mark.asyncio
    async def test_add_liquidity(self, pool: SwapPool, ledger_repo: LedgerRepository):
        await _fund(ledger_repo, LP, "ETH", 5)

        reserves = await pool.add_liquidity(LP, 5, 0)

        assert (reserves.native_reserve, reserves.token_reserve) == (5, 0)
        assert await ledger_repo.get_balance_amount(LP, "ETH") == 0
        moves = await ledger_repo.get_transfers(LP, kind=TransferKind.LIQUIDITY)
        assert [(t.asset, t.amount, t.to_address) for t in moves] == [("ETH", 5, POOL)]

    @pytest.mark.asyncio
    async def test_add_liquidity_without_funds(self, pool: SwapPool, ledger_repo: LedgerRepository):
        await _fund(ledger_repo, LP, "ETH", 5)

        with pytest.raises(InsufficientBalance):
            await pool.add_liquidity(LP, 5, 1)

        assert await ledger_repo.get_balance_amount(LP, "ETH") == 5
        assert (await pool.reserves()).native_reserve == 0

    @pytest.mark.asyncio
    async def test_add_nothing(self, pool: SwapPool):
        with pytest.raises(ZeroAmount):
            await pool.add_liquidity(LP, 0, 0)

    @pytest.mark.asyncio
    async def test_fractional_liquidity_rejected(self, pool: SwapPool, ledger_repo: LedgerRepository):
        await _fund(ledger_repo, LP, "ETH", 5)

        with pytest.raises(ValueError):
            await pool.add_liquidity(LP, 2.5, 0)

        assert await ledger_repo.get_balance_amount(LP, "ETH") == 5
        assert (await pool.reserves()).native_reserve == 0
