"""Oracle-priced swap pool between the native asset and the pegged token.

Quotes are a pure function of the normalized oracle price and the input
amount; pool reserves only bound what can be paid out. Amounts are integers in
each asset's base units and every division floors, so rounding always favours
the pool.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from smartledger.config import PRICE_DECIMALS, Settings, get_settings
from smartledger.errors import (
    InsufficientBalance,
    InsufficientLiquidity,
    SlippageExceeded,
    ZeroAmount,
)
from smartledger.ledger.models import SwapDirection, SwapPoolState, TransferKind
from smartledger.ledger.repository import LedgerRepository
from smartledger.oracle.adapter import PriceOracle

logger = logging.getLogger(__name__)


def require_base_units(amount: int, what: str = "amount") -> int:
    """Validate a non-negative integer base-unit amount.

    Floats and bools are refused rather than coerced; int(1.7) would silently
    drop value.
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValueError(f"{what} must be an integer of base units, got {amount!r}")
    if amount < 0:
        raise ValueError(f"{what} must not be negative: {amount}")
    return amount


def require_positive(amount: int, what: str = "amount") -> int:
    """Validate a base-unit amount: ValueError if malformed or negative, ZeroAmount if zero."""
    amount = require_base_units(amount, what)
    if amount == 0:
        raise ZeroAmount(f"{what} must be greater than zero")
    return amount


@dataclass(frozen=True)
class PoolReserves:
    """Snapshot of the pool's reserves."""

    address: str
    native_reserve: int
    token_reserve: int


@dataclass(frozen=True)
class Quote:
    """A quote and the single price read it was computed from."""

    direction: SwapDirection
    amount_in: int
    amount_out: int
    price: int


class SwapPool:
    """Swap pool service bound to one unit of work (repository session)."""

    def __init__(
        self,
        repo: LedgerRepository,
        oracle: PriceOracle,
        settings: Optional[Settings] = None,
    ):
        settings = settings or get_settings()
        self.repo = repo
        self.oracle = oracle
        self.address = settings.pool_address.lower()
        self.native_symbol = settings.native_symbol.upper()
        self.native_decimals = settings.native_decimals
        self.token_symbol = settings.token_symbol.upper()
        self.token_decimals = settings.token_decimals

    # Pricing
    async def get_price(self) -> int:
        """Current normalized price (token per native, PRICE_DECIMALS scale)."""
        normalized = await self.oracle.get_normalized_price()
        return normalized.price

    def _buy_amount(self, native_in: int, price: int) -> int:
        """Token base units paid for native_in native base units at price."""
        return (native_in * price * 10**self.token_decimals) // (
            10**PRICE_DECIMALS * 10**self.native_decimals
        )

    def _sell_amount(self, token_in: int, price: int) -> int:
        """Native base units paid for token_in token base units at price."""
        return (token_in * 10**PRICE_DECIMALS * 10**self.native_decimals) // (
            price * 10**self.token_decimals
        )

    def _amount_out(self, direction: SwapDirection, amount_in: int, price: int) -> int:
        if direction == SwapDirection.BUY:
            return self._buy_amount(amount_in, price)
        return self._sell_amount(amount_in, price)

    async def quote(self, direction: SwapDirection, amount_in: int) -> Quote:
        """Quote a swap from one oracle read. Does not touch reserves."""
        amount_in = require_positive(amount_in, "amount_in")
        price = await self.get_price()
        return Quote(
            direction=direction,
            amount_in=amount_in,
            amount_out=self._amount_out(direction, amount_in, price),
            price=price,
        )

    async def quote_buy(self, native_in: int) -> int:
        """Quote the token output for native_in. Does not touch reserves."""
        native_in = require_positive(native_in, "native_in")
        return (await self.quote(SwapDirection.BUY, native_in)).amount_out

    async def quote_sell(self, token_in: int) -> int:
        """Quote the native output for token_in. Does not touch reserves."""
        token_in = require_positive(token_in, "token_in")
        return (await self.quote(SwapDirection.SELL, token_in)).amount_out

    # Reserves
    async def _state(self) -> SwapPoolState:
        return await self.repo.get_or_create_pool(self.address)

    async def reserves(self) -> PoolReserves:
        """Read-only snapshot of the current reserves."""
        state = await self._state()
        return PoolReserves(
            address=state.address,
            native_reserve=state.native_reserve,
            token_reserve=state.token_reserve,
        )

    # Execution
    async def execute_buy(self, caller: str, native_in: int, min_token_out: int) -> int:
        """Swap caller's native_in for at least min_token_out tokens.

        Raises:
            ZeroAmount: native_in is zero or the output rounds to zero
            SlippageExceeded: quoted output is below min_token_out
            InsufficientLiquidity: token reserve cannot cover the output
            InsufficientBalance: caller does not hold native_in
        """
        return await self._execute(SwapDirection.BUY, caller, native_in, min_token_out)

    async def execute_sell(self, caller: str, token_in: int, min_native_out: int) -> int:
        """Swap caller's token_in for at least min_native_out native.

        Raises:
            ZeroAmount: token_in is zero or the output rounds to zero
            SlippageExceeded: quoted output is below min_native_out
            InsufficientLiquidity: native reserve cannot cover the output
            InsufficientBalance: caller does not hold token_in
        """
        return await self._execute(SwapDirection.SELL, caller, token_in, min_native_out)

    async def _execute(
        self,
        direction: SwapDirection,
        caller: str,
        amount_in: int,
        min_amount_out: int,
    ) -> int:
        amount_in = require_positive(amount_in, "amount_in")
        min_amount_out = require_base_units(min_amount_out, "min_amount_out")

        if direction == SwapDirection.BUY:
            asset_in, asset_out = self.native_symbol, self.token_symbol
        else:
            asset_in, asset_out = self.token_symbol, self.native_symbol

        # All checks run before the first mutation
        price = await self.get_price()
        amount_out = self._amount_out(direction, amount_in, price)

        if amount_out == 0:
            raise ZeroAmount(f"{amount_in} {asset_in} is worth less than one unit of {asset_out}")

        if amount_out < min_amount_out:
            logger.warning(
                f"Slippage: {caller} {direction.value} {amount_in} {asset_in} -> "
                f"{amount_out} {asset_out} < min {min_amount_out}"
            )
            raise SlippageExceeded(
                f"Output {amount_out} {asset_out} is below minimum {min_amount_out}"
            )

        state = await self._state()
        reserve_out = state.token_reserve if direction == SwapDirection.BUY else state.native_reserve
        if reserve_out < amount_out:
            logger.warning(
                f"Insufficient liquidity: need {amount_out} {asset_out}, reserve {reserve_out}"
            )
            raise InsufficientLiquidity(
                f"Pool holds {reserve_out} {asset_out}, swap needs {amount_out}"
            )

        available = await self.repo.get_balance_amount(caller, asset_in)
        if available < amount_in:
            raise InsufficientBalance(
                f"{caller} has {available} {asset_in}, swap needs {amount_in}"
            )

        # Mutations: caller pays in, reserves move, caller is paid out
        await self.repo.debit_balance(caller, asset_in, amount_in)
        if direction == SwapDirection.BUY:
            state.native_reserve += amount_in
            state.token_reserve -= amount_out
        else:
            state.token_reserve += amount_in
            state.native_reserve -= amount_out
        await self.repo.credit_balance(caller, asset_out, amount_out)
        await self.repo.record_swap(
            caller=caller,
            direction=direction,
            amount_in=amount_in,
            amount_out=amount_out,
            min_amount_out=min_amount_out,
            price=price,
        )

        logger.info(
            f"Swap {direction.value}: {caller} paid {amount_in} {asset_in}, "
            f"received {amount_out} {asset_out} at {price} "
            f"(reserves {state.native_reserve} {self.native_symbol} / "
            f"{state.token_reserve} {self.token_symbol})"
        )
        return amount_out

    async def add_liquidity(self, provider: str, native_amount: int, token_amount: int) -> PoolReserves:
        """Move funds from provider's balances into the pool reserves."""
        native_amount = require_base_units(native_amount, "native_amount")
        token_amount = require_base_units(token_amount, "token_amount")
        if native_amount == 0 and token_amount == 0:
            raise ZeroAmount("At least one liquidity amount must be greater than zero")

        native_available = await self.repo.get_balance_amount(provider, self.native_symbol)
        token_available = await self.repo.get_balance_amount(provider, self.token_symbol)
        if native_available < native_amount or token_available < token_amount:
            raise InsufficientBalance(
                f"{provider} has {native_available} {self.native_symbol} / "
                f"{token_available} {self.token_symbol}, "
                f"needs {native_amount} / {token_amount}"
            )

        state = await self._state()
        for asset, amount in ((self.native_symbol, native_amount), (self.token_symbol, token_amount)):
            if amount == 0:
                continue
            await self.repo.debit_balance(provider, asset, amount)
            await self.repo.record_transfer(
                TransferKind.LIQUIDITY, asset, self.address, amount, from_address=provider
            )
        state.native_reserve += native_amount
        state.token_reserve += token_amount
        await self.repo.session.flush()

        logger.info(
            f"Liquidity from {provider}: +{native_amount} {self.native_symbol}, "
            f"+{token_amount} {self.token_symbol}"
        )
        return await self.reserves()
