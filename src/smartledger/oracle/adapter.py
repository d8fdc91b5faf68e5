"""Price oracle adapter.

Reads raw samples from a PriceFeed and rescales them to the fixed reference
scale (PRICE_DECIMALS). Every price consumed by the swap pool goes through
normalize_price so that no two differently-scaled values are ever mixed.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from smartledger.config import PRICE_DECIMALS
from smartledger.errors import StaleOrInvalidPrice
from smartledger.oracle.base import PriceFeed

logger = logging.getLogger(__name__)


def normalize_price(answer: int, decimals: int, target: int = PRICE_DECIMALS) -> int:
    """Rescale an integer answer from `decimals` to `target` fractional digits.

    Downscaling truncates toward zero.
    """
    if decimals == target:
        return answer
    if decimals > target:
        return answer // 10 ** (decimals - target)
    return answer * 10 ** (target - decimals)


@dataclass(frozen=True)
class NormalizedPrice:
    """A validated price in the reference scale."""

    price: int
    decimals: int
    round_id: int
    updated_at: int
    raw_answer: int
    raw_decimals: int

    def as_display(self) -> str:
        """Human-readable price string (display only, never used in arithmetic)."""
        whole, frac = divmod(self.price, 10**self.decimals)
        return f"{whole}.{frac:0{self.decimals}d}"


class PriceOracle:
    """Validating, normalizing view over an external price feed."""

    def __init__(
        self,
        feed: PriceFeed,
        max_price_age_seconds: int = 0,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the oracle adapter.

        Args:
            feed: Source of raw samples
            max_price_age_seconds: Reject samples older than this (0 = disabled)
            clock: Time source used for the staleness check
        """
        self.feed = feed
        self.max_price_age_seconds = max_price_age_seconds
        self._clock = clock
        self.last_price: Optional[NormalizedPrice] = None

    async def get_normalized_price(self) -> NormalizedPrice:
        """Read, validate and normalize the latest feed sample.

        Raises:
            StaleOrInvalidPrice: answer <= 0, incomplete round, or sample too old
        """
        raw_decimals = await self.feed.decimals()
        data = await self.feed.latest_round_data()

        if data.answer <= 0:
            logger.warning(f"{self.feed.name} returned non-positive answer {data.answer}")
            raise StaleOrInvalidPrice(f"Non-positive price answer: {data.answer}")

        if data.updated_at <= 0 or data.answered_in_round < data.round_id:
            logger.warning(
                f"{self.feed.name} round {data.round_id} incomplete "
                f"(answered in {data.answered_in_round}, updated_at {data.updated_at})"
            )
            raise StaleOrInvalidPrice(f"Incomplete price round {data.round_id}")

        if self.max_price_age_seconds:
            age = int(self._clock()) - data.updated_at
            if age > self.max_price_age_seconds:
                logger.warning(
                    f"{self.feed.name} price is {age}s old (max {self.max_price_age_seconds}s)"
                )
                raise StaleOrInvalidPrice(
                    f"Price is stale: {age}s old, max {self.max_price_age_seconds}s"
                )

        price = normalize_price(data.answer, raw_decimals)
        if price <= 0:
            # Tiny answers from high-decimal feeds can truncate to zero
            raise StaleOrInvalidPrice(
                f"Price {data.answer} with {raw_decimals} decimals normalizes to zero"
            )

        normalized = NormalizedPrice(
            price=price,
            decimals=PRICE_DECIMALS,
            round_id=data.round_id,
            updated_at=data.updated_at,
            raw_answer=data.answer,
            raw_decimals=raw_decimals,
        )
        self.last_price = normalized
        return normalized

    async def get_latest_price(self) -> int:
        """Raw latest answer, in the feed's own decimals (unvalidated)."""
        data = await self.feed.latest_round_data()
        return data.answer

    async def get_decimals(self) -> int:
        """Decimals of the underlying feed."""
        return await self.feed.decimals()
