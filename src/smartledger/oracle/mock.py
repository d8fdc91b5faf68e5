"""In-memory price feed for local networks and tests."""

import logging
import time
from typing import Callable, Optional

from smartledger.oracle.base import PriceFeed, RoundData

logger = logging.getLogger(__name__)


class MockPriceFeed(PriceFeed):
    """Price feed whose answer is pushed by the operator.

    Each update opens a new round stamped with the current time. The answer is
    stored verbatim, so non-positive answers can be injected to exercise the
    oracle's rejection path.
    """

    def __init__(
        self,
        decimals: int = 8,
        initial_answer: int = 3000 * 10**8,
        clock: Callable[[], float] = time.time,
    ):
        self._decimals = decimals
        self._clock = clock
        self._round_id = 0
        self._answer = 0
        self._updated_at = 0
        self.update_answer(initial_answer)

    @property
    def name(self) -> str:
        return "Mock"

    async def decimals(self) -> int:
        return self._decimals

    async def latest_round_data(self) -> RoundData:
        return RoundData(
            round_id=self._round_id,
            answer=self._answer,
            started_at=self._updated_at,
            updated_at=self._updated_at,
            answered_in_round=self._round_id,
        )

    def update_answer(self, answer: int, updated_at: Optional[int] = None) -> None:
        """Publish a new answer as a new round."""
        self._round_id += 1
        self._answer = int(answer)
        self._updated_at = int(self._clock()) if updated_at is None else int(updated_at)
        logger.debug(f"Mock feed round {self._round_id}: answer={self._answer}")
