"""Abstract price feed interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RoundData:
    """One raw sample from a price feed.

    answer is a signed integer expressed in the feed's own decimals.
    updated_at is a unix timestamp and serves as the freshness marker.
    """

    round_id: int
    answer: int
    started_at: int
    updated_at: int
    answered_in_round: int


class PriceFeed(ABC):
    """Abstract base class for external price feeds."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Feed name identifier."""
        pass

    @abstractmethod
    async def decimals(self) -> int:
        """Number of fractional decimal digits of the feed's answers."""
        pass

    @abstractmethod
    async def latest_round_data(self) -> RoundData:
        """
        Read the latest sample.

        Returns:
            The most recent RoundData

        Raises:
            StaleOrInvalidPrice: if the feed cannot produce a sample
        """
        pass

    async def close(self) -> None:
        """Release any resources held by the feed."""
        return None
