"""Price feed factory for creating feeds from configuration."""

import logging
from typing import Optional

from smartledger.config import Settings, get_settings
from smartledger.oracle.adapter import PriceOracle
from smartledger.oracle.base import PriceFeed
from smartledger.oracle.coingecko import CoinGeckoPriceFeed
from smartledger.oracle.mock import MockPriceFeed

logger = logging.getLogger(__name__)

# Shared oracle instance
_oracle: Optional[PriceOracle] = None


def build_price_feed(settings: Settings) -> PriceFeed:
    """Create the price feed named by settings.price_feed."""
    feed_name = settings.price_feed.lower()

    if feed_name == "coingecko":
        logger.info(f"Using CoinGecko price feed for {settings.coingecko_asset_id}")
        return CoinGeckoPriceFeed(
            asset_id=settings.coingecko_asset_id,
            decimals=settings.coingecko_decimals,
            api_url=settings.coingecko_api_url,
        )

    if feed_name == "mock":
        logger.info(
            f"Using mock price feed: answer={settings.mock_price_answer} "
            f"decimals={settings.mock_price_decimals}"
        )
        return MockPriceFeed(
            decimals=settings.mock_price_decimals,
            initial_answer=settings.mock_price_answer,
        )

    raise ValueError(f"Unknown price feed: {settings.price_feed}")


def get_oracle() -> PriceOracle:
    """Get or create the shared price oracle."""
    global _oracle
    if _oracle is None:
        settings = get_settings()
        _oracle = PriceOracle(
            build_price_feed(settings),
            max_price_age_seconds=settings.max_price_age_seconds,
        )
    return _oracle


def set_oracle(oracle: Optional[PriceOracle]) -> None:
    """Replace the shared oracle (None resets to configuration on next use)."""
    global _oracle
    _oracle = oracle


async def close_oracle() -> None:
    """Close the shared oracle's feed."""
    global _oracle
    if _oracle is not None:
        await _oracle.feed.close()
        _oracle = None
