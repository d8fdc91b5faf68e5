"""Price oracle: external feeds normalized to a fixed decimal scale."""

from smartledger.oracle.adapter import NormalizedPrice, PriceOracle, normalize_price
from smartledger.oracle.base import PriceFeed, RoundData
from smartledger.oracle.coingecko import CoinGeckoPriceFeed
from smartledger.oracle.factory import build_price_feed, get_oracle, set_oracle
from smartledger.oracle.mock import MockPriceFeed

__all__ = [
    "CoinGeckoPriceFeed",
    "MockPriceFeed",
    "NormalizedPrice",
    "PriceFeed",
    "PriceOracle",
    "RoundData",
    "build_price_feed",
    "get_oracle",
    "normalize_price",
    "set_oracle",
]
