"""CoinGecko-backed price feed.

Fetches the USD price of the native asset and converts it into an integer
answer with a fixed number of decimals, so it can stand in for an on-chain
aggregator.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Optional

import httpx

from smartledger.errors import StaleOrInvalidPrice
from smartledger.oracle.base import PriceFeed, RoundData

logger = logging.getLogger(__name__)

COINGECKO_API = "https://api.coingecko.com/api/v3"


class CoinGeckoPriceFeed(PriceFeed):
    """Price feed reading /simple/price from CoinGecko."""

    def __init__(
        self,
        asset_id: str = "ethereum",
        decimals: int = 8,
        api_url: str = COINGECKO_API,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize CoinGecko feed.

        Args:
            asset_id: CoinGecko coin id of the native asset
            decimals: Decimals of the produced integer answers
            api_url: Base API URL
            timeout: HTTP timeout in seconds
            client: Optional pre-built HTTP client (tests inject a mock transport)
        """
        self.asset_id = asset_id
        self._decimals = decimals
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._http_client = client
        self._round_id = 0

    @property
    def name(self) -> str:
        return "CoinGecko"

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
        return self._http_client

    async def decimals(self) -> int:
        return self._decimals

    async def latest_round_data(self) -> RoundData:
        client = await self._get_client()
        try:
            response = await client.get(
                f"{self.api_url}/simple/price",
                params={
                    "ids": self.asset_id,
                    "vs_currencies": "usd",
                    "include_last_updated_at": "true",
                },
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"CoinGecko price fetch failed: {e}")
            raise StaleOrInvalidPrice(f"CoinGecko price fetch failed: {e}") from e

        entry = data.get(self.asset_id) or {}
        price = entry.get("usd")
        if price is None:
            logger.warning(f"CoinGecko returned no USD price for {self.asset_id}")
            raise StaleOrInvalidPrice(f"No USD price for {self.asset_id}")

        try:
            answer = int(Decimal(str(price)) * (Decimal(10) ** self._decimals))
        except (InvalidOperation, ValueError, OverflowError) as e:
            logger.warning(f"CoinGecko returned malformed price {price!r}")
            raise StaleOrInvalidPrice(f"Malformed price {price!r}") from e

        # A round without a timestamp cannot be age-checked
        last_updated_at = entry.get("last_updated_at")
        try:
            updated_at = int(last_updated_at)
        except (TypeError, ValueError, OverflowError) as e:
            logger.warning(f"CoinGecko returned no usable timestamp for {self.asset_id}")
            raise StaleOrInvalidPrice(
                f"Missing or malformed last_updated_at {last_updated_at!r}"
            ) from e

        self._round_id += 1
        return RoundData(
            round_id=self._round_id,
            answer=answer,
            started_at=updated_at,
            updated_at=updated_at,
            answered_in_round=self._round_id,
        )

    async def close(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
