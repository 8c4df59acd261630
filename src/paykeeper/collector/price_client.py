"""
Price feed client for fiat quotes of the funding asset.
"""

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Dict, Optional

import httpx

from src.paykeeper.config import PriceFeedSettings, settings
from src.paykeeper.logging import get_logger
from src.paykeeper.shared.funding_errors import PriceSourceError
from src.paykeeper.shared.funding_models import PriceQuote

logger = get_logger(__name__)


class PriceProvider(ABC):
    """Source of fiat prices."""

    @abstractmethod
    async def quote(self, asset: str) -> PriceQuote:
        """
        Fetch the current fiat price of one unit of the asset.

        Raises:
            PriceSourceError: If no valid price can be obtained
        """

    async def close(self):
        """Release any held resources."""


class CoinGeckoPriceProvider(PriceProvider):
    """Simple-price endpoint client. One attempt per call, bounded by a timeout."""

    def __init__(
        self,
        config: Optional[PriceFeedSettings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config or settings.price_feed
        self.base_url = self.config.base_url.rstrip("/")
        self.fiat_currency = self.config.fiat_currency.lower()
        self.timeout = self.config.timeout_seconds
        self.client = client or httpx.AsyncClient(timeout=self.timeout)

    def _get_headers(self) -> Dict[str, str]:
        """Get common headers for requests."""
        headers = {"Accept": "application/json"}
        if self.config.api_key:
            headers[self.config.api_key_header] = self.config.api_key
        return headers

    async def quote(self, asset: str) -> PriceQuote:
        url = f"{self.base_url}/simple/price"
        params = {"ids": asset, "vs_currencies": self.fiat_currency}

        # httpx timeouts apply per read, so a slow body needs an overall bound
        try:
            response = await asyncio.wait_for(
                self.client.get(url, params=params, headers=self._get_headers()),
                timeout=self.timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise PriceSourceError(
                f"request timed out after {self.timeout}s", asset
            ) from e
        except httpx.HTTPError as e:
            raise PriceSourceError(f"request failed: {e!r}", asset) from e

        if response.status_code != 200:
            raise PriceSourceError(f"unexpected HTTP status {response.status_code}", asset)

        try:
            data = response.json()
        except ValueError as e:
            raise PriceSourceError("response is not valid JSON", asset) from e

        try:
            raw_price = data[asset][self.fiat_currency]
        except (KeyError, TypeError) as e:
            raise PriceSourceError(
                f"response has no {self.fiat_currency} price for {asset}", asset
            ) from e

        if isinstance(raw_price, bool) or not isinstance(raw_price, (int, float, str)):
            raise PriceSourceError(f"price is not numeric: {raw_price!r}", asset)

        try:
            price = Decimal(str(raw_price))
        except InvalidOperation as e:
            raise PriceSourceError(f"price is not numeric: {raw_price!r}", asset) from e

        if not price.is_finite() or price <= 0:
            raise PriceSourceError(f"price must be a positive number, got {raw_price!r}", asset)

        logger.debug(f"Fetched {asset} price: {price} {self.fiat_currency}")

        return PriceQuote(
            asset=asset,
            fiat_currency=self.fiat_currency,
            fiat_per_unit=price,
            fetched_at=datetime.utcnow(),
        )

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()
