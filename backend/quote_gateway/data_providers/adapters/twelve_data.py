"""
Twelve Data Adapter

Provides access to Twelve Data API for global market data.

API Documentation: https://twelvedata.com/docs
Free tier: 800 API credits/day, 8 requests/minute
"""
from typing import Any

from quote_gateway.data_providers.adapters.base import (
    BaseAdapter,
    ProviderConfig,
    Quote,
    ProviderError,
    RateLimitError,
    AuthenticationError,
    DataNotAvailableError,
)


TWELVE_DATA_BASE_URL = "https://api.twelvedata.com"


class TwelveDataAdapter(BaseAdapter):
    """
    Twelve Data provider adapter.

    Errors come back as HTTP 200 with a `code` field in the body.
    """

    name = "twelvedata"

    async def get_quote(self, symbol: str, config: ProviderConfig) -> Quote:
        """Get latest quote for a symbol."""
        symbol = symbol.upper()
        url = f"{config.base_url or TWELVE_DATA_BASE_URL}/quote"
        params = {
            "symbol": symbol,
            "apikey": config.api_key or "",
        }

        data = await self._get_json(url, params)
        if not isinstance(data, dict):
            raise ProviderError(self.name, "Invalid response format")

        if "code" in data:  # Error response
            code = data.get("code")
            if code == 429:
                raise RateLimitError(self.name, message=data.get("message", "API credits exhausted"))
            elif code in (401, 403):
                raise AuthenticationError(self.name, data.get("message", "Authentication failed"))
            elif code == 404:
                raise DataNotAvailableError(self.name, symbol)
            raise ProviderError(self.name, data.get("message", "Unknown error"))

        return self._parse_quote(symbol, data)

    def _parse_quote(self, symbol: str, data: dict[str, Any]) -> Quote:
        """Parse quote response."""
        return self._build_quote(
            symbol=data.get("symbol") or symbol,
            price=data.get("close"),
            change=data.get("change"),
            change_percent=data.get("percent_change"),
        )
