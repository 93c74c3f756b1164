"""
Alpha Vantage Adapter

Provides access to the Alpha Vantage GLOBAL_QUOTE endpoint.
Free tier with 25 requests/day.

API Documentation: https://www.alphavantage.co/documentation/
"""
from typing import Any

from loguru import logger

from quote_gateway.data_providers.adapters.base import (
    BaseAdapter,
    ProviderConfig,
    Quote,
    ProviderError,
    RateLimitError,
    DataNotAvailableError,
)


ALPHA_VANTAGE_BASE_URL = "https://www.alphavantage.co/query"


class AlphaVantageAdapter(BaseAdapter):
    """
    Alpha Vantage data provider adapter.

    Limitations:
    - Strict daily quota, reported in the body of a 200 response
      (`Note` / `Information`) instead of an HTTP error
    - `10. change percent` is a string with a trailing `%`
    """

    name = "alphavantage"

    async def get_quote(self, symbol: str, config: ProviderConfig) -> Quote:
        """Get real-time quote for a symbol."""
        symbol = symbol.upper()
        params = {
            "function": "GLOBAL_QUOTE",
            "symbol": symbol,
            "apikey": config.api_key or "",
        }

        data = await self._get_json(config.base_url or ALPHA_VANTAGE_BASE_URL, params)
        if not isinstance(data, dict):
            raise ProviderError(self.name, "Invalid response format")

        if "Error Message" in data:
            raise ProviderError(self.name, f"Alpha Vantage Error: {data['Error Message']}")

        # Quota exhaustion is signalled in-body
        if "Note" in data or "Information" in data:
            message = data.get("Note") or data.get("Information")
            logger.warning(f"Alpha Vantage limit message: {message}")
            raise RateLimitError(self.name, message="Alpha Vantage daily limit exceeded")

        quote_data = data.get("Global Quote") or {}
        if not quote_data:
            raise DataNotAvailableError(self.name, symbol)

        return self._parse_quote(symbol, quote_data)

    def _parse_quote(self, symbol: str, data: dict[str, Any]) -> Quote:
        """Parse GLOBAL_QUOTE payload."""
        return self._build_quote(
            symbol=data.get("01. symbol") or symbol,
            price=data.get("05. price"),
            change=data.get("09. change"),
            change_percent=data.get("10. change percent"),
        )
