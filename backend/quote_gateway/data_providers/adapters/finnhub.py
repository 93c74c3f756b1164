"""
Finnhub Adapter

Provides access to Finnhub market data API.

API Documentation: https://finnhub.io/docs/api
Free tier: 60 API calls/minute, real-time US stock quotes
"""
from typing import Any

from quote_gateway.data_providers.adapters.base import (
    BaseAdapter,
    ProviderConfig,
    Quote,
    ProviderError,
    DataNotAvailableError,
)


FINNHUB_BASE_URL = "https://finnhub.io/api/v1"


class FinnhubAdapter(BaseAdapter):
    """Finnhub data provider adapter."""

    name = "finnhub"

    async def get_quote(self, symbol: str, config: ProviderConfig) -> Quote:
        """Get latest quote for a symbol."""
        symbol = symbol.upper()
        url = f"{config.base_url or FINNHUB_BASE_URL}/quote"
        params = {"symbol": symbol, "token": config.api_key or ""}

        data = await self._get_json(url, params)
        if not isinstance(data, dict):
            raise ProviderError(self.name, "Invalid response format")

        if "error" in data:
            raise ProviderError(self.name, str(data["error"]))

        # Unknown symbols come back as all zeros
        if data.get("c") is None or data.get("c") == 0:
            raise DataNotAvailableError(self.name, symbol)

        return self._parse_quote(symbol, data)

    def _parse_quote(self, symbol: str, data: dict[str, Any]) -> Quote:
        """Parse REST API quote response."""
        return self._build_quote(
            symbol=symbol,
            price=data.get("c"),   # current price
            change=data.get("d"),  # change
            change_percent=data.get("dp"),
        )
