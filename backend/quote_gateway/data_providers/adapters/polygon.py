"""
Polygon.io Adapter

Uses the last-trade endpoint, which carries a price but no change data.

API Documentation: https://polygon.io/docs/stocks
Free tier: 5 API calls/minute
"""
from quote_gateway.data_providers.adapters.base import (
    BaseAdapter,
    ProviderConfig,
    Quote,
    ProviderError,
    RateLimitError,
    AuthenticationError,
    DataNotAvailableError,
)


POLYGON_BASE_URL = "https://api.polygon.io/v2"

LAST_TRADE_NOTE = "Last trade price only - change data not available"


class PolygonAdapter(BaseAdapter):
    """Polygon.io data provider adapter."""

    name = "polygon"

    async def get_quote(self, symbol: str, config: ProviderConfig) -> Quote:
        """Get last trade for a symbol as a quote."""
        symbol = symbol.upper()
        url = f"{config.base_url or POLYGON_BASE_URL}/last/trade/{symbol}"
        params = {"apiKey": config.api_key or ""}

        data = await self._get_json(url, params)
        if not isinstance(data, dict):
            raise ProviderError(self.name, "Invalid response format")

        status = str(data.get("status", "")).upper()
        if status == "NOT_AUTHORIZED":
            raise AuthenticationError(self.name, data.get("message", "Not authorized"))
        if status == "ERROR":
            message = data.get("error") or data.get("message") or "Unknown error"
            if "exceeded" in message.lower():
                raise RateLimitError(self.name, message=message)
            raise ProviderError(self.name, message)

        trade = data.get("results")
        if not trade:
            raise DataNotAvailableError(self.name, symbol)

        return self._build_quote(
            symbol=symbol,
            price=trade.get("p"),
            note=LAST_TRADE_NOTE,
        )
