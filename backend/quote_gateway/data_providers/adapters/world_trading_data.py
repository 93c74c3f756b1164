"""
World Trading Data Adapter

API Documentation: https://www.worldtradingdata.com/documentation
"""
from typing import Any

from quote_gateway.data_providers.adapters.base import (
    BaseAdapter,
    ProviderConfig,
    Quote,
    ProviderError,
    RateLimitError,
    DataNotAvailableError,
)


WORLD_TRADING_DATA_BASE_URL = "https://api.worldtradingdata.com/api/v1"


class WorldTradingDataAdapter(BaseAdapter):
    """World Trading Data adapter. Errors arrive as a `Message` in the body."""

    name = "worldtradingdata"

    async def get_quote(self, symbol: str, config: ProviderConfig) -> Quote:
        """Get latest quote for a symbol."""
        symbol = symbol.upper()
        url = f"{config.base_url or WORLD_TRADING_DATA_BASE_URL}/stock"
        params = {"symbol": symbol, "api_token": config.api_key or ""}

        data = await self._get_json(url, params)
        if not isinstance(data, dict):
            raise ProviderError(self.name, "Invalid response format")

        if "Message" in data:
            message = str(data["Message"])
            if "limit" in message.lower():
                raise RateLimitError(self.name, message=message)
            raise ProviderError(self.name, message)

        stocks = data.get("data") or []
        if not stocks:
            raise DataNotAvailableError(self.name, symbol)

        return self._parse_stock(symbol, stocks[0])

    def _parse_stock(self, symbol: str, stock: dict[str, Any]) -> Quote:
        return self._build_quote(
            symbol=stock.get("symbol") or symbol,
            price=stock.get("price"),
            change=stock.get("day_change"),
            change_percent=stock.get("change_pct"),
        )
