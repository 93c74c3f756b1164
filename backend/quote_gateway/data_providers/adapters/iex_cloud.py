"""
IEX Cloud Adapter

Provides access to the IEX Cloud stock quote endpoint.

API Documentation: https://iexcloud.io/docs/api/
"""
from typing import Any

from quote_gateway.data_providers.adapters.base import (
    BaseAdapter,
    ProviderConfig,
    Quote,
    ProviderError,
    to_decimal,
)


IEX_CLOUD_BASE_URL = "https://cloud.iexapis.com/stable"


class IEXCloudAdapter(BaseAdapter):
    """
    IEX Cloud adapter.

    `changePercent` is a fraction (0.0127 for 1.27%).
    """

    name = "iexcloud"

    async def get_quote(self, symbol: str, config: ProviderConfig) -> Quote:
        """Get latest quote for a symbol."""
        symbol = symbol.upper()
        url = f"{config.base_url or IEX_CLOUD_BASE_URL}/stock/{symbol}/quote"
        params = {"token": config.api_key or ""}

        data = await self._get_json(url, params)
        if not isinstance(data, dict):
            raise ProviderError(self.name, "Invalid response format")

        return self._parse_quote(symbol, data)

    def _parse_quote(self, symbol: str, data: dict[str, Any]) -> Quote:
        fraction = to_decimal(data.get("changePercent"))
        return self._build_quote(
            symbol=data.get("symbol") or symbol,
            price=data.get("latestPrice"),
            change=data.get("change"),
            change_percent=fraction * 100 if fraction is not None else None,
        )
