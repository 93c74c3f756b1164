"""
Marketstack Adapter

Provides end-of-day stock data; change is computed from the day's open.

API Documentation: https://marketstack.com/documentation
Free tier: 1000 requests/month
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
    to_decimal,
)


MARKETSTACK_BASE_URL = "http://api.marketstack.com/v1"


class MarketstackAdapter(BaseAdapter):
    """Marketstack data provider adapter."""

    name = "marketstack"

    async def get_quote(self, symbol: str, config: ProviderConfig) -> Quote:
        """Get latest end-of-day data as quote."""
        symbol = symbol.upper()
        url = f"{config.base_url or MARKETSTACK_BASE_URL}/eod/latest"
        params = {
            "access_key": config.api_key or "",
            "symbols": symbol,
        }

        data = await self._get_json(url, params)
        if not isinstance(data, dict):
            raise ProviderError(self.name, "Invalid response format")

        if "error" in data:
            error = data["error"] or {}
            code = error.get("code")
            if code == "validation_error":
                raise DataNotAvailableError(self.name, symbol)
            elif code in ("usage_limit_reached", "rate_limit_reached"):
                raise RateLimitError(self.name, message=error.get("message"))
            elif code in ("invalid_access_key", "missing_access_key"):
                raise AuthenticationError(self.name, error.get("message", "Invalid access key"))
            raise ProviderError(self.name, error.get("message", "Unknown error"))

        eod_data = data.get("data") or []
        if not eod_data:
            raise DataNotAvailableError(self.name, symbol)

        return self._parse_eod_quote(symbol, eod_data[0])

    def _parse_eod_quote(self, symbol: str, data: dict[str, Any]) -> Quote:
        close = to_decimal(data.get("close"))
        open_price = to_decimal(data.get("open"))

        change = close - open_price if close is not None and open_price is not None else None
        change_pct = (change / open_price * 100) if change is not None and open_price else None

        return self._build_quote(
            symbol=data.get("symbol") or symbol,
            price=close,
            change=change,
            change_percent=change_pct,
        )
