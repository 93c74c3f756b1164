"""
Nasdaq Data Link Adapter (formerly Quandl)

Provides end-of-day data; the latest dataset row is served as the quote.

API Documentation: https://docs.data.nasdaq.com/
"""
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Optional

from quote_gateway.data_providers.adapters.base import (
    BaseAdapter,
    ProviderConfig,
    Quote,
    ProviderError,
    RateLimitError,
    DataNotAvailableError,
    to_decimal,
)


NASDAQ_BASE_URL = "https://data.nasdaq.com/api/v3"

EOD_NOTE = "End-of-day close - not a real-time price"


class NasdaqDataLinkAdapter(BaseAdapter):
    """
    Nasdaq Data Link adapter.

    Symbol format: DATABASE/DATASET (e.g., EOD/AAPL); bare tickers use EOD.
    """

    name = "quandl"

    async def get_quote(self, symbol: str, config: ProviderConfig) -> Quote:
        """Get latest data point as quote."""
        symbol = symbol.upper()
        if "/" in symbol:
            database, dataset = symbol.split("/", 1)
        else:
            database, dataset = "EOD", symbol

        end_date = date.today()
        url = f"{config.base_url or NASDAQ_BASE_URL}/datasets/{database}/{dataset}.json"
        params = {
            "api_key": config.api_key or "",
            "start_date": (end_date - timedelta(days=7)).isoformat(),
            "end_date": end_date.isoformat(),
            "order": "desc",
        }

        data = await self._get_json(url, params)
        if not isinstance(data, dict):
            raise ProviderError(self.name, "Invalid response format")

        if "quandl_error" in data:
            error = data["quandl_error"] or {}
            code = str(error.get("code", ""))
            # QELx07: too many requests / daily limit
            if code.startswith("QELx"):
                raise RateLimitError(self.name, message=error.get("message"))
            if code == "QECx02":
                raise DataNotAvailableError(self.name, symbol)
            raise ProviderError(self.name, error.get("message", "Unknown error"))

        dataset_data = data.get("dataset") or {}
        return self._parse_dataset(dataset, dataset_data)

    def _parse_dataset(self, ticker: str, dataset: dict[str, Any]) -> Quote:
        column_names = [c.lower() for c in dataset.get("column_names", [])]
        rows = dataset.get("data", [])
        if not rows or "close" not in column_names:
            raise DataNotAvailableError(self.name, ticker)

        close_idx = column_names.index("close")
        # Rows are requested newest first
        latest = to_decimal(rows[0][close_idx])
        previous: Optional[Decimal] = to_decimal(rows[1][close_idx]) if len(rows) > 1 else None

        change = latest - previous if latest is not None and previous else None
        change_pct = (change / previous * 100) if change is not None and previous else None

        return self._build_quote(
            symbol=ticker,
            price=latest,
            change=change,
            change_percent=change_pct,
            note=EOD_NOTE,
        )
