"""
Provider Adapters Package

Contains one quote adapter per supported provider.
Each adapter implements the BaseAdapter interface for consistent data access.
"""
from quote_gateway.data_providers.adapters.base import (
    BaseAdapter,
    ProviderConfig,
    Provenance,
    Quote,
    ProviderError,
    NetworkError,
    RateLimitError,
    AuthenticationError,
    DataNotAvailableError,
    OFFLINE_PROVIDER,
    is_network_error,
)
from quote_gateway.data_providers.adapters.alpha_vantage import AlphaVantageAdapter
from quote_gateway.data_providers.adapters.twelve_data import TwelveDataAdapter
from quote_gateway.data_providers.adapters.finnhub import FinnhubAdapter
from quote_gateway.data_providers.adapters.iex_cloud import IEXCloudAdapter
from quote_gateway.data_providers.adapters.polygon import PolygonAdapter
from quote_gateway.data_providers.adapters.nasdaq_datalink import NasdaqDataLinkAdapter
from quote_gateway.data_providers.adapters.world_trading_data import WorldTradingDataAdapter
from quote_gateway.data_providers.adapters.marketstack import MarketstackAdapter


# Provider name -> adapter class
ADAPTER_CLASSES: dict[str, type[BaseAdapter]] = {
    adapter.name: adapter
    for adapter in (
        AlphaVantageAdapter,
        TwelveDataAdapter,
        FinnhubAdapter,
        IEXCloudAdapter,
        PolygonAdapter,
        NasdaqDataLinkAdapter,
        WorldTradingDataAdapter,
        MarketstackAdapter,
    )
}


def create_adapters(timeout_seconds: float = 10.0) -> dict[str, BaseAdapter]:
    """Instantiate one adapter per supported provider."""
    return {
        name: adapter_cls(timeout_seconds=timeout_seconds)
        for name, adapter_cls in ADAPTER_CLASSES.items()
    }


__all__ = [
    # Base
    "BaseAdapter",
    "ProviderConfig",
    "Provenance",
    "Quote",
    "ProviderError",
    "NetworkError",
    "RateLimitError",
    "AuthenticationError",
    "DataNotAvailableError",
    "OFFLINE_PROVIDER",
    "is_network_error",
    # Providers
    "AlphaVantageAdapter",
    "TwelveDataAdapter",
    "FinnhubAdapter",
    "IEXCloudAdapter",
    "PolygonAdapter",
    "NasdaqDataLinkAdapter",
    "WorldTradingDataAdapter",
    "MarketstackAdapter",
    "ADAPTER_CLASSES",
    "create_adapters",
]
