"""
Data Providers Package

Quote acquisition over a pool of external market-data providers:
registry, rate-limit ledger, availability tracking, provider selection,
response caching and the gateway that orchestrates them.
"""
from quote_gateway.data_providers.registry import ProviderRegistry, DEFAULT_PROVIDERS
from quote_gateway.data_providers.rate_limiter import RateLimitLedger, RateLimitState
from quote_gateway.data_providers.availability import AvailabilityTracker, NETWORK_DISABLE_REASON
from quote_gateway.data_providers.failover import ProviderSelector
from quote_gateway.data_providers.cache_manager import ResponseCache, CacheConfig, CacheEntry
from quote_gateway.data_providers.offline import build_offline_quote, OFFLINE_NOTE, SAMPLE_QUOTES
from quote_gateway.data_providers.orchestrator import QuoteGateway, GatewayConfig

__all__ = [
    # Registry
    "ProviderRegistry",
    "DEFAULT_PROVIDERS",
    # Rate Limit Ledger
    "RateLimitLedger",
    "RateLimitState",
    # Availability
    "AvailabilityTracker",
    "NETWORK_DISABLE_REASON",
    # Selection
    "ProviderSelector",
    # Cache
    "ResponseCache",
    "CacheConfig",
    "CacheEntry",
    # Offline Sample
    "build_offline_quote",
    "OFFLINE_NOTE",
    "SAMPLE_QUOTES",
    # Gateway
    "QuoteGateway",
    "GatewayConfig",
]
