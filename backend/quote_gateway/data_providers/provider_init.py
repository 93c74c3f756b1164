"""
Provider Initialization Module

Wires the gateway together from settings: durable store, provider registry,
rate-limit ledger, availability tracker, selector, cache and one adapter per
provider. Environment credentials are applied on load.
"""
from datetime import timedelta
from typing import Optional

from loguru import logger

from quote_gateway.config import Settings
from quote_gateway.data_providers.adapters import create_adapters
from quote_gateway.data_providers.availability import AvailabilityTracker
from quote_gateway.data_providers.cache_manager import CacheConfig, ResponseCache
from quote_gateway.data_providers.failover import ProviderSelector
from quote_gateway.data_providers.orchestrator import GatewayConfig, QuoteGateway
from quote_gateway.data_providers.rate_limiter import RateLimitLedger
from quote_gateway.data_providers.registry import ProviderRegistry
from quote_gateway.db.store import DurableStore, create_store
from quote_gateway.utils.clock import Clock, utc_now


def build_gateway(config: Settings, store: DurableStore, clock: Clock = utc_now) -> QuoteGateway:
    """Construct a gateway over an already initialized store."""
    registry = ProviderRegistry(store, clock=clock)
    ledger = RateLimitLedger(
        store,
        clock=clock,
        window=timedelta(hours=config.RATE_LIMIT_WINDOW_HOURS),
    )
    availability = AvailabilityTracker(
        registry,
        clock=clock,
        threshold=config.AUTO_DISABLE_THRESHOLD,
        disable_window=timedelta(minutes=config.AUTO_DISABLE_MINUTES),
    )
    cache = ResponseCache(
        store,
        clock=clock,
        config=CacheConfig(
            quote_ttl=config.QUOTE_CACHE_TTL_SECONDS,
            sweep_interval=config.CACHE_SWEEP_INTERVAL_SECONDS,
        ),
    )

    return QuoteGateway(
        registry=registry,
        ledger=ledger,
        availability=availability,
        selector=ProviderSelector(ledger, availability),
        cache=cache,
        adapters=create_adapters(timeout_seconds=config.PROVIDER_TIMEOUT_SECONDS),
        store=store,
        clock=clock,
        config=GatewayConfig(
            quote_ttl=config.QUOTE_CACHE_TTL_SECONDS,
            max_provider_attempts=config.MAX_PROVIDER_ATTEMPTS,
        ),
    )


async def initialize_gateway(config: Settings, store: Optional[DurableStore] = None) -> QuoteGateway:
    """
    Create the store (unless given), build the gateway and load its state.

    Args:
        config: Application settings
        store: Pre-built durable store; created from STORAGE_BACKEND when None

    Returns:
        Initialized QuoteGateway
    """
    if store is None:
        store = await create_store(config)
    logger.info(f"Durable store backend: {store.backend}")

    gateway = build_gateway(config, store)
    api_keys = config.provider_api_keys()
    logger.info(f"📊 Found API keys for {len(api_keys)} providers")

    await gateway.initialize(api_keys)
    return gateway


async def shutdown_gateway(gateway: QuoteGateway) -> None:
    """Shutdown the gateway gracefully."""
    try:
        await gateway.shutdown()
    except Exception as e:
        logger.error(f"Error shutting down gateway: {e}")
