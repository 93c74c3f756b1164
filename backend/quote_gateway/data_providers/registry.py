"""
Provider Registry

Holds the configuration record of every data provider keyed by name.
Records are loaded from the durable store at startup (defaults fill in
providers that were never persisted), mutated one record at a time under a
per-provider lock and written back after every mutation.
"""
import asyncio
from collections import defaultdict
from datetime import datetime
from typing import Any, Optional

from loguru import logger

from quote_gateway.data_providers.adapters.base import ProviderConfig
from quote_gateway.db.store import API_CONFIG, DurableStore
from quote_gateway.utils.clock import Clock, utc_now
from quote_gateway.utils.exceptions import ProviderNotFoundError


# Default provider table (priority: lower = preferred)
DEFAULT_PROVIDERS: tuple[ProviderConfig, ...] = (
    ProviderConfig(
        name="alphavantage",
        base_url="https://www.alphavantage.co/query",
        priority=1,
        daily_limit=25,
        minute_limit=5,
    ),
    ProviderConfig(
        name="twelvedata",
        base_url="https://api.twelvedata.com",
        priority=2,
        daily_limit=800,
        minute_limit=8,
        supports_bulk=True,
        bulk_limit=120,
    ),
    ProviderConfig(
        name="finnhub",
        base_url="https://finnhub.io/api/v1",
        priority=4,
        daily_limit=60,
        minute_limit=60,
    ),
    ProviderConfig(
        name="iexcloud",
        base_url="https://cloud.iexapis.com/stable",
        priority=5,
        daily_limit=500000,
        minute_limit=100,
        supports_bulk=True,
        bulk_limit=100,
    ),
    ProviderConfig(
        name="polygon",
        base_url="https://api.polygon.io/v2",
        priority=6,
        daily_limit=5,
        minute_limit=5,
    ),
    ProviderConfig(
        name="quandl",
        base_url="https://data.nasdaq.com/api/v3",
        priority=7,
        daily_limit=50,
        minute_limit=20,
    ),
    ProviderConfig(
        name="worldtradingdata",
        base_url="https://api.worldtradingdata.com/api/v1",
        priority=8,
        daily_limit=250,
        minute_limit=5,
        supports_bulk=True,
        bulk_limit=5,
    ),
    ProviderConfig(
        name="marketstack",
        base_url="http://api.marketstack.com/v1",
        priority=9,
        daily_limit=1000,
        minute_limit=10,
    ),
)


class ProviderRegistry:
    """
    Provider configuration table.

    Readers get detached copies (`get`, `snapshot`), so a request works on a
    stable view while concurrent mutations land in the registry itself.
    """

    def __init__(
        self,
        store: DurableStore,
        clock: Clock = utc_now,
        defaults: tuple[ProviderConfig, ...] = DEFAULT_PROVIDERS,
    ):
        self._store = store
        self._clock = clock
        self._defaults = defaults
        self._configs: dict[str, ProviderConfig] = {}
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def load(self, api_keys: Optional[dict[str, str]] = None) -> None:
        """
        Load the table from the durable store.

        Persisted records win over defaults; environment credentials win over
        persisted ones for the same provider.
        """
        try:
            persisted = await self._store.items(API_CONFIG)
        except Exception as e:
            logger.error(f"Could not load provider config, using defaults: {e}")
            persisted = {}

        configs: dict[str, ProviderConfig] = {}
        for default in self._defaults:
            document = persisted.get(default.name)
            configs[default.name] = ProviderConfig.from_dict(document) if document else default.copy()
        for name, document in persisted.items():
            if name not in configs:
                configs[name] = ProviderConfig.from_dict(document)

        for name, api_key in (api_keys or {}).items():
            if name in configs:
                configs[name].api_key = api_key

        self._configs = configs
        for config in configs.values():
            await self._persist(config)

        configured = sum(1 for c in configs.values() if c.api_key)
        logger.info(f"Loaded {len(configs)} providers ({configured} with credentials)")

    @property
    def names(self) -> list[str]:
        return list(self._configs)

    def get(self, name: str) -> ProviderConfig:
        """Detached copy of one provider record."""
        try:
            return self._configs[name].copy()
        except KeyError:
            raise ProviderNotFoundError(name) from None

    def snapshot(self) -> list[ProviderConfig]:
        """Detached copies of every record in configuration order."""
        return [config.copy() for config in self._configs.values()]

    async def update(self, name: str, **changes: Any) -> ProviderConfig:
        """Read-modify-write a single record under its lock, then persist it."""
        if name not in self._configs:
            raise ProviderNotFoundError(name)

        async with self._locks[name]:
            config = self._configs[name]
            for field_name, value in changes.items():
                if not hasattr(config, field_name):
                    raise AttributeError(f"ProviderConfig has no field {field_name!r}")
                setattr(config, field_name, value)
            await self._persist(config)
            return config.copy()

    async def mark_rate_limited(self, name: str, reset_at: datetime) -> ProviderConfig:
        """Record a provider-reported quota exhaustion until reset_at."""
        logger.warning(f"{name} rate limited until {reset_at.isoformat()}")
        return await self.update(name, reset_time=reset_at)

    async def clear_expired_reset_times(self) -> list[str]:
        """Clear every reset_time that has passed; returns the affected providers."""
        now = self._clock()
        cleared = []
        for name, config in list(self._configs.items()):
            if config.reset_time is not None and config.reset_time <= now:
                await self.update(name, reset_time=None)
                cleared.append(name)
                logger.info(f"{name} rate-limit reset time passed, cleared")
        return cleared

    async def _persist(self, config: ProviderConfig) -> None:
        # In-memory state stays authoritative; the next mutation rewrites the record
        try:
            await self._store.put(API_CONFIG, config.name, config.to_dict())
        except Exception as e:
            logger.error(f"Failed to persist config for {config.name}: {e}")
