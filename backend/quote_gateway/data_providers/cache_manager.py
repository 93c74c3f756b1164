"""
Cache Manager

Two-tier quote cache: an in-process map consulted first, then the durable
store's cache_data collection. A durable hit repopulates the in-process map.
Entries past their expiry are treated as absent in both tiers whether or not
they have been swept yet.
"""
import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional

from loguru import logger

from quote_gateway.data_providers.adapters.base import Quote
from quote_gateway.db.store import CACHE_DATA, DurableStore
from quote_gateway.utils.clock import Clock, utc_now


@dataclass
class CacheConfig:
    """Cache configuration."""
    quote_ttl: int = 300            # Quotes: 5 minutes
    sweep_interval: int = 3600      # Expired-entry sweep: hourly
    key_prefix: str = "quote_"


@dataclass
class CacheEntry:
    key: str
    value: Quote
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "value": self.value.to_dict(),
            "expires_at": self.expires_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CacheEntry":
        return cls(
            key=data["key"],
            value=Quote.from_dict(data["value"]),
            expires_at=datetime.fromisoformat(data["expires_at"]),
        )


class ResponseCache:
    """
    Memory-first, durable-second quote cache.

    Durable-tier failures are logged and swallowed: the cache must never
    fail the request that consults it.
    """

    def __init__(
        self,
        store: DurableStore,
        clock: Clock = utc_now,
        config: Optional[CacheConfig] = None,
    ):
        self.config = config or CacheConfig()
        self._store = store
        self._clock = clock
        self._memory: dict[str, CacheEntry] = {}
        self._sweeper: Optional[asyncio.Task] = None
        self._stats = {
            "hits": 0,
            "misses": 0,
            "sets": 0,
            "deletes": 0,
        }

    def quote_key(self, symbol: str) -> str:
        return f"{self.config.key_prefix}{symbol.upper()}"

    # ==================== Generic Entries ====================

    async def get(self, key: str) -> Optional[Quote]:
        """Return the live entry for key, or None."""
        now = self._clock()

        entry = self._memory.get(key)
        if entry is not None:
            if not entry.is_expired(now):
                self._stats["hits"] += 1
                return entry.value
            del self._memory[key]

        entry = await self._get_durable(key)
        if entry is not None and not entry.is_expired(now):
            self._memory[key] = entry
            self._stats["hits"] += 1
            return entry.value

        self._stats["misses"] += 1
        return None

    async def set(self, key: str, value: Quote, ttl: Optional[int] = None) -> None:
        """Store value under key in both tiers for ttl seconds."""
        ttl = self.config.quote_ttl if ttl is None else ttl
        entry = CacheEntry(key=key, value=value, expires_at=self._clock() + timedelta(seconds=ttl))
        self._memory[key] = entry
        self._stats["sets"] += 1

        try:
            await self._store.put(CACHE_DATA, key, entry.to_dict())
        except Exception as e:
            logger.error(f"Cache durable write error for {key}: {e}")

    async def _get_durable(self, key: str) -> Optional[CacheEntry]:
        try:
            document = await self._store.get(CACHE_DATA, key)
            return CacheEntry.from_dict(document) if document else None
        except Exception as e:
            logger.error(f"Cache durable read error for {key}: {e}")
            return None

    # ==================== Quote Caching ====================

    async def get_quote(self, symbol: str) -> Optional[Quote]:
        """Get a cached quote for a symbol."""
        return await self.get(self.quote_key(symbol))

    async def set_quote(self, quote: Quote, ttl: Optional[int] = None) -> None:
        """Cache a quote under its symbol."""
        await self.set(self.quote_key(quote.symbol), quote, ttl)

    # ==================== Maintenance ====================

    async def sweep(self) -> int:
        """Physically remove expired entries from both tiers."""
        now = self._clock()
        removed = 0

        for key in [k for k, e in self._memory.items() if e.is_expired(now)]:
            del self._memory[key]
            removed += 1

        try:
            documents = await self._store.items(CACHE_DATA)
            for key, document in documents.items():
                try:
                    expired = datetime.fromisoformat(document["expires_at"]) <= now
                except (KeyError, TypeError, ValueError):
                    expired = True
                if expired:
                    await self._store.delete(CACHE_DATA, key)
                    removed += 1
        except Exception as e:
            logger.error(f"Cache sweep error: {e}")

        self._stats["deletes"] += removed
        if removed:
            logger.info(f"Cache sweep removed {removed} expired entries")
        return removed

    async def clear(self) -> int:
        """Drop every entry from both tiers."""
        removed = len(self._memory)
        self._memory.clear()

        try:
            removed = max(removed, await self._store.clear(CACHE_DATA))
        except Exception as e:
            logger.error(f"Cache clear error: {e}")

        self._stats["deletes"] += removed
        logger.info(f"Cleared {removed} cache entries")
        return removed

    def start_sweeper(self, interval: Optional[int] = None) -> None:
        """Run `sweep` periodically in the background."""
        if self._sweeper is not None and not self._sweeper.done():
            return
        interval = interval or self.config.sweep_interval
        self._sweeper = asyncio.create_task(self._sweep_loop(interval))
        logger.info(f"Cache sweeper started (every {interval}s)")

    async def _sweep_loop(self, interval: int) -> None:
        while True:
            await asyncio.sleep(interval)
            await self.sweep()

    async def stop(self) -> None:
        """Cancel the background sweeper."""
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None
        logger.info("Cache sweeper stopped")

    # ==================== Cache Stats ====================

    @property
    def size(self) -> int:
        return len(self._memory)

    def get_stats(self) -> dict[str, Any]:
        """Get cache statistics."""
        total = self._stats["hits"] + self._stats["misses"]
        hit_rate = self._stats["hits"] / total if total > 0 else 0

        return {
            **self._stats,
            "entries": self.size,
            "total_requests": total,
            "hit_rate": round(hit_rate * 100, 2),
        }

    def reset_stats(self) -> None:
        """Reset cache statistics."""
        self._stats = {
            "hits": 0,
            "misses": 0,
            "sets": 0,
            "deletes": 0,
        }
