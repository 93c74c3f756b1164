"""
Unit Tests - Response Cache
Two-tier lookup, expiry semantics, sweep and failure tolerance.
"""
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from quote_gateway.data_providers.adapters.base import Provenance, Quote
from quote_gateway.data_providers.cache_manager import CacheConfig, ResponseCache
from quote_gateway.db.store import CACHE_DATA


@pytest.fixture
def quote(clock) -> Quote:
    return Quote(
        symbol="MSFT",
        price=Decimal("415.26"),
        provider="finnhub",
        provenance=Provenance.LIVE,
        change=Decimal("-3.22"),
        change_percent=Decimal("-0.77"),
        timestamp=clock(),
    )


@pytest.fixture
def cache(store, clock) -> ResponseCache:
    return ResponseCache(store, clock=clock)


class TestGetSet:
    """Tests for get / set."""

    @pytest.mark.asyncio
    async def test_set_then_get(self, cache, quote):
        await cache.set("quote_MSFT", quote, ttl=1)

        assert await cache.get("quote_MSFT") == quote

    @pytest.mark.asyncio
    async def test_expired_entry_is_absent(self, cache, quote, clock):
        """After the TTL, get misses even though nothing was swept."""
        await cache.set("quote_MSFT", quote, ttl=1)
        clock.advance(seconds=1)

        assert await cache.get("quote_MSFT") is None

    @pytest.mark.asyncio
    async def test_expired_durable_entry_is_absent(self, store, clock, quote):
        """A fresh process never serves an expired durable entry."""
        await ResponseCache(store, clock=clock).set("quote_MSFT", quote, ttl=1)
        clock.advance(seconds=5)

        assert await ResponseCache(store, clock=clock).get("quote_MSFT") is None
        assert await store.get(CACHE_DATA, "quote_MSFT") is not None

    @pytest.mark.asyncio
    async def test_durable_hit_repopulates_memory(self, store, clock, quote):
        await ResponseCache(store, clock=clock).set("quote_MSFT", quote, ttl=60)
        fresh = ResponseCache(store, clock=clock)
        assert fresh.size == 0

        cached = await fresh.get("quote_MSFT")

        assert cached == quote
        assert fresh.size == 1

    @pytest.mark.asyncio
    async def test_quote_helpers_use_symbol_key(self, cache, quote, store):
        await cache.set_quote(quote)

        assert await cache.get_quote("msft") == quote
        assert await store.get(CACHE_DATA, "quote_MSFT") is not None

    @pytest.mark.asyncio
    async def test_default_ttl_is_five_minutes(self, cache, quote, clock):
        await cache.set_quote(quote)
        clock.advance(minutes=4, seconds=59)
        assert await cache.get_quote("MSFT") == quote

        clock.advance(seconds=1)
        assert await cache.get_quote("MSFT") is None


class TestDurableFailures:
    """The cache never fails its caller."""

    @pytest.mark.asyncio
    async def test_write_failure_swallowed(self, clock, quote):
        failing_store = AsyncMock()
        failing_store.put.side_effect = OSError("read-only filesystem")
        cache = ResponseCache(failing_store, clock=clock)

        await cache.set("quote_MSFT", quote)

        assert await cache.get("quote_MSFT") == quote

    @pytest.mark.asyncio
    async def test_read_failure_is_a_miss(self, clock):
        failing_store = AsyncMock()
        failing_store.get.side_effect = ConnectionError("redis down")
        cache = ResponseCache(failing_store, clock=clock)

        assert await cache.get("quote_MSFT") is None


class TestMaintenance:
    """Tests for sweep / clear / stats."""

    @pytest.mark.asyncio
    async def test_sweep_removes_expired_from_both_tiers(self, cache, store, quote, clock):
        await cache.set("old", quote, ttl=1)
        await cache.set("new", quote, ttl=3600)
        clock.advance(seconds=10)

        removed = await cache.sweep()

        assert removed == 2  # memory + durable copy of "old"
        remaining = await store.items(CACHE_DATA)
        assert list(remaining) == ["new"]
        assert cache.size == 1

    @pytest.mark.asyncio
    async def test_clear(self, cache, store, quote):
        await cache.set("a", quote)
        await cache.set("b", quote)

        assert await cache.clear() == 2
        assert cache.size == 0
        assert await store.items(CACHE_DATA) == {}

    @pytest.mark.asyncio
    async def test_stats(self, cache, quote):
        await cache.set_quote(quote)
        await cache.get_quote("MSFT")
        await cache.get_quote("AAPL")

        stats = cache.get_stats()

        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["sets"] == 1
        assert stats["hit_rate"] == 50.0

    @pytest.mark.asyncio
    async def test_sweeper_start_stop(self, store, clock):
        cache = ResponseCache(store, clock=clock, config=CacheConfig(sweep_interval=3600))

        cache.start_sweeper()
        assert cache._sweeper is not None

        await cache.stop()
        assert cache._sweeper is None
