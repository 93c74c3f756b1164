"""
Unit Tests - Rate Limit Ledger
Daily counters, window reset, self-reported exhaustion and persistence.
"""
import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from quote_gateway.data_providers.adapters.base import ProviderConfig
from quote_gateway.data_providers.rate_limiter import RateLimitLedger, RateLimitState
from quote_gateway.db.store import RATE_LIMITS


@pytest.fixture
def config() -> ProviderConfig:
    return ProviderConfig(name="providerA", daily_limit=5)


class TestQuota:
    """Tests for has_remaining_quota / record_call."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("calls", [0, 1, 4, 5])
    async def test_quota_after_n_calls(self, store, clock, config, calls):
        """N recorded calls leave quota iff N < daily limit."""
        ledger = RateLimitLedger(store, clock=clock)
        for _ in range(calls):
            await ledger.record_call(config.name)

        assert ledger.has_remaining_quota(config.name, config) == (calls < config.daily_limit)

    @pytest.mark.asyncio
    async def test_future_reset_time_blocks(self, store, clock, config):
        """Self-reported exhaustion wins over an unused counter."""
        ledger = RateLimitLedger(store, clock=clock)
        config.reset_time = clock() + timedelta(hours=1)

        assert ledger.has_remaining_quota(config.name, config) is False

    @pytest.mark.asyncio
    async def test_past_reset_time_ignored(self, store, clock, config):
        ledger = RateLimitLedger(store, clock=clock)
        config.reset_time = clock() - timedelta(seconds=1)

        assert ledger.has_remaining_quota(config.name, config) is True

    @pytest.mark.asyncio
    async def test_zero_daily_limit_never_has_quota(self, store, clock):
        ledger = RateLimitLedger(store, clock=clock)

        assert ledger.has_remaining_quota("x", ProviderConfig(name="x", daily_limit=0)) is False

    @pytest.mark.asyncio
    async def test_record_call_persists(self, store, clock, config):
        ledger = RateLimitLedger(store, clock=clock)
        await ledger.record_call(config.name)
        await ledger.record_call(config.name)

        document = await store.get(RATE_LIMITS, config.name)
        assert document["requests"] == 2


class TestReservation:
    """Tests for try_reserve / release."""

    @pytest.mark.asyncio
    async def test_concurrent_reservations_never_exceed_limit(self, store, clock, config):
        """Only daily_limit of many concurrent reservations succeed."""
        ledger = RateLimitLedger(store, clock=clock)

        results = await asyncio.gather(*(ledger.try_reserve(config.name, config) for _ in range(20)))

        assert sum(results) == config.daily_limit
        assert ledger.get_state(config.name).requests == config.daily_limit

    @pytest.mark.asyncio
    async def test_release_refunds(self, store, clock, config):
        ledger = RateLimitLedger(store, clock=clock)
        assert await ledger.try_reserve(config.name, config)

        await ledger.release(config.name)

        assert ledger.get_state(config.name).requests == 0

    @pytest.mark.asyncio
    async def test_release_never_goes_negative(self, store, clock, config):
        ledger = RateLimitLedger(store, clock=clock)

        await ledger.release(config.name)

        assert ledger.get_state(config.name).requests == 0


class TestWindowReset:
    """Tests for maybe_reset_all."""

    @pytest.mark.asyncio
    async def test_window_older_than_24h_resets(self, store, clock, config):
        """A window started 25 hours ago resets to zero at 'now'."""
        start = clock()
        await store.put(RATE_LIMITS, config.name, RateLimitState(
            requests=5, last_reset=start - timedelta(hours=25)
        ).to_dict())
        ledger = RateLimitLedger(store, clock=clock)
        await ledger.load([config.name])

        reset = await ledger.maybe_reset_all([config])

        state = ledger.get_state(config.name)
        assert reset == [config.name]
        assert state.requests == 0
        assert state.last_reset == start
        assert (await store.get(RATE_LIMITS, config.name))["requests"] == 0

    @pytest.mark.asyncio
    async def test_window_younger_than_24h_kept(self, store, clock, config):
        ledger = RateLimitLedger(store, clock=clock)
        await ledger.record_call(config.name)
        clock.advance(hours=23, minutes=59)

        assert await ledger.maybe_reset_all([config]) == []
        assert ledger.get_state(config.name).requests == 1

    @pytest.mark.asyncio
    async def test_exactly_24h_resets(self, store, clock, config):
        ledger = RateLimitLedger(store, clock=clock)
        await ledger.record_call(config.name)
        clock.advance(hours=24)

        await ledger.maybe_reset_all([config])

        assert ledger.get_state(config.name).requests == 0


class TestPersistence:
    """Tests for load / flush and store failures."""

    @pytest.mark.asyncio
    async def test_counters_survive_restart(self, store, clock, config):
        first = RateLimitLedger(store, clock=clock)
        await first.record_call(config.name)
        await first.record_call(config.name)

        second = RateLimitLedger(store, clock=clock)
        await second.load([config.name])

        assert second.get_state(config.name).requests == 2

    @pytest.mark.asyncio
    async def test_corrupt_record_starts_fresh(self, store, clock, config):
        await store.put(RATE_LIMITS, config.name, {"requests": 3, "last_reset": "not-a-date"})
        ledger = RateLimitLedger(store, clock=clock)

        await ledger.load([config.name])

        assert ledger.get_state(config.name).requests == 0

    @pytest.mark.asyncio
    async def test_store_failure_keeps_memory_authoritative(self, clock, config):
        failing_store = AsyncMock()
        failing_store.put.side_effect = OSError("disk full")
        ledger = RateLimitLedger(failing_store, clock=clock)

        assert await ledger.record_call(config.name) == 1
        assert await ledger.record_call(config.name) == 2
        assert failing_store.put.await_count == 2

    @pytest.mark.asyncio
    async def test_flush_writes_every_counter(self, clock):
        mock_store = AsyncMock()
        ledger = RateLimitLedger(mock_store, clock=clock)
        await ledger.record_call("a")
        await ledger.record_call("b")
        mock_store.put.reset_mock()

        await ledger.flush()

        flushed = {call.args[1] for call in mock_store.put.await_args_list}
        assert flushed == {"a", "b"}

    @pytest.mark.asyncio
    async def test_stats(self, store, clock, config):
        ledger = RateLimitLedger(store, clock=clock)
        await ledger.record_call(config.name)

        stats = ledger.get_stats()

        assert stats[config.name]["requests"] == 1
        assert stats[config.name]["last_reset"] == clock().isoformat()
