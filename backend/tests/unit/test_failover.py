"""
Unit Tests - Provider Selector
Priority ordering over available providers with quota.
"""
from datetime import timedelta

import pytest

from quote_gateway.data_providers.adapters.base import NetworkError
from quote_gateway.data_providers.failover import ProviderSelector


@pytest.fixture
def selector(ledger, availability):
    return ProviderSelector(ledger, availability)


async def exhaust(ledger, registry, name):
    config = registry.get(name)
    for _ in range(config.daily_limit):
        await ledger.record_call(name)


class TestSelectBest:
    """Tests for ProviderSelector.select_best."""

    @pytest.mark.asyncio
    async def test_lowest_priority_value_wins(self, selector, registry):
        """providerB (priority 1) beats providerA (priority 2)."""
        assert await selector.select_best(registry.snapshot()) == "providerB"

    @pytest.mark.asyncio
    async def test_falls_back_when_best_exhausted(self, selector, registry, ledger):
        await exhaust(ledger, registry, "providerB")

        assert await selector.select_best(registry.snapshot()) == "providerA"

    @pytest.mark.asyncio
    async def test_none_when_all_exhausted_or_disabled(self, selector, registry, ledger):
        await exhaust(ledger, registry, "providerB")
        await registry.update("providerA", enabled=False)

        assert await selector.select_best(registry.snapshot()) is None

    @pytest.mark.asyncio
    async def test_skips_auto_disabled(self, selector, registry, availability):
        for _ in range(3):
            await availability.record_failure("providerB", NetworkError("providerB", "ECONNREFUSED"))

        assert await selector.select_best(registry.snapshot()) == "providerA"

    @pytest.mark.asyncio
    async def test_skips_self_reported_exhaustion(self, selector, registry, clock):
        await registry.mark_rate_limited("providerB", clock() + timedelta(hours=2))

        assert await selector.select_best(registry.snapshot()) == "providerA"

    @pytest.mark.asyncio
    async def test_ties_keep_configuration_order(self, selector, registry):
        await registry.update("providerA", priority=1)

        ranked = await selector.eligible(registry.snapshot())

        assert [c.name for c in ranked] == ["providerA", "providerB"]

    @pytest.mark.asyncio
    async def test_exclude(self, selector, registry):
        assert await selector.select_best(registry.snapshot(), exclude={"providerB"}) == "providerA"
        assert await selector.select_best(registry.snapshot(), exclude={"providerA", "providerB"}) is None
