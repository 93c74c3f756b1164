"""
Quote Gateway - Test Configuration
Shared fixtures and test configuration.
"""
import os
import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

import pytest
import pytest_asyncio

# Add backend to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Set test environment
os.environ["APP_ENV"] = "testing"
os.environ["LOG_TO_FILE"] = "false"
os.environ["STORAGE_BACKEND"] = "file"

from quote_gateway.data_providers.adapters.base import (  # noqa: E402
    BaseAdapter,
    ProviderConfig,
    Provenance,
    Quote,
)
from quote_gateway.db.store import FileStore  # noqa: E402


# =========================
# Clock
# =========================

class FakeClock:
    """Controllable clock; call it for the current time, advance it explicitly."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    """Clock frozen at a fixed instant."""
    return FakeClock(datetime(2025, 3, 10, 14, 30, tzinfo=timezone.utc))


# =========================
# Storage
# =========================

@pytest.fixture
def store(tmp_path) -> FileStore:
    """File-backed durable store in a temporary directory."""
    return FileStore(tmp_path / "data")


# =========================
# Provider Fixtures
# =========================

@pytest.fixture
def two_providers() -> tuple[ProviderConfig, ...]:
    """providerA (priority 2) and providerB (priority 1), both with quota."""
    return (
        ProviderConfig(name="providerA", base_url="https://a.example", priority=2, daily_limit=10),
        ProviderConfig(name="providerB", base_url="https://b.example", priority=1, daily_limit=10),
    )


@pytest_asyncio.fixture
async def registry(store, clock, two_providers):
    """Loaded registry over the two test providers."""
    from quote_gateway.data_providers.registry import ProviderRegistry

    registry = ProviderRegistry(store, clock=clock, defaults=two_providers)
    await registry.load()
    return registry


@pytest_asyncio.fixture
async def ledger(store, clock, registry):
    """Rate-limit ledger loaded for the test providers."""
    from quote_gateway.data_providers.rate_limiter import RateLimitLedger

    ledger = RateLimitLedger(store, clock=clock)
    await ledger.load(registry.names)
    return ledger


@pytest.fixture
def availability(registry, clock):
    """Availability tracker with the default three-strike policy."""
    from quote_gateway.data_providers.availability import AvailabilityTracker

    return AvailabilityTracker(registry, clock=clock)


# =========================
# Adapter Fixtures
# =========================

class StubAdapter(BaseAdapter):
    """Adapter that answers from a fixed price or raises a configured error."""

    def __init__(self, name: str, price: str = "100.00", error: Optional[BaseException] = None):
        super().__init__(timeout_seconds=1.0)
        self.name = name
        self.price = Decimal(price)
        self.error = error
        self.calls: list[str] = []

    async def initialize(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def get_quote(self, symbol: str, config: ProviderConfig) -> Quote:
        self.calls.append(symbol)
        if self.error is not None:
            raise self.error
        return Quote(
            symbol=symbol,
            price=self.price,
            provider=self.name,
            provenance=Provenance.LIVE,
            change=Decimal("1.00"),
            change_percent=Decimal("0.50"),
        )


@pytest.fixture
def stub_adapters() -> dict[str, StubAdapter]:
    """One stub adapter per test provider."""
    return {
        "providerA": StubAdapter("providerA", price="101.00"),
        "providerB": StubAdapter("providerB", price="202.00"),
    }


@pytest.fixture
def provider_config() -> ProviderConfig:
    """Plain provider record for adapter tests."""
    return ProviderConfig(name="test", api_key="test-key")
