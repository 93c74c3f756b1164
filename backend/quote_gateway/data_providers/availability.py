"""
Availability Tracker

Transient per-provider health. Consecutive network-class failures are
counted in memory; once the streak reaches the threshold the provider is
disabled in the registry for a fixed window and re-enabled automatically
when the window has passed.

    Enabled --(3 network failures)--> Disabled(30 min) --(time)--> Enabled
"""
import asyncio
from collections import defaultdict
from datetime import timedelta
from typing import Optional

from loguru import logger

from quote_gateway.data_providers.adapters.base import ProviderConfig, is_network_error
from quote_gateway.data_providers.registry import ProviderRegistry
from quote_gateway.utils.clock import Clock, utc_now


NETWORK_DISABLE_REASON = "Network/Firewall restrictions detected"


class AvailabilityTracker:
    """Three-strike circuit breaker backed by the provider registry."""

    def __init__(
        self,
        registry: ProviderRegistry,
        clock: Clock = utc_now,
        threshold: int = 3,
        disable_window: timedelta = timedelta(minutes=30),
    ):
        self._registry = registry
        self._clock = clock
        self.threshold = threshold
        self.disable_window = disable_window
        self._failures: dict[str, int] = defaultdict(int)
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def is_available(self, name: str, config: Optional[ProviderConfig] = None) -> bool:
        """
        Check whether a provider may be tried.

        An expired auto-disable window is cleared (and persisted) here.
        """
        config = config or self._registry.get(name)

        if config.disabled_until is not None:
            now = self._clock()
            if now < config.disabled_until:
                remaining = (config.disabled_until - now).total_seconds() / 60
                logger.debug(f"{name} disabled for {remaining:.0f} more minutes ({config.disabled_reason})")
                return False

            await self._registry.update(
                name,
                enabled=True,
                disabled_until=None,
                disabled_reason=None,
            )
            logger.info(f"{name} re-enabled after auto-disable window")
            return True

        return config.enabled

    async def record_failure(self, name: str, error: BaseException) -> bool:
        """
        Count a failure against the provider.

        Only network-class errors count. Returns True when this failure
        tripped the auto-disable.
        """
        if not is_network_error(error):
            return False

        async with self._locks[name]:
            self._failures[name] += 1
            count = self._failures[name]
            logger.warning(f"{name} network failure {count}/{self.threshold}: {error}")
            if count < self.threshold:
                return False

            disabled_until = self._clock() + self.disable_window
            await self._registry.update(
                name,
                enabled=False,
                disabled_until=disabled_until,
                disabled_reason=NETWORK_DISABLE_REASON,
            )
            self._failures[name] = 0

        logger.warning(
            f"{name} auto-disabled until {disabled_until.isoformat()} "
            f"after {count} consecutive network failures"
        )
        return True

    def record_success(self, name: str) -> None:
        """A clean call forgives earlier failures."""
        self._failures[name] = 0

    def failure_count(self, name: str) -> int:
        return self._failures.get(name, 0)
