"""
Provider Selector

Picks the best eligible provider for a request: available per the
availability tracker, with quota left per the rate-limit ledger, lowest
priority value first.
"""
from typing import Iterable, Optional

from loguru import logger

from quote_gateway.data_providers.adapters.base import ProviderConfig
from quote_gateway.data_providers.availability import AvailabilityTracker
from quote_gateway.data_providers.rate_limiter import RateLimitLedger


class ProviderSelector:
    """Priority-ordered provider selection."""

    def __init__(self, ledger: RateLimitLedger, availability: AvailabilityTracker):
        self._ledger = ledger
        self._availability = availability

    async def eligible(
        self,
        configs: Iterable[ProviderConfig],
        exclude: Optional[set[str]] = None,
    ) -> list[ProviderConfig]:
        """Eligible providers ordered by priority; ties keep configuration order."""
        exclude = exclude or set()
        survivors = []
        for config in configs:
            if config.name in exclude:
                continue
            if not await self._availability.is_available(config.name, config):
                continue
            if not self._ledger.has_remaining_quota(config.name, config):
                continue
            survivors.append(config)

        # sorted() is stable
        return sorted(survivors, key=lambda c: c.priority)

    async def select_best(
        self,
        configs: Iterable[ProviderConfig],
        exclude: Optional[set[str]] = None,
    ) -> Optional[str]:
        """Name of the best eligible provider, or None when nothing qualifies."""
        ranked = await self.eligible(configs, exclude)
        if not ranked:
            logger.info("No eligible provider")
            return None

        best = ranked[0]
        logger.debug(f"Selected provider {best.name} (priority {best.priority})")
        return best.name
