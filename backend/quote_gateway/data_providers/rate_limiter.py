"""
Rate Limit Ledger

Counts the calls made to each provider in its current daily window.
The window is coarse: the counter resets to zero once 24 hours have passed
since the last reset. Every mutation is persisted so counts survive restarts.
"""
import asyncio
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Iterable

from loguru import logger

from quote_gateway.data_providers.adapters.base import ProviderConfig
from quote_gateway.db.store import RATE_LIMITS, DurableStore
from quote_gateway.utils.clock import Clock, utc_now


@dataclass
class RateLimitState:
    """Calls made to one provider since last_reset."""
    requests: int
    last_reset: datetime

    def to_dict(self) -> dict[str, Any]:
        return {"requests": self.requests, "last_reset": self.last_reset.isoformat()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RateLimitState":
        return cls(
            requests=int(data.get("requests", 0)),
            last_reset=datetime.fromisoformat(data["last_reset"]),
        )


class RateLimitLedger:
    """
    Per-provider daily call counters.

    All mutations of a provider's counter happen under that provider's lock.
    `try_reserve` checks quota and increments in one step, so two concurrent
    callers can never both take the last remaining call.
    """

    def __init__(
        self,
        store: DurableStore,
        clock: Clock = utc_now,
        window: timedelta = timedelta(hours=24),
    ):
        self._store = store
        self._clock = clock
        self.window = window
        self._states: dict[str, RateLimitState] = {}
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def load(self, names: Iterable[str]) -> None:
        """Restore persisted counters; unknown providers start a fresh window."""
        try:
            persisted = await self._store.items(RATE_LIMITS)
        except Exception as e:
            logger.error(f"Could not load rate limits, starting fresh: {e}")
            persisted = {}

        for name in names:
            document = persisted.get(name)
            if document:
                try:
                    self._states[name] = RateLimitState.from_dict(document)
                    continue
                except (KeyError, ValueError) as e:
                    logger.warning(f"Discarding corrupt rate-limit record for {name}: {e}")
            self._states[name] = RateLimitState(requests=0, last_reset=self._clock())

        logger.info(f"Rate-limit ledger loaded for {len(self._states)} providers")

    def _state(self, name: str) -> RateLimitState:
        if name not in self._states:
            self._states[name] = RateLimitState(requests=0, last_reset=self._clock())
        return self._states[name]

    def get_state(self, name: str) -> RateLimitState:
        state = self._state(name)
        return RateLimitState(requests=state.requests, last_reset=state.last_reset)

    async def maybe_reset_all(self, configs: Iterable[ProviderConfig]) -> list[str]:
        """Reset every counter whose window has elapsed; returns the reset providers."""
        reset = []
        for config in configs:
            async with self._locks[config.name]:
                state = self._state(config.name)
                now = self._clock()
                if now - state.last_reset >= self.window:
                    state.requests = 0
                    state.last_reset = now
                    await self._persist(config.name, state)
                    reset.append(config.name)
                    logger.info(f"Rate limit window reset for {config.name}")
        return reset

    def has_remaining_quota(self, name: str, config: ProviderConfig) -> bool:
        """
        True when the provider may be called.

        A provider that reported its own exhaustion (reset_time still in the
        future) is ineligible regardless of its counter.
        """
        if config.reset_time is not None and config.reset_time > self._clock():
            return False
        return self._state(name).requests < config.daily_limit

    async def record_call(self, name: str) -> int:
        """Count one call; returns the new counter value."""
        async with self._locks[name]:
            state = self._state(name)
            state.requests += 1
            await self._persist(name, state)
            return state.requests

    async def try_reserve(self, name: str, config: ProviderConfig) -> bool:
        """Atomically check quota and count one call against it."""
        async with self._locks[name]:
            if not self.has_remaining_quota(name, config):
                return False
            state = self._state(name)
            state.requests += 1
            try:
                await self._persist(name, state)
            except asyncio.CancelledError:
                state.requests -= 1
                await asyncio.shield(self._persist(name, state))
                raise
            return True

    async def release(self, name: str) -> None:
        """Give back a reservation whose call did not succeed."""
        async with self._locks[name]:
            state = self._state(name)
            if state.requests > 0:
                state.requests -= 1
                await self._persist(name, state)

    async def flush(self) -> None:
        """Write every counter to the durable store."""
        for name in list(self._states):
            async with self._locks[name]:
                await self._persist(name, self._states[name])
        logger.info(f"Rate limits flushed for {len(self._states)} providers")

    async def _persist(self, name: str, state: RateLimitState) -> None:
        try:
            await self._store.put(RATE_LIMITS, name, state.to_dict())
        except Exception as e:
            logger.error(f"Failed to persist rate limit for {name}: {e}")

    def get_stats(self) -> dict[str, dict[str, Any]]:
        """Counters for the status surface."""
        return {
            name: {
                "requests": state.requests,
                "last_reset": state.last_reset.isoformat(),
            }
            for name, state in self._states.items()
        }
