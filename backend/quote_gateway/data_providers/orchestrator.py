"""
Quote Gateway Orchestrator

Central coordinator for quote requests. One request runs a linear pipeline:

    cache lookup -> ledger reset check -> provider selection -> adapter call
    -> (success) cache store / (failure) availability bookkeeping
    -> offline sample when nothing could answer

`get_quote` never raises; callers judge data quality from the returned
quote's provenance and note.
"""
import asyncio
from dataclasses import dataclass, replace
from typing import Any, Iterable, Optional

from loguru import logger

from quote_gateway.data_providers.adapters.base import (
    BaseAdapter,
    Quote,
    RateLimitError,
    is_network_error,
)
from quote_gateway.data_providers.availability import AvailabilityTracker, NETWORK_DISABLE_REASON
from quote_gateway.data_providers.cache_manager import ResponseCache
from quote_gateway.data_providers.failover import ProviderSelector
from quote_gateway.data_providers.offline import build_offline_quote
from quote_gateway.data_providers.rate_limiter import RateLimitLedger
from quote_gateway.data_providers.registry import ProviderRegistry
from quote_gateway.db.store import DurableStore
from quote_gateway.utils.clock import Clock, utc_now


@dataclass
class GatewayConfig:
    """Configuration for the gateway."""
    quote_ttl: int = 300

    # 1 = best provider or offline sample; higher values try the next-best
    max_provider_attempts: int = 1

    # Default deadline for a whole get_quote call (None = no deadline)
    request_timeout: Optional[float] = None

    # Blocked providers needed to report a firewall
    firewall_threshold: int = 3

    start_sweeper: bool = True


class QuoteGateway:
    """
    Explicitly constructed owner of all gateway state.

    Usage:
        gateway = QuoteGateway(registry, ledger, availability, selector, cache, adapters, store)
        await gateway.initialize(api_keys)

        quote = await gateway.get_quote("AAPL")
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        ledger: RateLimitLedger,
        availability: AvailabilityTracker,
        selector: ProviderSelector,
        cache: ResponseCache,
        adapters: dict[str, BaseAdapter],
        store: Optional[DurableStore] = None,
        clock: Clock = utc_now,
        config: Optional[GatewayConfig] = None,
    ):
        self.config = config or GatewayConfig()
        self.registry = registry
        self.ledger = ledger
        self.availability = availability
        self.selector = selector
        self.cache = cache
        self.adapters = adapters
        self.store = store
        self._clock = clock
        self._initialized = False

    async def initialize(self, api_keys: Optional[dict[str, str]] = None) -> None:
        """Load provider and ledger state, open adapter sessions, start the sweeper."""
        if self._initialized:
            return

        await self.registry.load(api_keys)
        await self.ledger.load(self.registry.names)

        for name, adapter in self.adapters.items():
            try:
                await adapter.initialize()
            except Exception as e:
                logger.error(f"Failed to initialize adapter {name}: {e}")

        if self.config.start_sweeper:
            self.cache.start_sweeper()

        self._initialized = True
        logger.info(f"Quote gateway initialized with {len(self.adapters)} adapters")

    async def shutdown(self) -> None:
        """Stop the sweeper, flush the ledger and release connections."""
        await self.cache.stop()
        await self.ledger.flush()

        for name, adapter in self.adapters.items():
            try:
                await adapter.close()
            except Exception as e:
                logger.error(f"Error closing adapter {name}: {e}")

        if self.store is not None:
            try:
                await self.store.close()
            except Exception as e:
                logger.error(f"Error closing durable store: {e}")

        self._initialized = False
        logger.info("Quote gateway shut down")

    # ==================== Quote Operations ====================

    async def get_quote(self, symbol: str, timeout: Optional[float] = None) -> Quote:
        """
        Get the latest quote for a symbol.

        Args:
            symbol: Ticker symbol (case-insensitive)
            timeout: Deadline in seconds; when it passes the in-flight provider
                call is abandoned and the offline sample is returned

        Returns:
            A live quote, or the offline sample when no provider could answer
        """
        canonical = (symbol or "").strip().upper()
        if not canonical:
            logger.warning("Empty symbol requested, serving offline sample")
            return self._offline(canonical)

        timeout = timeout if timeout is not None else self.config.request_timeout
        try:
            if timeout is not None:
                return await asyncio.wait_for(self._get_quote(canonical), timeout)
            return await self._get_quote(canonical)
        except asyncio.TimeoutError:
            logger.warning(f"Quote request for {canonical} exceeded {timeout}s deadline")
        except Exception:
            logger.exception(f"Unexpected error while fetching {canonical}")

        return self._offline(canonical)

    async def get_quotes(self, symbols: Iterable[str], timeout: Optional[float] = None) -> dict[str, Quote]:
        """Fetch several symbols concurrently; keys are the canonical symbols."""
        unique = list(dict.fromkeys(s.strip().upper() for s in symbols if s and s.strip()))
        quotes = await asyncio.gather(*(self.get_quote(s, timeout) for s in unique))
        return dict(zip(unique, quotes))

    async def _get_quote(self, symbol: str) -> Quote:
        cached = await self.cache.get_quote(symbol)
        if cached is not None:
            logger.debug(f"Cache hit for quote: {symbol}")
            return cached

        await self.ledger.maybe_reset_all(self.registry.snapshot())
        await self.registry.clear_expired_reset_times()

        tried: set[str] = set()
        for _ in range(max(1, self.config.max_provider_attempts)):
            name = await self.selector.select_best(self.registry.snapshot(), exclude=tried)
            if name is None:
                break
            tried.add(name)

            quote = await self._fetch_from(name, symbol)
            if quote is not None:
                return quote

        logger.warning(f"No provider could serve {symbol} (tried: {sorted(tried) or 'none'}), serving offline sample")
        return self._offline(symbol)

    async def _fetch_from(self, name: str, symbol: str) -> Optional[Quote]:
        """One provider attempt; None means fall through."""
        adapter = self.adapters.get(name)
        if adapter is None:
            logger.warning(f"No adapter registered for provider {name}")
            return None

        config = self.registry.get(name)
        # Quota is taken before the call and given back if the call fails
        if not await self.ledger.try_reserve(name, config):
            logger.debug(f"{name} quota taken by a concurrent request")
            return None

        try:
            quote = await adapter.get_quote(symbol, config)
        except asyncio.CancelledError:
            await asyncio.shield(self.ledger.release(name))
            raise
        except Exception as e:
            await asyncio.shield(self.ledger.release(name))
            await self._handle_failure(name, symbol, e)
            return None

        self.availability.record_success(name)
        quote = replace(quote, symbol=symbol, timestamp=self._clock())
        await self.cache.set_quote(quote, self.config.quote_ttl)
        logger.info(f"Quote for {symbol} served by {name}: {quote.price}")
        return quote

    async def _handle_failure(self, name: str, symbol: str, error: Exception) -> None:
        if isinstance(error, RateLimitError):
            reset_at = error.reset_at or self._clock() + self.ledger.window
            await self.registry.mark_rate_limited(name, reset_at)
            return

        if is_network_error(error):
            await self.availability.record_failure(name, error)
            return

        logger.warning(f"{name} failed for {symbol}: {error}")

    def _offline(self, symbol: str) -> Quote:
        return build_offline_quote(symbol, now=self._clock())

    # ==================== Administration ====================

    async def clear_cache(self) -> int:
        """Drop every cached quote; returns the number of entries removed."""
        return await self.cache.clear()

    def get_status(self) -> dict[str, Any]:
        """Per-provider state, cache statistics and storage backend."""
        now = self._clock()
        providers: dict[str, dict[str, Any]] = {}

        for config in self.registry.snapshot():
            state = self.ledger.get_state(config.name)
            has_capacity = self.ledger.has_remaining_quota(config.name, config)
            rate_limited = config.reset_time is not None and config.reset_time > now
            auto_disabled = config.disabled_until is not None and config.disabled_until > now
            # An elapsed disable window is cleared on the next availability check
            available = not auto_disabled and (config.enabled or config.disabled_until is not None)

            if not available:
                summary = config.disabled_reason or "Disabled"
            elif rate_limited or not has_capacity:
                summary = "Rate Limited"
            else:
                summary = "Available"

            providers[config.name] = {
                "enabled": config.enabled,
                "available": available,
                "configured": bool(config.api_key),
                "priority": config.priority,
                "requests": state.requests,
                "daily_limit": config.daily_limit,
                "minute_limit": config.minute_limit,
                "has_capacity": has_capacity,
                "rate_limited": rate_limited,
                "reset_time": config.reset_time.isoformat() if config.reset_time else None,
                "last_reset": state.last_reset.isoformat(),
                "auto_disabled": auto_disabled,
                "disabled_until": config.disabled_until.isoformat() if config.disabled_until else None,
                "disabled_reason": config.disabled_reason,
                "failure_count": self.availability.failure_count(config.name),
                "status": summary,
            }

        return {
            "initialized": self._initialized,
            "providers": providers,
            "cache": self.cache.get_stats(),
            "storage": self.store.backend if self.store is not None else None,
            "timestamp": now.isoformat(),
        }

    def firewall_status(self) -> dict[str, Any]:
        """Providers blocked by network auto-disable, and whether that looks like a firewall."""
        now = self._clock()
        blocked = []
        working = []

        for config in self.registry.snapshot():
            is_blocked = (
                config.disabled_reason == NETWORK_DISABLE_REASON
                and config.disabled_until is not None
                and config.disabled_until > now
            )
            if is_blocked:
                blocked.append({
                    "name": config.name,
                    "reason": config.disabled_reason,
                    "disabled_until": config.disabled_until.isoformat(),
                })
            else:
                working.append(config.name)

        detected = len(blocked) >= self.config.firewall_threshold
        return {
            "firewall_detected": detected,
            "status": "Corporate Firewall Detected" if detected else "Network Access Available",
            "fallback_mode": detected,
            "total_providers": len(blocked) + len(working),
            "blocked_providers": blocked,
            "working_providers": working,
            "message": (
                "External APIs blocked by firewall. Serving offline sample data."
                if detected else
                "External API access available for real-time data."
            ),
            "timestamp": now.isoformat(),
        }

    def list_providers(self) -> list[dict[str, Any]]:
        """Configured providers with their limits, credentials redacted."""
        providers = []
        for config in self.registry.snapshot():
            info = config.to_dict()
            info.pop("api_key", None)
            info["configured"] = bool(config.api_key)
            info["has_adapter"] = config.name in self.adapters
            providers.append(info)
        return providers
