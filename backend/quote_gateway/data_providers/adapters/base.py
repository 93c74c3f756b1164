"""
Base Provider Adapter Interface

Defines the canonical quote shape, the provider configuration record and the
abstract interface every market-data adapter implements.
Provides the shared HTTP plumbing and the network/application error taxonomy.
"""
import asyncio
import socket
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional, Any

import aiohttp
from loguru import logger


OFFLINE_PROVIDER = "offline-sample"

# Substrings that identify socket-level failures in error messages
NETWORK_ERROR_MARKERS = (
    "ENOTFOUND",
    "getaddrinfo",
    "ECONNREFUSED",
    "ETIMEDOUT",
    "ECONNRESET",
    "EHOSTUNREACH",
    "ENETUNREACH",
)


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def _format_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def to_decimal(value: Any) -> Optional[Decimal]:
    """Convert a raw payload value (number or numeric string) to Decimal."""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = value.strip().rstrip("%").strip()
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


class Provenance(str, Enum):
    """Where the data in a Quote came from."""
    LIVE = "live"
    OFFLINE_SAMPLE = "offline_sample"


@dataclass
class ProviderConfig:
    """Configuration record for a data provider (one per provider name)."""
    name: str
    base_url: str = ""
    api_key: Optional[str] = None

    # Priority (lower = higher priority)
    priority: int = 100

    # Quotas
    daily_limit: int = 0
    minute_limit: int = 0
    supports_bulk: bool = False
    bulk_limit: Optional[int] = None

    enabled: bool = True

    # Set when the provider reports its own quota exhaustion
    reset_time: Optional[datetime] = None

    # Set by the availability tracker on auto-disable
    disabled_until: Optional[datetime] = None
    disabled_reason: Optional[str] = None

    def copy(self) -> "ProviderConfig":
        """Return a detached copy for a per-request view."""
        return replace(self)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for persistence."""
        return {
            "name": self.name,
            "base_url": self.base_url,
            "api_key": self.api_key,
            "priority": self.priority,
            "daily_limit": self.daily_limit,
            "minute_limit": self.minute_limit,
            "supports_bulk": self.supports_bulk,
            "bulk_limit": self.bulk_limit,
            "enabled": self.enabled,
            "reset_time": _format_datetime(self.reset_time),
            "disabled_until": _format_datetime(self.disabled_until),
            "disabled_reason": self.disabled_reason,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProviderConfig":
        """Build a config from a persisted document."""
        return cls(
            name=data["name"],
            base_url=data.get("base_url", ""),
            api_key=data.get("api_key"),
            priority=int(data.get("priority", 100)),
            daily_limit=int(data.get("daily_limit", 0)),
            minute_limit=int(data.get("minute_limit", 0)),
            supports_bulk=bool(data.get("supports_bulk", False)),
            bulk_limit=data.get("bulk_limit"),
            enabled=bool(data.get("enabled", True)),
            reset_time=_parse_datetime(data.get("reset_time")),
            disabled_until=_parse_datetime(data.get("disabled_until")),
            disabled_reason=data.get("disabled_reason"),
        )


@dataclass(frozen=True)
class Quote:
    """
    Normalized quote data structure.

    `provenance` is required: a synthetic offline quote can never be
    constructed without saying so.
    """
    symbol: str
    price: Decimal
    provider: str
    provenance: Provenance
    change: Optional[Decimal] = None
    change_percent: Optional[Decimal] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    note: Optional[str] = None

    @property
    def is_sample(self) -> bool:
        return self.provenance is Provenance.OFFLINE_SAMPLE

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "symbol": self.symbol,
            "price": float(self.price),
            "change": float(self.change) if self.change is not None else None,
            "change_percent": float(self.change_percent) if self.change_percent is not None else None,
            "timestamp": self.timestamp.isoformat(),
            "provider": self.provider,
            "provenance": self.provenance.value,
            "note": self.note,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "Quote":
        """Rebuild a Quote from its serialized form."""
        return cls(
            symbol=d["symbol"],
            price=Decimal(str(d["price"])),
            provider=d["provider"],
            provenance=Provenance(d["provenance"]),
            change=to_decimal(d.get("change")),
            change_percent=to_decimal(d.get("change_percent")),
            timestamp=datetime.fromisoformat(d["timestamp"]),
            note=d.get("note"),
        )


class ProviderError(Exception):
    """Base exception for provider errors (application class)."""
    def __init__(self, provider: str, message: str, recoverable: bool = True):
        self.provider = provider
        self.message = message
        self.recoverable = recoverable
        super().__init__(f"[{provider}] {message}")


class NetworkError(ProviderError):
    """DNS failure, refused/reset/unreachable connection or timeout."""
    def __init__(self, provider: str, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(provider, message, recoverable=True)


class RateLimitError(ProviderError):
    """Provider reported that its quota is exhausted."""
    def __init__(self, provider: str, reset_at: Optional[datetime] = None, message: Optional[str] = None):
        self.reset_at = reset_at
        super().__init__(provider, message or "Rate limit exceeded", recoverable=True)


class AuthenticationError(ProviderError):
    """Authentication failed error."""
    def __init__(self, provider: str, message: str = "Authentication failed"):
        super().__init__(provider, message, recoverable=False)


class DataNotAvailableError(ProviderError):
    """Requested data not available."""
    def __init__(self, provider: str, symbol: str, detail: str = "quote"):
        super().__init__(provider, f"Data not available for {symbol} ({detail})", recoverable=False)


def is_network_error(error: BaseException) -> bool:
    """
    Classify an exception as network class.

    Only these failures count toward a provider's auto-disable streak;
    HTTP status and payload errors never do.
    """
    if isinstance(error, NetworkError):
        return True
    if isinstance(error, ProviderError):
        return False
    if isinstance(error, (aiohttp.ClientConnectionError, asyncio.TimeoutError, ConnectionError, socket.gaierror)):
        return True
    text = f"{getattr(error, 'errno', '')} {error}"
    return any(marker in text for marker in NETWORK_ERROR_MARKERS)


class BaseAdapter(ABC):
    """
    Abstract base class for all quote adapters.

    Each provider adapter must implement:
    - get_quote(): fetch and normalize the latest quote for a symbol

    Adapters receive the provider's configuration on every call, so changes to
    credentials or endpoints in the registry apply to the next request.
    """

    name: str = ""

    def __init__(self, timeout_seconds: float = 10.0, session: Optional[aiohttp.ClientSession] = None):
        self.timeout_seconds = timeout_seconds
        self._session = session
        self._owns_session = session is None

    async def initialize(self) -> None:
        """Create the HTTP session."""
        if self._session is None:
            timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True
            logger.info(f"{self.name} adapter initialized")

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and self._owns_session:
            await self._session.close()
        self._session = None
        logger.info(f"{self.name} adapter closed")

    @abstractmethod
    async def get_quote(self, symbol: str, config: ProviderConfig) -> Quote:
        """
        Get the latest quote for a single symbol.

        Args:
            symbol: The ticker symbol (e.g., "AAPL")
            config: Current configuration record of this provider

        Returns:
            Quote object with normalized data

        Raises:
            NetworkError: If the provider could not be reached
            RateLimitError: If the provider reports quota exhaustion
            ProviderError: On any other HTTP or payload error
        """

    async def _get_json(self, url: str, params: Optional[dict[str, Any]] = None) -> Any:
        """
        Perform a GET request and decode the JSON body.

        Maps transport failures to NetworkError and HTTP failures to
        application-class errors.
        """
        if self._session is None:
            await self.initialize()

        try:
            async with self._session.get(url, params=params) as response:
                if response.status == 429:
                    raise RateLimitError(self.name, message="HTTP 429 Too Many Requests")
                if response.status in (401, 403):
                    raise AuthenticationError(self.name, f"HTTP {response.status}")
                if response.status >= 400:
                    raise ProviderError(self.name, f"HTTP {response.status}: {response.reason}")

                try:
                    return await response.json(content_type=None)
                except ValueError as e:
                    raise ProviderError(self.name, f"Malformed payload: {e}")

        except ProviderError:
            raise
        except Exception as e:
            if is_network_error(e):
                raise NetworkError(self.name, f"Connection error: {e!r}", cause=e) from e
            if isinstance(e, aiohttp.ClientError):
                raise ProviderError(self.name, f"HTTP client error: {e}") from e
            raise

    def _build_quote(
        self,
        symbol: str,
        price: Any,
        change: Any = None,
        change_percent: Any = None,
        note: Optional[str] = None,
    ) -> Quote:
        """Build a live Quote, rejecting missing or non-positive prices."""
        price_value = to_decimal(price)
        if price_value is None or price_value <= 0:
            raise DataNotAvailableError(self.name, symbol, "no price in payload")

        return Quote(
            symbol=symbol.upper(),
            price=price_value,
            provider=self.name,
            provenance=Provenance.LIVE,
            change=to_decimal(change),
            change_percent=to_decimal(change_percent),
            timestamp=datetime.now(timezone.utc),
            note=note,
        )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(name={self.name})>"
