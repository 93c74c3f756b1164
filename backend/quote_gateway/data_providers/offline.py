"""
Offline Sample Quotes

Synthetic quotes served when no provider can answer. Every quote built here
carries Provenance.OFFLINE_SAMPLE, the offline-sample provider name and an
advisory note, so it can never pass for live data.
"""
import random
import zlib
from datetime import datetime
from decimal import Decimal
from typing import Optional

from quote_gateway.data_providers.adapters.base import OFFLINE_PROVIDER, Provenance, Quote
from quote_gateway.utils.clock import utc_now


OFFLINE_NOTE = "Sample data - External APIs currently unavailable due to network restrictions"

# symbol -> (price, change, change_percent)
SAMPLE_QUOTES: dict[str, tuple[str, str, str]] = {
    "AAPL": ("195.89", "2.45", "1.27"),
    "MSFT": ("415.26", "-3.22", "-0.77"),
    "GOOGL": ("175.43", "1.85", "1.07"),
    "TSLA": ("248.50", "-5.30", "-2.09"),
    "AMZN": ("186.37", "4.12", "2.26"),
    "NVDA": ("915.75", "12.43", "1.38"),
    "META": ("495.82", "-7.18", "-1.43"),
    "NFLX": ("642.11", "8.95", "1.41"),
    "CRM": ("284.33", "3.67", "1.31"),
    "UBER": ("72.18", "-1.22", "-1.66"),
}

CENTS = Decimal("0.01")


def _generated_values(symbol: str) -> tuple[Decimal, Decimal, Decimal]:
    # Seeded per symbol so repeated fallbacks for one symbol agree
    rng = random.Random(zlib.crc32(symbol.encode("utf-8")))
    price = Decimal(str(rng.uniform(50, 550))).quantize(CENTS)
    change_percent = Decimal(str(rng.uniform(-2, 2))).quantize(CENTS)
    change = (price * change_percent / 100).quantize(CENTS)
    return price, change, change_percent


def build_offline_quote(symbol: str, now: Optional[datetime] = None) -> Quote:
    """Build the clearly-flagged sample quote for symbol."""
    symbol = (symbol or "").strip().upper() or "UNKNOWN"

    if symbol in SAMPLE_QUOTES:
        price, change, change_percent = (Decimal(v) for v in SAMPLE_QUOTES[symbol])
    else:
        price, change, change_percent = _generated_values(symbol)

    return Quote(
        symbol=symbol,
        price=price,
        provider=OFFLINE_PROVIDER,
        provenance=Provenance.OFFLINE_SAMPLE,
        change=change,
        change_percent=change_percent,
        timestamp=now or utc_now(),
        note=OFFLINE_NOTE,
    )
