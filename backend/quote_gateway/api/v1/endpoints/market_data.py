"""
Quote Gateway - Market Data Endpoints
Live quotes with offline-sample fallback; responses never fail because a provider did.
"""
import re

from fastapi import APIRouter, Depends, Query

from quote_gateway.data_providers.orchestrator import QuoteGateway
from quote_gateway.dependencies import get_gateway
from quote_gateway.utils.exceptions import InvalidSymbolError

router = APIRouter()

# Tickers, class shares (BRK.B), index (^GSPC), pairs (BTC-USD) and datasets (EOD/AAPL)
SYMBOL_PATTERN = re.compile(r"^[A-Z0-9^][A-Z0-9.\-/=^]{0,19}$")

MAX_BATCH_SYMBOLS = 50


def _validate_symbol(symbol: str) -> str:
    canonical = symbol.strip().upper()
    if not SYMBOL_PATTERN.match(canonical):
        raise InvalidSymbolError(symbol)
    return canonical


@router.get(
    "/quote/{symbol:path}",
    summary="Get latest quote",
    description="Latest quote for one symbol. Falls back to clearly-flagged sample data when no provider can answer."
)
async def get_quote(symbol: str, gateway: QuoteGateway = Depends(get_gateway)):
    """Get the latest quote for a symbol."""
    quote = await gateway.get_quote(_validate_symbol(symbol))
    return quote.to_dict()


@router.get(
    "/quotes",
    summary="Get multiple quotes",
    description="Latest quotes for a comma-separated list of symbols, fetched concurrently."
)
async def get_quotes(
    symbols: str = Query(..., description="Comma-separated symbols, e.g. AAPL,MSFT"),
    gateway: QuoteGateway = Depends(get_gateway),
):
    """Get quotes for several symbols."""
    requested = [s for s in (part.strip() for part in symbols.split(",")) if s]
    if not requested or len(requested) > MAX_BATCH_SYMBOLS:
        raise InvalidSymbolError(symbols)

    quotes = await gateway.get_quotes([_validate_symbol(s) for s in requested])
    return {
        "quotes": [quote.to_dict() for quote in quotes.values()],
        "count": len(quotes),
    }
