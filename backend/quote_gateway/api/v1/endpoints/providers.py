"""
Quote Gateway - Provider Status Endpoints
Monitor rate limits, auto-disable state and cache of the quote gateway.
"""
from fastapi import APIRouter, Depends
from loguru import logger

from quote_gateway.data_providers.orchestrator import QuoteGateway
from quote_gateway.dependencies import get_gateway
from quote_gateway.utils.exceptions import ProviderNotFoundError

router = APIRouter()


@router.get(
    "/status",
    summary="Get all providers status",
    description="Per-provider quota, rate-limit and auto-disable state, plus cache statistics and storage backend."
)
async def get_status(gateway: QuoteGateway = Depends(get_gateway)):
    """Get comprehensive status of all providers."""
    return gateway.get_status()


@router.api_route(
    "/cache/clear",
    methods=["GET", "POST"],
    summary="Clear quote cache",
)
async def clear_cache(gateway: QuoteGateway = Depends(get_gateway)):
    """Drop every cached quote from both cache tiers."""
    removed = await gateway.clear_cache()
    logger.info(f"Cache cleared via API ({removed} entries)")
    return {"message": "Cache cleared", "removed": removed}


@router.get(
    "/firewall/status",
    summary="Firewall detection",
    description="Providers blocked by network auto-disable; a firewall is reported when three or more are blocked."
)
async def get_firewall_status(gateway: QuoteGateway = Depends(get_gateway)):
    """Get firewall detection status."""
    return gateway.firewall_status()


@router.get(
    "/providers",
    summary="List configured providers",
)
async def list_providers(gateway: QuoteGateway = Depends(get_gateway)):
    """Configured providers with limits and bulk support; credentials are never returned."""
    providers = gateway.list_providers()
    return {"providers": providers, "total_providers": len(providers)}


@router.get(
    "/providers/{name}",
    summary="Get one provider",
)
async def get_provider(name: str, gateway: QuoteGateway = Depends(get_gateway)):
    """Status of a single provider."""
    status = gateway.get_status()["providers"]
    if name not in status:
        raise ProviderNotFoundError(name)
    return {"name": name, **status[name]}
