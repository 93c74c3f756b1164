"""
Quote Gateway - API v1 Router
"""
from fastapi import APIRouter

from quote_gateway.api.v1.endpoints import market_data, providers

api_router = APIRouter()


# API v1 root endpoint
@api_router.get("/", tags=["API Info"])
async def api_root():
    """API v1 root - returns version info."""
    return {
        "api": "Quote Gateway",
        "version": "v1",
        "status": "operational"
    }


# Include all endpoint routers
api_router.include_router(market_data.router, tags=["Market Data"])
api_router.include_router(providers.router, tags=["Provider Monitoring"])
