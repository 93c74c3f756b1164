"""
Quote Gateway - Dependencies
Dependency injection for FastAPI endpoints.
"""
from fastapi import HTTPException, Request, status

from quote_gateway.data_providers.orchestrator import QuoteGateway


async def get_gateway(request: Request) -> QuoteGateway:
    """
    Get the gateway instance owned by the running application.

    Raises:
        HTTPException: If the gateway has not been started yet
    """
    gateway = getattr(request.app.state, "gateway", None)
    if gateway is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Quote gateway not initialized",
        )
    return gateway
