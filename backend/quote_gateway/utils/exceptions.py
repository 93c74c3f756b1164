"""
Quote Gateway - Custom Exceptions
Application-specific exceptions with HTTP error handling
"""
from typing import Optional, Any, Dict
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from loguru import logger


class QuoteGatewayException(Exception):
    """Base exception for the quote gateway."""

    def __init__(
        self,
        message: str = "An error occurred",
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)


# =========================
# Storage Exceptions
# =========================

class StorageError(QuoteGatewayException):
    """Durable store read/write failure."""

    def __init__(self, message: str = "Durable store operation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="STORAGE_ERROR", details=details)


class StorageUnavailableError(StorageError):
    """Configured durable store could not be reached."""

    def __init__(self, message: str = "Durable store unavailable"):
        super().__init__(message=message)
        self.code = "STORAGE_UNAVAILABLE"


# =========================
# Request Exceptions
# =========================

class ProviderNotFoundError(QuoteGatewayException):
    """Unknown provider name."""

    def __init__(self, provider: str):
        super().__init__(
            message=f"Provider {provider} not configured",
            code="PROVIDER_NOT_FOUND",
            details={"provider": provider},
        )


class InvalidSymbolError(QuoteGatewayException):
    """Symbol failed validation."""

    def __init__(self, symbol: str):
        super().__init__(
            message=f"Invalid symbol: {symbol!r}",
            code="INVALID_SYMBOL",
            details={"symbol": symbol},
        )


# Exception -> HTTP status for the API surface
STATUS_CODES = {
    ProviderNotFoundError: status.HTTP_404_NOT_FOUND,
    InvalidSymbolError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    StorageError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def register_exception_handlers(app: FastAPI) -> None:
    """Render QuoteGatewayException subclasses as JSON error bodies."""

    @app.exception_handler(QuoteGatewayException)
    async def gateway_exception_handler(request: Request, exc: QuoteGatewayException):
        status_code = next(
            (code for exc_type, code in STATUS_CODES.items() if isinstance(exc, exc_type)),
            status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
        if status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(
            status_code=status_code,
            content={"detail": exc.message, "code": exc.code, "details": exc.details},
        )
