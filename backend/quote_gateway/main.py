"""
Quote Gateway - Main Application Entry Point
"""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from quote_gateway.config import settings, Settings
from quote_gateway.api.v1.router import api_router
from quote_gateway.data_providers.orchestrator import QuoteGateway
from quote_gateway.data_providers.provider_init import initialize_gateway, shutdown_gateway
from quote_gateway.utils.exceptions import register_exception_handlers
from quote_gateway.utils.logger import setup_logging


def create_application(config: Settings = settings, gateway: Optional[QuoteGateway] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config: Application settings
        gateway: Pre-built gateway; built from settings at startup when None
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan events handler."""
        # Startup
        setup_logging(config)
        logger.info(f"🚀 Starting {config.APP_NAME}...")

        if gateway is None:
            app.state.gateway = await initialize_gateway(config)
        else:
            await gateway.initialize(config.provider_api_keys())
            app.state.gateway = gateway
        logger.info("✅ Quote gateway started successfully!")

        yield

        # Shutdown (SIGINT/SIGTERM land here through uvicorn)
        logger.info("🛑 Shutting down quote gateway...")
        await shutdown_gateway(app.state.gateway)
        app.state.gateway = None
        logger.info("👋 Goodbye!")

    app = FastAPI(
        title=config.APP_NAME,
        description="Market quote gateway with provider failover, quota tracking and offline fallback",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Include API router
    app.include_router(api_router, prefix=config.API_V1_PREFIX)

    # Health check endpoint
    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint for load balancers."""
        return {
            "status": "healthy",
            "app": config.APP_NAME,
            "version": "1.0.0"
        }

    return app


# Create the application instance
app = create_application()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "quote_gateway.main:app",
        host=settings.BACKEND_HOST,
        port=settings.BACKEND_PORT,
        reload=settings.DEBUG,
        log_level="info"
    )
