"""FastAPI application entry point for the Fieldline telephony service."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.router import router as api_v1_router
from app.config import get_settings
from app.database import engine
from app.services.handler_gateway import HandlerGateway
from app.services.signature import WebhookSignatureVerifier
from app.services.telnyx import TelnyxClient

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan - startup and shutdown events."""
    # Startup
    logger.info("Starting Fieldline telephony API...")
    logger.info(f"Environment: {settings.app_env}")
    logger.info(f"Database: {settings.async_database_url.split('@')[-1]}")  # Hide credentials

    app.state.verifier = WebhookSignatureVerifier(
        public_key_b64=settings.telnyx_public_key,
        strict=settings.strict_signature_verification,
        tolerance_seconds=settings.signature_tolerance_seconds,
    )
    app.state.gateway = HandlerGateway(
        base_url=settings.effective_handler_base_url,
        service_key=settings.service_role_key,
        timeout=settings.handler_timeout_seconds,
    )
    app.state.telnyx = TelnyxClient(
        api_key=settings.telnyx_api_key,
        base_url=settings.telnyx_api_base_url,
        timeout=settings.telnyx_timeout_seconds,
    )

    # Test database connection
    try:
        async with engine.connect():
            logger.info("✓ Database connection successful")
    except Exception as e:
        logger.error(f"✗ Database connection failed: {e}")

    yield

    # Shutdown
    logger.info("Shutting down Fieldline telephony API...")
    await app.state.gateway.close()
    await app.state.telnyx.close()
    await engine.dispose()


# Create FastAPI app
app = FastAPI(
    title="Fieldline Telephony API",
    description="Telnyx webhook routing, SMS ingestion and voice call flows",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "name": "Fieldline Telephony API",
        "version": "0.1.0",
        "description": "Telnyx webhook routing and SMS threads",
    }


@app.get("/health")
async def health() -> dict[str, str]:
    """Global health check."""
    return {"status": "ok"}
