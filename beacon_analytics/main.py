"""
FastAPI Production Application

Main entry point for the Lightweight Web Analytics collector and dashboard API.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
import structlog

from beacon_analytics.config import Settings, get_settings
from beacon_analytics.config.logging import configure_logging
from beacon_analytics.database.connection import close_database, get_session_factory, init_database
from beacon_analytics.database.retention import RetentionSweeper
from beacon_analytics.errors import RateLimitDenied, StorageFault, ValidationFault
from beacon_analytics.ingestion.admission import AdmissionController
from beacon_analytics.ingestion.dimensions import DimensionResolver
from beacon_analytics.ingestion.service import IngestionService
from beacon_analytics.serving.aggregation import AggregationService
from beacon_analytics.serving.api.middleware import (
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
)
from beacon_analytics.serving.api.routes import (
    dashboard_router,
    events_router,
    health_router,
    metrics_router,
    track_router,
)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings: Settings = app.state.settings
    configure_logging(settings=settings)

    logger.info("Starting Lightweight Web Analytics", environment=settings.app_env)

    await init_database(settings.database)
    session_factory = get_session_factory()

    app.state.ingestion = IngestionService(
        session_factory,
        DimensionResolver(session_factory),
        ip_salt=settings.ingestion.ip_hash_salt.get_secret_value(),
    )
    app.state.aggregation = AggregationService(session_factory)
    app.state.sweeper = RetentionSweeper(session_factory, horizon_ms=settings.retention.horizon_ms)

    background = [
        asyncio.create_task(
            app.state.sweeper.run_periodic(settings.retention.sweep_interval),
            name="retention-sweeper",
        ),
        asyncio.create_task(
            app.state.admission.run_periodic_sweep(settings.ingestion.sweep_interval),
            name="admission-sweeper",
        ),
    ]

    yield

    logger.info("Shutting down...")
    for task in background:
        task.cancel()
    await asyncio.gather(*background, return_exceptions=True)
    await close_database()


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationFault)
    async def validation_fault_handler(request: Request, exc: ValidationFault) -> JSONResponse:
        return JSONResponse(status_code=400, content={"success": False, "error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        first = exc.errors()[0] if exc.errors() else {}
        location = ".".join(str(part) for part in first.get("loc", ()))
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": f"Invalid parameter {location}".strip()},
        )

    @app.exception_handler(RateLimitDenied)
    async def rate_limit_handler(request: Request, exc: RateLimitDenied) -> JSONResponse:
        return JSONResponse(
            status_code=429,
            content={"success": False, "error": "Rate limit exceeded"},
            headers={"Retry-After": str(exc.retry_after_seconds)},
        )

    @app.exception_handler(StorageFault)
    async def storage_fault_handler(request: Request, exc: StorageFault) -> JSONResponse:
        logger.error("Storage fault", path=request.url.path, error=str(exc), exc_info=exc)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Application settings (cached environment settings if omitted)

    Returns:
        Configured FastAPI app instance
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Lightweight Web Analytics",
        description="Privacy-friendly pageview, web vitals and custom event analytics",
        version=settings.version,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.admission = AdmissionController(
        ceiling=settings.ingestion.rate_limit,
        window_ms=settings.ingestion.window_ms,
    )

    # CORS (the tracker posts from the tracked sites' origins)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.security.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Compression
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    # Custom middleware
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)

    _register_exception_handlers(app)

    # API routes
    app.include_router(track_router, prefix="/api", tags=["Collect"])
    app.include_router(events_router, prefix="/api", tags=["Collect"])
    app.include_router(dashboard_router, prefix="/api/dashboard", tags=["Dashboard"])
    app.include_router(health_router, prefix="/api/v1", tags=["Health"])
    app.include_router(metrics_router, tags=["Monitoring"])

    return app


app = create_app()
