"""
Health Check Endpoints

Health and readiness probes plus the Prometheus scrape endpoint.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel

from beacon_analytics.config import Settings
from beacon_analytics.database.connection import check_database_health
from beacon_analytics.serving.api.dependencies import get_app_settings

router = APIRouter()
metrics_router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    version: str
    environment: str
    timestamp: datetime
    checks: Dict[str, Any]


@router.get("/health", response_model=HealthResponse)
async def health_check(settings: Settings = Depends(get_app_settings)) -> HealthResponse:
    """
    Comprehensive health check endpoint.

    Checks:
    - Application status
    - Database connectivity
    """
    db_health = await check_database_health()
    overall_status = "healthy" if db_health.get("status") == "healthy" else "unhealthy"

    return HealthResponse(
        status=overall_status,
        version=settings.version,
        environment=settings.app_env,
        timestamp=datetime.now(timezone.utc),
        checks={"database": db_health},
    )


@router.get("/health/live")
async def liveness_check() -> Dict[str, str]:
    """Liveness probe: 200 while the process is serving"""
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_check(response: Response) -> Dict[str, str]:
    """Readiness probe: 503 until the database answers"""
    db_health = await check_database_health()
    if db_health.get("status") != "healthy":
        response.status_code = 503
        return {"status": "not_ready", "reason": "database_unavailable"}
    return {"status": "ready"}


@metrics_router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    """Prometheus exposition"""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
