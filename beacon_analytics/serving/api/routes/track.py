"""
Pageview Beacon Endpoint
"""

from typing import Any

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from beacon_analytics.ingestion.service import IngestionService
from beacon_analytics.serving.api.dependencies import (
    admit_beacon,
    get_ingestion_service,
    json_body,
)

router = APIRouter()


class TrackResponse(BaseModel):
    success: bool = True
    id: int


@router.post("/track", response_model=TrackResponse)
async def track_pageview(
    request: Request,
    source_addr: str = Depends(admit_beacon),
    body: Any = Depends(json_body),
    ingestion: IngestionService = Depends(get_ingestion_service),
) -> TrackResponse:
    """
    Record a pageview and its web vitals.

    The tracker's ``userAgent`` field takes precedence over the request's
    User-Agent header.
    """
    pageview_id = await ingestion.record_pageview(
        body,
        source_addr=source_addr,
        user_agent=request.headers.get("user-agent"),
    )
    return TrackResponse(id=pageview_id)
