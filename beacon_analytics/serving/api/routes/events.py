"""
Custom Event Endpoint
"""

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from beacon_analytics.ingestion.service import IngestionService
from beacon_analytics.serving.api.dependencies import (
    admit_beacon,
    get_ingestion_service,
    json_body,
)

router = APIRouter()


class EventResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    event_id: int = Field(alias="eventId")


@router.post("/events", response_model=EventResponse, dependencies=[Depends(admit_beacon)])
async def track_event(
    body: Any = Depends(json_body),
    ingestion: IngestionService = Depends(get_ingestion_service),
) -> EventResponse:
    """Record a custom event"""
    event_id = await ingestion.record_custom_event(body)
    return EventResponse(event_id=event_id)
