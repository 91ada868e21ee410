"""
Beacon Schemas

Pydantic models for the JSON bodies posted by the tracking script. Raw
payloads are validated here, at the boundary, before anything enters the
typed ingestion path. Field names follow the tracker's camelCase wire format.
"""

import math
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError, field_validator

from beacon_analytics.database.models import MetricName, MetricRating
from beacon_analytics.errors import PartialDataFault, ValidationFault


class BeaconModel(BaseModel):
    """Base class for beacon payloads"""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


class WebVitalEntry(BeaconModel):
    """A single web vital measurement"""
    name: MetricName
    value: float
    rating: Optional[MetricRating] = None

    @field_validator("value", mode="before")
    @classmethod
    def validate_value(cls, v: Any) -> float:
        """Finite, non-negative JSON number (booleans excluded)"""
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError("value must be a number")
        if not math.isfinite(v) or v < 0:
            raise ValueError("value must be a finite non-negative number")
        return float(v)

    @field_validator("rating", mode="before")
    @classmethod
    def blank_rating_is_absent(cls, v: Any) -> Any:
        return None if v == "" else v


class PageviewBeacon(BeaconModel):
    """
    Pageview beacon.

    The client may also send ``timestamp``; it is ignored because the server
    receipt time is authoritative.
    """
    session_id: StrictStr = Field(alias="sessionId", min_length=1)
    page_url: StrictStr = Field(alias="pageUrl", min_length=1)
    referrer: Optional[StrictStr] = None
    user_agent: Optional[StrictStr] = Field(default=None, alias="userAgent")
    web_vitals: Optional[Any] = Field(default=None, alias="webVitals")

    @field_validator("referrer", mode="before")
    @classmethod
    def blank_referrer_is_direct(cls, v: Any) -> Any:
        return None if v == "" else v


class CustomEventBeacon(BeaconModel):
    """Custom event beacon"""
    session_id: StrictStr = Field(alias="sessionId", min_length=1)
    page_url: StrictStr = Field(alias="pageUrl", min_length=1)
    event_name: StrictStr = Field(alias="eventName", min_length=1)
    event_data: Optional[Dict[str, Any]] = Field(default=None, alias="eventData")


def _to_fault(error: ValidationError) -> ValidationFault:
    first = error.errors()[0]
    field = ".".join(str(part) for part in first["loc"]) or None
    # Empty strings count as missing, matching the tracker's truthiness checks
    if first["type"] in ("missing", "string_too_short") or first.get("input") is None:
        return ValidationFault(f"Missing required field: {field}", field=field)
    if field == "eventData":
        return ValidationFault("eventData must be a JSON object", field=field)
    return ValidationFault(f"Invalid field {field}: {first['msg']}", field=field)


def _require_object(payload: Any) -> Dict[str, Any]:
    if not isinstance(payload, dict):
        raise ValidationFault("Request body must be a JSON object")
    return payload


def parse_pageview(payload: Any) -> PageviewBeacon:
    """
    Validate a pageview body.

    Raises:
        ValidationFault: Body is not an object or a required field is missing
    """
    try:
        return PageviewBeacon.model_validate(_require_object(payload))
    except ValidationError as e:
        raise _to_fault(e) from e


def parse_custom_event(payload: Any) -> CustomEventBeacon:
    """
    Validate a custom event body.

    Raises:
        ValidationFault: Required field missing, or ``eventData`` not an object
    """
    try:
        return CustomEventBeacon.model_validate(_require_object(payload))
    except ValidationError as e:
        raise _to_fault(e) from e


def filter_web_vitals(entries: Any) -> Tuple[List[WebVitalEntry], List[PartialDataFault]]:
    """
    Validate each web vital independently.

    Invalid entries are dropped and reported, never raised. Anything that is
    not a list counts as no measurements at all.

    Returns:
        (valid entries in submission order, dropped entries)
    """
    if not isinstance(entries, list):
        return [], []

    valid: List[WebVitalEntry] = []
    dropped: List[PartialDataFault] = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            dropped.append(PartialDataFault(index=index, reason="entry is not an object"))
            continue
        try:
            valid.append(WebVitalEntry.model_validate(entry))
        except ValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(part) for part in first["loc"])
            dropped.append(PartialDataFault(index=index, reason=f"{location}: {first['msg']}"))
    return valid, dropped
