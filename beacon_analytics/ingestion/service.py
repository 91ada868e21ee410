"""
Beacon Ingestion Service

Validates and persists pageview, web vital and custom event facts:
- Eager validation (nothing is written for a rejected request)
- User-agent parsing and dimension resolution
- Client address anonymization
- Atomic pageview + web vital batch writes
- Server-authoritative timestamps
"""

import json
from typing import Any, Callable, List, Optional

import structlog
from prometheus_client import Counter
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from beacon_analytics.database.models import CustomEvent, PageView, WebVital
from beacon_analytics.database.retention import now_ms
from beacon_analytics.errors import StorageFault, ValidationFault
from beacon_analytics.ingestion.dimensions import DimensionResolver
from beacon_analytics.ingestion.identity import hash_ip
from beacon_analytics.ingestion.schemas import (
    PageviewBeacon,
    WebVitalEntry,
    filter_web_vitals,
    parse_custom_event,
    parse_pageview,
)
from beacon_analytics.ingestion.user_agent import (
    UserAgentAttributes,
    UserAgentParser,
    parse_user_agent,
)

logger = structlog.get_logger(__name__)


# =============================================================================
# METRICS
# =============================================================================

BEACONS_RECEIVED = Counter(
    "analytics_beacons_total",
    "Beacons processed by the ingestion service",
    ["kind", "status"],
)

WEB_VITALS_DROPPED = Counter(
    "analytics_web_vitals_dropped_total",
    "Invalid web vital entries dropped from otherwise valid pageviews",
)


# =============================================================================
# INGESTION SERVICE
# =============================================================================

class IngestionService:
    """
    Entry point for beacon writes.

    Example:
        service = IngestionService(session_factory, DimensionResolver(session_factory), ip_salt="s3cret")
        pageview_id = await service.record_pageview(body, source_addr="203.0.113.9", user_agent=ua)
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        resolver: DimensionResolver,
        ip_salt: str,
        parser: UserAgentParser = parse_user_agent,
        clock: Callable[[], int] = now_ms,
    ):
        self._session_factory = session_factory
        self._resolver = resolver
        self._ip_salt = ip_salt
        self._parser = parser
        self._clock = clock

    async def record_pageview(
        self,
        payload: Any,
        source_addr: Optional[str],
        user_agent: Optional[str],
    ) -> int:
        """
        Persist a pageview and the valid subset of its web vitals.

        Args:
            payload: Decoded JSON body
            source_addr: Client address (hashed before storage)
            user_agent: Raw User-Agent header, used when the beacon carries none

        Returns:
            The new pageview id

        Raises:
            ValidationFault: ``sessionId`` or ``pageUrl`` missing
            StorageFault: The store failed
        """
        try:
            beacon = parse_pageview(payload)
        except ValidationFault as e:
            BEACONS_RECEIVED.labels(kind="pageview", status="rejected").inc()
            logger.info("Pageview rejected", reason=e.message, field=e.field)
            raise

        vitals, dropped = filter_web_vitals(beacon.web_vitals)
        if dropped:
            WEB_VITALS_DROPPED.inc(len(dropped))
            logger.info(
                "Dropped invalid web vitals",
                dropped=len(dropped),
                kept=len(vitals),
                reasons=[fault.reason for fault in dropped],
            )

        attributes = self._parser(beacon.user_agent or user_agent or "")
        ip_hash = hash_ip(source_addr, self._ip_salt)
        received_at = self._clock()

        try:
            pageview_id = await self._write_pageview(beacon, vitals, attributes, ip_hash, received_at)
        except StorageFault:
            # Raised and logged by the dimension resolver
            BEACONS_RECEIVED.labels(kind="pageview", status="error").inc()
            raise
        except SQLAlchemyError as e:
            BEACONS_RECEIVED.labels(kind="pageview", status="error").inc()
            logger.error("Failed to store pageview", error=str(e), error_type=type(e).__name__)
            raise StorageFault("Failed to store pageview") from e

        BEACONS_RECEIVED.labels(kind="pageview", status="accepted").inc()
        logger.debug(
            "Pageview recorded",
            pageview_id=pageview_id,
            web_vitals=len(vitals),
            browser=attributes.browser,
        )
        return pageview_id

    async def _write_pageview(
        self,
        beacon: PageviewBeacon,
        vitals: List[WebVitalEntry],
        attributes: UserAgentAttributes,
        ip_hash: str,
        received_at: int,
    ) -> int:
        user_agent_id = await self._resolver.resolve(attributes)
        try:
            return await self._insert_pageview(beacon, vitals, user_agent_id, ip_hash, received_at)
        except IntegrityError:
            # A retention sweep may delete a freshly resolved, still
            # unreferenced dimension row before the pageview lands
            logger.warning("User agent row disappeared before pageview insert, retrying")

        user_agent_id = await self._resolver.resolve(attributes)
        return await self._insert_pageview(beacon, vitals, user_agent_id, ip_hash, received_at)

    async def _insert_pageview(
        self,
        beacon: PageviewBeacon,
        vitals: List[WebVitalEntry],
        user_agent_id: int,
        ip_hash: str,
        received_at: int,
    ) -> int:
        async with self._session_factory() as session:
            async with session.begin():
                pageview = PageView(
                    page_url=beacon.page_url,
                    timestamp=received_at,
                    session_id=beacon.session_id,
                    referrer=beacon.referrer,
                    ip_hash=ip_hash,
                    user_agent_id=user_agent_id,
                )
                session.add(pageview)
                session.add_all(
                    WebVital(
                        session_id=beacon.session_id,
                        page_url=beacon.page_url,
                        timestamp=received_at,
                        metric_name=vital.name.value,
                        metric_value=vital.value,
                        metric_rating=vital.rating.value if vital.rating else None,
                    )
                    for vital in vitals
                )
                await session.flush()
            return pageview.id

    async def record_custom_event(self, payload: Any) -> int:
        """
        Persist a custom event.

        Args:
            payload: Decoded JSON body

        Returns:
            The new custom event id

        Raises:
            ValidationFault: Required field missing or ``eventData`` not an object
            StorageFault: The store failed
        """
        try:
            beacon = parse_custom_event(payload)
        except ValidationFault as e:
            BEACONS_RECEIVED.labels(kind="custom_event", status="rejected").inc()
            logger.info("Custom event rejected", reason=e.message, field=e.field)
            raise

        event_data = json.dumps(beacon.event_data) if beacon.event_data is not None else None

        try:
            async with self._session_factory() as session:
                async with session.begin():
                    event = CustomEvent(
                        session_id=beacon.session_id,
                        page_url=beacon.page_url,
                        timestamp=self._clock(),
                        event_name=beacon.event_name,
                        event_data=event_data,
                    )
                    session.add(event)
                    await session.flush()
                event_id = event.id
        except SQLAlchemyError as e:
            BEACONS_RECEIVED.labels(kind="custom_event", status="error").inc()
            logger.error("Failed to store custom event", error=str(e), error_type=type(e).__name__)
            raise StorageFault("Failed to store custom event") from e

        BEACONS_RECEIVED.labels(kind="custom_event", status="accepted").inc()
        logger.debug("Custom event recorded", event_id=event_id, event_name=beacon.event_name)
        return event_id
