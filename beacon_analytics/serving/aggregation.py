"""
Dashboard Aggregation

Read-side queries over the fact tables for a closed time window. Each section
runs in its own session; the dashboard report gathers them concurrently.
"""

import asyncio
import json
from typing import Any, Dict, List, Optional

import numpy as np
import polars as pl
import structlog
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlalchemy import Select, String, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from beacon_analytics.database.models import CustomEvent, DimUserAgent, PageView, WebVital
from beacon_analytics.errors import StorageFault, ValidationFault
from beacon_analytics.serving.statistics import nearest_rank_percentile, rate_metric

logger = structlog.get_logger(__name__)

TOP_N = 10
RECENT_EVENTS = 20
DIRECT_REFERRER = "Direct"
UNKNOWN_LABEL = "Unknown"


# =============================================================================
# REPORT MODELS
# =============================================================================

class ReportModel(BaseModel):
    """camelCase on the wire, snake_case in Python"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DailyCount(ReportModel):
    date: str
    count: int


class PageCount(ReportModel):
    page: str
    count: int


class PageviewStats(ReportModel):
    total: int = 0
    by_day: List[DailyCount] = []
    by_page: List[PageCount] = []


class ReferrerCount(ReportModel):
    referrer: str
    count: int


class ReferrerStats(ReportModel):
    by_referrer: List[ReferrerCount] = []


class BrowserCount(ReportModel):
    browser: str
    count: int


class OSCount(ReportModel):
    os: str
    count: int


class DeviceTypeCount(ReportModel):
    device_type: str
    count: int


class DeviceStats(ReportModel):
    by_browser: List[BrowserCount] = []
    by_os: List[OSCount] = Field(default=[], alias="byOS")
    by_device_type: List[DeviceTypeCount] = []


class MetricSummary(ReportModel):
    name: str
    average: float
    median: float
    p75: float
    p95: float
    rating: str


class WebVitalStats(ReportModel):
    by_metric: List[MetricSummary] = []


class EventCount(ReportModel):
    event_name: str
    count: int


class RecentEvent(ReportModel):
    event_name: str
    timestamp: int
    page_url: str
    event_data: Optional[Dict[str, Any]] = None


class CustomEventStats(ReportModel):
    by_event: List[EventCount] = []
    recent: List[RecentEvent] = []


class TimeRange(ReportModel):
    start: int
    end: int


class DashboardReport(ReportModel):
    pageviews: PageviewStats
    referrers: ReferrerStats
    devices: DeviceStats
    web_vitals: WebVitalStats
    custom_events: CustomEventStats
    time_range: TimeRange


# =============================================================================
# AGGREGATION SERVICE
# =============================================================================

def validate_window(start: int, end: int) -> None:
    """
    Raises:
        ValidationFault: Negative bound or ``start > end``
    """
    if start < 0 or end < 0:
        raise ValidationFault("Time range bounds must be non-negative", field="start" if start < 0 else "end")
    if start > end:
        raise ValidationFault("Time range start must not be after end", field="start")


class AggregationService:
    """
    Dashboard statistics for the inclusive window ``[start, end]`` (Unix ms).

    Example:
        service = AggregationService(session_factory)
        report = await service.dashboard_report(start, end)
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def _fetch(self, statement: Select) -> List[Any]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(statement)
                return list(result.all())
        except SQLAlchemyError as e:
            logger.error("Aggregation query failed", error=str(e), error_type=type(e).__name__)
            raise StorageFault("Failed to read analytics data") from e

    async def _top_counts(self, label, start: int, end: int, join_user_agents: bool = False) -> List[Any]:
        count = func.count().label("count")
        statement = select(label.label("label"), count).select_from(PageView)
        if join_user_agents:
            statement = statement.join(DimUserAgent, PageView.user_agent_id == DimUserAgent.id)
        statement = (
            statement
            .where(PageView.timestamp.between(start, end))
            .group_by(label)
            .order_by(count.desc(), label.asc())
            .limit(TOP_N)
        )
        return await self._fetch(statement)

    async def pageview_stats(self, start: int, end: int) -> PageviewStats:
        """Total pageviews, daily counts (UTC) and the top pages"""
        validate_window(start, end)

        day = func.date(PageView.timestamp // 1000, "unixepoch", type_=String)
        total_rows = await self._fetch(
            select(func.count(PageView.id)).where(PageView.timestamp.between(start, end))
        )
        day_rows = await self._fetch(
            select(day.label("date"), func.count().label("count"))
            .where(PageView.timestamp.between(start, end))
            .group_by(day)
            .order_by(day)
        )
        page_rows = await self._top_counts(PageView.page_url, start, end)

        return PageviewStats(
            total=total_rows[0][0] or 0,
            by_day=[DailyCount(date=row.date, count=row.count) for row in day_rows],
            by_page=[PageCount(page=row.label, count=row.count) for row in page_rows],
        )

    async def referrer_stats(self, start: int, end: int) -> ReferrerStats:
        """Top referrers; pageviews without one count as direct traffic"""
        validate_window(start, end)
        rows = await self._top_counts(func.coalesce(PageView.referrer, DIRECT_REFERRER), start, end)
        return ReferrerStats(
            by_referrer=[ReferrerCount(referrer=row.label, count=row.count) for row in rows]
        )

    async def device_stats(self, start: int, end: int) -> DeviceStats:
        """Top browsers, operating systems and device types"""
        validate_window(start, end)

        browsers = await self._top_counts(DimUserAgent.browser, start, end, join_user_agents=True)
        systems = await self._top_counts(
            func.coalesce(DimUserAgent.os, UNKNOWN_LABEL), start, end, join_user_agents=True
        )
        device_types = await self._top_counts(
            func.coalesce(DimUserAgent.device_type, UNKNOWN_LABEL), start, end, join_user_agents=True
        )

        return DeviceStats(
            by_browser=[BrowserCount(browser=row.label, count=row.count) for row in browsers],
            by_os=[OSCount(os=row.label, count=row.count) for row in systems],
            by_device_type=[DeviceTypeCount(device_type=row.label, count=row.count) for row in device_types],
        )

    async def web_vital_stats(self, start: int, end: int) -> WebVitalStats:
        """
        Per-metric mean, median, p75 and p95 with a median-based rating.

        Only metrics observed in the window are reported, ordered by name.
        """
        validate_window(start, end)

        rows = await self._fetch(
            select(WebVital.metric_name, WebVital.metric_value)
            .where(WebVital.timestamp.between(start, end))
        )
        if not rows:
            return WebVitalStats()

        df = pl.DataFrame(
            {
                "name": [row.metric_name for row in rows],
                "value": [row.metric_value for row in rows],
            },
            schema={"name": pl.Utf8, "value": pl.Float64},
        )
        grouped = (
            df.group_by("name")
            .agg(
                pl.col("value").mean().alias("average"),
                pl.col("value").alias("values"),
            )
            .sort("name")
        )

        summaries = []
        for metric in grouped.iter_rows(named=True):
            values = np.asarray(metric["values"], dtype=float)
            median = nearest_rank_percentile(values, 50)
            summaries.append(
                MetricSummary(
                    name=metric["name"],
                    average=float(metric["average"]),
                    median=median,
                    p75=nearest_rank_percentile(values, 75),
                    p95=nearest_rank_percentile(values, 95),
                    rating=rate_metric(metric["name"], median).value,
                )
            )

        logger.debug("Web vital stats computed", metrics=len(summaries), samples=df.height)
        return WebVitalStats(by_metric=summaries)

    async def custom_event_stats(self, start: int, end: int) -> CustomEventStats:
        """Top event names and the most recent events with their payloads"""
        validate_window(start, end)

        count = func.count().label("count")
        by_event = await self._fetch(
            select(CustomEvent.event_name, count)
            .where(CustomEvent.timestamp.between(start, end))
            .group_by(CustomEvent.event_name)
            .order_by(count.desc(), CustomEvent.event_name.asc())
            .limit(TOP_N)
        )
        recent = await self._fetch(
            select(
                CustomEvent.event_name,
                CustomEvent.timestamp,
                CustomEvent.page_url,
                CustomEvent.event_data,
            )
            .where(CustomEvent.timestamp.between(start, end))
            .order_by(CustomEvent.timestamp.desc(), CustomEvent.id.desc())
            .limit(RECENT_EVENTS)
        )

        return CustomEventStats(
            by_event=[EventCount(event_name=row.event_name, count=row.count) for row in by_event],
            recent=[
                RecentEvent(
                    event_name=row.event_name,
                    timestamp=row.timestamp,
                    page_url=row.page_url,
                    event_data=json.loads(row.event_data) if row.event_data else None,
                )
                for row in recent
            ],
        )

    async def dashboard_report(self, start: int, end: int) -> DashboardReport:
        """All dashboard sections for one window"""
        validate_window(start, end)

        pageviews, referrers, devices, web_vitals, custom_events = await asyncio.gather(
            self.pageview_stats(start, end),
            self.referrer_stats(start, end),
            self.device_stats(start, end),
            self.web_vital_stats(start, end),
            self.custom_event_stats(start, end),
        )

        logger.info(
            "Dashboard report built",
            start=start,
            end=end,
            pageviews=pageviews.total,
            metrics=len(web_vitals.by_metric),
        )
        return DashboardReport(
            pageviews=pageviews,
            referrers=referrers,
            devices=devices,
            web_vitals=web_vitals,
            custom_events=custom_events,
            time_range=TimeRange(start=start, end=end),
        )
