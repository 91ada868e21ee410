"""
Dashboard Data Endpoint

Serves the aggregated report consumed by the dashboard UI.
"""

import time
from typing import Optional

from fastapi import APIRouter, Depends, Query
import structlog

from beacon_analytics.serving.aggregation import AggregationService, DashboardReport
from beacon_analytics.serving.api.dependencies import (
    get_aggregation_service,
    require_dashboard_auth,
)

router = APIRouter()
logger = structlog.get_logger(__name__)

DEFAULT_WINDOW_MS = 7 * 24 * 60 * 60 * 1000


@router.get(
    "/data",
    response_model=DashboardReport,
    dependencies=[Depends(require_dashboard_auth)],
)
async def get_dashboard_data(
    start: Optional[int] = Query(None, description="Window start, Unix ms (default: end - 7 days)"),
    end: Optional[int] = Query(None, description="Window end, Unix ms (default: now)"),
    aggregation: AggregationService = Depends(get_aggregation_service),
) -> DashboardReport:
    """Dashboard report for ``[start, end]``"""
    if end is None:
        end = time.time_ns() // 1_000_000
    if start is None:
        start = max(0, end - DEFAULT_WINDOW_MS)

    logger.debug("Dashboard data requested", start=start, end=end)
    return await aggregation.dashboard_report(start, end)
