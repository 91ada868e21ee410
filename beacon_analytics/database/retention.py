"""
Data Retention

Prunes facts older than the retention horizon and then removes user-agent
dimension rows no pageview references any more. Runs as a scheduled
background task; a failed sweep is logged and never reaches ingestion callers.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Callable, Optional

import structlog
from prometheus_client import Counter
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from beacon_analytics.database.models import CustomEvent, DimUserAgent, PageView, WebVital

logger = structlog.get_logger(__name__)

DEFAULT_HORIZON_MS = 30 * 24 * 60 * 60 * 1000

RETENTION_DELETED = Counter(
    "analytics_retention_deleted_total",
    "Rows removed by retention sweeps",
    ["table"],
)


def now_ms() -> int:
    """Current Unix time in milliseconds"""
    return time.time_ns() // 1_000_000


@dataclass
class SweepResult:
    """Rows deleted by a single sweep"""
    cutoff: int
    pageviews: int = 0
    web_vitals: int = 0
    custom_events: int = 0
    user_agents: int = 0

    @property
    def total(self) -> int:
        return self.pageviews + self.web_vitals + self.custom_events + self.user_agents


class RetentionSweeper:
    """
    Deletes expired facts, then orphaned user-agent rows.

    Facts go first so the orphan check sees the post-deletion state. Both
    steps share one transaction.

    Example:
        sweeper = RetentionSweeper(session_factory, horizon_ms=DEFAULT_HORIZON_MS)
        result = await sweeper.sweep()
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        horizon_ms: int = DEFAULT_HORIZON_MS,
        clock: Callable[[], int] = now_ms,
    ):
        if horizon_ms <= 0:
            raise ValueError("Retention horizon must be positive")
        self._session_factory = session_factory
        self.horizon_ms = horizon_ms
        self._clock = clock

    async def sweep(self, now: Optional[int] = None) -> SweepResult:
        """
        Run one retention pass.

        Args:
            now: Reference time in Unix ms (clock time if omitted)

        Returns:
            SweepResult with per-table deletion counts
        """
        reference = self._clock() if now is None else now
        result = SweepResult(cutoff=reference - self.horizon_ms)

        async with self._session_factory() as session:
            async with session.begin():
                for model, attr in (
                    (PageView, "pageviews"),
                    (WebVital, "web_vitals"),
                    (CustomEvent, "custom_events"),
                ):
                    deleted = await session.execute(
                        delete(model)
                        .where(model.timestamp < result.cutoff)
                        .execution_options(synchronize_session=False)
                    )
                    setattr(result, attr, deleted.rowcount or 0)

                referenced = (
                    select(PageView.id)
                    .where(PageView.user_agent_id == DimUserAgent.id)
                    .correlate(DimUserAgent)
                    .exists()
                )
                orphans = await session.execute(
                    delete(DimUserAgent)
                    .where(~referenced)
                    .execution_options(synchronize_session=False)
                )
                result.user_agents = orphans.rowcount or 0

        for table in ("pageviews", "web_vitals", "custom_events", "user_agents"):
            RETENTION_DELETED.labels(table=table).inc(getattr(result, table))

        logger.info(
            "Retention sweep completed",
            cutoff=result.cutoff,
            pageviews=result.pageviews,
            web_vitals=result.web_vitals,
            custom_events=result.custom_events,
            user_agents=result.user_agents,
        )
        return result

    async def safe_sweep(self, now: Optional[int] = None) -> Optional[SweepResult]:
        """Run a sweep, reporting any failure as a warning instead of raising"""
        try:
            return await self.sweep(now)
        except Exception as e:
            logger.warning("Retention sweep failed", error=str(e), error_type=type(e).__name__)
            return None

    async def run_periodic(self, interval_seconds: float) -> None:
        """Sweep every ``interval_seconds`` until cancelled"""
        logger.info(
            "Retention sweeper started",
            interval_seconds=interval_seconds,
            horizon_ms=self.horizon_ms,
        )
        while True:
            await self.safe_sweep()
            await asyncio.sleep(interval_seconds)
