"""
Integration Tests - Data Retention
"""
from sqlalchemy import select

from beacon_analytics.database.connection import build_engine, build_session_factory
from beacon_analytics.database.models import CustomEvent, DimUserAgent, PageView, WebVital
from beacon_analytics.database.retention import DEFAULT_HORIZON_MS, RetentionSweeper

DAY_MS = 24 * 60 * 60 * 1000


async def ids(session_factory, model):
    async with session_factory() as session:
        return set((await session.execute(select(model.id))).scalars().all())


class TestRetentionSweeper:
    """Tests for RetentionSweeper"""

    async def test_expired_facts_and_orphans_are_removed(self, ingestion, session_factory, clock):
        now = clock.now

        clock.now = now - 31 * DAY_MS
        old_pageview = await ingestion.record_pageview(
            {
                "sessionId": "old",
                "pageUrl": "/",
                "userAgent": "safari-iphone",
                "webVitals": [{"name": "LCP", "value": 1200}],
            },
            source_addr="203.0.113.9",
            user_agent=None,
        )
        await ingestion.record_custom_event({"sessionId": "old", "pageUrl": "/", "eventName": "click"})

        clock.now = now
        new_pageview = await ingestion.record_pageview(
            {"sessionId": "new", "pageUrl": "/", "userAgent": "firefox-linux"},
            source_addr="203.0.113.9",
            user_agent=None,
        )

        result = await RetentionSweeper(session_factory, clock=clock).sweep()

        assert (result.pageviews, result.web_vitals, result.custom_events, result.user_agents) == (1, 1, 1, 1)
        assert result.total == 4
        assert await ids(session_factory, PageView) == {new_pageview}
        assert old_pageview not in await ids(session_factory, PageView)
        assert await ids(session_factory, WebVital) == set()
        assert await ids(session_factory, CustomEvent) == set()

        async with session_factory() as session:
            browsers = (await session.execute(select(DimUserAgent.browser))).scalars().all()
        assert browsers == ["Firefox"]

    async def test_ids_are_not_reused_after_newest_rows_expire(self, ingestion, session_factory, clock):
        now = clock.now
        clock.now = now - 31 * DAY_MS
        old_pageviews = [
            await ingestion.record_pageview(
                {"sessionId": "old", "pageUrl": "/", "webVitals": [{"name": "TTFB", "value": 300}]},
                source_addr="203.0.113.9",
                user_agent=None,
            )
            for _ in range(3)
        ]
        old_event = await ingestion.record_custom_event({"sessionId": "old", "pageUrl": "/", "eventName": "click"})
        old_vitals = await ids(session_factory, WebVital)

        clock.now = now
        result = await RetentionSweeper(session_factory, clock=clock).sweep()
        assert result.pageviews == 3
        assert await ids(session_factory, PageView) == set()

        new_pageview = await ingestion.record_pageview(
            {"sessionId": "new", "pageUrl": "/", "webVitals": [{"name": "TTFB", "value": 250}]},
            source_addr="203.0.113.9",
            user_agent=None,
        )
        new_event = await ingestion.record_custom_event({"sessionId": "new", "pageUrl": "/", "eventName": "click"})

        assert new_pageview > max(old_pageviews)
        assert new_event > old_event
        assert min(await ids(session_factory, WebVital)) > max(old_vitals)

    async def test_cutoff_is_exclusive(self, ingestion, session_factory, clock):
        now = clock.now
        clock.now = now - DEFAULT_HORIZON_MS
        await ingestion.record_pageview({"sessionId": "edge", "pageUrl": "/"}, "203.0.113.9", None)

        result = await RetentionSweeper(session_factory).sweep(now=now)

        assert result.cutoff == now - DEFAULT_HORIZON_MS
        assert result.pageviews == 0
        assert len(await ids(session_factory, PageView)) == 1

    async def test_shared_dimension_survives_while_referenced(self, ingestion, session_factory, clock):
        now = clock.now
        for at in (now - 40 * DAY_MS, now):
            clock.now = at
            await ingestion.record_pageview(
                {"sessionId": "s", "pageUrl": "/", "userAgent": "firefox-linux"},
                "203.0.113.9",
                None,
            )

        result = await RetentionSweeper(session_factory, clock=clock).sweep()

        assert result.pageviews == 1
        assert result.user_agents == 0
        assert len(await ids(session_factory, DimUserAgent)) == 1

    async def test_custom_horizon(self, ingestion, session_factory, clock):
        now = clock.now
        clock.now = now - 2 * DAY_MS
        await ingestion.record_pageview({"sessionId": "s", "pageUrl": "/"}, "203.0.113.9", None)

        result = await RetentionSweeper(session_factory, horizon_ms=DAY_MS).sweep(now=now)

        assert result.pageviews == 1

    async def test_safe_sweep_swallows_failures(self, tmp_path):
        engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'analytics.db'}")
        sweeper = RetentionSweeper(build_session_factory(engine))

        try:
            assert await sweeper.safe_sweep() is None
        finally:
            await engine.dispose()
