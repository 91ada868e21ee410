"""
Integration Tests - Dashboard Aggregation
"""
import pytest

from beacon_analytics.errors import ValidationFault

DAY_MS = 24 * 60 * 60 * 1000


async def track(ingestion, clock, at=None, **fields):
    if at is not None:
        clock.now = at
    payload = {"sessionId": "s-1", "pageUrl": "https://example.com/", "userAgent": "firefox-linux"}
    payload.update(fields)
    return await ingestion.record_pageview(payload, source_addr="203.0.113.9", user_agent=None)


@pytest.fixture
def window(clock):
    """Seven days ending at the fake clock's start time"""
    return clock.now - 7 * DAY_MS, clock.now


class TestPageviewStats:
    """Tests for pageview_stats"""

    async def test_counts_by_day_and_page(self, ingestion, aggregation, clock, window):
        start, end = window
        await track(ingestion, clock, at=end - DAY_MS, pageUrl="/a")
        await track(ingestion, clock, at=end, pageUrl="/a")
        await track(ingestion, clock, at=end, pageUrl="/b")

        stats = await aggregation.pageview_stats(start, end)

        assert stats.total == 3
        assert [(d.date, d.count) for d in stats.by_day] == [("2024-02-29", 1), ("2024-03-01", 2)]
        assert [(p.page, p.count) for p in stats.by_page] == [("/a", 2), ("/b", 1)]

    async def test_window_is_inclusive(self, ingestion, aggregation, clock, window):
        start, end = window
        await track(ingestion, clock, at=start - 1)
        await track(ingestion, clock, at=start)
        await track(ingestion, clock, at=end)
        await track(ingestion, clock, at=end + 1)

        stats = await aggregation.pageview_stats(start, end)

        assert stats.total == 2

    async def test_top_pages_are_limited_and_tie_broken(self, ingestion, aggregation, clock, window):
        start, end = window
        for i in range(12):
            await track(ingestion, clock, at=end, pageUrl=f"/page-{i:02d}")

        stats = await aggregation.pageview_stats(start, end)

        assert len(stats.by_page) == 10
        assert stats.by_page[0].page == "/page-00"

    async def test_empty_window(self, aggregation, window):
        stats = await aggregation.pageview_stats(*window)

        assert stats.total == 0
        assert stats.by_day == []
        assert stats.by_page == []


class TestReferrerStats:
    """Tests for referrer_stats"""

    async def test_missing_referrer_is_direct(self, ingestion, aggregation, clock, window):
        start, end = window
        await track(ingestion, clock, at=end, referrer=None)
        await track(ingestion, clock, at=end, referrer="https://x.com")
        await track(ingestion, clock, at=end)

        stats = await aggregation.referrer_stats(start, end)

        assert [(r.referrer, r.count) for r in stats.by_referrer] == [("Direct", 2), ("https://x.com", 1)]


class TestDeviceStats:
    """Tests for device_stats"""

    async def test_breakdowns(self, ingestion, aggregation, clock, window):
        start, end = window
        await track(ingestion, clock, at=end, userAgent="firefox-linux")
        await track(ingestion, clock, at=end, userAgent="firefox-linux")
        await track(ingestion, clock, at=end, userAgent="safari-iphone")
        await track(ingestion, clock, at=end, userAgent="headless")

        stats = await aggregation.device_stats(start, end)

        assert [(b.browser, b.count) for b in stats.by_browser] == [
            ("Firefox", 2),
            ("HeadlessChrome", 1),
            ("Mobile Safari", 1),
        ]
        assert [(o.os, o.count) for o in stats.by_os] == [("Linux", 2), ("Unknown", 1), ("iOS", 1)]
        assert [(d.device_type, d.count) for d in stats.by_device_type] == [
            ("desktop", 2),
            ("Unknown", 1),
            ("mobile", 1),
        ]


class TestWebVitalStats:
    """Tests for web_vital_stats"""

    async def test_percentiles_and_rating(self, ingestion, aggregation, clock, window):
        start, end = window
        await track(
            ingestion,
            clock,
            at=end,
            webVitals=[{"name": "LCP", "value": v} for v in range(1, 11)],
        )

        stats = await aggregation.web_vital_stats(start, end)

        assert len(stats.by_metric) == 1
        lcp = stats.by_metric[0]
        assert lcp.name == "LCP"
        assert lcp.average == pytest.approx(5.5)
        assert (lcp.median, lcp.p75, lcp.p95) == (5.0, 8.0, 10.0)
        assert lcp.rating == "good"

    async def test_rating_follows_median(self, ingestion, aggregation, clock, window):
        start, end = window
        await track(
            ingestion,
            clock,
            at=end,
            webVitals=[
                {"name": "LCP", "value": 2600},
                {"name": "LCP", "value": 2600},
                {"name": "LCP", "value": 9000},
                {"name": "CLS", "value": 0.01},
            ],
        )

        stats = await aggregation.web_vital_stats(start, end)
        by_name = {m.name: m for m in stats.by_metric}

        assert [m.name for m in stats.by_metric] == ["CLS", "LCP"]
        assert by_name["LCP"].median == 2600
        assert by_name["LCP"].rating == "needs-improvement"
        assert by_name["CLS"].rating == "good"

    async def test_no_measurements(self, aggregation, window):
        stats = await aggregation.web_vital_stats(*window)

        assert stats.by_metric == []


class TestCustomEventStats:
    """Tests for custom_event_stats"""

    async def test_counts_and_recent(self, ingestion, aggregation, clock, window):
        start, end = window
        for offset, name, data in [
            (3, "signup", {"plan": "pro"}),
            (2, "click", None),
            (1, "signup", {"plan": "free"}),
        ]:
            clock.now = end - offset
            payload = {"sessionId": "s-1", "pageUrl": "/pricing", "eventName": name}
            if data is not None:
                payload["eventData"] = data
            await ingestion.record_custom_event(payload)

        stats = await aggregation.custom_event_stats(start, end)

        assert [(e.event_name, e.count) for e in stats.by_event] == [("signup", 2), ("click", 1)]
        assert [e.event_name for e in stats.recent] == ["signup", "click", "signup"]
        assert stats.recent[0].event_data == {"plan": "free"}
        assert stats.recent[1].event_data is None
        assert stats.recent[0].page_url == "/pricing"

    async def test_recent_is_limited(self, ingestion, aggregation, clock, window):
        start, end = window
        for i in range(25):
            clock.now = end - i
            await ingestion.record_custom_event({"sessionId": "s", "pageUrl": "/", "eventName": "tick"})

        stats = await aggregation.custom_event_stats(start, end)

        assert len(stats.recent) == 20
        assert stats.recent[0].timestamp == end


class TestDashboardReport:
    """Tests for dashboard_report"""

    async def test_wire_format(self, ingestion, aggregation, clock, window):
        start, end = window
        await track(ingestion, clock, at=end, webVitals=[{"name": "TTFB", "value": 300}])

        report = await aggregation.dashboard_report(start, end)
        data = report.model_dump(by_alias=True)

        assert set(data) == {"pageviews", "referrers", "devices", "webVitals", "customEvents", "timeRange"}
        assert data["timeRange"] == {"start": start, "end": end}
        assert set(data["devices"]) == {"byBrowser", "byOS", "byDeviceType"}
        assert data["pageviews"]["byDay"][0]["count"] == 1
        assert data["webVitals"]["byMetric"][0]["name"] == "TTFB"
        assert data["customEvents"] == {"byEvent": [], "recent": []}

    @pytest.mark.parametrize("start,end", [(10, 5), (-1, 5), (0, -1)])
    async def test_invalid_window(self, aggregation, start, end):
        with pytest.raises(ValidationFault):
            await aggregation.dashboard_report(start, end)
