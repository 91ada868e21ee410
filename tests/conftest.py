"""
Test Suite Configuration
"""
from typing import Dict, Optional

import pytest

from beacon_analytics.config.settings import (
    DatabaseSettings,
    IngestionSettings,
    SecuritySettings,
    Settings,
)
from beacon_analytics.database.connection import (
    build_engine,
    build_session_factory,
    create_schema,
)
from beacon_analytics.ingestion.dimensions import DimensionResolver
from beacon_analytics.ingestion.service import IngestionService
from beacon_analytics.ingestion.user_agent import UserAgentAttributes
from beacon_analytics.serving.aggregation import AggregationService

# 2024-03-01T12:00:00Z
BASE_TIME_MS = 1_709_294_400_000
DAY_MS = 24 * 60 * 60 * 1000
TEST_SALT = "test-salt"
# Peer address starlette's TestClient reports
TEST_CLIENT_PEER = "testclient"


class FakeClock:
    """Settable millisecond clock"""

    def __init__(self, now: int = BASE_TIME_MS):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


FAKE_USER_AGENTS: Dict[str, UserAgentAttributes] = {
    "firefox-linux": UserAgentAttributes(
        browser="Firefox",
        browser_version="121.0",
        os="Linux",
        device_type="desktop",
    ),
    "safari-iphone": UserAgentAttributes(
        browser="Mobile Safari",
        browser_version="17.0",
        os="iOS",
        os_version="17.0",
        device_type="mobile",
        device_vendor="Apple",
        device_model="iPhone",
    ),
    "headless": UserAgentAttributes(browser="HeadlessChrome", os=None, device_type=None),
}


def fake_parser(user_agent: Optional[str]) -> UserAgentAttributes:
    """Deterministic stand-in for the user-agent library"""
    return FAKE_USER_AGENTS.get(user_agent or "", UserAgentAttributes())


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
async def engine(tmp_path):
    """File-backed SQLite engine with the full schema"""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'analytics.db'}")
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def resolver(session_factory) -> DimensionResolver:
    return DimensionResolver(session_factory)


@pytest.fixture
def ingestion(session_factory, resolver, clock) -> IngestionService:
    return IngestionService(
        session_factory,
        resolver,
        ip_salt=TEST_SALT,
        parser=fake_parser,
        clock=clock,
    )


@pytest.fixture
def aggregation(session_factory) -> AggregationService:
    return AggregationService(session_factory)


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings pointing at a throwaway database"""
    return Settings(
        app_env="testing",
        debug=True,
        database=DatabaseSettings(path=str(tmp_path / "api.db")),
        ingestion=IngestionSettings(
            ip_hash_salt=TEST_SALT,
            rate_limit=100,
            trusted_proxies=[TEST_CLIENT_PEER],
        ),
        security=SecuritySettings(),
    )
