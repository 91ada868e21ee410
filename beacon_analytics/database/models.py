"""
Database Models - Star Schema Design

This module defines the analytics tables following a star schema design:

Fact Tables:
- PageView: One row per page load
- WebVital: One row per reported performance metric
- CustomEvent: One row per user-defined event

Dimension Tables:
- DimUserAgent: Deduplicated browser / OS / device descriptions

All fact timestamps are Unix epoch milliseconds.
"""

from enum import Enum
from typing import Optional, List

from sqlalchemy import (
    BigInteger,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


# =============================================================================
# ENUMERATIONS
# =============================================================================

class MetricName(str, Enum):
    """Core web vital metric names"""
    LCP = "LCP"
    FCP = "FCP"
    CLS = "CLS"
    FID = "FID"
    TTFB = "TTFB"


class MetricRating(str, Enum):
    """Web vital rating buckets"""
    GOOD = "good"
    NEEDS_IMPROVEMENT = "needs-improvement"
    POOR = "poor"


# =============================================================================
# DIMENSION TABLES
# =============================================================================

class DimUserAgent(Base):
    """
    User Agent Dimension Table

    Parsed user-agent attributes. No two rows share the same attribute tuple;
    missing attributes are NULL and compare equal for uniqueness purposes
    (see ``uq_user_agents_attributes`` below).
    """
    __tablename__ = "user_agents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    browser: Mapped[str] = mapped_column(String(100), nullable=False)
    browser_version: Mapped[Optional[str]] = mapped_column(String(50))
    os: Mapped[Optional[str]] = mapped_column(String(100))
    os_version: Mapped[Optional[str]] = mapped_column(String(50))
    device_type: Mapped[Optional[str]] = mapped_column(String(30))  # desktop, mobile, tablet, bot
    device_vendor: Mapped[Optional[str]] = mapped_column(String(100))
    device_model: Mapped[Optional[str]] = mapped_column(String(100))

    # Relationships
    page_views: Mapped[List["PageView"]] = relationship(back_populates="user_agent")

    __table_args__ = (
        Index("ix_user_agents_browser", "browser"),
        Index("ix_user_agents_os", "os"),
        Index("ix_user_agents_device_type", "device_type"),
        {"sqlite_autoincrement": True},
    )


# NULL-safe uniqueness over the full attribute tuple
Index(
    "uq_user_agents_attributes",
    func.coalesce(DimUserAgent.__table__.c.browser, ""),
    func.coalesce(DimUserAgent.__table__.c.browser_version, ""),
    func.coalesce(DimUserAgent.__table__.c.os, ""),
    func.coalesce(DimUserAgent.__table__.c.os_version, ""),
    func.coalesce(DimUserAgent.__table__.c.device_type, ""),
    func.coalesce(DimUserAgent.__table__.c.device_vendor, ""),
    func.coalesce(DimUserAgent.__table__.c.device_model, ""),
    unique=True,
)


# =============================================================================
# FACT TABLES
# =============================================================================

class PageView(Base):
    """
    Page View Fact Table

    Immutable record of a single page load. ``ip_hash`` is a salted one-way
    digest; the raw client address is never stored.
    """
    __tablename__ = "pageviews"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    page_url: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    session_id: Mapped[str] = mapped_column(String(255), nullable=False)
    referrer: Mapped[Optional[str]] = mapped_column(Text)
    ip_hash: Mapped[str] = mapped_column(String(64), nullable=False)  # SHA256 hex
    user_agent_id: Mapped[int] = mapped_column(
        ForeignKey("user_agents.id"), nullable=False
    )

    # Relationships
    user_agent: Mapped["DimUserAgent"] = relationship(back_populates="page_views")

    __table_args__ = (
        Index("ix_pageviews_timestamp", "timestamp"),
        Index("ix_pageviews_page_url", "page_url"),
        Index("ix_pageviews_session_id", "session_id"),
        Index("ix_pageviews_user_agent", "user_agent_id"),
        {"sqlite_autoincrement": True},
    )


class WebVital(Base):
    """
    Web Vital Fact Table

    One row per metric reported with a page load. ``metric_rating`` is the
    client's advisory rating; reports derive their own.
    """
    __tablename__ = "web_vitals"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[str] = mapped_column(String(255), nullable=False)
    page_url: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    metric_name: Mapped[str] = mapped_column(String(10), nullable=False)
    metric_value: Mapped[float] = mapped_column(Float, nullable=False)
    metric_rating: Mapped[Optional[str]] = mapped_column(String(20))

    __table_args__ = (
        Index("ix_web_vitals_timestamp", "timestamp"),
        Index("ix_web_vitals_page_url", "page_url"),
        Index("ix_web_vitals_metric_name", "metric_name"),
        {"sqlite_autoincrement": True},
    )


class CustomEvent(Base):
    """
    Custom Event Fact Table

    ``event_data`` holds the JSON-serialized payload, or NULL when the event
    carried none. Its contents are never interpreted.
    """
    __tablename__ = "custom_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[str] = mapped_column(String(255), nullable=False)
    page_url: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    event_name: Mapped[str] = mapped_column(String(255), nullable=False)
    event_data: Mapped[Optional[str]] = mapped_column(Text)

    __table_args__ = (
        Index("ix_custom_events_timestamp", "timestamp"),
        Index("ix_custom_events_event_name", "event_name"),
        Index("ix_custom_events_session_id", "session_id"),
        {"sqlite_autoincrement": True},
    )
