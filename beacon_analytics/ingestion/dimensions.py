"""
User Agent Dimension Resolution

Insert-or-fetch of user-agent dimension rows. Uniqueness is enforced by the
store (``uq_user_agents_attributes``), not by an application lock: a resolver
that loses an insert race gets an IntegrityError, rolls back and re-reads the
winner's row.
"""

from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from beacon_analytics.database.models import DimUserAgent
from beacon_analytics.errors import StorageFault
from beacon_analytics.ingestion.user_agent import UserAgentAttributes

logger = structlog.get_logger(__name__)


def _attribute_filter(attrs: UserAgentAttributes):
    """Exact tuple match where NULL only matches NULL"""
    clauses = []
    for name, value in attrs.as_dict().items():
        column = getattr(DimUserAgent, name)
        clauses.append(column.is_(None) if value is None else column == value)
    return clauses


class DimensionResolver:
    """
    Resolves user-agent attribute tuples to stable surrogate keys.

    Example:
        resolver = DimensionResolver(session_factory)
        key = await resolver.resolve(UserAgentAttributes(browser="Firefox"))
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def _lookup(self, session: AsyncSession, attrs: UserAgentAttributes) -> Optional[int]:
        result = await session.execute(
            select(DimUserAgent.id).where(*_attribute_filter(attrs)).limit(1)
        )
        return result.scalar_one_or_none()

    async def resolve(self, attrs: UserAgentAttributes) -> int:
        """
        Return the key of the row matching ``attrs``, creating it if needed.

        Raises:
            StorageFault: The store failed, or the row could not be found
                after losing an insert race.
        """
        try:
            async with self._session_factory() as session:
                existing = await self._lookup(session, attrs)
                if existing is not None:
                    return existing

                row = DimUserAgent(**attrs.as_dict())
                session.add(row)
                try:
                    await session.commit()
                except IntegrityError:
                    await session.rollback()
                    logger.debug("User agent inserted concurrently, re-reading", browser=attrs.browser)
                    existing = await self._lookup(session, attrs)
                    if existing is None:
                        raise StorageFault("User agent row vanished after unique constraint violation")
                    return existing

                logger.debug(
                    "User agent dimension created",
                    user_agent_id=row.id,
                    browser=attrs.browser,
                    os=attrs.os,
                    device_type=attrs.device_type,
                )
                return row.id
        except SQLAlchemyError as e:
            logger.error("User agent resolution failed", error=str(e), error_type=type(e).__name__)
            raise StorageFault("Failed to resolve user agent") from e
