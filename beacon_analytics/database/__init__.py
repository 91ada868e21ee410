"""
Database Module
"""
from .connection import (
    build_engine,
    build_session_factory,
    close_database,
    create_schema,
    get_db,
    get_session_factory,
    init_database,
)
from .models import Base
from .retention import RetentionSweeper, SweepResult

__all__ = [
    "build_engine",
    "build_session_factory",
    "close_database",
    "create_schema",
    "get_db",
    "get_session_factory",
    "init_database",
    "Base",
    "RetentionSweeper",
    "SweepResult",
]
