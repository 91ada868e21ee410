"""
API Routes Module
"""
from .dashboard import router as dashboard_router
from .events import router as events_router
from .health import metrics_router, router as health_router
from .track import router as track_router

__all__ = [
    "dashboard_router",
    "events_router",
    "health_router",
    "metrics_router",
    "track_router",
]
