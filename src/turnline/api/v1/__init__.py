"""Version 1 API endpoints."""

from .endpoints import (
    admin_router,
    events_router,
    stats_router,
    system_router,
    tickets_router,
    windows_router,
)

__all__ = [
    "admin_router",
    "events_router",
    "stats_router",
    "system_router",
    "tickets_router",
    "windows_router",
]
