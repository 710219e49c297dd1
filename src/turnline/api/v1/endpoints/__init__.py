"""API endpoint modules for version 1."""

from .admin import router as admin_router
from .events import router as events_router
from .stats import router as stats_router
from .system import router as system_router
from .tickets import router as tickets_router
from .windows import router as windows_router

__all__ = [
    "admin_router",
    "events_router",
    "stats_router",
    "system_router",
    "tickets_router",
    "windows_router",
]
