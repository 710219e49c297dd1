"""System endpoints: service clock and public configuration."""

from __future__ import annotations

from fastapi import APIRouter

from turnline.api.v1.dependencies import ClockDep, SessionDep
from turnline.core.settings import settings
from turnline.models import SystemState

router = APIRouter(prefix="/system", tags=["system"])


@router.get("/clock")
def get_service_clock(db: SessionDep, clock: ClockDep) -> dict[str, object]:
    """Return the current service day and when the next scheduled rollover fires."""
    state = db.get(SystemState, 1)
    return {
        "now": clock.now().isoformat(),
        "local_now": clock.local_now().isoformat(),
        "timezone": settings.service_timezone,
        "service_day": clock.service_day().isoformat(),
        "rollover_enabled": settings.rollover_enabled,
        "next_rollover_at": clock.next_run_at(settings.rollover_time).isoformat(),
        "last_rollover_date": (
            state.last_rollover_date.isoformat()
            if state and state.last_rollover_date
            else None
        ),
        "last_rollover_trigger": state.last_rollover_trigger if state else None,
    }


@router.get("/config")
def get_public_config() -> dict[str, object]:
    """Return a sanitized snapshot of public runtime configuration.

    Excludes secrets and connection strings.
    """
    return {
        "app": {
            "name": settings.app_name,
            "version": settings.app_version,
            "jwt_algorithm": settings.jwt_algorithm,
        },
        "queue": {
            "timezone": settings.service_timezone,
            "start_number_default": settings.start_number_default,
            "recent_limit_max": settings.recent_limit_max,
        },
        "rollover": {
            "enabled": settings.rollover_enabled,
            "at": settings.rollover_at,
            "cooldown_seconds": settings.rollover_cooldown_seconds,
            "fact_retention_days": settings.fact_retention_days,
        },
    }
