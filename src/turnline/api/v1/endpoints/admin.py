"""Admin endpoints for destructive end-of-day actions."""

from fastapi import APIRouter

from turnline.api.v1.dependencies import AdminUserDep, RolloverDep, SessionDep
from turnline.schemas.admin import ConfirmationRequest, RolloverResponse
from turnline.services.rollover import RolloverResult

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/rollover", response_model=RolloverResponse)
def run_rollover(
    payload: ConfirmationRequest,
    db: SessionDep,
    coordinator: RolloverDep,
    admin: AdminUserDep,
) -> RolloverResult:
    """Archive today's tickets, close every session and reset the counter.

    Requires the exact confirmation phrase; a mismatch changes nothing.
    """
    return coordinator.run(db, confirmation=payload.confirmation)


@router.post("/purge", response_model=RolloverResponse)
def purge_now(
    payload: ConfirmationRequest,
    db: SessionDep,
    coordinator: RolloverDep,
    admin: AdminUserDep,
) -> RolloverResult:
    """Delete every live ticket without archiving, then reset as a rollover would."""
    return coordinator.purge(db, confirmation=payload.confirmation)
