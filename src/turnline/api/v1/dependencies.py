"""Shared API dependencies for authentication and service wiring."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from turnline.core.clock import Clock, get_clock
from turnline.core.security import decode_access_token
from turnline.db.session import get_db
from turnline.models import User
from turnline.services.locks import KeyedLocks, get_locks
from turnline.services.notifications import NotificationHub, get_notification_hub
from turnline.services.queue import QueueSelector
from turnline.services.rollover import RolloverCoordinator
from turnline.services.sequence import SequenceAllocator
from turnline.services.stats import StatsService
from turnline.services.tickets import TicketStateMachine
from turnline.services.windows import WindowOwnershipManager

# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer()

# Type aliases for infrastructure dependencies
SessionDep = Annotated[Session, Depends(get_db)]
ClockDep = Annotated[Clock, Depends(get_clock)]
HubDep = Annotated[NotificationHub, Depends(get_notification_hub)]
LocksDep = Annotated[KeyedLocks, Depends(get_locks)]


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
    db: SessionDep,
) -> User:
    """Get the current authenticated user from JWT token.

    Args:
        credentials: HTTP Bearer token credentials
        db: Database session

    Returns:
        User object for the authenticated user

    Raises:
        HTTPException: If token is invalid or user not found
    """
    try:
        payload = decode_access_token(credentials.credentials)
    except JWTError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from err

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )

    user = db.get(User, subject)
    if user is None or not user.active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    return user


# Type alias for current user dependency
CurrentUserDep = Annotated[User, Depends(get_current_user)]


def require_admin(current_user: CurrentUserDep) -> User:
    """Allow only principals whose stored role is ADMIN."""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin role required",
        )
    return current_user


AdminUserDep = Annotated[User, Depends(require_admin)]


def get_ownership_manager(
    clock: ClockDep,
    hub: HubDep,
    locks: LocksDep,
) -> WindowOwnershipManager:
    """Return a window ownership manager bound to the request's clock."""
    return WindowOwnershipManager(clock, hub, locks)


OwnershipDep = Annotated[WindowOwnershipManager, Depends(get_ownership_manager)]


def get_ticket_machine(
    clock: ClockDep,
    hub: HubDep,
    locks: LocksDep,
    ownership: OwnershipDep,
) -> TicketStateMachine:
    return TicketStateMachine(clock, hub, locks, SequenceAllocator(locks), ownership)


TicketMachineDep = Annotated[TicketStateMachine, Depends(get_ticket_machine)]


def get_queue_selector(machine: TicketMachineDep) -> QueueSelector:
    return QueueSelector(machine)


QueueSelectorDep = Annotated[QueueSelector, Depends(get_queue_selector)]


def get_rollover_coordinator(
    clock: ClockDep,
    hub: HubDep,
    locks: LocksDep,
    ownership: OwnershipDep,
) -> RolloverCoordinator:
    return RolloverCoordinator(clock, hub, locks, SequenceAllocator(locks), ownership)


RolloverDep = Annotated[RolloverCoordinator, Depends(get_rollover_coordinator)]


def get_stats_service(db: SessionDep, clock: ClockDep) -> StatsService:
    return StatsService(db, clock)


StatsServiceDep = Annotated[StatsService, Depends(get_stats_service)]
