"""Domain error taxonomy.

Every error is local to one logical operation and is raised before any
mutation is applied. Each class maps to a stable machine-readable code
and an HTTP status used by the API exception handler.
"""

from __future__ import annotations

from fastapi import status


class TurnlineError(Exception):
    """Base class for all domain errors."""

    code = "error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "detail": self.message}


class InvalidInputError(TurnlineError):
    """Malformed request, rejected before touching storage."""

    code = "invalid_input"
    status_code = status.HTTP_400_BAD_REQUEST


class ConfirmationMismatchError(InvalidInputError):
    """Destructive operation requested without the exact confirmation phrase."""

    code = "confirmation_mismatch"


class NotFoundError(TurnlineError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class QueueEmptyError(NotFoundError):
    """No pending ticket matches the requested priority class."""

    code = "queue_empty"


class ConflictError(TurnlineError):
    code = "conflict"
    status_code = status.HTTP_409_CONFLICT


class WindowBusyError(ConflictError):
    """The window already has an open session held by another operator."""

    code = "window_busy"


class InvalidTransitionError(ConflictError):
    """The ticket is not in a state that allows the requested transition."""

    code = "invalid_transition"

    def __init__(self, current: str, requested: str, message: str | None = None) -> None:
        super().__init__(
            message or f"Cannot move ticket from {current} to {requested}",
        )
        self.current = current
        self.requested = requested

    def to_dict(self) -> dict[str, str]:
        payload = super().to_dict()
        payload["current"] = self.current
        payload["requested"] = self.requested
        return payload


class RaceLostError(ConflictError):
    """A concurrent writer won; the whole operation may be retried."""

    code = "race_lost"


class ForbiddenError(TurnlineError):
    """The caller does not own the window the operation targets."""

    code = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN
