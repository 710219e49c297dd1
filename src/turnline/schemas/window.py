"""Window session and overview schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class SessionOpen(BaseModel):
    """Schema for opening a worker session.

    Omitting ``window_number`` opens an assigner session bound to no window.
    """

    window_number: int | None = Field(None, description="Window to take over")


class SessionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    mode: str
    window_number: int | None
    started_at: datetime
    ended_at: datetime | None


class SessionCloseResponse(BaseModel):
    closed: bool
    session: SessionResponse | None = None


class CurrentTicket(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    number: int
    kind: str
    status: str


class WindowOverviewItem(BaseModel):
    window_number: int
    operator_id: str | None
    operator_name: str | None
    current: CurrentTicket | None


class OverviewResponse(BaseModel):
    """Snapshot of every active window plus the next numbers in line."""

    windows: list[WindowOverviewItem]
    upcoming_priority: list[int]
    upcoming_standard: list[int]


class BellResponse(BaseModel):
    window_number: int
    ticket_number: int | None
