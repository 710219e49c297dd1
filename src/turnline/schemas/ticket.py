"""Ticket-related Pydantic schemas."""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field


class TicketCreate(BaseModel):
    """Schema for requesting a new ticket."""

    kind: str | None = Field(
        None,
        description="Priority class (STANDARD, PRIORITY, EXEMPT); defaults to STANDARD",
    )
    start_override: int | None = Field(
        None,
        description="Raise today's counter to this number first if it is ahead",
    )


class TicketResponse(BaseModel):
    """Schema for ticket information returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    number: int
    kind: str
    status: str
    service_date: date
    window_number: int | None
    created_at: datetime
    called_at: datetime | None
    served_at: datetime | None
    completed_at: datetime | None
    skipped_at: datetime | None
