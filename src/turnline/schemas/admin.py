"""Admin action schemas."""

from datetime import date

from pydantic import BaseModel, ConfigDict, Field


class ConfirmationRequest(BaseModel):
    """Body of destructive admin actions."""

    confirmation: str = Field(..., description="Exact confirmation phrase")


class RolloverResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    service_day: date
    mode: str
    archived_count: int
    new_start_number: int
    deleted_count: int
    sessions_closed: int
    aggregates_written: int
    facts_purged: int
    skipped: bool
