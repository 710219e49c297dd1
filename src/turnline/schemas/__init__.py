"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .admin import ConfirmationRequest, RolloverResponse
from .stats import OperatorAggregateResponse, StatsResponse
from .ticket import TicketCreate, TicketResponse
from .window import (
    BellResponse,
    OverviewResponse,
    SessionCloseResponse,
    SessionOpen,
    SessionResponse,
)

__all__ = [
    "ConfirmationRequest", "RolloverResponse",
    "OperatorAggregateResponse", "StatsResponse",
    "TicketCreate", "TicketResponse",
    "BellResponse", "OverviewResponse", "SessionCloseResponse", "SessionOpen", "SessionResponse",
]
