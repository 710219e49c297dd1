# src/turnline/models/__init__.py
"""SQLAlchemy models for the Turnline service."""

from .facts import OperatorDailyAggregate, TicketFact
from .priority import Audience, PriorityClass
from .system import ServiceSettings, SystemState
from .ticket import DayCounter, Ticket, TicketStatus
from .user import User, UserRole
from .window import SessionMode, Window, WorkerSession

__all__ = [
    "Audience", "PriorityClass",
    "DayCounter", "Ticket", "TicketStatus",
    "OperatorDailyAggregate", "TicketFact",
    "ServiceSettings", "SystemState",
    "User", "UserRole",
    "SessionMode", "Window", "WorkerSession",
]
