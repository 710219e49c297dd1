"""Business logic services for the Turnline queue."""

from .locks import KeyedLocks, get_locks
from .notifications import NotificationHub, get_notification_hub
from .queue import QueueSelector
from .rollover import RolloverCoordinator, RolloverMode, RolloverTrigger
from .sequence import SequenceAllocator
from .stats import StatsService
from .tickets import TicketStateMachine
from .windows import WindowOwnershipManager

__all__ = [
    "KeyedLocks", "get_locks",
    "NotificationHub", "get_notification_hub",
    "QueueSelector",
    "RolloverCoordinator", "RolloverMode", "RolloverTrigger",
    "SequenceAllocator",
    "StatsService",
    "TicketStateMachine",
    "WindowOwnershipManager",
]
