"""Priority classes attached to tickets.

The set is closed: queue ordering and display visibility are read from
``PRIORITY_CLASSES`` and nowhere else, so adding a class means adding one
entry here.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from sqlalchemy import case
from sqlalchemy.sql.elements import ColumnElement

from turnline.core.errors import InvalidInputError


class PriorityClass(StrEnum):
    STANDARD = "STANDARD"
    PRIORITY = "PRIORITY"
    EXEMPT = "EXEMPT"


class Audience(StrEnum):
    """Consumers of queue data with different visibility rules."""

    INTERNAL = "internal"
    PUBLIC = "public"


@dataclass(frozen=True)
class PriorityClassInfo:
    rank: int
    label: str
    visible_to: frozenset[Audience]


PRIORITY_CLASSES: dict[PriorityClass, PriorityClassInfo] = {
    PriorityClass.PRIORITY: PriorityClassInfo(
        rank=0,
        label="Priority",
        visible_to=frozenset({Audience.INTERNAL, Audience.PUBLIC}),
    ),
    PriorityClass.STANDARD: PriorityClassInfo(
        rank=1,
        label="Standard",
        visible_to=frozenset({Audience.INTERNAL, Audience.PUBLIC}),
    ),
    # Exempt tickets are served normally but never shown on public screens.
    PriorityClass.EXEMPT: PriorityClassInfo(
        rank=1,
        label="Exempt from display",
        visible_to=frozenset({Audience.INTERNAL}),
    ),
}


def parse_priority_class(value: str | None) -> PriorityClass | None:
    """Normalize a client-supplied class name.

    Returns None for an absent or blank value.

    Raises:
        InvalidInputError: If the name is not one of the known classes.
    """
    if value is None or not value.strip():
        return None
    normalized = value.strip().upper()
    try:
        return PriorityClass(normalized)
    except ValueError as err:
        allowed = ", ".join(kind.value for kind in PriorityClass)
        raise InvalidInputError(
            f"Unknown priority class '{value}'. Use one of: {allowed}",
        ) from err


def rank_of(kind: str) -> int:
    return PRIORITY_CLASSES[PriorityClass(kind)].rank


def is_visible(kind: str, audience: Audience) -> bool:
    """Return True if tickets of ``kind`` may be shown to ``audience``."""
    return audience in PRIORITY_CLASSES[PriorityClass(kind)].visible_to


def rank_expression(column: ColumnElement[str]) -> ColumnElement[int]:
    """Build a SQL expression that maps a class column to its rank."""
    return case(
        {kind.value: info.rank for kind, info in PRIORITY_CLASSES.items()},
        value=column,
        else_=max(info.rank for info in PRIORITY_CLASSES.values()) + 1,
    )
