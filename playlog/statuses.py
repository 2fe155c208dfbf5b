from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable


class GameStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    WISHLIST = "wishlist"
    ABANDONED = "abandoned"


@dataclass(frozen=True)
class StatusDefinition:
    status: GameStatus
    label: str
    owned: bool
    backlog: bool
    aliases: tuple[str, ...] = ()


_STATUS_DEFINITIONS: tuple[StatusDefinition, ...] = (
    StatusDefinition(
        status=GameStatus.NOT_STARTED,
        label="Not Started",
        owned=True,
        backlog=True,
        aliases=("backlog", "unplayed"),
    ),
    StatusDefinition(
        status=GameStatus.IN_PROGRESS,
        label="In Progress",
        owned=True,
        backlog=True,
        aliases=("playing",),
    ),
    StatusDefinition(
        status=GameStatus.COMPLETED,
        label="Completed",
        owned=True,
        backlog=False,
        aliases=("finished", "done"),
    ),
    StatusDefinition(
        status=GameStatus.WISHLIST,
        label="Wishlist",
        owned=False,
        backlog=False,
    ),
    StatusDefinition(
        status=GameStatus.ABANDONED,
        label="Abandoned",
        owned=True,
        backlog=False,
        aliases=("dropped",),
    ),
)

STATUS_BY_VALUE: Dict[GameStatus, StatusDefinition] = {
    definition.status: definition for definition in _STATUS_DEFINITIONS
}

_STATUS_LOOKUP: Dict[str, GameStatus] = {}
for _definition in _STATUS_DEFINITIONS:
    _STATUS_LOOKUP[_definition.status.value] = _definition.status
    _STATUS_LOOKUP[_definition.label.lower()] = _definition.status
    for _alias in _definition.aliases:
        _STATUS_LOOKUP[_alias] = _definition.status

STATUS_VALUES: tuple[str, ...] = tuple(status.value for status in GameStatus)

OWNED_STATUSES: frozenset[GameStatus] = frozenset(
    definition.status for definition in _STATUS_DEFINITIONS if definition.owned
)

BACKLOG_STATUSES: frozenset[GameStatus] = frozenset(
    definition.status for definition in _STATUS_DEFINITIONS if definition.backlog
)

DEFAULT_STATUS = GameStatus.NOT_STARTED


def normalize_status_value(value: str | GameStatus | None) -> str:
    """Normalize a raw status string into a lookup key."""

    if value is None:
        return DEFAULT_STATUS.value
    if isinstance(value, GameStatus):
        return value.value
    normalized = value.strip().lower().replace("-", "_")
    return normalized or DEFAULT_STATUS.value


def validate_status(value: str | GameStatus | None) -> GameStatus:
    """Ensure the provided status maps to a supported value.

    Accepts canonical values (``"in_progress"``), display labels
    (``"In Progress"``) and a few legacy aliases such as ``"backlog"``.
    """

    normalized = normalize_status_value(value)
    status = _STATUS_LOOKUP.get(normalized) or _STATUS_LOOKUP.get(
        normalized.replace("_", " ")
    )
    if status is None:
        allowed = ", ".join(sorted(STATUS_VALUES))
        raise ValueError(f"Status must be one of {allowed}.")
    return status


def is_owned(status: GameStatus) -> bool:
    return status in OWNED_STATUSES


def is_backlog(status: GameStatus) -> bool:
    return status in BACKLOG_STATUSES


def status_label(status: GameStatus) -> str:
    return STATUS_BY_VALUE[status].label


def iter_status_definitions() -> Iterable[StatusDefinition]:
    return tuple(_STATUS_DEFINITIONS)
