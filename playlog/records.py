from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Mapping

from .dates import parse_local_date
from .statuses import GameStatus, validate_status


@dataclass(frozen=True)
class SessionRecord:
    """One logged play session as handed to the derivation engine.

    ``date`` and ``hours`` are kept raw so that malformed rows reach the
    extractor and can be dropped there with a warning.
    """

    date: Any
    hours: Any
    note: str | None = None
    id: Any = None


@dataclass(frozen=True)
class GameRecord:
    id: Any
    name: str
    status: GameStatus = GameStatus.NOT_STARTED
    price: float = 0.0
    rating: int = 0
    genre: str | None = None
    platform: str | None = None
    purchase_date: date | None = None
    start_date: date | None = None
    end_date: date | None = None
    baseline_hours: float = 0.0
    sessions: tuple[SessionRecord, ...] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "GameRecord":
        sessions = tuple(
            SessionRecord(
                date=entry.get("date"),
                hours=entry.get("hours"),
                note=entry.get("note"),
                id=entry.get("id"),
            )
            for entry in payload.get("sessions") or ()
        )
        return cls(
            id=payload.get("id"),
            name=str(payload.get("name") or "Untitled"),
            status=validate_status(payload.get("status")),
            price=_coerce_float(payload.get("price")),
            rating=int(_coerce_float(payload.get("rating"))),
            genre=payload.get("genre") or None,
            platform=payload.get("platform") or None,
            purchase_date=parse_local_date(payload.get("purchase_date")),
            start_date=parse_local_date(payload.get("start_date")),
            end_date=parse_local_date(payload.get("end_date")),
            baseline_hours=_coerce_float(payload.get("baseline_hours")),
            sessions=sessions,
        )


def _coerce_float(value: Any) -> float:
    try:
        number = float(value or 0)
    except (TypeError, ValueError):
        return 0.0
    return number if number >= 0 else 0.0
