from __future__ import annotations

import logging
import math
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterable, List

from .dates import parse_local_date
from .records import GameRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionEvent:
    """A validated session flattened out of its game."""

    date: date
    game_id: Any
    game_name: str
    hours: float
    genre: str | None = None
    note: str | None = None

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "game_id": self.game_id,
            "game": self.game_name,
            "genre": self.genre,
            "hours": self.hours,
            "note": self.note,
        }


def coerce_hours(value: Any) -> float | None:
    """Return ``value`` as finite non-negative hours, or ``None``."""

    if isinstance(value, bool):
        return None
    try:
        hours = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(hours) or hours < 0:
        return None
    return hours


def extract_sessions(games: Iterable[GameRecord]) -> List[SessionEvent]:
    """Flatten every game's sessions into one chronological sequence.

    The sort is stable, so sessions on the same day keep their game order and
    their order within the game. Sessions with unusable hours or dates are
    skipped with a warning.
    """

    events: list[SessionEvent] = []
    for game in games:
        for session in game.sessions or ():
            hours = coerce_hours(session.hours)
            if hours is None:
                logger.warning(
                    "Skipping session %s of %r: invalid hours %r",
                    session.id,
                    game.name,
                    session.hours,
                )
                continue

            session_date = parse_local_date(session.date)
            if session_date is None:
                logger.warning(
                    "Skipping session %s of %r: unparseable date %r",
                    session.id,
                    game.name,
                    session.date,
                )
                continue

            events.append(
                SessionEvent(
                    date=session_date,
                    game_id=game.id,
                    game_name=game.name,
                    hours=hours,
                    genre=game.genre,
                    note=session.note,
                )
            )

    events.sort(key=lambda event: event.date)
    return events


def total_hours(game: GameRecord) -> float:
    """Baseline hours plus every valid logged session."""

    baseline = coerce_hours(game.baseline_hours) or 0.0
    logged = 0.0
    for session in game.sessions or ():
        hours = coerce_hours(session.hours)
        if hours is not None and parse_local_date(session.date) is not None:
            logged += hours
    return baseline + logged


def hours_by_game(events: Iterable[SessionEvent]) -> Dict[Any, float]:
    totals: dict[Any, float] = defaultdict(float)
    for event in events:
        totals[event.game_id] += event.hours
    return dict(totals)


def sessions_between(
    events: Iterable[SessionEvent], start: date | None, end: date | None
) -> List[SessionEvent]:
    return [
        event
        for event in events
        if (start is None or event.date >= start) and (end is None or event.date <= end)
    ]
