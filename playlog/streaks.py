"""Streak and drought detection over distinct active days.

Everything here works on the set of calendar days with at least one valid
session. Several sessions on one day count once.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, List

from .dates import days_between
from .sessions import SessionEvent


@dataclass(frozen=True)
class Streak:
    current_length: int
    last_active_date: date | None

    def to_dict(self) -> dict:
        return {
            "current_length": self.current_length,
            "last_active_date": (
                self.last_active_date.isoformat() if self.last_active_date else None
            ),
        }


@dataclass(frozen=True)
class Drought:
    start: date
    end: date
    length_in_days: int

    def to_dict(self) -> dict:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "length_in_days": self.length_in_days,
        }


def active_dates(events: Iterable[SessionEvent]) -> List[date]:
    return sorted({event.date for event in events})


def compute_streak(events: Iterable[SessionEvent], as_of: date | None = None) -> Streak:
    """Consecutive active days ending at ``as_of``.

    When ``as_of`` has no session yet, the run ending the day before still
    counts. Activity dated after ``as_of`` is ignored.
    """

    as_of = as_of or date.today()
    days = [day for day in active_dates(events) if day <= as_of]
    if not days:
        return Streak(current_length=0, last_active_date=None)

    last_active = days[-1]
    if days_between(last_active, as_of) > 1:
        return Streak(current_length=0, last_active_date=last_active)

    length = 1
    for index in range(len(days) - 2, -1, -1):
        if days_between(days[index], days[index + 1]) != 1:
            break
        length += 1
    return Streak(current_length=length, last_active_date=last_active)


def current_streak(events: Iterable[SessionEvent], as_of: date | None = None) -> int:
    return compute_streak(events, as_of).current_length


def longest_streak(events: Iterable[SessionEvent]) -> int:
    days = active_dates(events)
    if not days:
        return 0

    longest = current = 1
    for previous, current_day in zip(days, days[1:]):
        if days_between(previous, current_day) == 1:
            current += 1
            longest = max(longest, current)
        else:
            current = 1
    return longest


def find_droughts(events: Iterable[SessionEvent], threshold_days: int) -> List[Drought]:
    """Inactive gaps between consecutive active days, oldest first.

    A gap between active days ``d1`` and ``d2`` lasts ``(d2 - d1) - 1`` days and
    is reported once it reaches ``threshold_days``.
    """

    threshold = max(1, int(threshold_days))
    days = active_dates(events)
    droughts: list[Drought] = []
    for previous, following in zip(days, days[1:]):
        gap = days_between(previous, following) - 1
        if gap >= threshold:
            droughts.append(
                Drought(
                    start=previous + timedelta(days=1),
                    end=following - timedelta(days=1),
                    length_in_days=gap,
                )
            )
    return droughts


def days_since_last_session(
    events: Iterable[SessionEvent], as_of: date | None = None
) -> int | None:
    as_of = as_of or date.today()
    days = [day for day in active_dates(events) if day <= as_of]
    if not days:
        return None
    return days_between(days[-1], as_of)
