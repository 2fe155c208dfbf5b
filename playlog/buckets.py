from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Any, Iterable, List

from .dates import (
    add_months,
    month_end,
    month_key,
    month_start,
    parse_local_date,
    quarter_end,
    quarter_start,
    shift_days,
    week_start,
)
from .records import GameRecord
from .sessions import SessionEvent, sessions_between
from .statuses import is_owned


class Granularity(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"

    @classmethod
    def parse(cls, value: "str | Granularity | None") -> "Granularity":
        if isinstance(value, Granularity):
            return value
        normalized = (value or "month").strip().lower()
        try:
            return cls(normalized)
        except ValueError:
            allowed = ", ".join(item.value for item in cls)
            raise ValueError(f"Granularity must be one of {allowed}") from None


@dataclass(frozen=True)
class PeriodWindow:
    start: date
    end: date


@dataclass(frozen=True)
class Bucket:
    period_key: str
    label: str
    start: date
    end: date
    total_hours: float
    session_count: int
    distinct_game_count: int
    dominant_game_id: Any = None
    dominant_game: str | None = None

    @property
    def average_session_hours(self) -> float:
        return self.total_hours / self.session_count if self.session_count else 0.0

    def to_dict(self) -> dict:
        return {
            "period_key": self.period_key,
            "label": self.label,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "total_hours": self.total_hours,
            "session_count": self.session_count,
            "distinct_game_count": self.distinct_game_count,
            "dominant_game_id": self.dominant_game_id,
            "dominant_game": self.dominant_game,
        }


def period_window(day: date, granularity: Granularity) -> PeriodWindow:
    if granularity is Granularity.DAY:
        return PeriodWindow(start=day, end=day)
    if granularity is Granularity.WEEK:
        # Saturday closes the week; both ends are pinned at the calendar edges
        saturday = shift_days(day, 6 - (day.weekday() + 1) % 7)
        return PeriodWindow(start=week_start(day), end=saturday)
    if granularity is Granularity.MONTH:
        return PeriodWindow(start=month_start(day), end=month_end(day))
    if granularity is Granularity.QUARTER:
        return PeriodWindow(start=quarter_start(day), end=quarter_end(day))
    if granularity is Granularity.YEAR:
        return PeriodWindow(start=date(day.year, 1, 1), end=date(day.year, 12, 31))
    raise ValueError(f"Unsupported granularity: {granularity}")


def period_key(window: PeriodWindow, granularity: Granularity) -> str:
    start = window.start
    if granularity is Granularity.DAY:
        return start.isoformat()
    if granularity is Granularity.WEEK:
        # %U counts Sunday-started weeks, matching week_start()
        return f"{start.year:04d}-W{start.strftime('%U')}"
    if granularity is Granularity.MONTH:
        return month_key(start)
    if granularity is Granularity.QUARTER:
        return f"{start.year:04d}-Q{(start.month - 1) // 3 + 1}"
    return f"{start.year:04d}"


def _format_period_label(window: PeriodWindow, granularity: Granularity) -> str:
    if granularity is Granularity.MONTH:
        return window.start.strftime("%b %Y")
    if granularity is Granularity.WEEK:
        return f"Week of {window.start.strftime('%b %d, %Y')}"
    if granularity is Granularity.DAY:
        return window.start.strftime("%b %d")
    if granularity is Granularity.QUARTER:
        return f"Q{(window.start.month - 1) // 3 + 1} {window.start.year}"
    return str(window.start.year)


def _next_period_start(window: PeriodWindow) -> date | None:
    if window.end >= date.max:
        return None
    return window.end + timedelta(days=1)


def iter_windows(start: date, end: date, granularity: Granularity) -> Iterable[PeriodWindow]:
    """Yield contiguous windows from the one containing ``start`` through ``end``."""

    if end < start:
        return
    window = period_window(start, granularity)
    while window.start <= end:
        yield window
        following = _next_period_start(window)
        if following is None:
            return
        window = period_window(following, granularity)


def bucket_by(
    events: Iterable[SessionEvent],
    granularity: Granularity | str = Granularity.MONTH,
    start: date | None = None,
    end: date | None = None,
) -> List[Bucket]:
    """Group session events into contiguous calendar buckets.

    Every period between ``start`` and ``end`` (defaulting to the span of the
    data) gets a bucket, including periods with no sessions. Each bucket
    counts every session in its whole period, so a range that starts or ends
    mid-period still reports complete edge buckets. The dominant game is the
    one with the most hours. Ties go to the game that appeared first in the
    bucket.
    """

    granularity = Granularity.parse(granularity)
    events = list(events)

    if start is None or end is None:
        in_range = sessions_between(events, start, end)
        if not in_range:
            if start is None and end is None:
                return []
            anchor = start or end
            start, end = start or anchor, end or anchor
        else:
            start = start or min(event.date for event in in_range)
            end = end or max(event.date for event in in_range)

    selected = sessions_between(
        events,
        period_window(start, granularity).start,
        period_window(end, granularity).end,
    )

    entries: dict[date, dict[str, Any]] = {}
    for event in selected:
        window = period_window(event.date, granularity)
        entry = entries.setdefault(
            window.start,
            {
                "hours": 0.0,
                "sessions": 0,
                "game_hours": defaultdict(float),
                "first_seen": {},
                "names": {},
            },
        )
        entry["hours"] += event.hours
        entry["sessions"] += 1
        entry["game_hours"][event.game_id] += event.hours
        entry["first_seen"].setdefault(event.game_id, len(entry["first_seen"]))
        entry["names"].setdefault(event.game_id, event.game_name)

    buckets: list[Bucket] = []
    for window in iter_windows(start, end, granularity):
        entry = entries.get(window.start)
        key = period_key(window, granularity)
        label = _format_period_label(window, granularity)
        if entry is None:
            buckets.append(
                Bucket(
                    period_key=key,
                    label=label,
                    start=window.start,
                    end=window.end,
                    total_hours=0.0,
                    session_count=0,
                    distinct_game_count=0,
                )
            )
            continue

        game_hours = entry["game_hours"]
        dominant_id = min(
            game_hours,
            key=lambda game_id: (-game_hours[game_id], entry["first_seen"][game_id]),
        )
        buckets.append(
            Bucket(
                period_key=key,
                label=label,
                start=window.start,
                end=window.end,
                total_hours=entry["hours"],
                session_count=entry["sessions"],
                distinct_game_count=len(game_hours),
                dominant_game_id=dominant_id,
                dominant_game=entry["names"][dominant_id],
            )
        )
    return buckets


def bucket_series(buckets: Iterable[Bucket], field: str = "total_hours") -> list[tuple[str, float]]:
    return [(bucket.period_key, float(getattr(bucket, field))) for bucket in buckets]


def monthly_spending(
    games: Iterable[GameRecord],
    start: date | None = None,
    end: date | None = None,
) -> list[tuple[str, float]]:
    """Owned games' prices summed per purchase month, as a contiguous series."""

    totals: dict[str, float] = defaultdict(float)
    purchase_dates: list[date] = []
    for game in games:
        if not is_owned(game.status):
            continue
        purchased = parse_local_date(game.purchase_date)
        if purchased is None:
            continue
        if (start and purchased < start) or (end and purchased > end):
            continue
        totals[month_key(purchased)] += float(game.price or 0.0)
        purchase_dates.append(purchased)

    if start is None or end is None:
        if not purchase_dates:
            if start is None and end is None:
                return []
            start = start or end
            end = end or start
        else:
            start = start or min(purchase_dates)
            end = end or max(purchase_dates)

    series: list[tuple[str, float]] = []
    cursor = month_start(start)
    while cursor <= end:
        key = month_key(cursor)
        series.append((key, totals.get(key, 0.0)))
        following = add_months(cursor, 1)
        if following <= cursor:
            break
        cursor = following
    return series


@dataclass(frozen=True)
class RangeStats:
    start: date
    end: date
    total_hours: float
    session_count: int
    unique_games: int
    most_played_game: str | None
    most_played_hours: float
    average_session_hours: float

    def to_dict(self) -> dict:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "total_hours": self.total_hours,
            "session_count": self.session_count,
            "unique_games": self.unique_games,
            "most_played": (
                {"game": self.most_played_game, "hours": self.most_played_hours}
                if self.most_played_game
                else None
            ),
            "average_session_hours": self.average_session_hours,
        }


def summarize_range(events: Iterable[SessionEvent], start: date, end: date) -> RangeStats:
    selected = sessions_between(events, start, end)
    game_hours: dict[Any, float] = defaultdict(float)
    names: dict[Any, str] = {}
    for event in selected:
        game_hours[event.game_id] += event.hours
        names.setdefault(event.game_id, event.game_name)

    total = sum(event.hours for event in selected)
    most_played_game: str | None = None
    most_played_hours = 0.0
    if game_hours:
        # max() keeps the first maximum, i.e. the earliest-played game on ties
        most_played_id = max(game_hours, key=lambda game_id: game_hours[game_id])
        most_played_game = names[most_played_id]
        most_played_hours = game_hours[most_played_id]

    return RangeStats(
        start=start,
        end=end,
        total_hours=total,
        session_count=len(selected),
        unique_games=len(game_hours),
        most_played_game=most_played_game,
        most_played_hours=most_played_hours,
        average_session_hours=total / len(selected) if selected else 0.0,
    )
