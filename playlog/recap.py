from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from enum import Enum
from statistics import fmean
from typing import Any, Iterable, List

from .buckets import Bucket, Granularity, bucket_by, monthly_spending, period_window
from .dates import days_between, month_key, parse_local_date, shift_days
from .records import GameRecord
from .sessions import SessionEvent, extract_sessions, sessions_between, total_hours
from .statuses import GameStatus, is_owned
from .thresholds import DEFAULT_THRESHOLDS, Thresholds
from .trends import TrendDirection

# Lifetime hour marks reported when a week crosses them, highest first.
MILESTONE_HOURS = (100, 50)


@dataclass(frozen=True)
class YearInReview:
    year: int
    games_acquired: int
    games_completed: int
    total_spent: float
    total_hours: float
    total_sessions: int
    average_cost_per_hour: float | None
    top_game: dict | None
    top_genre: dict | None
    busiest_month: dict | None
    biggest_spending_month: dict | None
    longest_session: dict | None
    new_genres_tried: int

    def to_dict(self) -> dict:
        return {
            "year": self.year,
            "games_acquired": self.games_acquired,
            "games_completed": self.games_completed,
            "total_spent": round(self.total_spent, 2),
            "total_hours": self.total_hours,
            "total_sessions": self.total_sessions,
            "average_cost_per_hour": (
                round(self.average_cost_per_hour, 2)
                if self.average_cost_per_hour is not None
                else None
            ),
            "top_game": self.top_game,
            "top_genre": self.top_genre,
            "busiest_month": self.busiest_month,
            "biggest_spending_month": self.biggest_spending_month,
            "longest_session": self.longest_session,
            "new_genres_tried": self.new_genres_tried,
        }


def _top_entry(totals: dict[Any, float], key: str) -> dict | None:
    if not totals:
        return None
    name = max(totals, key=lambda item: totals[item])
    return {key: name, "hours": totals[name]}


def year_in_review(games: Iterable[GameRecord], year: int) -> YearInReview:
    """Recap one calendar year of purchases, completions and sessions."""

    games = list(games)
    owned = [game for game in games if is_owned(game.status)]
    acquired = [
        game
        for game in owned
        if (parse_local_date(game.purchase_date) or date.min).year == year
    ]
    completed = [
        game
        for game in owned
        if game.status is GameStatus.COMPLETED
        and (parse_local_date(game.end_date) or date.min).year == year
    ]
    total_spent = sum(float(game.price or 0.0) for game in acquired)

    events = [event for event in extract_sessions(games) if event.date.year == year]
    # keyed by id so that same-named games stay separate
    hours_by_game: dict[Any, float] = defaultdict(float)
    game_names: dict[Any, str] = {}
    hours_by_genre: dict[str, float] = defaultdict(float)
    hours_by_month: dict[str, float] = defaultdict(float)
    longest: SessionEvent | None = None
    for event in events:
        hours_by_game[event.game_id] += event.hours
        game_names.setdefault(event.game_id, event.game_name)
        if event.genre:
            hours_by_genre[event.genre] += event.hours
        hours_by_month[month_key(event.date)] += event.hours
        if longest is None or event.hours > longest.hours:
            longest = event

    total_hours = sum(event.hours for event in events)

    spending = [
        (month, amount)
        for month, amount in monthly_spending(games, date(year, 1, 1), date(year, 12, 31))
        if amount > 0
    ]
    biggest_spending = None
    if spending:
        month, amount = max(spending, key=lambda item: item[1])
        biggest_spending = {"month": month, "amount": amount}

    busiest = _top_entry(hours_by_month, "month")
    top_game = _top_entry(hours_by_game, "game")
    if top_game:
        top_game["game"] = game_names[top_game["game"]]

    earlier_genres = {
        game.genre
        for game in owned
        if game.genre and (parse_local_date(game.purchase_date) or date.max).year < year
    }
    new_genres = {game.genre for game in acquired if game.genre} - earlier_genres

    return YearInReview(
        year=year,
        games_acquired=len(acquired),
        games_completed=len(completed),
        total_spent=total_spent,
        total_hours=total_hours,
        total_sessions=len(events),
        average_cost_per_hour=total_spent / total_hours if total_hours > 0 else None,
        top_game=top_game,
        top_genre=_top_entry(hours_by_genre, "genre"),
        busiest_month=busiest,
        biggest_spending_month=biggest_spending,
        longest_session=(
            {
                "game": longest.game_name,
                "hours": longest.hours,
                "date": longest.date.isoformat(),
            }
            if longest
            else None
        ),
        new_genres_tried=len(new_genres),
    )


def on_this_day(events: Iterable[SessionEvent], today: date | None = None) -> List[dict[str, Any]]:
    """Sessions logged on today's month and day in earlier years, newest first."""

    today = today or date.today()
    matches = [
        event
        for event in events
        if event.date.year < today.year
        and (event.date.month, event.date.day) == (today.month, today.day)
    ]
    matches.sort(key=lambda event: event.date, reverse=True)
    return [
        {**event.to_dict(), "years_ago": today.year - event.date.year}
        for event in matches
    ]


@dataclass(frozen=True)
class LifetimeStats:
    total_games: int
    total_hours: float
    total_spent: float
    first_purchase: date | None
    days_since_first_purchase: int

    @property
    def average_cost_per_hour(self) -> float | None:
        return self.total_spent / self.total_hours if self.total_hours > 0 else None

    @property
    def games_per_month(self) -> float | None:
        if self.days_since_first_purchase <= 0:
            return None
        return self.total_games / (self.days_since_first_purchase / 30)

    @property
    def hours_per_week(self) -> float | None:
        if self.days_since_first_purchase <= 0:
            return None
        return self.total_hours / (self.days_since_first_purchase / 7)

    def to_dict(self) -> dict:
        average = self.average_cost_per_hour
        games_per_month = self.games_per_month
        hours_per_week = self.hours_per_week
        return {
            "total_games": self.total_games,
            "total_hours": self.total_hours,
            "equivalent_days": round(self.total_hours / 24, 1),
            "equivalent_weeks": round(self.total_hours / 168, 1),
            "movies_equivalent": int(self.total_hours // 2),
            "books_equivalent": int(self.total_hours // 8),
            "total_spent": round(self.total_spent, 2),
            "average_cost_per_hour": round(average, 2) if average is not None else None,
            "first_purchase": self.first_purchase.isoformat() if self.first_purchase else None,
            "days_since_first_purchase": self.days_since_first_purchase,
            "games_per_month": (
                round(games_per_month, 2) if games_per_month is not None else None
            ),
            "hours_per_week": round(hours_per_week, 1) if hours_per_week is not None else None,
        }


def lifetime_stats(games: Iterable[GameRecord], today: date | None = None) -> LifetimeStats:
    """All-time totals for the owned library, paced from the first purchase."""

    today = today or date.today()
    owned = [game for game in games if is_owned(game.status)]
    purchases = [
        purchased
        for purchased in (parse_local_date(game.purchase_date) for game in owned)
        if purchased and purchased <= today
    ]
    first_purchase = min(purchases, default=None)
    return LifetimeStats(
        total_games=len(owned),
        total_hours=sum(total_hours(game) for game in owned),
        total_spent=sum(float(game.price or 0.0) for game in owned),
        first_purchase=first_purchase,
        days_since_first_purchase=days_between(first_purchase, today) if first_purchase else 0,
    )


class WeekStyle(str, Enum):
    MONOGAMOUS = "Monogamous"
    DABBLER = "Dabbler"
    VARIETY_SEEKER = "Variety Seeker"
    JUGGLER = "Juggler"
    RESTING = "Resting"


def _week_style(game_count: int) -> WeekStyle:
    if game_count == 0:
        return WeekStyle.RESTING
    if game_count == 1:
        return WeekStyle.MONOGAMOUS
    if game_count <= 3:
        return WeekStyle.DABBLER
    if game_count <= 5:
        return WeekStyle.VARIETY_SEEKER
    return WeekStyle.JUGGLER


@dataclass(frozen=True)
class WeekInReview:
    """One Sunday-to-Saturday week compared with the weeks before it."""

    week: Bucket
    days: tuple[Bucket, ...]
    games: tuple[dict, ...]
    style: WeekStyle
    session_mix: dict
    weekday_hours: float
    weekend_hours: float
    favorite_genre: str | None
    longest_session: dict | None
    current_streak: int
    longest_streak: int
    completed_games: tuple[str, ...]
    new_games: tuple[str, ...]
    milestones: tuple[dict, ...]
    vs_last_week: dict | None
    vs_average: dict | None
    lean_share: float = DEFAULT_THRESHOLDS.week_lean_share

    @property
    def days_active(self) -> int:
        return sum(1 for day in self.days if day.session_count)

    @property
    def perfect_week(self) -> bool:
        return bool(self.days) and self.days_active == len(self.days)

    @property
    def focus_score(self) -> int:
        return self.games[0]["share"] if self.games else 0

    def to_dict(self) -> dict:
        total = self.week.total_hours
        busiest = max(self.days, key=lambda day: day.total_hours, default=None)
        return {
            "week": self.week.to_dict(),
            "days": [
                {
                    "date": day.start.isoformat(),
                    "weekday": day.start.strftime("%A"),
                    "hours": day.total_hours,
                    "sessions": day.session_count,
                }
                for day in self.days
            ],
            "days_active": self.days_active,
            "rest_days": [day.start.strftime("%A") for day in self.days if not day.session_count],
            "busiest_day": (
                {"date": busiest.start.isoformat(), "hours": busiest.total_hours}
                if busiest is not None and busiest.total_hours > 0
                else None
            ),
            "perfect_week": self.perfect_week,
            "games": list(self.games),
            "top_game": self.games[0] if self.games else None,
            "style": self.style.value,
            "focus_score": self.focus_score,
            "average_session_hours": self.week.average_session_hours,
            "session_mix": dict(self.session_mix),
            "weekday_hours": self.weekday_hours,
            "weekend_hours": self.weekend_hours,
            "weekend_warrior": total > 0 and self.weekend_hours / total >= self.lean_share,
            "weekday_grind": total > 0 and self.weekday_hours / total >= self.lean_share,
            "favorite_genre": self.favorite_genre,
            "longest_session": self.longest_session,
            "current_streak": self.current_streak,
            "longest_streak": self.longest_streak,
            "completed_games": list(self.completed_games),
            "new_games": list(self.new_games),
            "milestones": list(self.milestones),
            "vs_last_week": self.vs_last_week,
            "vs_average": self.vs_average,
        }


def _week_direction(difference: float, tolerance: float) -> TrendDirection:
    if abs(difference) < tolerance:
        return TrendDirection.STABLE
    return TrendDirection.INCREASING if difference > 0 else TrendDirection.DECREASING


def _day_runs(days: Iterable[Bucket]) -> list[int]:
    runs = [0]
    for day in days:
        if day.session_count:
            runs[-1] += 1
        else:
            runs.append(0)
    return runs


def week_in_review(
    events: Iterable[SessionEvent],
    games: Iterable[GameRecord],
    week_of: date,
    *,
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
) -> WeekInReview:
    """Recap the week containing ``week_of``.

    The week and the ``week_average_weeks`` weeks before it come from one
    weekly bucketing, so its totals match the activity calendar. Comparisons
    are ``None`` when no earlier week exists.
    """

    events = list(events)
    games = list(games)
    window = period_window(week_of, Granularity.WEEK)
    history_start = shift_days(window.start, -7 * thresholds.week_average_weeks)
    weeks = bucket_by(events, Granularity.WEEK, history_start, window.end)
    current, earlier = weeks[-1], weeks[:-1]

    week_events = sessions_between(events, window.start, window.end)
    days = bucket_by(week_events, Granularity.DAY, window.start, window.end)

    per_game: dict[Any, dict[str, Any]] = {}
    by_genre: dict[str, float] = defaultdict(float)
    session_mix = {"marathon": 0, "power": 0, "quick": 0}
    weekday_hours = weekend_hours = 0.0
    longest: SessionEvent | None = None
    for event in week_events:
        entry = per_game.setdefault(
            event.game_id, {"game": event.game_name, "hours": 0.0, "sessions": 0, "days": set()}
        )
        entry["hours"] += event.hours
        entry["sessions"] += 1
        entry["days"].add(event.date)
        if event.genre:
            by_genre[event.genre] += event.hours
        if event.hours >= thresholds.marathon_session_hours:
            session_mix["marathon"] += 1
        elif event.hours >= thresholds.snack_session_hours:
            session_mix["power"] += 1
        else:
            session_mix["quick"] += 1
        if event.date.weekday() >= 5:
            weekend_hours += event.hours
        else:
            weekday_hours += event.hours
        if longest is None or event.hours > longest.hours:
            longest = event

    total = current.total_hours
    ranked = sorted(per_game.items(), key=lambda item: -item[1]["hours"])
    played = tuple(
        {
            "game_id": game_id,
            "game": entry["game"],
            "hours": entry["hours"],
            "sessions": entry["sessions"],
            "days_played": len(entry["days"]),
            "share": round(entry["hours"] / total * 100) if total > 0 else 0,
        }
        for game_id, entry in ranked
    )

    first_played: dict[Any, date] = {}
    for event in events:
        first_played.setdefault(event.game_id, event.date)
    new_games = tuple(
        entry["game"]
        for game_id, entry in ranked
        if window.start <= first_played[game_id] <= window.end
    )

    completed = tuple(
        sorted(
            game.name
            for game in games
            if game.status is GameStatus.COMPLETED
            and window.start <= (parse_local_date(game.end_date) or date.min) <= window.end
        )
    )

    milestones: list[dict[str, Any]] = []
    for game in games:
        entry = per_game.get(game.id)
        if entry is None:
            continue
        later = sum(
            event.hours for event in events if event.game_id == game.id and event.date > window.end
        )
        after = total_hours(game) - later
        before = after - entry["hours"]
        for mark in MILESTONE_HOURS:
            if before < mark <= after:
                milestones.append({"game": game.name, "hours": mark})
                break

    vs_last_week = None
    vs_average = None
    if earlier:
        previous = earlier[-1]
        hours_diff = total - previous.total_hours
        vs_last_week = {
            "hours_diff": hours_diff,
            "sessions_diff": current.session_count - previous.session_count,
            "games_diff": current.distinct_game_count - previous.distinct_game_count,
            "direction": _week_direction(
                hours_diff, thresholds.week_trend_tolerance_hours
            ).value,
        }
        average = fmean(week.total_hours for week in earlier)
        vs_average = {
            "average_hours": average,
            "hours_diff": total - average,
            "percent_diff": round((total - average) / average * 100) if average > 0 else None,
        }

    runs = _day_runs(days)
    return WeekInReview(
        week=current,
        days=tuple(days),
        games=played,
        style=_week_style(len(played)),
        session_mix=session_mix,
        weekday_hours=weekday_hours,
        weekend_hours=weekend_hours,
        favorite_genre=max(by_genre, key=lambda genre: by_genre[genre]) if by_genre else None,
        longest_session=(
            {"game": longest.game_name, "hours": longest.hours, "date": longest.date.isoformat()}
            if longest
            else None
        ),
        current_streak=runs[-1],
        longest_streak=max(runs),
        completed_games=completed,
        new_games=new_games,
        milestones=tuple(milestones),
        vs_last_week=vs_last_week,
        vs_average=vs_average,
        lean_share=thresholds.week_lean_share,
    )
