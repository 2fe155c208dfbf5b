from __future__ import annotations

import logging
from datetime import date, datetime
from math import ceil, floor
from statistics import fmean, median
from typing import Any, Dict, List

from flask import current_app

from .buckets import Granularity, bucket_by, bucket_series, summarize_range
from .dates import add_months, month_start, parse_local_date, shift_days
from .metrics import money_stats
from .models import Game
from .recap import lifetime_stats, on_this_day, week_in_review, year_in_review
from .records import GameRecord
from .scoring import (
    classify_genre_rut,
    classify_personality,
    classify_rotation,
    classify_session_style,
)
from .sessions import extract_sessions
from .statuses import is_backlog
from .streaks import compute_streak, days_since_last_session, find_droughts, longest_streak
from .thresholds import Thresholds
from .trends import (
    find_swings,
    forecast_annual_spend,
    forecast_backlog_clearance,
    spending_trend,
    summarize_trend,
)

logger = logging.getLogger(__name__)


def _generated_at() -> str:
    return datetime.utcnow().isoformat() + "Z"


def load_game_records() -> List[GameRecord]:
    """Snapshot every stored game as immutable records for the engine."""

    records: list[GameRecord] = []
    for game in Game.query.order_by(Game.id.asc()).all():
        try:
            records.append(game.to_record())
        except ValueError as exc:
            logger.warning("Skipping game %s (%r): %s", game.id, game.name, exc)
    return records


def current_thresholds() -> Thresholds:
    return Thresholds.from_mapping(current_app.config.get("PLAYLOG_THRESHOLDS"))


def summarize_activity_calendar(
    *,
    granularity: str = "month",
    start_date: date | None = None,
    end_date: date | None = None,
) -> Dict[str, Any]:
    resolved = Granularity.parse(granularity)
    if start_date and end_date and end_date < start_date:
        raise ValueError("end must not be before start")

    events = extract_sessions(load_game_records())
    buckets = bucket_by(events, resolved, start_date, end_date)

    response: Dict[str, Any] = {
        "generated_at": _generated_at(),
        "granularity": resolved.value,
        "buckets": [bucket.to_dict() for bucket in buckets],
        "callouts": find_swings(buckets),
    }
    if buckets:
        response["range"] = {
            "start": buckets[0].start.isoformat(),
            "end": buckets[-1].end.isoformat(),
        }
        response["totals"] = summarize_range(events, buckets[0].start, buckets[-1].end).to_dict()
    return response


def summarize_streaks(
    *, as_of: date | None = None, threshold_days: int | None = None
) -> Dict[str, Any]:
    as_of = as_of or date.today()
    if threshold_days is None:
        threshold_days = int(current_app.config.get("PLAYLOG_DROUGHT_DAYS", 3))
    if threshold_days < 1:
        raise ValueError("threshold must be at least 1 day")

    events = extract_sessions(load_game_records())
    droughts = find_droughts(events, threshold_days)
    longest_drought = max(droughts, key=lambda drought: drought.length_in_days, default=None)

    return {
        "generated_at": _generated_at(),
        "as_of": as_of.isoformat(),
        "streak": compute_streak(events, as_of).to_dict(),
        "longest_streak": longest_streak(events),
        "days_since_last_session": days_since_last_session(events, as_of),
        "threshold_days": threshold_days,
        "droughts": [drought.to_dict() for drought in droughts],
        "longest_drought": longest_drought.to_dict() if longest_drought else None,
    }


def summarize_trends(*, as_of: date | None = None, months: int = 12) -> Dict[str, Any]:
    as_of = as_of or date.today()
    if months < 2:
        raise ValueError("months must be at least 2")

    thresholds = current_thresholds()
    games = load_game_records()
    start = month_start(add_months(as_of, -(months - 1)))
    events = [event for event in extract_sessions(games) if event.date <= as_of]
    buckets = bucket_by(events, Granularity.MONTH, start, as_of)

    return {
        "generated_at": _generated_at(),
        "as_of": as_of.isoformat(),
        "hours": {
            "series": [
                {"month": key, "hours": hours} for key, hours in bucket_series(buckets)
            ],
            **summarize_trend(bucket_series(buckets), thresholds.trend_tolerance).to_dict(),
        },
        "sessions": summarize_trend(
            bucket_series(buckets, "session_count"), thresholds.trend_tolerance
        ).to_dict(),
        "spending": spending_trend(games, as_of, months, thresholds),
        "callouts": find_swings(buckets),
    }


def summarize_forecast(
    *, as_of: date | None = None, window_months: int | None = None
) -> Dict[str, Any]:
    as_of = as_of or date.today()
    thresholds = current_thresholds()
    window = thresholds.forecast_window_months if window_months is None else window_months
    if window < 1:
        raise ValueError("window must be at least 1 month")

    games = load_game_records()
    return {
        "generated_at": _generated_at(),
        "as_of": as_of.isoformat(),
        "window_months": window,
        "backlog": forecast_backlog_clearance(games, as_of, window).to_dict(),
        "spending": forecast_annual_spend(games, as_of).to_dict(),
    }


def summarize_classifications(*, as_of: date | None = None) -> Dict[str, Any]:
    as_of = as_of or date.today()
    thresholds = current_thresholds()
    games = load_game_records()
    events = [event for event in extract_sessions(games) if event.date <= as_of]

    return {
        "generated_at": _generated_at(),
        "as_of": as_of.isoformat(),
        "session_style": classify_session_style(events, thresholds=thresholds).to_dict(),
        "rotation": classify_rotation(games, as_of, thresholds=thresholds).to_dict(),
        "personality": classify_personality(games, thresholds=thresholds).to_dict(),
        "genre_rut": classify_genre_rut(games, as_of, thresholds=thresholds).to_dict(),
    }


def summarize_year_in_review(year: int) -> Dict[str, Any]:
    if not 1 <= year <= 9999:
        raise ValueError("year is out of range")
    review = year_in_review(load_game_records(), year)
    return {"generated_at": _generated_at(), **review.to_dict()}


def summarize_on_this_day(*, as_of: date | None = None) -> Dict[str, Any]:
    as_of = as_of or date.today()
    events = extract_sessions(load_game_records())
    return {
        "generated_at": _generated_at(),
        "as_of": as_of.isoformat(),
        "sessions": on_this_day(events, as_of),
    }


def summarize_week_in_review(*, week_of: date | None = None) -> Dict[str, Any]:
    """Recap one week. Defaults to the week before the current one."""

    week_of = week_of or shift_days(date.today(), -7)
    games = load_game_records()
    review = week_in_review(
        extract_sessions(games), games, week_of, thresholds=current_thresholds()
    )
    return {"generated_at": _generated_at(), "week_of": week_of.isoformat(), **review.to_dict()}


def summarize_money(*, as_of: date | None = None) -> Dict[str, Any]:
    as_of = as_of or date.today()
    stats = money_stats(load_game_records(), as_of, thresholds=current_thresholds())
    return {"generated_at": _generated_at(), "as_of": as_of.isoformat(), **stats.to_dict()}


def summarize_lifetime(*, as_of: date | None = None) -> Dict[str, Any]:
    as_of = as_of or date.today()
    stats = lifetime_stats(load_game_records(), as_of)
    return {"generated_at": _generated_at(), "as_of": as_of.isoformat(), **stats.to_dict()}


def _percentile(sorted_values: list[float], percentile: float) -> float | None:
    if not sorted_values:
        return None
    if percentile <= 0:
        return float(sorted_values[0])
    if percentile >= 1:
        return float(sorted_values[-1])

    index = (len(sorted_values) - 1) * percentile
    lower = floor(index)
    upper = ceil(index)
    lower_value = float(sorted_values[lower])
    upper_value = float(sorted_values[upper])
    if lower == upper:
        return lower_value
    fraction = index - lower
    return lower_value + (upper_value - lower_value) * fraction


def _describe_durations(values: list[int]) -> dict[str, Any]:
    if not values:
        return {
            "count": 0,
            "min": None,
            "max": None,
            "mean": None,
            "median": None,
            "percentiles": {"p10": None, "p25": None, "p75": None, "p90": None},
        }

    sorted_values = sorted(values)
    return {
        "count": len(sorted_values),
        "min": float(sorted_values[0]),
        "max": float(sorted_values[-1]),
        "mean": float(fmean(sorted_values)),
        "median": float(median(sorted_values)),
        "percentiles": {
            "p10": _percentile(sorted_values, 0.10),
            "p25": _percentile(sorted_values, 0.25),
            "p75": _percentile(sorted_values, 0.75),
            "p90": _percentile(sorted_values, 0.90),
        },
    }


def summarize_lifecycle_metrics(
    *, today: date | None = None, backlog_limit: int = 8
) -> Dict[str, Any]:
    """Purchase-to-start and start-to-finish timing for backlog decisions.

    Pairs whose later date precedes the earlier one are skipped rather than
    reported as negative durations.
    """

    reference_date = today or date.today()
    purchase_to_start: list[dict[str, Any]] = []
    start_to_finish: list[dict[str, Any]] = []
    backlog_waiting: list[dict[str, Any]] = []

    def _sample(game: GameRecord, first: date, second: date) -> dict[str, Any] | None:
        delta = (second - first).days
        if delta < 0:
            logger.warning("Game %s (%r) has dates out of order", game.id, game.name)
            return None
        return {"game_id": game.id, "name": game.name, "days": delta}

    for game in load_game_records():
        purchase_date = parse_local_date(game.purchase_date)
        start_date = parse_local_date(game.start_date)
        end_date = parse_local_date(game.end_date)

        if purchase_date and start_date:
            sample = _sample(game, purchase_date, start_date)
            if sample:
                purchase_to_start.append(sample)
        if start_date and end_date:
            sample = _sample(game, start_date, end_date)
            if sample:
                start_to_finish.append(sample)

        if is_backlog(game.status) and not start_date and not game.sessions and purchase_date:
            backlog_waiting.append(
                {
                    "game_id": game.id,
                    "name": game.name,
                    "days_waiting": max(0, (reference_date - purchase_date).days),
                    "purchase_date": purchase_date.isoformat(),
                }
            )

    def _summarize(samples: list[dict[str, Any]]) -> dict[str, Any]:
        return {
            "statistics": _describe_durations([sample["days"] for sample in samples]),
            "longest_examples": sorted(samples, key=lambda entry: entry["days"], reverse=True)[:5],
        }

    backlog_waiting.sort(key=lambda entry: entry["days_waiting"], reverse=True)

    return {
        "generated_at": _generated_at(),
        "purchase_to_start": _summarize(purchase_to_start),
        "start_to_finish": _summarize(start_to_finish),
        "aging_backlog": backlog_waiting[: max(0, int(backlog_limit))],
    }
