from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date
from enum import Enum
from math import ceil
from statistics import fmean
from typing import Any, Dict, Iterable, List, Sequence

from .buckets import Bucket, monthly_spending
from .dates import add_months, month_start, parse_local_date
from .records import GameRecord
from .statuses import GameStatus, is_backlog, is_owned
from .thresholds import DEFAULT_THRESHOLDS, Thresholds


class TrendDirection(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


class ForecastOutcome(str, Enum):
    CLEARED = "cleared"
    ETA = "eta"
    NEVER = "never"
    INSUFFICIENT_DATA = "insufficient_data"


@dataclass(frozen=True)
class TrendSummary:
    direction: TrendDirection
    first_half_mean: float | None
    second_half_mean: float | None
    percent_change: float | None

    def to_dict(self) -> dict:
        return {
            "direction": self.direction.value,
            "first_half_mean": self.first_half_mean,
            "second_half_mean": self.second_half_mean,
            "percent_change": self.percent_change,
        }


@dataclass(frozen=True)
class Forecast:
    outcome: ForecastOutcome
    eta: date | None = None
    months_remaining: int | None = None
    acquisition_rate: float | None = None
    completion_rate: float | None = None
    backlog_size: int = 0

    @property
    def clears(self) -> bool:
        return self.outcome in (ForecastOutcome.CLEARED, ForecastOutcome.ETA)

    def to_dict(self) -> dict:
        return {
            "outcome": self.outcome.value,
            "eta": self.eta.isoformat() if self.eta else None,
            "months_remaining": self.months_remaining,
            "acquisition_rate": self.acquisition_rate,
            "completion_rate": self.completion_rate,
            "backlog_size": self.backlog_size,
        }


@dataclass(frozen=True)
class SpendForecast:
    year: int
    year_to_date: float
    monthly_average: float
    projected_total: float

    def to_dict(self) -> dict:
        return {
            "year": self.year,
            "year_to_date": round(self.year_to_date, 2),
            "monthly_average": round(self.monthly_average, 2),
            "projected_total": round(self.projected_total, 2),
        }


def percent_change(previous: float, current: float) -> float | None:
    if not previous:
        return None
    return (current - previous) / abs(previous)


def _series_values(series: Iterable[Any]) -> list[float]:
    values: list[float] = []
    for point in series:
        value = point[1] if isinstance(point, (tuple, list)) else point
        values.append(float(value or 0.0))
    return values


def summarize_trend(
    series: Sequence[Any], tolerance: float = DEFAULT_THRESHOLDS.trend_tolerance
) -> TrendSummary:
    """Compare the first and second halves of an ordered series.

    ``series`` holds ``(period, value)`` pairs or bare numbers. With an odd
    length the middle point belongs to neither half.
    """

    values = _series_values(series)
    if len(values) < 2:
        return TrendSummary(TrendDirection.STABLE, None, None, None)

    half = len(values) // 2
    first_mean = fmean(values[:half])
    second_mean = fmean(values[-half:])
    change = percent_change(first_mean, second_mean)

    if change is None:
        direction = (
            TrendDirection.INCREASING if second_mean > 0 else TrendDirection.STABLE
        )
    elif change > tolerance:
        direction = TrendDirection.INCREASING
    elif change < -tolerance:
        direction = TrendDirection.DECREASING
    else:
        direction = TrendDirection.STABLE

    return TrendSummary(direction, first_mean, second_mean, change)


def trend_direction(
    series: Sequence[Any], tolerance: float = DEFAULT_THRESHOLDS.trend_tolerance
) -> TrendDirection:
    return summarize_trend(series, tolerance).direction


def trailing_monthly_rate(
    dates: Iterable[Any], today: date, window_months: int = 3
) -> float | None:
    """Mean events per month over the trailing calendar-month window.

    The window ends with the month containing ``today``. Returns ``None`` when
    the window is empty.
    """

    if window_months <= 0:
        return None

    first_month = month_start(add_months(today, -(window_months - 1)))
    count = 0
    for value in dates:
        day = parse_local_date(value)
        if day is None:
            continue
        if first_month <= day <= today:
            count += 1
    return count / window_months


def forecast_completion(
    acquisition_rate: float | None,
    completion_rate: float | None,
    backlog_size: int,
    today: date | None = None,
) -> Forecast:
    """Project when the backlog empties at the current net completion rate."""

    today = today or date.today()
    backlog_size = max(0, int(backlog_size))
    if backlog_size == 0:
        return Forecast(
            ForecastOutcome.CLEARED,
            eta=today,
            months_remaining=0,
            acquisition_rate=acquisition_rate,
            completion_rate=completion_rate,
        )
    if acquisition_rate is None or completion_rate is None:
        return Forecast(
            ForecastOutcome.INSUFFICIENT_DATA,
            acquisition_rate=acquisition_rate,
            completion_rate=completion_rate,
            backlog_size=backlog_size,
        )

    net_rate = completion_rate - acquisition_rate
    if net_rate <= 0:
        return Forecast(
            ForecastOutcome.NEVER,
            acquisition_rate=acquisition_rate,
            completion_rate=completion_rate,
            backlog_size=backlog_size,
        )

    months = ceil(backlog_size / net_rate)
    return Forecast(
        ForecastOutcome.ETA,
        eta=add_months(today, months),
        months_remaining=months,
        acquisition_rate=acquisition_rate,
        completion_rate=completion_rate,
        backlog_size=backlog_size,
    )


def forecast_backlog_clearance(
    games: Iterable[GameRecord],
    today: date | None = None,
    window_months: int = DEFAULT_THRESHOLDS.forecast_window_months,
) -> Forecast:
    today = today or date.today()
    games = list(games)
    purchases = [game.purchase_date for game in games if is_owned(game.status)]
    completions = [
        game.end_date for game in games if game.status is GameStatus.COMPLETED
    ]
    backlog = sum(1 for game in games if is_backlog(game.status))

    return forecast_completion(
        trailing_monthly_rate(purchases, today, window_months),
        trailing_monthly_rate(completions, today, window_months),
        backlog,
        today,
    )


def forecast_annual_spend(games: Iterable[GameRecord], today: date | None = None) -> SpendForecast:
    """Linear full-year projection from year-to-date spending."""

    today = today or date.today()
    year_start = date(today.year, 1, 1)
    series = monthly_spending(games, year_start, today)
    year_to_date = sum(amount for _, amount in series)

    elapsed_days = (today - year_start).days + 1
    days_in_year = 366 if calendar.isleap(today.year) else 365
    projected = year_to_date / elapsed_days * days_in_year
    return SpendForecast(
        year=today.year,
        year_to_date=year_to_date,
        monthly_average=year_to_date / today.month,
        projected_total=projected,
    )


def spending_trend(
    games: Iterable[GameRecord],
    today: date | None = None,
    months: int = 12,
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
) -> Dict[str, Any]:
    today = today or date.today()
    start = month_start(add_months(today, -(months - 1)))
    series = monthly_spending(games, start, today)
    summary = summarize_trend(series, thresholds.spending_trend_tolerance)
    return {"series": [{"month": key, "amount": amount} for key, amount in series], **summary.to_dict()}


def find_swings(
    buckets: Sequence[Bucket],
    *,
    spike_ratio: float = 1.5,
    dip_ratio: float = 0.6,
    min_change_hours: float = 2.0,
) -> List[Dict[str, Any]]:
    """Flag period-over-period spikes and dips in played hours."""

    callouts: list[dict[str, Any]] = []
    for previous, current in zip(buckets, buckets[1:]):
        previous_hours = previous.total_hours
        current_hours = current.total_hours
        if current_hours <= 0 and previous_hours <= 0:
            continue

        change_hours = current_hours - previous_hours
        change = percent_change(previous_hours, current_hours)

        if current_hours >= previous_hours * spike_ratio and change_hours >= min_change_hours:
            percent_label = f"{change:.0%}" if change is not None else "significantly"
            callouts.append(
                {
                    "type": "spike",
                    "period_key": current.period_key,
                    "label": f"Playtime surged {percent_label} vs {previous.label}",
                    "change_hours": change_hours,
                    "percent_change": change,
                    "driver": current.dominant_game,
                }
            )
        elif (
            previous_hours > 0
            and current_hours <= previous_hours * dip_ratio
            and change_hours <= -min_change_hours
        ):
            percent_label = f"{abs(change):.0%}" if change is not None else "sharply"
            callouts.append(
                {
                    "type": "dip",
                    "period_key": current.period_key,
                    "label": f"Playtime dipped {percent_label} vs {previous.label}",
                    "change_hours": change_hours,
                    "percent_change": change,
                    "driver": previous.dominant_game,
                }
            )
    return callouts

