from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable

from .dates import days_between, month_key, parse_local_date
from .records import GameRecord
from .scoring import ValueRating, value_rating
from .sessions import extract_sessions, total_hours
from .statuses import GameStatus, is_owned
from .thresholds import DEFAULT_THRESHOLDS, Thresholds
from .trends import TrendDirection, spending_trend

# Cost per hour at which a game stops earning any value credit in the blend.
BASELINE_COST_PER_HOUR = 3.5


@dataclass(frozen=True)
class GameMetrics:
    """Value metrics for a single game."""

    total_hours: float
    cost_per_hour: float | None
    blend_score: float
    roi: float
    value_rating: ValueRating
    days_to_complete: int | None

    @property
    def has_playtime(self) -> bool:
        return self.total_hours > 0

    def to_dict(self) -> dict:
        return {
            "total_hours": self.total_hours,
            "cost_per_hour": self.cost_per_hour,
            "blend_score": self.blend_score,
            "roi": self.roi,
            "value_rating": self.value_rating.value,
            "days_to_complete": self.days_to_complete,
        }


def compute_game_metrics(
    game: GameRecord, *, thresholds: Thresholds = DEFAULT_THRESHOLDS
) -> GameMetrics:
    """Compute cost and value metrics for ``game``.

    ``cost_per_hour`` is ``None`` for a game with no recorded playtime. The
    blend score treats that as the worst cost. A free game's ROI falls back to
    ``rating * hours``.
    """

    hours = total_hours(game)
    price = max(float(game.price or 0.0), 0.0)
    rating = float(game.rating or 0)

    cost_per_hour = price / hours if hours > 0 else None
    normalized_cost = (
        min(cost_per_hour / BASELINE_COST_PER_HOUR, 1.0)
        if cost_per_hour is not None
        else 1.0
    )
    blend_score = rating * 10 + (10 - normalized_cost * 10)
    roi = (rating * hours) / price if price > 0 else rating * hours

    start = parse_local_date(game.start_date)
    end = parse_local_date(game.end_date)
    days_to_complete = None
    if start and end:
        days_to_complete = abs(days_between(start, end))

    return GameMetrics(
        total_hours=hours,
        cost_per_hour=cost_per_hour,
        blend_score=blend_score,
        roi=roi,
        value_rating=value_rating(cost_per_hour, thresholds=thresholds),
        days_to_complete=days_to_complete,
    )


@dataclass(frozen=True)
class MoneyStats:
    """Spending figures across every owned game."""

    total_spent: float
    total_hours: float
    cost_per_hour: float | None
    cost_of_unplayed: float
    break_even_hours: float
    average_cost_per_completion: float | None
    impulse_purchases: tuple[str, ...]
    planned_purchases: tuple[str, ...]
    monthly_average: float
    spending_direction: TrendDirection
    biggest_regret: dict | None
    best_bargain: dict | None

    def to_dict(self) -> dict:
        return {
            "total_spent": round(self.total_spent, 2),
            "total_hours": self.total_hours,
            "cost_per_hour": (
                round(self.cost_per_hour, 2) if self.cost_per_hour is not None else None
            ),
            "cost_of_unplayed": round(self.cost_of_unplayed, 2),
            "break_even_hours": round(self.break_even_hours, 1),
            "average_cost_per_completion": (
                round(self.average_cost_per_completion, 2)
                if self.average_cost_per_completion is not None
                else None
            ),
            "impulse_purchases": list(self.impulse_purchases),
            "planned_purchases": list(self.planned_purchases),
            "monthly_average": round(self.monthly_average, 2),
            "spending_direction": self.spending_direction.value,
            "biggest_regret": self.biggest_regret,
            "best_bargain": self.best_bargain,
        }


def money_stats(
    games: Iterable[GameRecord],
    today: date | None = None,
    *,
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
) -> MoneyStats:
    """Summarize what the library cost and how well the money was spent.

    Impulse and planned purchases compare the purchase date with the first
    logged session. Games played between the two cut-offs count as neither.
    The regret is the priciest barely-played game. The bargain maximizes
    ``rating * hours / price`` among well-rated, well-played paid games.
    """

    today = today or date.today()
    games = list(games)
    owned = [game for game in games if is_owned(game.status)]
    hours = {id(game): total_hours(game) for game in owned}

    spent = sum(float(game.price or 0.0) for game in owned)
    played = sum(hours.values())
    cost_per_hour = spent / played if played > 0 else None

    target = thresholds.target_cost_per_hour
    break_even = max(spent / target - played, 0.0) if target > 0 else 0.0

    completed = [game for game in owned if game.status is GameStatus.COMPLETED]
    average_completion = (
        sum(float(game.price or 0.0) for game in completed) / len(completed)
        if completed
        else None
    )

    impulse: list[str] = []
    planned: list[str] = []
    for game in owned:
        purchased = parse_local_date(game.purchase_date)
        events = extract_sessions([game])
        if purchased is None or not events:
            continue
        waited = days_between(purchased, events[0].date)
        if waited <= thresholds.impulse_max_days:
            impulse.append(game.name)
        elif waited > thresholds.planned_min_days:
            planned.append(game.name)

    purchase_months = {
        month_key(purchased)
        for purchased in (parse_local_date(game.purchase_date) for game in owned)
        if purchased
    }
    direction = spending_trend(owned, today, 12, thresholds)["direction"]

    regrets = [
        game
        for game in owned
        if float(game.price or 0.0) > thresholds.regret_min_price
        and hours[id(game)] < thresholds.regret_max_hours
    ]
    biggest_regret: dict[str, Any] | None = None
    if regrets:
        worst = max(regrets, key=lambda game: float(game.price or 0.0))
        biggest_regret = {
            "game": worst.name,
            "price": float(worst.price or 0.0),
            "hours": hours[id(worst)],
        }

    bargains = [
        game
        for game in owned
        if float(game.price or 0.0) > 0
        and hours[id(game)] >= thresholds.bargain_min_hours
        and (game.rating or 0) >= thresholds.bargain_min_rating
    ]
    best_bargain: dict[str, Any] | None = None
    if bargains:
        best = max(
            bargains, key=lambda game: game.rating * hours[id(game)] / float(game.price)
        )
        best_bargain = {
            "game": best.name,
            "price": float(best.price),
            "hours": hours[id(best)],
            "value_score": round(best.rating * hours[id(best)] / float(best.price), 2),
        }

    return MoneyStats(
        total_spent=spent,
        total_hours=played,
        cost_per_hour=cost_per_hour,
        cost_of_unplayed=sum(
            float(game.price or 0.0)
            for game in owned
            if game.status is GameStatus.NOT_STARTED
        ),
        break_even_hours=break_even,
        average_cost_per_completion=average_completion,
        impulse_purchases=tuple(impulse),
        planned_purchases=tuple(planned),
        monthly_average=spent / max(len(purchase_months), 1),
        spending_direction=TrendDirection(direction),
        biggest_regret=biggest_regret,
        best_bargain=best_bargain,
    )
