from __future__ import annotations

import logging
from dataclasses import dataclass, fields, replace
from typing import Any, Mapping

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Thresholds:
    """Fixed cut-offs used by the heuristic classifiers and forecasts."""

    # Scorers refuse to classify with fewer sessions than this.
    min_sessions: int = 3

    marathon_session_hours: float = 3.0
    snack_session_hours: float = 1.0
    weekend_session_hours: float = 2.0
    consistent_sessions_per_week: float = 5.0
    weekend_sessions_per_week: float = 2.0
    binge_variation: float = 0.5

    rotation_window_days: int = 14
    obsessed_window_days: int = 7
    obsessed_hours_per_week: float = 15.0
    healthy_max_games: int = 3
    juggling_max_games: int = 6
    cooling_off_min_days: int = 30
    cooling_off_max_days: int = 60
    cooling_off_min_hours: float = 5.0

    genre_rut_window_months: int = 3
    genre_rut_min_games: int = 3
    genre_rut_share: float = 0.60

    personality_session_cap_hours: float = 6.0
    personality_completion_weight: float = 0.40
    personality_genre_weight: float = 0.30
    personality_session_weight: float = 0.30

    trend_tolerance: float = 0.05
    spending_trend_tolerance: float = 0.20
    forecast_window_months: int = 3

    value_excellent_cost_per_hour: float = 1.0
    value_good_cost_per_hour: float = 3.0
    value_fair_cost_per_hour: float = 5.0

    target_cost_per_hour: float = 2.0
    impulse_max_days: int = 7
    planned_min_days: int = 30
    regret_min_price: float = 20.0
    regret_max_hours: float = 3.0
    bargain_min_hours: float = 10.0
    bargain_min_rating: int = 7

    # Week in review: prior weeks averaged, and the "same as last week" band.
    week_average_weeks: int = 4
    week_trend_tolerance_hours: float = 0.5
    week_lean_share: float = 0.70

    @classmethod
    def from_mapping(cls, overrides: Mapping[str, Any] | None) -> "Thresholds":
        """Build thresholds from defaults plus ``overrides``.

        Unknown keys are logged and ignored. Values are coerced to the
        default's type.
        """

        if not overrides:
            return DEFAULT_THRESHOLDS

        known = {item.name: item for item in fields(cls)}
        changes: dict[str, Any] = {}
        for key, value in overrides.items():
            if key not in known:
                logger.warning("Ignoring unknown threshold %r", key)
                continue
            default = getattr(DEFAULT_THRESHOLDS, key)
            try:
                changes[key] = type(default)(value)
            except (TypeError, ValueError) as exc:
                raise ValueError(f"Threshold {key} must be numeric") from exc
        return replace(DEFAULT_THRESHOLDS, **changes)


DEFAULT_THRESHOLDS = Thresholds()
