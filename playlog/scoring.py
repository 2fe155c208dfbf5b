"""Heuristic classifiers for play patterns.

Each scorer maps a handful of aggregate features to one label of a closed
enum, a 0-100 strength and a one-line rationale. Every cut-off comes from
:class:`~playlog.thresholds.Thresholds`. Too little data yields the enum's
``INSUFFICIENT_DATA`` member.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from math import sqrt
from statistics import fmean, pstdev
from typing import Any, Dict, Iterable

from .dates import add_months, days_between, shift_days
from .records import GameRecord
from .sessions import SessionEvent, extract_sessions, total_hours
from .statuses import GameStatus, is_owned
from .thresholds import DEFAULT_THRESHOLDS, Thresholds


class SessionStyle(str, Enum):
    MARATHON_RUNNER = "Marathon Runner"
    SNACK_GAMER = "Snack Gamer"
    WEEKEND_WARRIOR = "Weekend Warrior"
    CONSISTENT_PLAYER = "Consistent Player"
    BINGE_AND_REST = "Binge & Rest"
    INSUFFICIENT_DATA = "Insufficient Data"


class RotationHealth(str, Enum):
    FOCUSED = "Focused"
    HEALTHY = "Healthy"
    JUGGLING = "Juggling"
    OVERWHELMED = "Overwhelmed"
    OBSESSED = "Obsessed"
    INSUFFICIENT_DATA = "Insufficient Data"


class Personality(str, Enum):
    COMPLETIONIST = "Completionist"
    DEEP_DIVER = "Deep Diver"
    SAMPLER = "Sampler"
    BACKLOG_HOARDER = "Backlog Hoarder"
    BALANCED_GAMER = "Balanced Gamer"
    SPEEDRUNNER = "Speedrunner"
    EXPLORER = "Explorer"
    INSUFFICIENT_DATA = "Insufficient Data"


class GenreRut(str, Enum):
    IN_RUT = "In a Rut"
    VARIED = "Varied"
    INSUFFICIENT_DATA = "Insufficient Data"


class ValueRating(str, Enum):
    EXCELLENT = "Excellent"
    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Poor"
    INSUFFICIENT_DATA = "Insufficient Data"


@dataclass(frozen=True)
class Classification:
    label: Enum
    value: int
    rationale: str
    features: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_conclusive(self) -> bool:
        return self.label.name != "INSUFFICIENT_DATA"

    def to_dict(self) -> dict:
        return {
            "label": self.label.value,
            "value": self.value,
            "rationale": self.rationale,
            "features": dict(self.features),
        }


def _margin_strength(value: float, threshold: float) -> int:
    """50 at the threshold, rising to 100 one full threshold-width past it."""

    if threshold <= 0:
        return 100
    margin = min(1.0, abs(value - threshold) / threshold)
    return int(round(50 + 50 * margin))


def _insufficient(label: Enum, rationale: str, **features: Any) -> Classification:
    return Classification(label=label, value=0, rationale=rationale, features=features)


def classify_session_style(
    events: Iterable[SessionEvent], *, thresholds: Thresholds = DEFAULT_THRESHOLDS
) -> Classification:
    events = list(events)
    if len(events) < thresholds.min_sessions:
        return _insufficient(
            SessionStyle.INSUFFICIENT_DATA,
            f"Log at least {thresholds.min_sessions} sessions to see your style.",
            total_sessions=len(events),
        )

    hours = [event.hours for event in events]
    average = fmean(hours)
    variation = pstdev(hours) / average if average > 0 else 0.0
    dates = [event.date for event in events]
    span_days = days_between(min(dates), max(dates))
    weeks = max(1.0, span_days / 7)
    per_week = len(events) / weeks

    features = {
        "average_session_hours": average,
        "sessions_per_week": per_week,
        "variation": variation,
        "longest_session_hours": max(hours),
        "total_sessions": len(events),
    }

    if average >= thresholds.marathon_session_hours:
        label = SessionStyle.MARATHON_RUNNER
        value = _margin_strength(average, thresholds.marathon_session_hours)
        rationale = "You love long, immersive gaming sessions."
    elif average <= thresholds.snack_session_hours:
        label = SessionStyle.SNACK_GAMER
        value = _margin_strength(average, thresholds.snack_session_hours)
        rationale = "Quick sessions fit perfectly into your busy life."
    elif per_week >= thresholds.consistent_sessions_per_week:
        label = SessionStyle.CONSISTENT_PLAYER
        value = _margin_strength(per_week, thresholds.consistent_sessions_per_week)
        rationale = "Gaming is a regular part of your routine."
    elif (
        per_week <= thresholds.weekend_sessions_per_week
        and average > thresholds.weekend_session_hours
    ):
        label = SessionStyle.WEEKEND_WARRIOR
        value = _margin_strength(per_week, thresholds.weekend_sessions_per_week)
        rationale = "You save up your gaming for dedicated sessions."
    elif variation >= thresholds.binge_variation:
        label = SessionStyle.BINGE_AND_REST
        value = _margin_strength(variation, thresholds.binge_variation)
        rationale = "Intense bursts followed by breaks."
    else:
        label = SessionStyle.CONSISTENT_PLAYER
        value = _margin_strength(variation, thresholds.binge_variation)
        rationale = "Steady, even sessions week after week."

    return Classification(label, value, rationale, features)


def classify_rotation(
    games: Iterable[GameRecord],
    as_of: date | None = None,
    *,
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
) -> Classification:
    """Rotation health from the number of games played recently."""

    as_of = as_of or date.today()
    owned = [game for game in games if is_owned(game.status)]
    names = {game.id: game.name for game in owned}
    hours_by_id = {game.id: total_hours(game) for game in owned}
    events = [event for event in extract_sessions(owned) if event.date <= as_of]

    last_played: dict[Any, date] = {}
    for event in events:
        last_played[event.game_id] = event.date

    window_start = shift_days(as_of, -(thresholds.rotation_window_days - 1))
    active = [game_id for game_id, day in last_played.items() if day >= window_start]
    cooling_off = sorted(
        names[game_id]
        for game_id, day in last_played.items()
        if thresholds.cooling_off_min_days
        <= days_between(day, as_of)
        <= thresholds.cooling_off_max_days
        and hours_by_id[game_id] >= thresholds.cooling_off_min_hours
    )

    features: dict[str, Any] = {
        "games_in_rotation": len(active),
        "active_games": sorted(names[game_id] for game_id in active),
        "cooling_off": cooling_off,
    }

    count = len(active)
    if count == 0:
        return _insufficient(
            RotationHealth.INSUFFICIENT_DATA,
            "No recent sessions logged. Time to play!",
            **features,
        )

    if count == 1:
        game_id = active[0]
        recent_start = shift_days(as_of, -(thresholds.obsessed_window_days - 1))
        weekly_hours = sum(
            event.hours
            for event in events
            if event.game_id == game_id and event.date >= recent_start
        )
        features["weekly_hours"] = weekly_hours
        if weekly_hours > thresholds.obsessed_hours_per_week:
            return Classification(
                RotationHealth.OBSESSED,
                _margin_strength(weekly_hours, thresholds.obsessed_hours_per_week),
                f"All-in on {names[game_id]}. Full immersion!",
                features,
            )
        return Classification(
            RotationHealth.FOCUSED,
            100,
            f"Locked in on {names[game_id]}.",
            features,
        )

    if count <= thresholds.healthy_max_games:
        return Classification(
            RotationHealth.HEALTHY, 100, "A nice, manageable rotation of games.", features
        )
    if count <= thresholds.juggling_max_games:
        return Classification(
            RotationHealth.JUGGLING, 100, "Quite a few games in the mix!", features
        )
    return Classification(
        RotationHealth.OVERWHELMED, 100, "So many games, so little time!", features
    )


# (completion rate, genre concentration, session length) per archetype
_ARCHETYPES: tuple[tuple[Personality, tuple[float, float, float]], ...] = (
    (Personality.COMPLETIONIST, (0.85, 0.45, 0.50)),
    (Personality.DEEP_DIVER, (0.50, 0.75, 0.90)),
    (Personality.SAMPLER, (0.15, 0.25, 0.15)),
    (Personality.BACKLOG_HOARDER, (0.05, 0.50, 0.35)),
    (Personality.BALANCED_GAMER, (0.45, 0.40, 0.40)),
    (Personality.SPEEDRUNNER, (0.70, 0.50, 0.20)),
    (Personality.EXPLORER, (0.35, 0.10, 0.45)),
)

_PERSONALITY_DETAILS: dict[Personality, tuple[str, tuple[str, ...]]] = {
    Personality.COMPLETIONIST: (
        "You see games through to the end. No game left behind!",
        ("Persistent", "Thorough", "Achievement Hunter"),
    ),
    Personality.DEEP_DIVER: (
        "You get deeply invested in the games you love.",
        ("Immersive", "Committed", "Invested"),
    ),
    Personality.SAMPLER: (
        "You love variety and trying new experiences.",
        ("Curious", "Adventurous", "Open-minded"),
    ),
    Personality.BACKLOG_HOARDER: (
        "Your library is... ambitious. We believe in you!",
        ("Deal Hunter", "Optimistic", "Future-focused"),
    ),
    Personality.BALANCED_GAMER: (
        "A healthy mix of playing and completing.",
        ("Disciplined", "Selective", "Mindful"),
    ),
    Personality.SPEEDRUNNER: (
        "You blaze through games with impressive efficiency.",
        ("Efficient", "Focused", "Goal-oriented"),
    ),
    Personality.EXPLORER: (
        "Genre boundaries cannot contain you.",
        ("Versatile", "Eclectic", "Genre-fluid"),
    ),
}


def personality_traits(label: Personality) -> tuple[str, ...]:
    details = _PERSONALITY_DETAILS.get(label)
    return details[1] if details else ()


def classify_personality(
    games: Iterable[GameRecord], *, thresholds: Thresholds = DEFAULT_THRESHOLDS
) -> Classification:
    owned = [game for game in games if is_owned(game.status)]
    events = extract_sessions(owned)
    if not owned or len(events) < thresholds.min_sessions:
        return _insufficient(
            Personality.INSUFFICIENT_DATA,
            "Just getting started! Log a few more sessions.",
            owned_games=len(owned),
            total_sessions=len(events),
        )

    completed = sum(1 for game in owned if game.status is GameStatus.COMPLETED)
    completion_rate = completed / len(owned)

    genre_hours: dict[str, float] = defaultdict(float)
    for game in owned:
        if game.genre:
            genre_hours[game.genre] += total_hours(game)
    genre_total = sum(genre_hours.values())
    genre_concentration = max(genre_hours.values()) / genre_total if genre_total else 0.0

    average_session = fmean(event.hours for event in events)
    session_feature = min(average_session / thresholds.personality_session_cap_hours, 1.0)

    point = (completion_rate, genre_concentration, session_feature)
    weights = (
        thresholds.personality_completion_weight,
        thresholds.personality_genre_weight,
        thresholds.personality_session_weight,
    )
    max_distance = sqrt(sum(weights)) or 1.0

    def _distance(centroid: tuple[float, float, float]) -> float:
        return sqrt(
            sum(weight * (value - target) ** 2 for weight, value, target in zip(weights, point, centroid))
        )

    label, centroid = min(_ARCHETYPES, key=lambda archetype: _distance(archetype[1]))
    strength = max(0.0, min(1.0, 1 - _distance(centroid) / max_distance))
    description, traits = _PERSONALITY_DETAILS[label]

    return Classification(
        label,
        int(round(strength * 100)),
        description,
        {
            "completion_rate": completion_rate,
            "genre_concentration": genre_concentration,
            "average_session_hours": average_session,
            "traits": list(traits),
        },
    )


def classify_genre_rut(
    games: Iterable[GameRecord],
    as_of: date | None = None,
    *,
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
) -> Classification:
    as_of = as_of or date.today()
    games = list(games)
    window_start = add_months(as_of, -thresholds.genre_rut_window_months)
    recent_ids = {
        event.game_id
        for event in extract_sessions(games)
        if window_start <= event.date <= as_of
    }
    recent_games = [game for game in games if game.id in recent_ids]

    library_genres = {game.genre for game in games if game.genre}
    genre_counts = Counter(game.genre for game in recent_games if game.genre)
    underexplored = sorted(library_genres - set(genre_counts))

    if len(recent_games) < thresholds.genre_rut_min_games:
        return _insufficient(
            GenreRut.INSUFFICIENT_DATA,
            "Play more games to see genre patterns!",
            recent_games=len(recent_games),
            underexplored_genres=underexplored,
        )

    dominant_genre, share = None, 0.0
    if genre_counts:
        # most_common keeps insertion order on ties
        dominant_genre, dominant_count = genre_counts.most_common(1)[0]
        share = dominant_count / sum(genre_counts.values())

    features = {
        "recent_games": len(recent_games),
        "dominant_genre": dominant_genre,
        "dominant_share": share,
        "underexplored_genres": underexplored,
    }
    if dominant_genre and share >= thresholds.genre_rut_share:
        return Classification(
            GenreRut.IN_RUT,
            int(round(share * 100)),
            f"You've been playing a lot of {dominant_genre}. Maybe try something different?",
            features,
        )

    if underexplored:
        rationale = (
            f"You have {len(underexplored)} genre(s) in your library you haven't touched recently!"
        )
    else:
        rationale = "Nice variety in your recent gaming!"
    return Classification(GenreRut.VARIED, int(round((1 - share) * 100)), rationale, features)


def value_rating(
    cost_per_hour: float | None, *, thresholds: Thresholds = DEFAULT_THRESHOLDS
) -> ValueRating:
    if cost_per_hour is None:
        return ValueRating.INSUFFICIENT_DATA
    if cost_per_hour <= thresholds.value_excellent_cost_per_hour:
        return ValueRating.EXCELLENT
    if cost_per_hour <= thresholds.value_good_cost_per_hour:
        return ValueRating.GOOD
    if cost_per_hour <= thresholds.value_fair_cost_per_hour:
        return ValueRating.FAIR
    return ValueRating.POOR
