import logging
from datetime import date, timedelta

import pytest

from playlog.records import GameRecord, SessionRecord
from playlog.scoring import (
    GenreRut,
    Personality,
    RotationHealth,
    SessionStyle,
    ValueRating,
    classify_genre_rut,
    classify_personality,
    classify_rotation,
    classify_session_style,
    personality_traits,
    value_rating,
)
from playlog.sessions import extract_sessions
from playlog.statuses import GameStatus
from playlog.thresholds import DEFAULT_THRESHOLDS, Thresholds


def _game(game_id, name, sessions, **kwargs):
    return GameRecord(
        id=game_id,
        name=name,
        sessions=tuple(SessionRecord(date=day, hours=hours) for day, hours in sessions),
        **kwargs,
    )


def _style(hours, *, every_days=1, start=date(2024, 4, 1)):
    sessions = [
        ((start + timedelta(days=index * every_days)).isoformat(), value)
        for index, value in enumerate(hours)
    ]
    return classify_session_style(extract_sessions([_game(1, "Solo", sessions)]))


@pytest.mark.parametrize(
    ("hours", "every_days", "expected"),
    [
        ([4.0, 4.0, 4.0], 1, SessionStyle.MARATHON_RUNNER),
        ([0.5, 0.5, 0.5], 1, SessionStyle.SNACK_GAMER),
        ([1.5] * 7, 1, SessionStyle.CONSISTENT_PLAYER),
        ([2.5, 2.5, 2.5, 2.5], 7, SessionStyle.WEEKEND_WARRIOR),
        ([0.5, 2.9, 0.6, 2.8], 3, SessionStyle.BINGE_AND_REST),
    ],
)
def test_session_style_labels(hours, every_days, expected):
    result = _style(hours, every_days=every_days)

    assert result.label is expected
    assert result.is_conclusive
    assert 50 <= result.value <= 100


def test_session_style_needs_minimum_sessions():
    result = _style([5.0, 5.0])

    assert result.label is SessionStyle.INSUFFICIENT_DATA
    assert result.value == 0
    assert not result.is_conclusive
    assert result.to_dict()["label"] == "Insufficient Data"


def test_single_game_played_heavily_is_obsessed():
    as_of = date(2024, 6, 10)
    games = [
        _game(
            1,
            "Crimson Tide",
            [("2024-06-05", 5.0), ("2024-06-07", 8.0), ("2024-06-09", 7.0)],
            status=GameStatus.IN_PROGRESS,
        )
    ]

    result = classify_rotation(games, as_of)

    assert result.label is RotationHealth.OBSESSED
    assert result.features["weekly_hours"] == pytest.approx(20.0)
    assert result.features["games_in_rotation"] == 1
    assert result.value == 67


def test_single_game_played_lightly_is_focused():
    games = [_game(1, "Crimson Tide", [("2024-06-09", 2.0)])]

    assert classify_rotation(games, date(2024, 6, 10)).label is RotationHealth.FOCUSED


def test_small_rotation_is_healthy_and_lists_cooling_off_games():
    as_of = date(2024, 6, 10)
    games = [
        _game(1, "Amber Road", [("2024-06-01", 2.0)]),
        _game(2, "Bright Hollow", [("2024-06-08", 1.5)]),
        _game(3, "Cinder Keep", [("2024-05-30", 3.0)]),
        _game(4, "Dusk Harbor", [("2024-05-01", 6.0)]),
        _game(5, "Wished For", [("2024-06-09", 1.0)], status=GameStatus.WISHLIST),
    ]

    result = classify_rotation(games, as_of)

    assert result.label is RotationHealth.HEALTHY
    assert result.features["active_games"] == ["Amber Road", "Bright Hollow", "Cinder Keep"]
    assert result.features["cooling_off"] == ["Dusk Harbor"]


def test_large_rotations():
    as_of = date(2024, 6, 10)
    juggling = [_game(index, f"Game {index}", [("2024-06-05", 1.0)]) for index in range(5)]
    overwhelmed = [_game(index, f"Game {index}", [("2024-06-05", 1.0)]) for index in range(7)]

    assert classify_rotation(juggling, as_of).label is RotationHealth.JUGGLING
    assert classify_rotation(overwhelmed, as_of).label is RotationHealth.OVERWHELMED


def test_rotation_without_recent_sessions_is_insufficient():
    games = [_game(1, "Old Flame", [("2023-01-01", 3.0)])]

    result = classify_rotation(games, date(2024, 6, 10))

    assert result.label is RotationHealth.INSUFFICIENT_DATA
    assert classify_rotation([], date(2024, 6, 10)).label is RotationHealth.INSUFFICIENT_DATA


def test_personality_prefers_closest_archetype():
    completionist = [
        _game(index, name, [(f"2024-03-0{index}", 3.0)], status=GameStatus.COMPLETED, genre=genre)
        for index, (name, genre) in enumerate(
            [("One", "RPG"), ("Two", "Puzzle"), ("Three", "Action"), ("Four", "Strategy")],
            start=1,
        )
    ]
    sampler = [
        _game(index, f"Taste {index}", [(f"2024-03-0{index}", 1.0)], status=GameStatus.IN_PROGRESS, genre=genre)
        for index, genre in enumerate(["RPG", "Puzzle", "Action", "Strategy", "Racing"], start=1)
    ]

    first = classify_personality(completionist)
    second = classify_personality(sampler)

    assert first.label is Personality.COMPLETIONIST
    assert first.value == 86
    assert first.features["completion_rate"] == pytest.approx(1.0)
    assert first.features["traits"] == list(personality_traits(Personality.COMPLETIONIST))
    assert second.label is Personality.SAMPLER
    assert 0 < second.value <= 100


def test_personality_needs_sessions():
    games = [_game(1, "Lonely", [("2024-03-01", 1.0)], status=GameStatus.COMPLETED)]

    assert classify_personality(games).label is Personality.INSUFFICIENT_DATA
    assert classify_personality([]).label is Personality.INSUFFICIENT_DATA
    assert personality_traits(Personality.INSUFFICIENT_DATA) == ()


def test_genre_rut_detects_dominant_genre():
    as_of = date(2024, 6, 30)
    games = [
        _game(1, "Saga I", [("2024-05-01", 2.0)], genre="RPG"),
        _game(2, "Saga II", [("2024-05-08", 2.0)], genre="RPG"),
        _game(3, "Saga III", [("2024-06-01", 2.0)], genre="RPG"),
        _game(4, "Blocks", [("2024-06-02", 1.0)], genre="Puzzle"),
        _game(5, "Speedway", [("2023-06-02", 1.0)], genre="Racing"),
    ]

    result = classify_genre_rut(games, as_of)

    assert result.label is GenreRut.IN_RUT
    assert result.value == 75
    assert result.features["dominant_genre"] == "RPG"
    assert result.features["underexplored_genres"] == ["Racing"]


def test_genre_rut_varied_and_insufficient():
    as_of = date(2024, 6, 30)
    varied = [
        _game(1, "Saga I", [("2024-05-01", 2.0)], genre="RPG"),
        _game(2, "Saga II", [("2024-05-08", 2.0)], genre="RPG"),
        _game(3, "Blocks", [("2024-06-01", 2.0)], genre="Puzzle"),
        _game(4, "Brawl", [("2024-06-02", 1.0)], genre="Action"),
    ]

    result = classify_genre_rut(varied, as_of)

    assert result.label is GenreRut.VARIED
    assert result.value == 50
    assert classify_genre_rut(varied[:2], as_of).label is GenreRut.INSUFFICIENT_DATA


@pytest.mark.parametrize(
    ("cost", "expected"),
    [
        (None, ValueRating.INSUFFICIENT_DATA),
        (0.5, ValueRating.EXCELLENT),
        (1.0, ValueRating.EXCELLENT),
        (2.0, ValueRating.GOOD),
        (4.0, ValueRating.FAIR),
        (9.0, ValueRating.POOR),
    ],
)
def test_value_rating(cost, expected):
    assert value_rating(cost) is expected


def test_thresholds_from_mapping(caplog):
    with caplog.at_level(logging.WARNING, logger="playlog.thresholds"):
        thresholds = Thresholds.from_mapping({"min_sessions": "5", "bogus": 1})

    assert thresholds.min_sessions == 5
    assert thresholds.marathon_session_hours == DEFAULT_THRESHOLDS.marathon_session_hours
    assert "bogus" in caplog.text
    assert Thresholds.from_mapping(None) is DEFAULT_THRESHOLDS

    with pytest.raises(ValueError):
        Thresholds.from_mapping({"trend_tolerance": "lots"})


def test_custom_thresholds_change_classification():
    events = extract_sessions([_game(1, "Solo", [("2024-04-01", 2.0)] * 3)])
    strict = Thresholds.from_mapping({"marathon_session_hours": 2.0})

    assert classify_session_style(events).label is not SessionStyle.MARATHON_RUNNER
    assert classify_session_style(events, thresholds=strict).label is SessionStyle.MARATHON_RUNNER
