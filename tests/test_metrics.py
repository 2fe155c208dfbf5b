from datetime import date

import pytest

from playlog.metrics import compute_game_metrics, money_stats
from playlog.records import GameRecord, SessionRecord
from playlog.scoring import ValueRating
from playlog.statuses import GameStatus
from playlog.trends import TrendDirection
from playlog.thresholds import Thresholds


def test_compute_game_metrics_for_played_game():
    game = GameRecord(
        id=1,
        name="Glass Meridian",
        price=60,
        rating=8,
        baseline_hours=10,
        start_date=date(2024, 1, 1),
        end_date=date(2024, 2, 1),
        sessions=(SessionRecord(date="2024-01-10", hours=2),),
    )

    metrics = compute_game_metrics(game)

    assert metrics.total_hours == pytest.approx(12.0)
    assert metrics.cost_per_hour == pytest.approx(5.0)
    assert metrics.value_rating is ValueRating.FAIR
    assert metrics.blend_score == pytest.approx(80.0)
    assert metrics.roi == pytest.approx(1.6)
    assert metrics.days_to_complete == 31
    assert metrics.has_playtime


def test_cheap_long_game_scores_high():
    game = GameRecord(id=2, name="Long Haul", price=20, rating=9, baseline_hours=40)

    metrics = compute_game_metrics(game)

    assert metrics.cost_per_hour == pytest.approx(0.5)
    assert metrics.value_rating is ValueRating.EXCELLENT
    assert metrics.blend_score == pytest.approx(90 + 10 - (0.5 / 3.5) * 10)
    assert metrics.roi == pytest.approx(18.0)


def test_free_game_roi_uses_hours():
    game = GameRecord(id=3, name="Gift", price=0, rating=7, baseline_hours=5)

    metrics = compute_game_metrics(game)

    assert metrics.cost_per_hour == 0
    assert metrics.roi == pytest.approx(35.0)
    assert metrics.blend_score == pytest.approx(80.0)


def test_unplayed_game_has_no_cost_per_hour():
    game = GameRecord(id=4, name="Shrink Wrapped", price=40, rating=6)

    metrics = compute_game_metrics(game)

    assert metrics.cost_per_hour is None
    assert metrics.value_rating is ValueRating.INSUFFICIENT_DATA
    assert metrics.blend_score == pytest.approx(60.0)
    assert not metrics.has_playtime
    assert metrics.days_to_complete is None
    assert metrics.to_dict()["value_rating"] == "Insufficient Data"


def test_value_bands_follow_thresholds():
    game = GameRecord(id=5, name="Midweight", price=20, baseline_hours=10)
    generous = Thresholds.from_mapping({"value_excellent_cost_per_hour": 2.5})

    assert compute_game_metrics(game).value_rating is ValueRating.GOOD
    assert compute_game_metrics(game, thresholds=generous).value_rating is ValueRating.EXCELLENT


def _purchase(game_id, name, status, price, purchased, sessions=(), rating=0):
    return GameRecord(
        id=game_id,
        name=name,
        status=status,
        price=price,
        rating=rating,
        purchase_date=purchased,
        sessions=tuple(SessionRecord(date=day, hours=hours) for day, hours in sessions),
    )


@pytest.fixture
def shopping_history():
    return [
        _purchase(1, "Shelf Queen", GameStatus.NOT_STARTED, 40, date(2024, 5, 1)),
        _purchase(
            2,
            "Lunch Break",
            GameStatus.COMPLETED,
            10,
            date(2024, 1, 10),
            [("2024-01-12", 12.0)],
            rating=8,
        ),
        _purchase(
            3,
            "Slow Burn",
            GameStatus.IN_PROGRESS,
            30,
            date(2023, 12, 1),
            [("2024-02-15", 20.0)],
            rating=9,
        ),
        _purchase(4, "Wish", GameStatus.WISHLIST, 70, date(2024, 6, 1)),
        _purchase(
            5, "Middle", GameStatus.ABANDONED, 25, date(2024, 3, 1), [("2024-03-20", 2.0)], rating=3
        ),
    ]


def test_money_stats(shopping_history):
    stats = money_stats(shopping_history, date(2024, 6, 30))

    assert stats.total_spent == pytest.approx(105.0)
    assert stats.total_hours == pytest.approx(34.0)
    assert stats.cost_of_unplayed == pytest.approx(40.0)
    assert stats.break_even_hours == pytest.approx(18.5)
    assert stats.average_cost_per_completion == pytest.approx(10.0)
    assert stats.impulse_purchases == ("Lunch Break",)
    assert stats.planned_purchases == ("Slow Burn",)
    assert stats.monthly_average == pytest.approx(26.25)
    assert stats.spending_direction is TrendDirection.INCREASING
    assert stats.biggest_regret == {"game": "Shelf Queen", "price": 40.0, "hours": 0.0}
    assert stats.best_bargain["game"] == "Lunch Break"
    assert stats.best_bargain["value_score"] == pytest.approx(9.6)
    assert stats.to_dict()["cost_per_hour"] == pytest.approx(3.09)


def test_money_stats_respects_target_and_empty_library(shopping_history):
    relaxed = money_stats(
        shopping_history, date(2024, 6, 30), thresholds=Thresholds(target_cost_per_hour=4.0)
    )
    assert relaxed.break_even_hours == 0

    empty = money_stats([], date(2024, 6, 30))
    assert empty.cost_per_hour is None
    assert empty.average_cost_per_completion is None
    assert empty.biggest_regret is None
    assert empty.best_bargain is None
    assert empty.spending_direction is TrendDirection.STABLE
