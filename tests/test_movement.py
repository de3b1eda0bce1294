import pytest

from arena.data_loader import SurvivalSettings
from arena.movement import duration_factor, movement_floor, new_distance, points_ratio

DAILY = SurvivalSettings(max_movement_per_period=0.05, timeframe="daily")
WEEKLY = SurvivalSettings(max_movement_per_period=0.05, timeframe="weekly")


def test_full_points_daily_standard_length():
    assert new_distance(0.5, 10, 10, DAILY, 5, 30) == pytest.approx(0.45, abs=1e-6)


@pytest.mark.parametrize("distance", [0.0, 0.3, 0.75, 1.0])
def test_no_points_means_no_movement(distance):
    assert new_distance(distance, 0, 10, DAILY, 3, 30) == distance
    assert new_distance(distance, -4, 10, DAILY, 3, 30) == distance


def test_never_moves_outward():
    for distance in (0.0, 0.01, 0.5, 1.0):
        for points in (0.1, 1, 5, 10, 50):
            for total in (3, 7, 10, 14, 30):
                for settings in (DAILY, WEEKLY):
                    assert new_distance(distance, points, 10, settings, 1, total) <= distance


def test_movement_floor_applies_to_tiny_ratios():
    # 0.05 * 1/100 = 0.0005, below the 1% floor
    assert new_distance(0.5, 1, 100, DAILY, 2, 30) == pytest.approx(0.49)


def test_short_challenges_move_faster():
    assert duration_factor(7) == 2.0
    assert duration_factor(14) == 1.5
    assert duration_factor(15) == 1.0
    assert new_distance(0.5, 10, 10, DAILY, 2, 7) == pytest.approx(0.4)
    assert new_distance(0.5, 10, 10, DAILY, 2, 10) == pytest.approx(0.425)


def test_weekly_movement_is_tripled():
    assert new_distance(0.5, 10, 10, WEEKLY, 8, 30) == pytest.approx(0.35)
    assert movement_floor(30, WEEKLY) == pytest.approx(0.03)
    assert movement_floor(7, WEEKLY) == pytest.approx(0.09)


def test_distance_clamps_at_center():
    assert new_distance(0.02, 10, 10, DAILY, 5, 30) == 0.0


def test_points_ratio_caps_and_guards_zero_max():
    assert points_ratio(20, 10) == 1.0
    assert points_ratio(5, 0) == 1.0
    assert points_ratio(5, 10) == 0.5


def test_partial_points_use_default_settings():
    # defaults: 0.05 per period, daily -> 0.05 * 0.5
    assert new_distance(1.0, 5, 10) == pytest.approx(0.975)
