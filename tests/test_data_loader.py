"""
Tests for settings resolution in arena/data_loader.py.
"""

import logging

import pytest

from arena.data_loader import (
    EliminationPolicy,
    SurvivalSettings,
    Timeframe,
    get_default_settings,
    parse_settings,
    resolve_settings,
)
from arena.errors import ConfigurationError
from league.models import Challenge


def test_defaults_load_from_toml():
    s = get_default_settings()
    assert s.initial_safe_radius == 1.0
    assert s.min_safe_radius == 0.1
    assert s.danger_threshold == 1.0
    assert s.max_points_per_period == 10
    assert s.max_movement_per_period == 0.05
    assert s.timeframe is Timeframe.DAILY
    assert s.start_lives == 3
    assert s.elimination_policy is EliminationPolicy.LIVES
    assert get_default_settings() is s


def test_partial_settings_merge_over_defaults():
    s = resolve_settings({"timeframe": "weekly", "max_movement_per_period": 0.1})
    assert s.is_weekly
    assert s.max_movement_per_period == 0.1
    assert s.initial_safe_radius == 1.0
    assert s.min_safe_radius == 0.1


def test_dedicated_settings_win_over_legacy_rules():
    s = resolve_settings(
        {"start_lives": 5},
        {"survival_settings": {"start_lives": 1}},
    )
    assert s.start_lives == 5


def test_legacy_rules_used_when_settings_missing():
    s = resolve_settings(None, {"survival_settings": {"start_lives": 1}})
    assert s.start_lives == 1


def test_nothing_configured_means_defaults():
    assert resolve_settings(None, None) == get_default_settings()
    assert resolve_settings({}, {}) == get_default_settings()


def test_legacy_final_radius_key():
    s = parse_settings({"final_safe_radius": 0.25})
    assert s.min_safe_radius == 0.25


def test_canonical_key_beats_legacy_key():
    s = parse_settings({"final_safe_radius": 0.25, "min_safe_radius": 0.3})
    assert s.min_safe_radius == 0.3


def test_min_above_initial_rejected():
    with pytest.raises(ConfigurationError):
        parse_settings({"initial_safe_radius": 0.5, "min_safe_radius": 0.6})
    with pytest.raises(ValueError):
        SurvivalSettings(initial_safe_radius=0.5, min_safe_radius=0.6)


def test_non_mapping_rejected():
    with pytest.raises(ConfigurationError):
        parse_settings(["not", "a", "mapping"])


def test_malformed_settings_fall_back_and_warn(caplog):
    with caplog.at_level(logging.WARNING, logger="arena.data_loader"):
        s = resolve_settings({"timeframe": "fortnightly"}, challenge_id="c-bad")
    assert s == get_default_settings()
    assert "c-bad" in caplog.text


def test_challenge_normalizes_settings_once():
    challenge = Challenge(
        id="c1",
        start_date="2026-03-01",
        rules={"survival_settings": {"timeframe": "weekly"}},
    )
    assert isinstance(challenge.settings, SurvivalSettings)
    assert challenge.settings.is_weekly


def test_settings_are_frozen():
    s = get_default_settings()
    with pytest.raises(Exception):
        s.start_lives = 9
