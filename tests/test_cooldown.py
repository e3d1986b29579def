"""Tests for the cooldown gate."""
from dataclasses import replace
from datetime import datetime, timedelta, timezone

from alerts.cooldown import is_in_cooldown


NOW = datetime(2024, 6, 12, 12, 0, tzinfo=timezone.utc)


def test_never_triggered(clear_rule):
    assert not is_in_cooldown(clear_rule, 6, NOW)


def test_recent_trigger_is_in_cooldown(clear_rule):
    rule = replace(clear_rule, last_triggered_at=NOW - timedelta(hours=2))
    assert is_in_cooldown(rule, 6, NOW)


def test_exact_boundary_is_not_in_cooldown(clear_rule):
    rule = replace(clear_rule, last_triggered_at=NOW - timedelta(hours=6))
    assert not is_in_cooldown(rule, 6, NOW)


def test_just_inside_boundary(clear_rule):
    rule = replace(clear_rule, last_triggered_at=NOW - timedelta(hours=6) + timedelta(seconds=1))
    assert is_in_cooldown(rule, 6, NOW)


def test_custom_cooldown_hours(clear_rule):
    rule = replace(clear_rule, last_triggered_at=NOW - timedelta(hours=2))
    assert not is_in_cooldown(rule, 1, NOW)
    assert is_in_cooldown(rule, 24, NOW)


def test_naive_last_trigger_treated_as_utc(clear_rule):
    rule = replace(clear_rule, last_triggered_at=datetime(2024, 6, 12, 11, 0))
    assert is_in_cooldown(rule, 6, NOW)


def test_compares_across_zones(clear_rule):
    tz = timezone(timedelta(hours=-7))
    rule = replace(clear_rule, last_triggered_at=NOW - timedelta(hours=1))
    assert is_in_cooldown(rule, 6, NOW.astimezone(tz))
