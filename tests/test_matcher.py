"""Tests for the condition matcher."""
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from alerts.matcher import match_conditions, is_hour_in_range, sunday_based_weekday
from models.alerts import (
    AlertRule, CustomConditions, LowWindConditions, TimeWindow, GoldenHourConditions,
)
from models.enums import AlertType
from models.weather import WeatherSnapshot, SolarEventSet


NOW = datetime(2024, 6, 12, 12, 0, tzinfo=timezone.utc)  # Wednesday


def _weather(**kw):
    return WeatherSnapshot(**kw)


class TestHourRange:
    def test_plain_range(self):
        assert is_hour_in_range(10, 9, 17)
        assert not is_hour_in_range(17, 9, 17)
        assert not is_hour_in_range(8, 9, 17)

    def test_wraps_midnight(self):
        assert is_hour_in_range(23, 22, 6)
        assert is_hour_in_range(2, 22, 6)
        assert not is_hour_in_range(6, 22, 6)
        assert not is_hour_in_range(12, 22, 6)

    def test_equal_bounds_is_empty(self):
        assert not any(is_hour_in_range(h, 5, 5) for h in range(24))

    def test_sunday_based_weekday(self):
        assert sunday_based_weekday(datetime(2024, 6, 9)) == 0   # Sunday
        assert sunday_based_weekday(datetime(2024, 6, 15)) == 6  # Saturday


class TestClearSkies:
    def test_below_threshold_matches(self, clear_rule):
        result = match_conditions(clear_rule, _weather(cloud_cover=20), None, NOW)
        assert result.matched
        assert result.reason == "Cloud cover 20% (threshold: 30%)"

    def test_equal_threshold_matches(self, clear_rule):
        assert match_conditions(clear_rule, _weather(cloud_cover=30), None, NOW).matched

    def test_above_threshold(self, clear_rule):
        result = match_conditions(clear_rule, _weather(cloud_cover=45), None, NOW)
        assert not result.matched
        assert result.reason == "Cloud cover 45% exceeds 30%"

    def test_snapshot_always_returned(self, clear_rule):
        result = match_conditions(clear_rule, _weather(cloud_cover=45, wind_speed=7), None, NOW)
        assert result.snapshot.cloud_cover == 45
        assert result.snapshot.wind_speed == 7
        assert result.snapshot.sun_event is None


class TestLowWind:
    def test_default_threshold(self, clear_rule):
        rule = replace(clear_rule, alert_type=AlertType.LOW_WIND, conditions=LowWindConditions())
        assert match_conditions(rule, _weather(wind_speed=10), None, NOW).matched
        result = match_conditions(rule, _weather(wind_speed=12.5), None, NOW)
        assert not result.matched
        assert result.reason == "Wind 12.5 mph exceeds 10 mph"


class TestCustom:
    def _rule(self, clear_rule, **conditions):
        return replace(clear_rule, alert_type=AlertType.CUSTOM,
                       conditions=CustomConditions(**conditions))

    def test_no_conditions_always_matches(self, clear_rule):
        result = match_conditions(self._rule(clear_rule), _weather(cloud_cover=100), None, NOW)
        assert result.matched
        assert result.reason == "All conditions met"

    def test_all_failures_listed(self, clear_rule):
        rule = self._rule(clear_rule, max_cloud_cover=10, max_wind_speed=5, min_visibility=20)
        result = match_conditions(rule, _weather(cloud_cover=50, wind_speed=8, visibility=10),
                                  None, NOW)
        assert not result.matched
        assert result.reason == "Cloud cover 50% > 10%; Wind 8 mph > 5 mph; Visibility 10km < 20km"

    def test_temperature_bounds(self, clear_rule):
        rule = self._rule(clear_rule, min_temperature=5, max_temperature=25)
        assert match_conditions(rule, _weather(temperature=15), None, NOW).matched
        cold = match_conditions(rule, _weather(temperature=2), None, NOW)
        assert cold.reason == "Temperature 2°C < 5°C"

    def test_rain_chance(self, clear_rule):
        rule = self._rule(clear_rule, max_precipitation_probability=20)
        result = match_conditions(rule, _weather(precipitation_probability=60), None, NOW)
        assert result.reason == "Rain chance 60% > 20%"


class TestFilters:
    def test_outside_time_window(self, clear_rule):
        rule = replace(clear_rule, time_window=TimeWindow(16, 20))
        result = match_conditions(rule, _weather(cloud_cover=0), None, NOW)
        assert not result.matched
        assert result.reason == "Outside time window"

    def test_overnight_window(self, clear_rule):
        rule = replace(clear_rule, time_window=TimeWindow(22, 6))
        late = NOW.replace(hour=23)
        assert match_conditions(rule, _weather(cloud_cover=0), None, late).matched

    def test_not_scheduled_today(self, clear_rule):
        rule = replace(clear_rule, days_of_week=frozenset({0, 6}))
        result = match_conditions(rule, _weather(cloud_cover=0), None, NOW)
        assert result.reason == "Not scheduled for today"

    def test_scheduled_today(self, clear_rule):
        rule = replace(clear_rule, days_of_week=frozenset({3}))
        assert match_conditions(rule, _weather(cloud_cover=0), None, NOW).matched

    def test_window_checked_before_days(self, clear_rule):
        rule = replace(clear_rule, time_window=TimeWindow(1, 2), days_of_week=frozenset({0}))
        assert match_conditions(rule, _weather(), None, NOW).reason == "Outside time window"


class TestGoldenHour:
    @pytest.fixture
    def rule(self, clear_rule):
        return replace(clear_rule, alert_type=AlertType.GOLDEN_HOUR,
                       conditions=GoldenHourConditions(), lead_time_minutes=30)

    def _events(self, **offsets):
        return SolarEventSet(**{k: NOW + timedelta(minutes=v) for k, v in offsets.items()})

    def test_event_within_lead_time(self, rule):
        result = match_conditions(rule, _weather(cloud_cover=40),
                                  self._events(sunset=20), NOW)
        assert result.matched
        assert result.reason == "sunset in 20 minutes"
        assert result.snapshot.sun_event == "sunset"
        assert result.snapshot.sun_event_time == NOW + timedelta(minutes=20)

    def test_event_exactly_at_lead_boundary(self, rule):
        assert match_conditions(rule, _weather(), self._events(sunset=30), NOW).matched

    def test_event_beyond_lead_time(self, rule):
        result = match_conditions(rule, _weather(), self._events(sunset=31), NOW)
        assert not result.matched
        assert result.reason == "Not near golden hour"

    def test_zero_lead_time_uses_default(self, rule):
        result = match_conditions(replace(rule, lead_time_minutes=0), _weather(),
                                  self._events(sunset=20), NOW)
        assert result.matched
        assert result.reason == "sunset in 20 minutes"

    def test_half_minute_rounds_up(self, rule):
        events = SolarEventSet(sunset=NOW + timedelta(minutes=20, seconds=30))
        result = match_conditions(rule, _weather(), events, NOW)
        assert result.reason == "sunset in 21 minutes"

    def test_past_event_ignored(self, rule):
        result = match_conditions(rule, _weather(), self._events(sunrise=-5), NOW)
        assert result.reason == "Not near golden hour"

    def test_event_now_is_not_upcoming(self, rule):
        assert not match_conditions(rule, _weather(), self._events(sunrise=0), NOW).matched

    def test_first_event_in_order_wins(self, rule):
        events = self._events(golden_hour_start=10, sunset=25)
        result = match_conditions(rule, _weather(), events, NOW)
        assert result.reason == "golden_hour_start in 10 minutes"

    def test_bad_weather_stops_at_first_event(self, rule):
        result = match_conditions(rule, _weather(cloud_cover=80),
                                  self._events(golden_hour_start=10, sunset=25), NOW)
        assert not result.matched
        assert result.reason == "Weather conditions not suitable for golden hour"
        assert result.snapshot.sun_event == "golden_hour_start"

    def test_rain_blocks_golden_hour(self, rule):
        result = match_conditions(rule, _weather(precipitation_probability=31),
                                  self._events(sunrise=5), NOW)
        assert not result.matched

    def test_missing_events_skipped(self, rule):
        events = SolarEventSet(sunrise=None, sunset=NOW + timedelta(minutes=5))
        assert match_conditions(rule, _weather(), events, NOW).matched

    def test_no_solar_data(self, rule):
        assert not match_conditions(rule, _weather(), None, NOW).matched


def test_unknown_alert_type(clear_rule):
    rule = AlertRule(id="x", alert_type="sunbeams", location=clear_rule.location)
    result = match_conditions(rule, _weather(), None, NOW)
    assert not result.matched
    assert result.reason == "Unknown alert type"


def test_single_constraint_reports_single_failure(clear_rule):
    rule = replace(clear_rule, alert_type=AlertType.CUSTOM,
                   conditions=CustomConditions(max_wind_speed=10))
    result = match_conditions(rule, _weather(wind_speed=15, cloud_cover=95), None, NOW)
    assert not result.matched
    assert result.reason == "Wind 15 mph > 10 mph"


@pytest.mark.parametrize("hour", range(24))
def test_no_filters_never_reject(clear_rule, hour):
    now = NOW.replace(hour=hour)
    assert match_conditions(clear_rule, _weather(cloud_cover=0), None, now).matched
