"""Decides whether current conditions at a location satisfy an alert rule.

Everything here is a pure function of (rule, weather, solar events, now).
The conditions snapshot is built from the weather before any filter runs,
so callers get it back on every outcome for audit and debugging.
"""
import math
from datetime import timedelta

from models.alerts import (
    MatchResult, ClearSkiesConditions, LowWindConditions, CustomConditions,
)
from models.enums import AlertType
from models.weather import ConditionsSnapshot


GOLDEN_HOUR_MAX_CLOUD_COVER = 70
GOLDEN_HOUR_MAX_PRECIPITATION = 30
DEFAULT_LEAD_TIME_MINUTES = 30


def is_hour_in_range(hour, start_hour, end_hour):
    """True if hour falls in [start_hour, end_hour), wrapping past midnight when start > end."""
    if start_hour > end_hour:
        return hour >= start_hour or hour < end_hour
    return start_hour <= hour < end_hour


def sunday_based_weekday(now):
    """Weekday with 0 = Sunday, 6 = Saturday."""
    return (now.weekday() + 1) % 7


def match_conditions(rule, weather, solar_events, now):
    """Evaluate rule against weather at instant now (aware, in the engine's local zone).

    solar_events is only consulted for golden_hour rules and may be None otherwise.
    """
    snapshot = ConditionsSnapshot.from_weather(weather)

    if rule.time_window is not None:
        if not is_hour_in_range(now.hour, rule.time_window.start_hour, rule.time_window.end_hour):
            return MatchResult(False, "Outside time window", snapshot)

    if rule.days_of_week:
        if sunday_based_weekday(now) not in rule.days_of_week:
            return MatchResult(False, "Not scheduled for today", snapshot)

    matcher = _MATCHERS.get(_alert_type(rule))
    if matcher is None:
        return MatchResult(False, "Unknown alert type", snapshot)
    return matcher(rule, weather, solar_events, now, snapshot)


def _alert_type(rule):
    try:
        return AlertType(rule.alert_type)
    except ValueError:
        return None


def match_golden_hour(rule, weather, solar_events, now, snapshot):
    if solar_events is None:
        return MatchResult(False, "Not near golden hour", snapshot)

    # 0 or unset falls back to the default lead time
    lead = timedelta(minutes=rule.lead_time_minutes or DEFAULT_LEAD_TIME_MINUTES)
    for event, event_time in solar_events.events():
        if event_time is None:
            continue
        time_until = event_time - now
        if not (timedelta(0) < time_until <= lead):
            continue

        augmented = snapshot.with_sun_event(event, event_time)
        if (weather.cloud_cover <= GOLDEN_HOUR_MAX_CLOUD_COVER
                and weather.precipitation_probability <= GOLDEN_HOUR_MAX_PRECIPITATION):
            minutes = math.floor(time_until.total_seconds() / 60 + 0.5)
            return MatchResult(True, f"{event.value} in {minutes} minutes", augmented)
        return MatchResult(False, "Weather conditions not suitable for golden hour", augmented)

    return MatchResult(False, "Not near golden hour", snapshot)


def match_clear_skies(rule, weather, solar_events, now, snapshot):
    conditions = rule.conditions if isinstance(rule.conditions, ClearSkiesConditions) \
        else ClearSkiesConditions()
    threshold = conditions.max_cloud_cover
    if weather.cloud_cover <= threshold:
        return MatchResult(True, f"Cloud cover {_num(weather.cloud_cover)}% "
                                 f"(threshold: {_num(threshold)}%)", snapshot)
    return MatchResult(False, f"Cloud cover {_num(weather.cloud_cover)}% "
                              f"exceeds {_num(threshold)}%", snapshot)


def match_low_wind(rule, weather, solar_events, now, snapshot):
    conditions = rule.conditions if isinstance(rule.conditions, LowWindConditions) \
        else LowWindConditions()
    threshold = conditions.max_wind_speed
    if weather.wind_speed <= threshold:
        return MatchResult(True, f"Wind {_num(weather.wind_speed)} mph "
                                 f"(threshold: {_num(threshold)} mph)", snapshot)
    return MatchResult(False, f"Wind {_num(weather.wind_speed)} mph "
                              f"exceeds {_num(threshold)} mph", snapshot)


def match_custom(rule, weather, solar_events, now, snapshot):
    c = rule.conditions if isinstance(rule.conditions, CustomConditions) else CustomConditions()
    failures = []

    if c.max_cloud_cover is not None and weather.cloud_cover > c.max_cloud_cover:
        failures.append(f"Cloud cover {_num(weather.cloud_cover)}% > {_num(c.max_cloud_cover)}%")
    if c.max_wind_speed is not None and weather.wind_speed > c.max_wind_speed:
        failures.append(f"Wind {_num(weather.wind_speed)} mph > {_num(c.max_wind_speed)} mph")
    if (c.max_precipitation_probability is not None
            and weather.precipitation_probability > c.max_precipitation_probability):
        failures.append(f"Rain chance {_num(weather.precipitation_probability)}% > "
                        f"{_num(c.max_precipitation_probability)}%")
    if c.min_visibility is not None and weather.visibility < c.min_visibility:
        failures.append(f"Visibility {_num(weather.visibility)}km < {_num(c.min_visibility)}km")
    if c.min_temperature is not None and weather.temperature < c.min_temperature:
        failures.append(f"Temperature {_num(weather.temperature)}°C < {_num(c.min_temperature)}°C")
    if c.max_temperature is not None and weather.temperature > c.max_temperature:
        failures.append(f"Temperature {_num(weather.temperature)}°C > {_num(c.max_temperature)}°C")

    if not failures:
        return MatchResult(True, "All conditions met", snapshot)
    return MatchResult(False, "; ".join(failures), snapshot)


_MATCHERS = {
    AlertType.GOLDEN_HOUR: match_golden_hour,
    AlertType.CLEAR_SKIES: match_clear_skies,
    AlertType.LOW_WIND: match_low_wind,
    AlertType.CUSTOM: match_custom,
}


def _num(value):
    """Render 15.0 as '15' and 12.5 as '12.5'."""
    value = float(value)
    return str(int(value)) if value.is_integer() else f"{value:g}"
