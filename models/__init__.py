"""Data models."""
from models.enums import AlertType, NotificationChannel, SolarEventName
from models.weather import WeatherSnapshot, SolarEventSet, ConditionsSnapshot
from models.alerts import (
    AlertRule, Location, TimeWindow, NotificationPreferences, MatchResult,
    AlertHistoryEntry, EvaluationOutcome, CycleSummary, conditions_from_dict,
)
