"""Enums for alert types, notification channels and solar events."""
from enum import Enum


class AlertType(str, Enum):
    GOLDEN_HOUR = "golden_hour"
    CLEAR_SKIES = "clear_skies"
    LOW_WIND = "low_wind"
    CUSTOM = "custom"


class NotificationChannel(str, Enum):
    PUSH = "push"
    IN_APP = "in_app"


class SolarEventName(str, Enum):
    SUNRISE = "sunrise"
    GOLDEN_HOUR_END = "golden_hour_end"      # end of morning golden hour
    GOLDEN_HOUR_START = "golden_hour_start"  # start of evening golden hour
    SUNSET = "sunset"


# 0 = Sunday, 6 = Saturday
DAY_LABELS = {
    0: "Sun",
    1: "Mon",
    2: "Tue",
    3: "Wed",
    4: "Thu",
    5: "Fri",
    6: "Sat",
}
