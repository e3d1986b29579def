"""Dataclasses for alert rules, history entries and evaluation outcomes."""
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from typing import Optional, Union

from models.enums import AlertType, NotificationChannel
from models.weather import ConditionsSnapshot


# --- Conditions (one variant per alert type) ---

@dataclass(frozen=True)
class GoldenHourConditions:
    alert_type = AlertType.GOLDEN_HOUR

    def to_dict(self):
        return {}


@dataclass(frozen=True)
class ClearSkiesConditions:
    alert_type = AlertType.CLEAR_SKIES
    max_cloud_cover: float = 30

    def to_dict(self):
        return {"max_cloud_cover": self.max_cloud_cover}


@dataclass(frozen=True)
class LowWindConditions:
    alert_type = AlertType.LOW_WIND
    max_wind_speed: float = 10

    def to_dict(self):
        return {"max_wind_speed": self.max_wind_speed}


@dataclass(frozen=True)
class CustomConditions:
    """User-chosen thresholds. Only the ones that are set are checked."""
    alert_type = AlertType.CUSTOM
    max_cloud_cover: Optional[float] = None
    max_wind_speed: Optional[float] = None
    max_precipitation_probability: Optional[float] = None
    min_visibility: Optional[float] = None
    min_temperature: Optional[float] = None
    max_temperature: Optional[float] = None

    def to_dict(self):
        return {f.name: getattr(self, f.name) for f in fields(self)
                if getattr(self, f.name) is not None}


AlertConditions = Union[GoldenHourConditions, ClearSkiesConditions, LowWindConditions, CustomConditions]

CONDITIONS_BY_TYPE = {
    AlertType.GOLDEN_HOUR: GoldenHourConditions,
    AlertType.CLEAR_SKIES: ClearSkiesConditions,
    AlertType.LOW_WIND: LowWindConditions,
    AlertType.CUSTOM: CustomConditions,
}


def conditions_from_dict(alert_type, raw=None):
    """Build the conditions variant for alert_type, ignoring unknown keys."""
    cls = CONDITIONS_BY_TYPE[AlertType(alert_type)]
    raw = raw or {}
    known = {f.name for f in fields(cls)}
    kwargs = {k: float(v) for k, v in raw.items() if k in known and v is not None}
    return cls(**kwargs)


# --- Rules ---

@dataclass(frozen=True)
class TimeWindow:
    start_hour: int = 0
    end_hour: int = 0

    def to_dict(self):
        return {"start_hour": self.start_hour, "end_hour": self.end_hour}


@dataclass(frozen=True)
class Location:
    id: str = ""
    name: str = ""
    lat: Optional[float] = None
    lng: Optional[float] = None

    @property
    def has_coordinates(self):
        return self.lat is not None and self.lng is not None


@dataclass(frozen=True)
class AlertRule:
    id: str = ""
    user_id: str = ""
    location: Location = field(default_factory=Location)
    name: str = ""
    alert_type: AlertType = AlertType.CUSTOM
    conditions: AlertConditions = field(default_factory=CustomConditions)
    time_window: Optional[TimeWindow] = None
    days_of_week: Optional[frozenset] = None
    lead_time_minutes: int = 30
    is_active: bool = True
    last_triggered_at: Optional[datetime] = None

    @property
    def location_id(self):
        return self.location.id

    def with_last_triggered(self, instant):
        """Return a copy of this rule that last triggered at instant."""
        return replace(self, last_triggered_at=instant)


# --- Notification preferences ---

@dataclass(frozen=True)
class NotificationPreferences:
    user_id: str = ""
    notifications_enabled: bool = True
    push_enabled: bool = True
    in_app_enabled: bool = True
    quiet_hours_start: Optional[int] = None
    quiet_hours_end: Optional[int] = None
    cooldown_hours: float = 6
    max_notifications_per_day: int = 10  # enforced by the delivery layer, not here

    @classmethod
    def defaults(cls, user_id=""):
        return cls(user_id=user_id)


# --- Evaluation results ---

@dataclass(frozen=True)
class MatchResult:
    matched: bool
    reason: str
    snapshot: ConditionsSnapshot


@dataclass
class AlertHistoryEntry:
    id: Optional[int] = None
    rule_id: str = ""
    user_id: str = ""
    snapshot: ConditionsSnapshot = field(default_factory=ConditionsSnapshot)
    notification_sent: bool = False
    notification_channel: Optional[NotificationChannel] = None
    triggered_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    is_read: bool = False
    read_at: Optional[datetime] = None


@dataclass
class EvaluationOutcome:
    rule_id: str = ""
    location_id: str = ""
    user_id: str = ""
    triggered: bool = False
    reason: Optional[str] = None
    notification_sent: bool = False
    error: Optional[str] = None

    def to_dict(self):
        return {
            "alertId": self.rule_id,
            "locationId": self.location_id,
            "userId": self.user_id,
            "triggered": self.triggered,
            "reason": self.reason,
            "notificationSent": self.notification_sent,
            "error": self.error,
        }


@dataclass
class CycleSummary:
    outcomes: list = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    duration_ms: int = 0

    @property
    def checked(self):
        return len(self.outcomes)

    @property
    def triggered(self):
        return sum(1 for o in self.outcomes if o.triggered)

    @property
    def errors(self):
        return sum(1 for o in self.outcomes if o.error)

    def to_dict(self, include_outcomes=False):
        d = {
            "checked": self.checked,
            "triggered": self.triggered,
            "errors": self.errors,
        }
        if include_outcomes:
            d["results"] = [o.to_dict() for o in self.outcomes]
        return d
