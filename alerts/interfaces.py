"""Collaborator interfaces consumed by the alert engine."""
from datetime import datetime
from typing import Optional, Protocol, runtime_checkable

from models.alerts import AlertRule, AlertHistoryEntry, NotificationPreferences
from models.weather import WeatherSnapshot


@runtime_checkable
class RuleStore(Protocol):
    def list_active_rules(self) -> list[AlertRule]: ...

    def update_last_triggered(self, rule_id: str, instant: datetime) -> None: ...


@runtime_checkable
class PreferenceStore(Protocol):
    def get_preferences(self, user_id: str) -> Optional[NotificationPreferences]: ...


@runtime_checkable
class HistoryStore(Protocol):
    def append(self, entry: AlertHistoryEntry) -> AlertHistoryEntry: ...


@runtime_checkable
class WeatherProvider(Protocol):
    def get_current_weather(self, lat: float, lng: float) -> WeatherSnapshot: ...


@runtime_checkable
class PushTransport(Protocol):
    def send(self, user_id: str, payload: dict) -> bool: ...
