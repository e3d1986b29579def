"""Shared test fixtures."""
import os
import sys
import pytest
import tempfile

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from datetime import datetime, timezone

from models.database import Database
from models.alerts import (
    AlertRule, Location, NotificationPreferences, ClearSkiesConditions,
)
from models.enums import AlertType
from models.weather import WeatherSnapshot


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name
    db = Database(db_path)
    db.connect()
    yield db
    db.close()
    os.unlink(db_path)


class FakeRuleStore:
    def __init__(self, rules=None, fail=False):
        self.rules = list(rules or [])
        self.fail = fail
        self.updates = []

    def list_active_rules(self):
        if self.fail:
            raise RuntimeError("database is locked")
        return [r for r in self.rules if r.is_active]

    def update_last_triggered(self, rule_id, instant):
        self.updates.append((rule_id, instant))
        self.rules = [r.with_last_triggered(instant) if r.id == rule_id else r
                      for r in self.rules]


class FakePreferenceStore:
    def __init__(self, prefs=None):
        self.prefs = {p.user_id: p for p in (prefs or [])}
        self.calls = 0

    def get_preferences(self, user_id):
        self.calls += 1
        return self.prefs.get(user_id)


class FakeHistoryStore:
    def __init__(self):
        self.entries = []

    def append(self, entry):
        entry.id = len(self.entries) + 1
        self.entries.append(entry)
        return entry


class FakeWeatherProvider:
    """Returns a fixed snapshot, or raises for coordinates listed in failing."""

    def __init__(self, snapshot=None, failing=()):
        self.snapshot = snapshot or WeatherSnapshot(cloud_cover=20, wind_speed=5)
        self.failing = set(failing)
        self.calls = []

    def get_current_weather(self, lat, lng):
        self.calls.append((lat, lng))
        if (lat, lng) in self.failing:
            raise RuntimeError("timeout")
        return self.snapshot


class FakePushTransport:
    def __init__(self, result=True):
        self.result = result
        self.sent = []

    def send(self, user_id, payload):
        self.sent.append((user_id, payload))
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


@pytest.fixture
def location():
    return Location(id="loc-1", name="Mesa Arch", lat=38.39, lng=-109.87)


@pytest.fixture
def clear_rule(location):
    return AlertRule(
        id="rule-1",
        user_id="user-1",
        location=location,
        name="Clear evening",
        alert_type=AlertType.CLEAR_SKIES,
        conditions=ClearSkiesConditions(max_cloud_cover=30),
    )


@pytest.fixture
def default_prefs():
    return NotificationPreferences(user_id="user-1")


@pytest.fixture
def noon_utc():
    return datetime(2024, 6, 12, 12, 0, tzinfo=timezone.utc)  # a Wednesday
