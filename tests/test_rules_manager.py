"""Tests for loading rules and preferences from YAML."""
import pytest
import yaml

from alerts.rules_manager import RulesManager, parse_rule, parse_preferences
from models.alerts import ClearSkiesConditions, Location
from models.enums import AlertType


LOCATIONS = {"loc-1": Location(id="loc-1", name="Mesa Arch", lat=38.39, lng=-109.87)}


def _raw_rule(**overrides):
    raw = {"id": "r1", "user_id": "u1", "location_id": "loc-1", "name": "Evening",
           "alert_type": "clear_skies"}
    raw.update(overrides)
    return raw


class TestParseRule:
    def test_defaults(self):
        rule = parse_rule(_raw_rule(), LOCATIONS)
        assert rule.alert_type == AlertType.CLEAR_SKIES
        assert rule.conditions == ClearSkiesConditions(max_cloud_cover=30)
        assert rule.lead_time_minutes == 30
        assert rule.time_window is None
        assert rule.days_of_week is None
        assert rule.is_active

    def test_full_rule(self):
        rule = parse_rule(_raw_rule(conditions={"max_cloud_cover": 15, "bogus": 1},
                                    time_window={"start_hour": 22, "end_hour": 6},
                                    days_of_week=[0, 6]), LOCATIONS)
        assert rule.conditions.max_cloud_cover == 15
        assert rule.time_window.start_hour == 22
        assert rule.days_of_week == frozenset({0, 6})

    @pytest.mark.parametrize("overrides", [
        {"alert_type": "sunbeams"},
        {"location_id": "nowhere"},
        {"name": ""},
        {"name": "x" * 101},
        {"time_window": {"start_hour": 24, "end_hour": 6}},
        {"days_of_week": [7]},
        {"lead_time_minutes": 121},
        {"lead_time_minutes": -1},
    ])
    def test_invalid(self, overrides):
        with pytest.raises(ValueError):
            parse_rule(_raw_rule(**overrides), LOCATIONS)


class TestParsePreferences:
    def test_defaults(self):
        prefs = parse_preferences({"user_id": "u1"})
        assert prefs.notifications_enabled
        assert prefs.quiet_hours_start is None
        assert prefs.cooldown_hours == 6

    @pytest.mark.parametrize("cooldown", [0, 49])
    def test_cooldown_bounds(self, cooldown):
        with pytest.raises(ValueError):
            parse_preferences({"user_id": "u1", "cooldown_hours": cooldown})


class TestRulesManager:
    def _write(self, tmp_path, data):
        path = tmp_path / "rules.yaml"
        path.write_text(yaml.safe_dump(data))
        return path

    def test_missing_file(self, tmp_path):
        manager = RulesManager(tmp_path / "missing.yaml").load()
        assert manager.rules == []

    def test_invalid_entries_skipped(self, tmp_path):
        path = self._write(tmp_path, {
            "locations": [
                {"id": "loc-1", "name": "Mesa Arch", "lat": 38.39, "lng": -109.87},
                {"id": "loc-bad", "name": "Nowhere", "lat": 120, "lng": 0},
            ],
            "rules": [_raw_rule(), _raw_rule(id="r2", location_id="loc-bad")],
            "preferences": [{"user_id": "u1", "cooldown_hours": 100}],
        })
        manager = RulesManager(path).load()
        assert [loc.id for loc in manager.locations] == ["loc-1"]
        assert [r.id for r in manager.rules] == ["r1"]
        assert manager.preferences == []
        assert manager.get_rule("r1").name == "Evening"
        assert manager.get_rule("r2") is None

    def test_import_into_db(self, tmp_path, temp_db):
        path = self._write(tmp_path, {
            "locations": [{"id": "loc-1", "name": "Mesa Arch", "lat": 38.39, "lng": -109.87}],
            "rules": [_raw_rule()],
            "preferences": [{"user_id": "u1", "quiet_hours_start": 22, "quiet_hours_end": 6}],
            "subscriptions": [{"user_id": "u1", "endpoint": "https://push.test/a"}],
        })
        counts = RulesManager(path).load().import_into(temp_db)
        assert counts == {"locations": 1, "rules": 1, "preferences": 1, "subscriptions": 1}
        assert temp_db.list_active_rules()[0].location.name == "Mesa Arch"
        assert temp_db.get_preferences("u1").quiet_hours_start == 22
        assert len(temp_db.get_push_subscriptions("u1")) == 1

    def test_bundled_seed_file_loads(self):
        from pathlib import Path
        seed = Path(__file__).parent.parent / "config" / "alert_rules.yaml"
        manager = RulesManager(seed).load()
        assert len(manager.rules) == 3
        assert {r.alert_type for r in manager.rules} == {
            AlertType.GOLDEN_HOUR, AlertType.CLEAR_SKIES, AlertType.CUSTOM}
