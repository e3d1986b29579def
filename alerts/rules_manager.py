"""Loads locations, alert rules, preferences and push subscriptions from YAML."""
import logging
import yaml
from pathlib import Path

from models.alerts import (
    AlertRule, Location, TimeWindow, NotificationPreferences, conditions_from_dict,
)
from models.enums import AlertType

logger = logging.getLogger("spotalerts.alerts.rules")

MAX_LEAD_TIME_MINUTES = 120


class RulesManager:
    def __init__(self, rules_path="config/alert_rules.yaml"):
        self.rules_path = Path(rules_path)
        self.locations = []
        self.rules = []
        self.preferences = []
        self.subscriptions = []

    def load(self):
        if not self.rules_path.exists():
            logger.warning(f"Alert rules file not found: {self.rules_path}")
            return self
        with open(self.rules_path) as f:
            data = yaml.safe_load(f) or {}
        self.locations = self._parse_locations(data.get("locations", []))
        self.rules = self._parse_rules(data.get("rules", []))
        self.preferences = self._parse_preferences(data.get("preferences", []))
        self.subscriptions = [s for s in data.get("subscriptions", []) or []
                              if s.get("user_id") and s.get("endpoint")]
        logger.info(
            f"Loaded {len(self.locations)} locations, {len(self.rules)} rules, "
            f"{len(self.preferences)} preference sets"
        )
        return self

    def import_into(self, db):
        """Write everything loaded into db. Returns counts per kind."""
        for location in self.locations:
            db.save_location(location)
        for rule in self.rules:
            db.save_rule(rule)
        for prefs in self.preferences:
            db.save_preferences(prefs)
        for sub in self.subscriptions:
            db.add_push_subscription(sub["user_id"], sub["endpoint"],
                                     keys=sub.get("keys"), device_name=sub.get("device_name"))
        return {
            "locations": len(self.locations),
            "rules": len(self.rules),
            "preferences": len(self.preferences),
            "subscriptions": len(self.subscriptions),
        }

    def _parse_locations(self, raw_locations):
        locations = []
        for loc in raw_locations or []:
            try:
                lat, lng = float(loc["lat"]), float(loc["lng"])
            except (KeyError, TypeError, ValueError):
                logger.warning(f"Location {loc.get('id')} has no valid coordinates")
                continue
            if not (-90 <= lat <= 90 and -180 <= lng <= 180):
                logger.warning(f"Location {loc.get('id')} coordinates out of range: {lat}, {lng}")
                continue
            locations.append(Location(id=str(loc["id"]), name=loc.get("name", str(loc["id"])),
                                      lat=lat, lng=lng))
        return locations

    def _parse_rules(self, raw_rules):
        by_id = {loc.id: loc for loc in self.locations}
        rules = []
        for r in raw_rules or []:
            try:
                rules.append(parse_rule(r, by_id))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Invalid alert rule {r.get('id')}: {e}")
        return rules

    def _parse_preferences(self, raw_prefs):
        prefs = []
        for p in raw_prefs or []:
            try:
                prefs.append(parse_preferences(p))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Invalid preferences for {p.get('user_id')}: {e}")
        return prefs

    def get_rule(self, rule_id):
        for r in self.rules:
            if r.id == rule_id:
                return r
        return None


def _hour(value, name):
    hour = int(value)
    if not 0 <= hour <= 23:
        raise ValueError(f"{name} must be 0-23, got {value}")
    return hour


def parse_rule(r, locations):
    """Build an AlertRule from a raw dict, validating its fields."""
    alert_type = AlertType(r["alert_type"])
    location_id = str(r["location_id"])
    if location_id not in locations:
        raise ValueError(f"unknown location {location_id}")

    name = str(r.get("name", r["id"])).strip()
    if not name or len(name) > 100:
        raise ValueError("name must be 1-100 characters")

    window = r.get("time_window")
    time_window = None
    if window:
        time_window = TimeWindow(start_hour=_hour(window["start_hour"], "start_hour"),
                                 end_hour=_hour(window["end_hour"], "end_hour"))

    days = r.get("days_of_week")
    days_of_week = None
    if days:
        days_of_week = frozenset(int(d) for d in days)
        if not days_of_week <= set(range(7)):
            raise ValueError(f"days_of_week must be within 0-6, got {sorted(days_of_week)}")

    lead = int(r.get("lead_time_minutes", 30))
    if not 0 <= lead <= MAX_LEAD_TIME_MINUTES:
        raise ValueError(f"lead_time_minutes must be 0-{MAX_LEAD_TIME_MINUTES}")

    return AlertRule(
        id=str(r["id"]),
        user_id=str(r["user_id"]),
        location=locations[location_id],
        name=name,
        alert_type=alert_type,
        conditions=conditions_from_dict(alert_type, r.get("conditions")),
        time_window=time_window,
        days_of_week=days_of_week,
        lead_time_minutes=lead,
        is_active=bool(r.get("is_active", True)),
    )


def parse_preferences(p):
    start, end = p.get("quiet_hours_start"), p.get("quiet_hours_end")
    cooldown = float(p.get("cooldown_hours", 6))
    if not 1 <= cooldown <= 48:
        raise ValueError("cooldown_hours must be 1-48")
    return NotificationPreferences(
        user_id=str(p["user_id"]),
        notifications_enabled=bool(p.get("notifications_enabled", True)),
        push_enabled=bool(p.get("push_enabled", True)),
        in_app_enabled=bool(p.get("in_app_enabled", True)),
        quiet_hours_start=_hour(start, "quiet_hours_start") if start is not None else None,
        quiet_hours_end=_hour(end, "quiet_hours_end") if end is not None else None,
        cooldown_hours=cooldown,
        max_notifications_per_day=int(p.get("max_notifications_per_day", 10)),
    )
