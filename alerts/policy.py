"""Notification policy: quiet hours, channel selection and preference lookup."""
import logging
import threading
from enum import Enum

from alerts.matcher import is_hour_in_range
from models.alerts import NotificationPreferences
from models.enums import AlertType, NotificationChannel

logger = logging.getLogger("spotalerts.alerts.policy")


class Decision(str, Enum):
    DISABLED = "disabled"   # user turned notifications off entirely
    QUIET = "quiet"         # record the trigger, do not deliver
    DELIVER = "deliver"


def is_in_quiet_hours(prefs, hour):
    if prefs.quiet_hours_start is None or prefs.quiet_hours_end is None:
        return False
    return is_hour_in_range(hour, prefs.quiet_hours_start, prefs.quiet_hours_end)


def build_push_payload(rule, snapshot):
    """Web-push style payload for a triggered rule."""
    return {
        "title": rule.name,
        "body": build_notification_body(rule, snapshot),
        "icon": "/icon-192x192.png",
        "badge": "/badge-72x72.png",
        "tag": f"alert-{rule.id}",
        "data": {
            "alertId": rule.id,
            "locationId": rule.location_id,
            "alertType": AlertType(rule.alert_type).value,
        },
        "requireInteraction": True,
    }


def build_notification_body(rule, snapshot):
    place = rule.location.name or "your location"
    alert_type = AlertType(rule.alert_type)

    if alert_type == AlertType.GOLDEN_HOUR:
        if snapshot.sun_event:
            event = snapshot.sun_event.replace("_", " ")
            return f"{event[0].upper()}{event[1:]} approaching at {place}"
        return f"Golden hour conditions at {place}"
    if alert_type == AlertType.CLEAR_SKIES:
        return f"Clear skies ({snapshot.cloud_cover:g}% cloud cover) at {place}"
    if alert_type == AlertType.LOW_WIND:
        return f"Low wind ({snapshot.wind_speed:g} mph) at {place}"
    return f"Conditions match at {place}"


class PreferenceCache:
    """Per-cycle read-through cache over a PreferenceStore.

    Missing preferences resolve to the defaults. Preferences change far less
    often than the cycle period, so one read per user per cycle is enough.
    """

    def __init__(self, store, enabled=True):
        self.store = store
        self.enabled = enabled
        self._cache = {}
        self._lock = threading.Lock()

    def get(self, user_id):
        if self.enabled:
            with self._lock:
                if user_id in self._cache:
                    return self._cache[user_id]

        prefs = self.store.get_preferences(user_id) or NotificationPreferences.defaults(user_id)

        if self.enabled:
            with self._lock:
                self._cache[user_id] = prefs
        return prefs


class NotificationPolicy:
    def __init__(self, push_transport=None):
        self.push_transport = push_transport

    def decide(self, prefs, hour):
        if not prefs.notifications_enabled:
            return Decision.DISABLED
        if is_in_quiet_hours(prefs, hour):
            return Decision.QUIET
        return Decision.DELIVER

    def deliver(self, rule, snapshot, prefs):
        """Try push, fall back to in-app. Returns (sent, channel)."""
        if prefs.push_enabled and self.push_transport is not None:
            if self._send_push(rule, snapshot):
                return True, NotificationChannel.PUSH

        if prefs.in_app_enabled:
            return True, NotificationChannel.IN_APP
        return False, None

    def _send_push(self, rule, snapshot):
        payload = build_push_payload(rule, snapshot)
        try:
            return bool(self.push_transport.send(rule.user_id, payload))
        except Exception as e:
            logger.warning(f"Push to user {rule.user_id} failed for rule {rule.id}: {e}")
            return False
