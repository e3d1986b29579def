"""SQLite database for locations, alert rules, history, preferences and push subscriptions."""
import json
import sqlite3
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path

from models.alerts import (
    AlertRule, Location, TimeWindow, NotificationPreferences, AlertHistoryEntry,
    conditions_from_dict,
)
from models.enums import AlertType, NotificationChannel
from models.weather import ConditionsSnapshot

logger = logging.getLogger("spotalerts.db")


def _to_iso(dt):
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()


def _from_iso(value):
    if not value:
        return None
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


class Database:
    """Implements the rule, preference and history stores the alert engine consumes.

    One connection is shared between the worker threads of a cycle, so every
    statement runs under a lock.
    """

    def __init__(self, db_path="data/spot_alerts.db"):
        self.db_path = db_path
        self.conn = None
        self._lock = threading.RLock()

    def connect(self):
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA journal_mode=WAL")
        self.conn.execute("PRAGMA foreign_keys=ON")
        self._create_tables()
        return self

    def close(self):
        if self.conn:
            self.conn.close()
            self.conn = None

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, *args):
        self.close()

    def _create_tables(self):
        self.conn.executescript("""
            CREATE TABLE IF NOT EXISTS locations (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                lat REAL,
                lng REAL
            );

            CREATE TABLE IF NOT EXISTS alert_rules (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                location_id TEXT NOT NULL,
                name TEXT NOT NULL,
                alert_type TEXT NOT NULL CHECK (alert_type IN ('golden_hour', 'clear_skies', 'low_wind', 'custom')),
                conditions TEXT NOT NULL DEFAULT '{}',
                time_window TEXT,
                days_of_week TEXT,
                lead_time_minutes INTEGER DEFAULT 30,
                is_active INTEGER DEFAULT 1,
                last_triggered_at TEXT,
                created_at TEXT NOT NULL,
                FOREIGN KEY (location_id) REFERENCES locations(id) ON DELETE CASCADE
            );

            CREATE INDEX IF NOT EXISTS idx_rules_user ON alert_rules(user_id);
            CREATE INDEX IF NOT EXISTS idx_rules_location ON alert_rules(location_id);

            CREATE TABLE IF NOT EXISTS alert_history (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                rule_id TEXT NOT NULL,
                user_id TEXT NOT NULL,
                triggered_at TEXT NOT NULL,
                conditions_snapshot TEXT NOT NULL,
                notification_sent INTEGER DEFAULT 0,
                notification_channel TEXT,
                is_read INTEGER DEFAULT 0,
                read_at TEXT,
                FOREIGN KEY (rule_id) REFERENCES alert_rules(id) ON DELETE CASCADE
            );

            CREATE INDEX IF NOT EXISTS idx_history_triggered
                ON alert_history(triggered_at);
            CREATE INDEX IF NOT EXISTS idx_history_user
                ON alert_history(user_id);

            CREATE TABLE IF NOT EXISTS notification_preferences (
                user_id TEXT PRIMARY KEY,
                notifications_enabled INTEGER DEFAULT 1,
                push_enabled INTEGER DEFAULT 1,
                in_app_enabled INTEGER DEFAULT 1,
                quiet_hours_start INTEGER,
                quiet_hours_end INTEGER,
                max_notifications_per_day INTEGER DEFAULT 10,
                cooldown_hours REAL DEFAULT 6
            );

            CREATE TABLE IF NOT EXISTS push_subscriptions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                endpoint TEXT NOT NULL,
                keys TEXT,
                device_name TEXT,
                is_active INTEGER DEFAULT 1,
                created_at TEXT NOT NULL,
                UNIQUE (user_id, endpoint)
            );
        """)
        self.conn.commit()

    # --- Locations ---

    def save_location(self, location: Location):
        with self._lock:
            self.conn.execute("""
                INSERT INTO locations (id, name, lat, lng)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name = excluded.name, lat = excluded.lat, lng = excluded.lng
            """, (location.id, location.name, location.lat, location.lng))
            self.conn.commit()

    def get_location(self, location_id):
        with self._lock:
            row = self.conn.execute(
                "SELECT * FROM locations WHERE id = ?", (location_id,)
            ).fetchone()
        if row is None:
            return None
        return Location(id=row["id"], name=row["name"], lat=row["lat"], lng=row["lng"])

    # --- Alert Rules ---

    def save_rule(self, rule: AlertRule):
        with self._lock:
            self.conn.execute("""
                INSERT INTO alert_rules
                (id, user_id, location_id, name, alert_type, conditions, time_window,
                 days_of_week, lead_time_minutes, is_active, last_triggered_at, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    user_id = excluded.user_id, location_id = excluded.location_id,
                    name = excluded.name, alert_type = excluded.alert_type,
                    conditions = excluded.conditions, time_window = excluded.time_window,
                    days_of_week = excluded.days_of_week,
                    lead_time_minutes = excluded.lead_time_minutes,
                    is_active = excluded.is_active,
                    last_triggered_at = COALESCE(excluded.last_triggered_at, last_triggered_at)
            """, (
                rule.id, rule.user_id, rule.location_id, rule.name,
                AlertType(rule.alert_type).value,
                json.dumps(rule.conditions.to_dict()),
                json.dumps(rule.time_window.to_dict()) if rule.time_window else None,
                json.dumps(sorted(rule.days_of_week)) if rule.days_of_week is not None else None,
                rule.lead_time_minutes, int(rule.is_active),
                _to_iso(rule.last_triggered_at),
                datetime.now(timezone.utc).isoformat(),
            ))
            self.conn.commit()
        logger.debug(f"Saved rule {rule.id}")

    _RULE_QUERY = """
        SELECT r.*, l.name AS location_name, l.lat AS location_lat, l.lng AS location_lng
        FROM alert_rules r
        LEFT JOIN locations l ON l.id = r.location_id
    """

    def _row_to_rule(self, row):
        time_window = json.loads(row["time_window"]) if row["time_window"] else None
        days = json.loads(row["days_of_week"]) if row["days_of_week"] else None
        return AlertRule(
            id=row["id"],
            user_id=row["user_id"],
            location=Location(
                id=row["location_id"],
                name=row["location_name"] or "",
                lat=row["location_lat"],
                lng=row["location_lng"],
            ),
            name=row["name"],
            alert_type=AlertType(row["alert_type"]),
            conditions=conditions_from_dict(row["alert_type"], json.loads(row["conditions"] or "{}")),
            time_window=TimeWindow(**time_window) if time_window else None,
            days_of_week=frozenset(days) if days else None,
            lead_time_minutes=row["lead_time_minutes"],
            is_active=bool(row["is_active"]),
            last_triggered_at=_from_iso(row["last_triggered_at"]),
        )

    def list_active_rules(self):
        with self._lock:
            rows = self.conn.execute(
                self._RULE_QUERY + " WHERE r.is_active = 1 ORDER BY r.created_at, r.id"
            ).fetchall()
        return [self._row_to_rule(r) for r in rows]

    def list_rules(self, user_id=None):
        query = self._RULE_QUERY
        params = []
        if user_id:
            query += " WHERE r.user_id = ?"
            params.append(user_id)
        query += " ORDER BY r.created_at, r.id"
        with self._lock:
            rows = self.conn.execute(query, params).fetchall()
        return [self._row_to_rule(r) for r in rows]

    def get_rule(self, rule_id):
        with self._lock:
            row = self.conn.execute(
                self._RULE_QUERY + " WHERE r.id = ?", (rule_id,)
            ).fetchone()
        return self._row_to_rule(row) if row else None

    def update_last_triggered(self, rule_id, instant):
        with self._lock:
            self.conn.execute(
                "UPDATE alert_rules SET last_triggered_at = ? WHERE id = ?",
                (_to_iso(instant), rule_id),
            )
            self.conn.commit()

    def set_rule_active(self, rule_id, active):
        with self._lock:
            cur = self.conn.execute(
                "UPDATE alert_rules SET is_active = ? WHERE id = ?", (int(active), rule_id)
            )
            self.conn.commit()
        return cur.rowcount > 0

    # --- Notification Preferences ---

    def save_preferences(self, prefs: NotificationPreferences):
        with self._lock:
            self.conn.execute("""
                INSERT OR REPLACE INTO notification_preferences
                (user_id, notifications_enabled, push_enabled, in_app_enabled,
                 quiet_hours_start, quiet_hours_end, max_notifications_per_day, cooldown_hours)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                prefs.user_id, int(prefs.notifications_enabled), int(prefs.push_enabled),
                int(prefs.in_app_enabled), prefs.quiet_hours_start, prefs.quiet_hours_end,
                prefs.max_notifications_per_day, prefs.cooldown_hours,
            ))
            self.conn.commit()

    def get_preferences(self, user_id):
        with self._lock:
            row = self.conn.execute(
                "SELECT * FROM notification_preferences WHERE user_id = ?", (user_id,)
            ).fetchone()
        if row is None:
            return None
        return NotificationPreferences(
            user_id=row["user_id"],
            notifications_enabled=bool(row["notifications_enabled"]),
            push_enabled=bool(row["push_enabled"]),
            in_app_enabled=bool(row["in_app_enabled"]),
            quiet_hours_start=row["quiet_hours_start"],
            quiet_hours_end=row["quiet_hours_end"],
            max_notifications_per_day=row["max_notifications_per_day"],
            cooldown_hours=row["cooldown_hours"],
        )

    # --- Alert History ---

    def append(self, entry: AlertHistoryEntry):
        channel = entry.notification_channel
        with self._lock:
            cur = self.conn.execute("""
                INSERT INTO alert_history
                (rule_id, user_id, triggered_at, conditions_snapshot,
                 notification_sent, notification_channel, is_read, read_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                entry.rule_id, entry.user_id, _to_iso(entry.triggered_at),
                json.dumps(entry.snapshot.to_dict()),
                int(entry.notification_sent),
                NotificationChannel(channel).value if channel else None,
                int(entry.is_read), _to_iso(entry.read_at),
            ))
            self.conn.commit()
        entry.id = cur.lastrowid
        return entry

    def _row_to_history(self, row):
        return AlertHistoryEntry(
            id=row["id"],
            rule_id=row["rule_id"],
            user_id=row["user_id"],
            snapshot=ConditionsSnapshot.from_dict(json.loads(row["conditions_snapshot"])),
            notification_sent=bool(row["notification_sent"]),
            notification_channel=NotificationChannel(row["notification_channel"])
            if row["notification_channel"] else None,
            triggered_at=_from_iso(row["triggered_at"]),
            is_read=bool(row["is_read"]),
            read_at=_from_iso(row["read_at"]),
        )

    def get_recent_history(self, limit=50, user_id=None, since=None):
        query = "SELECT * FROM alert_history WHERE 1=1"
        params = []
        if user_id:
            query += " AND user_id = ?"
            params.append(user_id)
        if since:
            query += " AND triggered_at >= ?"
            params.append(_to_iso(since))
        query += " ORDER BY triggered_at DESC, id DESC LIMIT ?"
        params.append(limit)
        with self._lock:
            rows = self.conn.execute(query, params).fetchall()
        return [self._row_to_history(r) for r in rows]

    def mark_read(self, entry_id):
        with self._lock:
            self.conn.execute(
                "UPDATE alert_history SET is_read = 1, read_at = ? WHERE id = ?",
                (datetime.now(timezone.utc).isoformat(), entry_id),
            )
            self.conn.commit()

    def count_notifications_today(self, user_id, now=None):
        """Delivered notifications for user_id since UTC midnight."""
        now = now or datetime.now(timezone.utc)
        midnight = now.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
        with self._lock:
            row = self.conn.execute("""
                SELECT COUNT(*) AS cnt FROM alert_history
                WHERE user_id = ? AND notification_sent = 1 AND triggered_at >= ?
            """, (user_id, midnight.isoformat())).fetchone()
        return row["cnt"]

    # --- Push Subscriptions ---

    def add_push_subscription(self, user_id, endpoint, keys=None, device_name=None):
        with self._lock:
            cur = self.conn.execute("""
                INSERT OR REPLACE INTO push_subscriptions
                (user_id, endpoint, keys, device_name, is_active, created_at)
                VALUES (?, ?, ?, ?, 1, ?)
            """, (user_id, endpoint, json.dumps(keys or {}), device_name,
                  datetime.now(timezone.utc).isoformat()))
            self.conn.commit()
        return cur.lastrowid

    def get_push_subscriptions(self, user_id):
        with self._lock:
            rows = self.conn.execute("""
                SELECT * FROM push_subscriptions
                WHERE user_id = ? AND is_active = 1 ORDER BY id
            """, (user_id,)).fetchall()
        result = []
        for r in rows:
            d = dict(r)
            d["keys"] = json.loads(d["keys"] or "{}")
            result.append(d)
        return result

    def deactivate_push_subscription(self, subscription_id):
        with self._lock:
            self.conn.execute(
                "UPDATE push_subscriptions SET is_active = 0 WHERE id = ?", (subscription_id,)
            )
            self.conn.commit()
