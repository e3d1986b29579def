"""Alert evaluation engine: one batch cycle over every active rule."""
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

from alerts.cooldown import is_in_cooldown
from alerts.errors import CycleError, CycleInProgressError
from alerts.matcher import match_conditions
from alerts.policy import Decision, NotificationPolicy, PreferenceCache
from models.alerts import AlertHistoryEntry, CycleSummary, EvaluationOutcome
from models.enums import AlertType
from weather.solar import SolarEventCalculator

logger = logging.getLogger("spotalerts.alerts.engine")


class AlertOrchestrator:
    """Loads active rules, fetches weather once per location and evaluates each rule.

    Failures are isolated: a weather failure marks only that location's rules
    as errors, a failure while handling one rule marks only that rule. Only a
    failure to list rules aborts the cycle.
    """

    def __init__(self, rule_store, weather_provider, preference_store, history_store,
                 push_transport=None, solar=None, tz=None, max_workers=4,
                 cache_preferences=True):
        self.rule_store = rule_store
        self.weather_provider = weather_provider
        self.preference_store = preference_store
        self.history_store = history_store
        self.policy = NotificationPolicy(push_transport)
        self.solar = solar or SolarEventCalculator()
        self.tz = tz
        self.max_workers = max(1, int(max_workers))
        self.cache_preferences = cache_preferences
        self._cycle_lock = threading.Lock()

    # --- Public entry points ---

    def run_cycle(self, now=None):
        """Evaluate every active rule once. Returns a CycleSummary."""
        if not self._cycle_lock.acquire(blocking=False):
            raise CycleInProgressError("An alert cycle is already running")
        try:
            return self._run_cycle(now)
        finally:
            self._cycle_lock.release()

    def dry_run(self, now=None):
        """Evaluate every active rule ignoring cooldowns, without any side effects."""
        now = self._local_now(now)
        rules = self._load_rules()
        prefs = PreferenceCache(self.preference_store, enabled=True)
        results = []

        for location, group in self._group_by_location(rules):
            if not location.has_coordinates:
                results.extend(self._dry_result(rule, error="No coordinates for location")
                               for rule in group)
                continue
            try:
                weather = self._fetch_weather(location)
            except Exception as e:
                for rule in group:
                    results.append(self._dry_result(rule, error=f"weather fetch failed: {e}"))
                continue

            for rule in group:
                try:
                    cooldown_hours = prefs.get(rule.user_id).cooldown_hours
                    match = match_conditions(rule, weather, self._solar_events(rule, now), now)
                    results.append(self._dry_result(
                        rule,
                        would_fire=match.matched,
                        reason=match.reason,
                        in_cooldown=is_in_cooldown(rule, cooldown_hours, now),
                        snapshot=match.snapshot,
                    ))
                except Exception as e:
                    results.append(self._dry_result(rule, error=str(e) or "Check failed"))
        return results

    # --- Cycle ---

    def _run_cycle(self, now):
        start = time.monotonic()
        now = self._local_now(now)
        rules = self._load_rules()
        groups = self._group_by_location(rules)
        logger.info(f"Checking {len(rules)} active alerts across {len(groups)} locations")

        prefs = PreferenceCache(self.preference_store, enabled=self.cache_preferences)
        summary = CycleSummary(started_at=now.astimezone(timezone.utc))

        if self.max_workers > 1 and len(groups) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                futures = [executor.submit(self._evaluate_group, location, group, now, prefs)
                           for location, group in groups]
                for (location, group), future in zip(groups, futures):
                    summary.outcomes.extend(self._group_result(location, group, future))
        else:
            for location, group in groups:
                summary.outcomes.extend(self._evaluate_group(location, group, now, prefs))

        summary.duration_ms = int((time.monotonic() - start) * 1000)
        logger.info(
            f"Alert check completed in {summary.duration_ms}ms: {summary.checked} checked, "
            f"{summary.triggered} triggered, {summary.errors} errors"
        )
        return summary

    def _group_result(self, location, group, future):
        try:
            return future.result()
        except Exception as e:
            logger.error(f"Location {location.id} evaluation crashed: {e}")
            return [self._error_outcome(rule, str(e) or "Check failed") for rule in group]

    def _load_rules(self):
        try:
            return list(self.rule_store.list_active_rules())
        except Exception as e:
            logger.error(f"Could not load active alert rules: {e}")
            raise CycleError(f"Could not load active alert rules: {e}") from e

    @staticmethod
    def _group_by_location(rules):
        """Group rules by location id, first-seen order, each rule id at most once."""
        groups = {}
        seen = set()
        for rule in rules:
            if rule.id in seen:
                logger.warning(f"Duplicate rule {rule.id} in active rules, skipping")
                continue
            seen.add(rule.id)
            groups.setdefault(rule.location_id, []).append(rule)
        return [(group[0].location, group) for group in groups.values()]

    def _evaluate_group(self, location, rules, now, prefs):
        if not location.has_coordinates:
            logger.warning(f"No coordinates for location {location.id}")
            return [self._error_outcome(rule, "No coordinates for location") for rule in rules]

        try:
            weather = self._fetch_weather(location)
        except Exception as e:
            logger.error(f"Error fetching weather for location {location.id}: {e}")
            return [self._error_outcome(rule, f"weather fetch failed: {e}") for rule in rules]

        return [self._evaluate_rule(rule, weather, now, prefs) for rule in rules]

    def _fetch_weather(self, location):
        return self.weather_provider.get_current_weather(location.lat, location.lng)

    def _solar_events(self, rule, now):
        if AlertType(rule.alert_type) != AlertType.GOLDEN_HOUR:
            return None
        return self.solar.calculate(rule.location, now)

    # --- Single rule ---

    def _evaluate_rule(self, rule, weather, now, prefs_cache):
        try:
            return self._decide(rule, weather, now, prefs_cache)
        except Exception as e:
            logger.error(f"Error checking alert {rule.id}: {e}")
            return self._error_outcome(rule, str(e) or "Check failed")

    def _decide(self, rule, weather, now, prefs_cache):
        if not rule.is_active:
            return self._outcome(rule, triggered=False, reason="Rule is inactive")

        prefs = prefs_cache.get(rule.user_id)
        if is_in_cooldown(rule, prefs.cooldown_hours, now):
            return self._outcome(rule, triggered=False, reason="In cooldown period")

        match = match_conditions(rule, weather, self._solar_events(rule, now), now)
        if not match.matched:
            logger.debug(f"Rule {rule.id} not matched: {match.reason}")
            return self._outcome(rule, triggered=False, reason=match.reason)

        logger.info(f"Alert triggered: {rule.name} ({rule.id})")
        decision = self.policy.decide(prefs, now.hour)

        if decision == Decision.DISABLED:
            # Nothing is recorded and last_triggered_at stays put, so this
            # rule re-triggers every cycle while the user has notifications off.
            return self._outcome(rule, triggered=True, reason="Notifications disabled by user")

        if decision == Decision.QUIET:
            rule = self._mark_triggered(rule, now)
            error = self._record_history(rule, match.snapshot, sent=False, channel=None)
            return self._outcome(rule, triggered=True,
                                 reason="In quiet hours - notification queued", error=error)

        rule = self._mark_triggered(rule, now)
        sent, channel = self.policy.deliver(rule, match.snapshot, prefs)
        error = self._record_history(rule, match.snapshot, sent=sent, channel=channel)
        return self._outcome(rule, triggered=True, reason=match.reason, sent=sent, error=error)

    def _mark_triggered(self, rule, now):
        # Runs before delivery so a later failure cannot bypass the cooldown.
        updated = rule.with_last_triggered(now.astimezone(timezone.utc))
        self.rule_store.update_last_triggered(updated.id, updated.last_triggered_at)
        return updated

    def _record_history(self, rule, snapshot, sent, channel):
        """Append the history entry; returns an error message instead of raising."""
        try:
            self.history_store.append(AlertHistoryEntry(
                rule_id=rule.id,
                user_id=rule.user_id,
                snapshot=snapshot,
                notification_sent=sent,
                notification_channel=channel,
                triggered_at=rule.last_triggered_at,
            ))
        except Exception as e:
            logger.error(f"Error recording history for alert {rule.id}: {e}")
            return str(e) or "History append failed"
        return None

    # --- Helpers ---

    def _local_now(self, now):
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now.astimezone(self.tz) if self.tz is not None else now.astimezone()

    @staticmethod
    def _outcome(rule, triggered, reason=None, sent=False, error=None):
        return EvaluationOutcome(
            rule_id=rule.id,
            location_id=rule.location_id,
            user_id=rule.user_id,
            triggered=triggered,
            reason=reason,
            notification_sent=sent,
            error=error,
        )

    @staticmethod
    def _error_outcome(rule, message):
        return EvaluationOutcome(
            rule_id=rule.id,
            location_id=rule.location_id,
            user_id=rule.user_id,
            triggered=False,
            notification_sent=False,
            error=message,
        )

    @staticmethod
    def _dry_result(rule, would_fire=False, reason=None, in_cooldown=False,
                    snapshot=None, error=None):
        return {
            "rule_id": rule.id,
            "name": rule.name,
            "location": rule.location.name or rule.location_id,
            "alert_type": AlertType(rule.alert_type).value,
            "would_fire": would_fire,
            "reason": reason,
            "in_cooldown": in_cooldown,
            "snapshot": snapshot,
            "error": error,
        }


def format_cycle_summary(summary):
    """Format a cycle summary for display."""
    lines = [f"{summary.checked} checked, {summary.triggered} triggered, {summary.errors} errors"]
    for o in summary.outcomes:
        if o.error:
            lines.append(f"[error] {o.rule_id}: {o.error}")
        elif o.triggered:
            sent = "sent" if o.notification_sent else "not sent"
            lines.append(f"[triggered] {o.rule_id}: {o.reason} ({sent})")
    return "\n".join(lines)
