"""Cooldown gate: a rule may not re-trigger until its cooldown has elapsed."""
from datetime import datetime, timedelta, timezone

DEFAULT_COOLDOWN_HOURS = 6


def is_in_cooldown(rule, cooldown_hours=DEFAULT_COOLDOWN_HOURS, now=None):
    """True iff rule triggered less than cooldown_hours before now."""
    last = rule.last_triggered_at
    if last is None:
        return False
    if last.tzinfo is None:
        last = last.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return now - last < timedelta(hours=cooldown_hours)
