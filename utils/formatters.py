"""Formatting utilities for display."""
from datetime import datetime, timezone

from models.enums import DAY_LABELS


def format_hour_range(start_hour, end_hour):
    """Format an hour range, e.g. (22, 6) -> '22:00-06:00 (overnight)'."""
    if start_hour is None or end_hour is None:
        return "N/A"
    text = f"{start_hour:02d}:00-{end_hour:02d}:00"
    if start_hour > end_hour:
        text += " (overnight)"
    return text


def format_days(days_of_week):
    """Format a set of 0=Sunday weekdays, None meaning every day."""
    if not days_of_week:
        return "Every day"
    return ", ".join(DAY_LABELS[d] for d in sorted(days_of_week))


def format_conditions(conditions):
    """Format a conditions variant as 'key<=value' pairs."""
    d = conditions.to_dict()
    if not d:
        return "-"
    parts = []
    for key, value in d.items():
        op = ">=" if key.startswith("min_") else "<="
        parts.append(f"{key[4:]} {op} {value:g}")
    return ", ".join(parts)


def time_ago(dt):
    """Return human-readable time since dt. E.g., '3h ago', '2d ago'."""
    if dt is None:
        return "never"
    now = datetime.now(timezone.utc)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    seconds = int((now - dt).total_seconds())

    if seconds < 60:
        return f"{seconds}s ago"
    elif seconds < 3600:
        return f"{seconds // 60}m ago"
    elif seconds < 86400:
        return f"{seconds // 3600}h ago"
    return f"{seconds // 86400}d ago"
