"""Formatting utilities for display."""
from datetime import datetime, timezone

from models.enums import AlertType

_RATIO_TYPES = {AlertType.HIGH_RETURN_RATE, AlertType.REPAIR_CENTER_UNDERPERFORMANCE}


def format_metric(rule_type, value):
    """Ratios as percentages, counts as integers."""
    if value is None:
        return "N/A"
    if rule_type in _RATIO_TYPES:
        return f"{float(value) * 100:.1f}%"
    return f"{float(value):g}"


def time_ago(dt, now=None):
    """Return human-readable time since dt. E.g., '3h ago', '2d ago'."""
    if dt is None:
        return "N/A"
    now = now or datetime.now(timezone.utc)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    delta = now - dt
    seconds = int(delta.total_seconds())

    if seconds < 60:
        return f"{seconds}s ago"
    elif seconds < 3600:
        return f"{seconds // 60}m ago"
    elif seconds < 86400:
        return f"{seconds // 3600}h ago"
    else:
        return f"{seconds // 86400}d ago"
