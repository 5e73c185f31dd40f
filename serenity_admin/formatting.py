"""
Helpers for turning stored timestamps into human-readable strings.

Firestore hands back timestamps in several shapes depending on how a record was
written and read: native datetimes, serialized `{"seconds", "nanoseconds"}`
mappings, ISO-8601 strings and plain epoch numbers. Everything here normalizes
to an aware datetime first and then formats in the viewer's local timezone.
"""
# serenity_admin/formatting.py

import datetime

MISSING = "N/A"
DATE_FORMAT = "%b %d, %Y"
DATE_TIME_FORMAT = "%b %d, %Y • %H:%M"


def to_datetime(value):
    """Converts a stored timestamp representation into an aware datetime.

    Args:
        value: A datetime, a `{"seconds", "nanoseconds"}` mapping, an ISO string,
            or an epoch number (seconds, or milliseconds for large values).

    Returns:
        datetime.datetime or None: The timestamp in UTC if no zone was given,
        or None if the value is missing or cannot be parsed.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime.datetime):
        timestamp = value
    elif isinstance(value, datetime.date):
        timestamp = datetime.datetime(value.year, value.month, value.day)
    elif isinstance(value, dict):
        if "seconds" not in value:
            return None
        try:
            seconds = float(value.get("seconds") or 0)
            nanos = float(value.get("nanoseconds") or value.get("nanos") or 0)
            timestamp = datetime.datetime.fromtimestamp(seconds + nanos / 1e9, tz=datetime.timezone.utc)
        except (TypeError, ValueError, OverflowError, OSError):
            return None
    elif isinstance(value, bool):
        return None
    elif isinstance(value, (int, float)):
        seconds = value / 1000 if value > 1e11 else value
        try:
            timestamp = datetime.datetime.fromtimestamp(seconds, tz=datetime.timezone.utc)
        except (ValueError, OverflowError, OSError):
            return None
    elif isinstance(value, str):
        try:
            # Replace 'Z' with a UTC offset for consistent parsing.
            timestamp = datetime.datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
        except ValueError:
            return None
    else:
        return None

    # If no timezone is present, assume UTC.
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=datetime.timezone.utc)
    return timestamp


def _format(value, pattern):
    if value is None or value == "":
        return MISSING
    timestamp = to_datetime(value)
    if timestamp is None:
        return value if isinstance(value, str) else MISSING
    return timestamp.astimezone().strftime(pattern)


def format_date(value) -> str:
    """Formats a stored timestamp as a local date, e.g. "Jan 05, 2024"."""
    return _format(value, DATE_FORMAT)


def format_date_time(value) -> str:
    """Formats a stored timestamp as local date and time, e.g. "Jan 05, 2024 • 14:30"."""
    return _format(value, DATE_TIME_FORMAT)
