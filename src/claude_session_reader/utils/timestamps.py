"""Timestamp parsing for transcript records and query bounds."""

from datetime import datetime, timezone


def parse_timestamp(value) -> datetime | None:
    """Parse a timestamp from the formats seen in transcript files.

    Accepts ISO 8601 strings (with or without a trailing ``Z``), plain dates,
    and epoch numbers in seconds or milliseconds. Naive values are taken as
    UTC. Returns None when the value cannot be interpreted.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            seconds = value / 1000 if value > 1e12 else value
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        try:
            return parse_timestamp(float(text))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def timestamp_ms(value) -> float | None:
    """Epoch milliseconds for a timestamp value, or None if unparseable."""
    parsed = parse_timestamp(value)
    if parsed is None:
        return None
    return parsed.timestamp() * 1000


def sort_key_ms(value) -> float:
    """Epoch milliseconds used for ordering; unparseable values sort as 0."""
    ms = timestamp_ms(value)
    return ms if ms is not None else 0.0


def now_iso() -> str:
    """Current UTC time as an ISO string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
