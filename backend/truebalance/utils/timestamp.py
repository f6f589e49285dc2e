"""Timestamp parsing utilities."""
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_timestamp(s: str) -> datetime:
    """
    Parse a timestamp string into a timezone-aware datetime.

    Supports:
    - Plain dates: "2024-01-02" (midnight UTC)
    - ISO format with "Z" suffix: "2024-01-02T09:10:00Z"
    - ISO format with timezone: "2024-01-02T09:10:00+00:00"
    - ISO format without timezone: "2024-01-02T09:10:00" (assumed UTC)
    - Space-separated: "2024-01-02 09:10:00"

    Raises:
        ValueError: If the timestamp cannot be parsed
    """
    if not s:
        raise ValueError("Empty timestamp string")

    s = s.strip()

    # Convert trailing "Z" to "+00:00" for fromisoformat on older interpreters
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    if " " in s and "T" not in s:
        s = s.replace(" ", "T", 1)

    try:
        dt = datetime.fromisoformat(s)
    except ValueError:
        raise ValueError(
            f"Unable to parse timestamp: {s}. Expected ISO format "
            "(e.g., '2024-01-02' or '2024-01-02T09:10:00Z')"
        )

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def to_utc(dt: datetime) -> datetime:
    """Normalize a datetime to UTC, treating naive values as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
