"""UTC datetime utilities."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def to_unix_seconds(dt: datetime) -> int:
    """Event payloads carry block-style integer timestamps."""
    return int(dt.timestamp())
