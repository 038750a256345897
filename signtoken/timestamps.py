from __future__ import annotations

from datetime import datetime, timezone


def to_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """Render ``moment`` as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` in UTC."""
    return to_utc(moment).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp onto the UTC timeline.

    Values without an offset are taken to be UTC already.
    """
    try:
        return to_utc(datetime.fromisoformat(value))
    except (TypeError, ValueError, OverflowError) as exc:
        raise ValueError(f"Invalid ISO-8601 timestamp: {value!r}") from exc
