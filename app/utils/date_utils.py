from datetime import datetime, timezone
from typing import Any, Optional


def parse_remote_datetime(value: Any) -> Optional[datetime]:
    """
    Parse a timestamp as reported by the remote APIs.

    Accepts ISO-8601 strings (with a trailing "Z") and epoch milliseconds.
    Anything else, or an unparseable value, yields None.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    return None


def isoformat_or_none(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None
