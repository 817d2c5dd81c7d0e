"""UTC date helpers."""

import re
from datetime import datetime, timezone
from typing import Optional

from app.core.exceptions import ValidationError

# The value must say it is UTC: "Z" or a zero offset
UTC_SUFFIX = re.compile(r"(Z|[+-]00:?00)$", re.IGNORECASE)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive values read back from stores that drop the offset."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_utc_iso(value: str, field: str) -> datetime:
    """Parse an ISO-8601 UTC timestamp such as ``2025-02-10T12:00:00Z``."""
    error = {"field": field, "message": f"{field} must be an ISO 8601 UTC string (e.g., 2025-02-10T12:00:00Z)", "value": value}
    if not isinstance(value, str) or not UTC_SUFFIX.search(value.strip()):
        raise ValidationError(error["message"], [error])

    text = value.strip()
    if text[-1] in "zZ":
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        message = f"{field} must be a valid ISO 8601 date string"
        raise ValidationError(message, [{"field": field, "message": message, "value": value}])
    return as_utc(parsed)
