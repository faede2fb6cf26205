"""Timestamp helpers for backend payloads."""

import re
from datetime import UTC, datetime

# Graph databases may emit nanosecond precision; datetime holds microseconds
_FRACTION_PATTERN = re.compile(r"(\.\d{6})\d+")


def parse_timestamp(value: str | datetime | None) -> datetime | None:
    """
    Parse an ISO-8601 timestamp from the backend.

    Naive values are assumed to be UTC. Unparseable values yield None.
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        parsed = value
    else:
        text = _FRACTION_PATTERN.sub(r"\1", value.strip())
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)
