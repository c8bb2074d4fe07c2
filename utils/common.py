"""Common helper functions shared by the storage, widget and auto-save layers.

Covers id generation, ISO-8601 timestamps, and the JSON serialization used
for both persistence and dirty-checking.
"""

import json
import uuid
from datetime import datetime, timezone
from typing import Any


def generate_id(prefix: str = "") -> str:
    """Return a new opaque, globally unique identifier.

    Examples:
        countdown-3f2a9c1e0b7d4e5f8a6b, 9c1e0b7d4e5f8a6b3f2a
    """
    token = uuid.uuid4().hex[:20]
    return f"{prefix}-{token}" if prefix else token


def now_iso() -> str:
    """Current UTC instant as an ISO-8601 string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


def parse_iso(value: str) -> datetime:
    """Parse an ISO-8601 string into an aware datetime (naive values are UTC).

    Accepts a trailing ``Z`` as written by browsers.
    """
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def touch_timestamp(previous: str | None) -> str:
    """Return a fresh ``updated_at`` value that never precedes *previous*."""
    current = now_iso()
    if not previous:
        return current
    try:
        if parse_iso(previous) > parse_iso(current):
            return previous
    except ValueError:
        return current
    return current


def serialize(value: Any) -> str:
    """Deterministic JSON encoding used for storage and structural equality.

    Keys are sorted so two drafts with the same content compare equal
    regardless of insertion order.
    """
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)


def deep_clone(value: Any) -> Any:
    """Return a deep copy of a JSON-compatible value via a serialization round trip."""
    if value is None:
        return None
    return json.loads(serialize(value))
