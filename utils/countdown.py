"""Countdown arithmetic for the countdown widget.

``countdown_diff`` is a pure function: it maps a target instant and the
current instant to the days/hours/minutes/seconds/milliseconds remaining,
with each smaller unit expressed as the remainder after the larger one.
"""

from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from utils.common import parse_iso

_MS_PER_SECOND = 1000
_MS_PER_MINUTE = 60 * _MS_PER_SECOND
_MS_PER_HOUR = 60 * _MS_PER_MINUTE
_MS_PER_DAY = 24 * _MS_PER_HOUR


@dataclass(frozen=True)
class CountdownDelta:
    """Time remaining until a target instant."""

    days: int = 0
    hours: int = 0
    minutes: int = 0
    seconds: int = 0
    milliseconds: int = 0
    elapsed: bool = True

    @property
    def total_seconds(self) -> int:
        return (
            self.days * 86400 + self.hours * 3600
            + self.minutes * 60 + self.seconds
        )

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["total_seconds"] = self.total_seconds
        return d


ELAPSED = CountdownDelta()


def _as_datetime(value: datetime | str) -> datetime:
    if isinstance(value, str):
        return parse_iso(value)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def countdown_diff(target: datetime | str, now: datetime | str) -> CountdownDelta:
    """Return the time remaining from *now* until *target*.

    Args:
        target: Target instant (aware/naive datetime or ISO-8601 string;
            naive values are treated as UTC).
        now: Current instant, same accepted forms.

    Returns:
        CountdownDelta. When ``target <= now`` every field is zero and
        ``elapsed`` is True; an exactly-equal pair counts as elapsed.
        A target less than a millisecond ahead is not elapsed but has
        every field zero.

    Raises:
        ValueError: If an ISO string cannot be parsed.
    """
    remaining = _as_datetime(target) - _as_datetime(now)
    if remaining <= timedelta(0):
        return ELAPSED
    total_ms = (
        remaining.days * _MS_PER_DAY
        + remaining.seconds * _MS_PER_SECOND
        + remaining.microseconds // 1000
    )
    days, rest = divmod(total_ms, _MS_PER_DAY)
    hours, rest = divmod(rest, _MS_PER_HOUR)
    minutes, rest = divmod(rest, _MS_PER_MINUTE)
    seconds, milliseconds = divmod(rest, _MS_PER_SECOND)
    return CountdownDelta(
        days=days,
        hours=hours,
        minutes=minutes,
        seconds=seconds,
        milliseconds=milliseconds,
        elapsed=False,
    )
