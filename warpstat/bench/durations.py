"""Nanosecond durations and timestamps, and their text forms."""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone

NANOSECOND = 1
MICROSECOND = 1_000
MILLISECOND = 1_000_000
SECOND = 1_000_000_000
MINUTE = 60 * SECOND
HOUR = 60 * MINUTE

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_TIMESTAMP = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})"
    r"(?:\.(\d+))?"
    r"(?:(Z)|([+-])(\d{2}):(\d{2}))\Z"
)


def _fraction(value: int, digits: int) -> str:
    if value == 0:
        return ""
    return "." + str(value).zfill(digits).rstrip("0")


def format_duration(ns: int) -> str:
    """Render a duration in nanoseconds as e.g. ``1.5s``, ``2m3s`` or ``250ms``."""
    if ns == 0:
        return "0s"
    sign = "-" if ns < 0 else ""
    magnitude = abs(ns)
    if magnitude < SECOND:
        if magnitude < MICROSECOND:
            return f"{sign}{magnitude}ns"
        if magnitude < MILLISECOND:
            scale, digits, unit = MICROSECOND, 3, "µs"
        else:
            scale, digits, unit = MILLISECOND, 6, "ms"
        whole, frac = divmod(magnitude, scale)
        return f"{sign}{whole}{_fraction(frac, digits)}{unit}"

    seconds, frac = divmod(magnitude, SECOND)
    text = f"{seconds % 60}{_fraction(frac, 9)}s"
    minutes = seconds // 60
    if minutes:
        text = f"{minutes % 60}m{text}"
        hours = minutes // 60
        if hours:
            text = f"{hours}h{text}"
    return sign + text


def round_duration(ns: int, multiple: int) -> int:
    """Round ``ns`` to the nearest multiple, halfway values away from zero."""
    if multiple <= 0:
        return ns
    magnitude = abs(ns)
    remainder = magnitude % multiple
    if remainder + remainder < multiple:
        rounded = magnitude - remainder
    else:
        rounded = magnitude + multiple - remainder
    return rounded if ns >= 0 else -rounded


def _split(ns: int) -> tuple[datetime, int]:
    seconds, nanos = divmod(ns, SECOND)
    return _EPOCH + timedelta(seconds=seconds), nanos


def format_clock(ns: int) -> str:
    """Wall-clock time of a timestamp as ``HH:MM:SS UTC``."""
    moment, _ = _split(ns)
    return f"{moment:%H:%M:%S} UTC"


def format_timestamp(ns: int) -> str:
    """RFC 3339 text of a timestamp in UTC with up to nine fractional digits."""
    moment, nanos = _split(ns)
    return (
        f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d}"
        f"T{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d}"
        f"{_fraction(nanos, 9)}Z"
    )


def parse_timestamp(text: str) -> int:
    """Parse RFC 3339 text into nanoseconds since the Unix epoch."""
    match = _TIMESTAMP.match(text)
    if match is None:
        raise ValueError(f"invalid RFC 3339 timestamp: {text!r}")
    year, month, day, hour, minute, second = (int(g) for g in match.group(1, 2, 3, 4, 5, 6))
    try:
        moment = datetime(year, month, day, hour, minute, second, tzinfo=timezone.utc)
    except ValueError as exc:
        raise ValueError(f"invalid RFC 3339 timestamp: {text!r}: {exc}") from exc

    frac = match.group(7)
    nanos = int(frac[:9].ljust(9, "0")) if frac else 0

    offset = 0
    if match.group(9):
        off_hours, off_minutes = int(match.group(10)), int(match.group(11))
        if off_hours >= 24 or off_minutes >= 60:
            raise ValueError(f"time zone offset out of range: {text!r}")
        offset = (off_hours * 60 + off_minutes) * 60
        if match.group(9) == "-":
            offset = -offset

    delta = moment - _EPOCH
    seconds = delta.days * 86_400 + delta.seconds - offset
    return seconds * SECOND + nanos