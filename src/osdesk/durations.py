"""Clock-time arithmetic for service orders.

Durations travel as ``HH:MM`` strings. Parsing is permissive: a field that is
not a number counts as zero and nothing here raises, so callers that need
guarantees validate with :func:`osdesk.validation.validate_time` first.
"""
from __future__ import annotations

import re
from datetime import time, timedelta

MINUTES_PER_DAY = 24 * 60

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def _leading_int(text: str | None) -> int:
    if not text:
        return 0
    m = _LEADING_INT.match(text)
    return int(m.group(1)) if m else 0


def time_to_minutes(value: str | None) -> int:
    """``"HH:MM"`` -> minutes. ``"abc"`` -> 0, ``"7"`` -> 420."""
    if not value:
        return 0
    parts = str(value).split(":")
    hours = _leading_int(parts[0])
    minutes = _leading_int(parts[1]) if len(parts) > 1 else 0
    return hours * 60 + minutes


def minutes_to_time(minutes: int) -> str:
    # hours are not wrapped at 24: summed durations can exceed a day
    hours, mins = divmod(int(minutes), 60)
    return f"{hours:02d}:{mins:02d}"


def compute_total_duration(
    start: str | None,
    end: str | None,
    discount: str | None = None,
    transfer: str | None = None,
) -> str:
    """Worked time for one order: end - start - discount + transfer.

    A negative result means the order ran past midnight; one day is added
    (once, multi-day spans are not modelled).
    """
    total = (
        time_to_minutes(end)
        - time_to_minutes(start)
        - (time_to_minutes(discount) if discount else 0)
        + (time_to_minutes(transfer) if transfer else 0)
    )
    if total < 0:
        total += MINUTES_PER_DAY
    return minutes_to_time(total)


def duration_seconds(value) -> int:
    """Seconds of a stored duration; anything unreadable counts as 0."""
    if value is None:
        return 0
    if isinstance(value, timedelta):
        return int(value.total_seconds())
    if isinstance(value, time):
        return value.hour * 3600 + value.minute * 60 + value.second
    text = str(value).strip()
    if not text:
        return 0
    parts = text.split(":")
    if len(parts) != 2:
        return 0
    return (_leading_int(parts[0]) * 60 + _leading_int(parts[1])) * 60


def duration_minutes(value) -> int:
    return duration_seconds(value) // 60
