# salon_scheduler/services/slots/timeutils.py
"""
Time arithmetic on "HH:MM" strings.

All times are same-day, 24-hour, merchant-local. Anything that would
reach 24:00 is rejected instead of wrapping to the next day.
"""

import re
from datetime import date, datetime, timedelta

from .errors import CrossesMidnight, FormatError, InvalidDate

MINUTES_PER_DAY = 24 * 60

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::\d{2})?$")


def to_minutes(hhmm: str) -> int:
    """Convert "HH:MM" (or "HH:MM:SS") to minutes since midnight."""
    match = _TIME_RE.match(hhmm.strip()) if isinstance(hhmm, str) else None
    if not match:
        raise FormatError(f"Invalid time {hhmm!r}, expected HH:MM")

    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise FormatError(f"Invalid time {hhmm!r}, expected HH:MM")
    return hours * 60 + minutes


def minutes_to_time(minutes: int) -> str:
    """Convert minutes since midnight to "HH:MM"."""
    if minutes < 0 or minutes >= MINUTES_PER_DAY:
        raise CrossesMidnight(f"{minutes} minutes is outside a single day")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def add_minutes(hhmm: str, duration: int) -> str:
    """
    Return hhmm + duration as "HH:MM".

    Raises CrossesMidnight when the result would be 24:00 or later.
    """
    total = to_minutes(hhmm) + duration
    if total >= MINUTES_PER_DAY:
        raise CrossesMidnight(
            f"{hhmm} + {duration} min ends past midnight"
        )
    return minutes_to_time(total)


def duration_between(start: str, end: str) -> int:
    """Minutes from start to end (negative if end is earlier)."""
    return to_minutes(end) - to_minutes(start)


def ranges_overlap(start_a, end_a, start_b, end_b) -> bool:
    """
    Half-open interval overlap: [start_a, end_a) ∩ [start_b, end_b) ≠ ∅.

    Accepts minutes (int) or "HH:MM" strings. Adjacent ranges such as
    09:00-09:30 and 09:30-10:00 do not overlap.
    """
    a0, a1, b0, b1 = (
        to_minutes(v) if isinstance(v, str) else v
        for v in (start_a, end_a, start_b, end_b)
    )
    return a0 < b1 and b0 < a1


def validate_date(value: str) -> str:
    """Check a "YYYY-MM-DD" string and return it unchanged."""
    if not isinstance(value, str) or len(value) != 10:
        raise InvalidDate(f"Invalid date {value!r}, expected YYYY-MM-DD")
    try:
        date.fromisoformat(value)
    except ValueError:
        raise InvalidDate(f"Invalid date {value!r}, expected YYYY-MM-DD") from None
    return value


def is_past(day: str, hhmm: str, now: datetime) -> bool:
    """True if day + hhmm lies before now."""
    start = datetime.combine(date.fromisoformat(day), datetime.min.time())
    return start + timedelta(minutes=to_minutes(hhmm)) < now


def extension_options(
    current_end: str,
    increment: int = 15,
    max_extensions: int = 4,
) -> list[str]:
    """
    Candidate new end times for extending a booking.

    Stops early instead of offering times past midnight.
    """
    end_min = to_minutes(current_end)
    options = []
    for i in range(1, max_extensions + 1):
        t = end_min + increment * i
        if t >= MINUTES_PER_DAY:
            break
        options.append(minutes_to_time(t))
    return options
