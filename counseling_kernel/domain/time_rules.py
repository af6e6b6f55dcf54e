"""
TimeRules (``counseling_kernel.domain.time_rules``).

Responsibility
--------------
Pure predicates encoding the counseling office's scheduling constraints:
business hours, the lunch block, the standard one-hour duration and the
minimum notice before a slot can be moved.

Architecture position
---------------------
**Kernel domain layer** -- pure functions over ``datetime.time`` and
``datetime.datetime``.  ZERO I/O, no clock.  ``now`` is always passed in.

Invariants enforced
-------------------
* A session is schedule-valid iff it lies within business hours, does not
  start at the lunch block, and lasts exactly the standard duration.
* Schedule-validity is a display filter for the calendar.  It never blocks
  a lifecycle transition; only the notice rule does.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from counseling_kernel.exceptions import ValidationError

DEFAULT_NOTICE_MINUTES = 120


@dataclass(frozen=True)
class SchedulingPolicy:
    """Thresholds used by the predicates.  Defaults match the office rules."""

    business_start: time = time(8, 0)
    business_end: time = time(17, 0)
    lunch_block: time = time(12, 0)
    session_minutes: int = 60
    notice_minutes: int = DEFAULT_NOTICE_MINUTES


DEFAULT_POLICY = SchedulingPolicy()


def minutes_of_day(t: time) -> int:
    return t.hour * 60 + t.minute


def add_minutes(t: time, minutes: int) -> time:
    """Shift a wall-clock time by ``minutes``.

    Raises:
        ValueError: If the result leaves the day.
    """
    total = minutes_of_day(t) + minutes
    if not 0 <= total < 24 * 60:
        raise ValueError(f"{t.isoformat('minutes')} + {minutes}min leaves the day")
    return time(total // 60, total % 60)


def within_business_hours(
    start: time,
    end: time,
    policy: SchedulingPolicy = DEFAULT_POLICY,
) -> bool:
    """start >= opening, end <= closing, and end after start."""
    s = minutes_of_day(start)
    e = minutes_of_day(end)
    return (
        s >= minutes_of_day(policy.business_start)
        and e <= minutes_of_day(policy.business_end)
        and e > s
    )


def is_lunch_blocked(start: time, policy: SchedulingPolicy = DEFAULT_POLICY) -> bool:
    return minutes_of_day(start) == minutes_of_day(policy.lunch_block)


def has_standard_duration(
    start: time,
    end: time,
    policy: SchedulingPolicy = DEFAULT_POLICY,
) -> bool:
    return minutes_of_day(end) - minutes_of_day(start) == policy.session_minutes


def is_at_least_notice_minutes(
    target: datetime,
    now: datetime,
    minutes: int = DEFAULT_NOTICE_MINUTES,
) -> bool:
    """True when ``target`` is at least ``minutes`` after ``now``."""
    return target - now >= timedelta(minutes=minutes)


def is_schedule_valid(
    start: time,
    end: time,
    policy: SchedulingPolicy = DEFAULT_POLICY,
) -> bool:
    return (
        within_business_hours(start, end, policy)
        and not is_lunch_blocked(start, policy)
        and has_standard_duration(start, end, policy)
    )


def session_start(day: date, start: time) -> datetime:
    """Combine a scheduled date and time into a local datetime."""
    return datetime.combine(day, start)


def standard_slots(policy: SchedulingPolicy = DEFAULT_POLICY) -> tuple[time, ...]:
    """Every schedule-valid start time on the policy's session grid."""
    slots = []
    cursor = minutes_of_day(policy.business_start)
    closing = minutes_of_day(policy.business_end)
    while cursor + policy.session_minutes <= closing:
        start = time(cursor // 60, cursor % 60)
        end = add_minutes(start, policy.session_minutes)
        if is_schedule_valid(start, end, policy):
            slots.append(start)
        cursor += policy.session_minutes
    return tuple(slots)


_HHMM = re.compile(r"^(\d{1,2}):(\d{2})$")
_HHMM_AMPM = re.compile(r"^(\d{1,2}):(\d{2})\s*(AM|PM)$", re.IGNORECASE)


def parse_clock_time(text: str | time) -> time:
    """Parse "14:00" or the legacy "02:00 PM" form into a ``time``.

    Raises:
        ValidationError: On anything else, including out-of-range values.
    """
    if isinstance(text, time):
        return text.replace(second=0, microsecond=0)
    s = str(text or "").strip()
    m = _HHMM_AMPM.match(s)
    if m:
        hh, mm = int(m.group(1)), int(m.group(2))
        if not 1 <= hh <= 12 or mm > 59:
            raise ValidationError("time", f"out of range: {text!r}")
        hh = hh % 12
        if m.group(3).upper() == "PM":
            hh += 12
        return time(hh, mm)
    m = _HHMM.match(s)
    if m:
        hh, mm = int(m.group(1)), int(m.group(2))
        if hh > 23 or mm > 59:
            raise ValidationError("time", f"out of range: {text!r}")
        return time(hh, mm)
    raise ValidationError("time", f"expected HH:MM or hh:MM AM/PM, got {text!r}")


def parse_calendar_date(text: str | date) -> date:
    """Parse an ISO ``YYYY-MM-DD`` date.

    Raises:
        ValidationError: If the text is not an ISO calendar date.
    """
    if isinstance(text, datetime):
        return text.date()
    if isinstance(text, date):
        return text
    s = str(text or "").strip()
    if not re.fullmatch(r"\d{4}-\d{2}-\d{2}", s):
        raise ValidationError("date", f"expected YYYY-MM-DD, got {text!r}")
    try:
        return date.fromisoformat(s)
    except ValueError as exc:
        raise ValidationError("date", str(exc)) from exc
