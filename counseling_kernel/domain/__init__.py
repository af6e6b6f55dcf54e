"""
Pure domain layer.

This module contains pure data transfer objects and domain logic
with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- Wall-clock time (a Clock is always injected)
- I/O

All domain objects are immutable and deterministic.
"""

from counseling_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from counseling_kernel.domain.dtos import (
    CalendarView,
    CounselingRequest,
    CounselorInfo,
    LinkRequest,
    Notice,
    OutboundMail,
    RequestChange,
    RequestDraft,
    RequestFilter,
    RequestKind,
    RequestStatus,
    Session,
    SessionMode,
    StudentInfo,
    StudentSummary,
    normalize_mode,
    normalize_status,
)
from counseling_kernel.domain.lifecycle import REQUEST_WORKFLOW, TERMINAL_STATUSES
from counseling_kernel.domain.notification import (
    OfficeDirectory,
    build_approval_notice,
    build_reschedule_notice,
    resolve_office,
)
from counseling_kernel.domain.time_rules import (
    SchedulingPolicy,
    has_standard_duration,
    is_at_least_notice_minutes,
    is_lunch_blocked,
    is_schedule_valid,
    within_business_hours,
)
