"""
Module: counseling_kernel.selectors.calendar_selector
Responsibility: The counselor calendar.  Derives a date-scoped list of
    committed sessions from the current request set, split into Active and
    History partitions.
Architecture position: Kernel > Selectors.  ``project`` is a pure function
    over a request snapshot and a fixed "now"; ``CalendarProjector`` feeds it
    from a repository and clock.

Invariants enforced:
    - Only SessionRequests in Approved or Rescheduled status appear.
    - Only schedule-valid sessions appear: within business hours, not at the
      lunch block, exactly the standard duration.  Invalid records are
      omitted, never deleted or repaired.
    - A session is past when explicitly completed OR its end time has passed.
    - Output is sorted by start time then session id, so it does not depend
      on snapshot order; repeated calls with the same inputs are identical.

Failure modes:
    - None for bad data: malformed records are filtered out.
    - ValidationError for a malformed ``date`` or ``view`` argument.
"""

from __future__ import annotations

from datetime import date, datetime, time
from typing import Iterable

from counseling_kernel.domain.clock import Clock
from counseling_kernel.domain.collaborators import ParticipantDirectory, RequestRepository
from counseling_kernel.domain.dtos import (
    COMMITTED_STATUSES,
    CalendarView,
    CounselingRequest,
    RequestFilter,
    RequestKind,
    Session,
    StudentSummary,
)
from counseling_kernel.domain.time_rules import (
    DEFAULT_POLICY,
    SchedulingPolicy,
    add_minutes,
    is_schedule_valid,
    parse_calendar_date,
)
from counseling_kernel.exceptions import ValidationError
from counseling_kernel.selectors.base import BaseSelector


def _coerce_view(view: CalendarView | str) -> CalendarView:
    if isinstance(view, CalendarView):
        return view
    for candidate in CalendarView:
        if str(view).strip().lower() == candidate.value.lower():
            return candidate
    raise ValidationError("view", f"expected Active or History, got {view!r}")


def _end_time(request: CounselingRequest) -> time | None:
    try:
        return add_minutes(request.scheduled_time, request.duration_minutes)
    except ValueError:
        return None


def _student_summary(
    request: CounselingRequest,
    directory: ParticipantDirectory | None,
) -> StudentSummary:
    if directory is None:
        return StudentSummary(course=request.course)
    student = directory.student(request.student_ref)
    return StudentSummary(
        name=student.name,
        student_number=student.student_number,
        course=request.course or student.course,
    )


def to_session(
    request: CounselingRequest,
    now: datetime,
    directory: ParticipantDirectory | None = None,
) -> Session | None:
    """Map a committed request to a Session, or None if it has no usable slot."""
    if request.scheduled_date is None or request.scheduled_time is None:
        return None
    end = _end_time(request)
    if end is None:
        return None
    ended = datetime.combine(request.scheduled_date, end) < now
    return Session(
        session_id=request.request_id,
        date=request.scheduled_date,
        start_time=request.scheduled_time,
        end_time=end,
        mode=request.mode,
        status=request.status,
        counselor_ref=request.counselor_ref,
        student=_student_summary(request, directory),
        reason=request.reason_text,
        notes=request.notes_text,
        meeting_link=request.meeting_link,
        is_past=request.completed_at is not None or ended,
    )


def _haystack(session: Session) -> str:
    parts = [
        session.student.name,
        session.student.student_number,
        session.reason,
        session.student.course,
        session.mode.value if session.mode else "",
        session.status.value,
        session.date.isoformat(),
        session.start_time.strftime("%H:%M"),
        session.end_time.strftime("%H:%M"),
        session.session_id,
    ]
    return " ".join(parts).lower()


def project(
    requests: Iterable[CounselingRequest],
    day: date,
    view: CalendarView | str,
    now: datetime,
    search_text: str | None = None,
    policy: SchedulingPolicy = DEFAULT_POLICY,
    directory: ParticipantDirectory | None = None,
) -> list[Session]:
    """Pure projection of ``requests`` onto the calendar for ``day``."""
    wanted = _coerce_view(view)
    sessions: list[Session] = []
    for request in requests:
        if request.kind != RequestKind.SESSION_REQUEST:
            continue
        if request.status not in COMMITTED_STATUSES:
            continue
        if request.scheduled_date != day:
            continue
        session = to_session(request, now, directory)
        if session is None:
            continue
        if not is_schedule_valid(session.start_time, session.end_time, policy):
            continue
        if session.is_past != (wanted == CalendarView.HISTORY):
            continue
        sessions.append(session)

    query = (search_text or "").strip().lower()
    if query:
        sessions = [s for s in sessions if query in _haystack(s)]

    sessions.sort(key=lambda s: (s.start_time, s.session_id))
    return sessions


class CalendarProjector(BaseSelector):
    """
    Calendar read model over a request repository.

    Contract:
        Takes the date and view from the caller; holds no selected-date
        state and no cache.

    Guarantees:
        - Read-only: only ``repository.list`` is called.
        - Idempotent for a fixed snapshot and clock.
    """

    def __init__(
        self,
        repository: RequestRepository,
        clock: Clock | None = None,
        policy: SchedulingPolicy = DEFAULT_POLICY,
        directory: ParticipantDirectory | None = None,
    ):
        super().__init__(repository, clock)
        self.policy = policy
        self.directory = directory

    def project_for_date(
        self,
        day: date | str,
        view: CalendarView | str = CalendarView.ACTIVE,
        search_text: str | None = None,
    ) -> list[Session]:
        target = parse_calendar_date(day)
        snapshot = self.repository.list(RequestFilter(
            statuses=COMMITTED_STATUSES,
            kind=RequestKind.SESSION_REQUEST,
            scheduled_date=target,
        ))
        return project(
            snapshot,
            target,
            view,
            self.clock.now(),
            search_text=search_text,
            policy=self.policy,
            directory=self.directory,
        )
