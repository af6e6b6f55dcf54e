"""
Domain Data Transfer Objects.

Pure, immutable value objects that flow between the lifecycle engine, the
request stores and the calendar projector.  No ORM, no I/O, no clock.

Status literals are part of the external contract: existing callers compare
against "Pending", "Approved", "Disapproved", "Cancelled" and "Rescheduled"
verbatim, so ``RequestStatus`` values must never change.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Any

from counseling_kernel.exceptions import ValidationError

SESSION_DURATION_MINUTES = 60


class RequestStatus(str, Enum):
    """Lifecycle status of a counseling request."""

    PENDING = "Pending"
    APPROVED = "Approved"
    DISAPPROVED = "Disapproved"
    CANCELLED = "Cancelled"
    RESCHEDULED = "Rescheduled"


class RequestKind(str, Enum):
    """Whether the request needs a scheduled slot."""

    SESSION_REQUEST = "SessionRequest"
    INQUIRY = "Inquiry"


class SessionMode(str, Enum):
    ONLINE = "Online"
    IN_PERSON = "InPerson"


class CalendarView(str, Enum):
    """Which partition of the calendar projection to return."""

    ACTIVE = "Active"
    HISTORY = "History"


COMMITTED_STATUSES: frozenset[RequestStatus] = frozenset({
    RequestStatus.APPROVED,
    RequestStatus.RESCHEDULED,
})


def normalize_status(raw: Any) -> RequestStatus:
    """Map legacy status spellings onto the canonical literals.

    Older clients wrote "Canceled", lower-case values, or ids like
    "cancelledAt"; anything unrecognised is treated as Pending.
    """
    if isinstance(raw, RequestStatus):
        return raw
    s = str(raw or "").strip().lower()
    if "cancel" in s:
        return RequestStatus.CANCELLED
    if "resched" in s:
        return RequestStatus.RESCHEDULED
    if "disapprove" in s:
        return RequestStatus.DISAPPROVED
    if "approve" in s:
        return RequestStatus.APPROVED
    return RequestStatus.PENDING


def normalize_mode(raw: Any) -> SessionMode:
    """Map free-text mode values ("In-person", "Face-to-Face") to SessionMode.

    Raises:
        ValidationError: If the value names neither mode.
    """
    if isinstance(raw, SessionMode):
        return raw
    s = str(raw or "").strip().lower().replace("-", "").replace("_", "").replace(" ", "")
    if s == "online":
        return SessionMode.ONLINE
    if s in ("inperson", "facetoface", "f2f"):
        return SessionMode.IN_PERSON
    raise ValidationError("mode", f"unknown session mode {raw!r}")


# =========================================================================
# Participants
# =========================================================================


@dataclass(frozen=True)
class StudentInfo:
    """Directory entry for a student."""

    student_ref: str
    name: str = ""
    email: str = ""
    campus: str = ""
    student_number: str = ""
    course: str = ""


@dataclass(frozen=True)
class CounselorInfo:
    """Directory entry for a counselor."""

    counselor_ref: str
    name: str = ""
    email: str = ""
    campus: str = ""


# =========================================================================
# Requests
# =========================================================================


@dataclass(frozen=True)
class CounselingRequest:
    """Immutable snapshot of a counseling request record.

    ``version`` increases by one on every write and is the optimistic
    concurrency token passed back to ``RequestRepository.update``.
    """

    request_id: str
    kind: RequestKind
    status: RequestStatus
    student_ref: str
    scheduled_date: date | None = None
    scheduled_time: time | None = None
    duration_minutes: int = SESSION_DURATION_MINUTES
    mode: SessionMode | None = None
    counselor_ref: str | None = None
    reason_text: str = ""
    notes_text: str = ""
    course: str = ""
    meeting_link: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None
    responded_at: datetime | None = None
    cancelled_at: datetime | None = None
    completed_at: datetime | None = None
    version: int = 1

    @property
    def is_session_request(self) -> bool:
        return self.kind == RequestKind.SESSION_REQUEST

    @property
    def is_committed(self) -> bool:
        """Approved or Rescheduled: the slot is on the counselor's calendar."""
        return self.status in COMMITTED_STATUSES

    @property
    def start_at(self) -> datetime | None:
        """Scheduled start as a local datetime, or None for unscheduled requests."""
        if self.scheduled_date is None or self.scheduled_time is None:
            return None
        return datetime.combine(self.scheduled_date, self.scheduled_time)

    @property
    def end_at(self) -> datetime | None:
        start = self.start_at
        if start is None:
            return None
        return start + timedelta(minutes=self.duration_minutes)


@dataclass(frozen=True)
class RequestDraft:
    """Student-submitted data for a new request.

    Drafts carry no status: every request is created Pending.
    """

    kind: RequestKind
    student_ref: str
    scheduled_date: date | None = None
    scheduled_time: time | None = None
    mode: SessionMode | None = None
    counselor_ref: str | None = None
    reason_text: str = ""
    notes_text: str = ""
    course: str = ""
    request_id: str | None = None


@dataclass(frozen=True)
class RequestFilter:
    """Conjunctive filter for ``RequestRepository.list``.  None means any."""

    statuses: frozenset[RequestStatus] | None = None
    kind: RequestKind | None = None
    scheduled_date: date | None = None
    student_ref: str | None = None
    counselor_ref: str | None = None

    def matches(self, request: CounselingRequest) -> bool:
        if self.statuses is not None and request.status not in self.statuses:
            return False
        if self.kind is not None and request.kind != self.kind:
            return False
        if self.scheduled_date is not None and request.scheduled_date != self.scheduled_date:
            return False
        if self.student_ref is not None and request.student_ref != self.student_ref:
            return False
        if self.counselor_ref is not None and request.counselor_ref != self.counselor_ref:
            return False
        return True


_IMMUTABLE_FIELDS = frozenset({"request_id", "kind", "student_ref", "created_at", "version"})
_PATCHABLE_FIELDS = frozenset(
    f.name for f in fields(CounselingRequest)
) - _IMMUTABLE_FIELDS


def apply_patch(
    request: CounselingRequest,
    patch: dict[str, Any],
) -> CounselingRequest:
    """Return a copy of ``request`` with ``patch`` applied and version bumped.

    Raises:
        ValidationError: If the patch names an unknown or immutable field.
    """
    for key in patch:
        if key not in _PATCHABLE_FIELDS:
            raise ValidationError(key, "field cannot be patched")
    return replace(request, **patch, version=request.version + 1)


@dataclass(frozen=True)
class RequestChange:
    """Change notification published by request stores."""

    change_type: str  # "created" | "updated"
    request: CounselingRequest


# =========================================================================
# Calendar
# =========================================================================


@dataclass(frozen=True)
class StudentSummary:
    name: str = ""
    student_number: str = ""
    course: str = ""


@dataclass(frozen=True)
class Session:
    """A committed counseling session derived from a request.  Never persisted."""

    session_id: str
    date: date
    start_time: time
    end_time: time
    mode: SessionMode | None
    status: RequestStatus
    counselor_ref: str | None
    student: StudentSummary = field(default_factory=StudentSummary)
    reason: str = ""
    notes: str = ""
    meeting_link: str = ""
    is_past: bool = False


# =========================================================================
# Collaborator payloads
# =========================================================================


@dataclass(frozen=True)
class LinkRequest:
    """Input to ``MeetingLinkProvisioner.create_link``."""

    date: date
    time: time
    student_contact: str
    counselor_name: str
    reason: str = ""


@dataclass(frozen=True)
class Notice:
    """Composed message content, independent of delivery."""

    subject: str
    body: str


@dataclass(frozen=True)
class OutboundMail:
    """Input to ``MailDispatcher.send``."""

    to: str
    subject: str
    body: str
