"""
NotificationComposer (``counseling_kernel.domain.notification``).

Responsibility
--------------
Builds the plain-text notices the counseling office sends to students when
an appointment is rescheduled or approved.  Resolves the campus and office
text for face-to-face sessions.

Architecture position
---------------------
**Kernel domain layer** -- pure functions.  No network, no randomness, no
clock.  The same inputs always produce the same ``Notice``.  Delivery is the
mail collaborator's job.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, time
from typing import Mapping

from counseling_kernel.domain.dtos import (
    CounselingRequest,
    CounselorInfo,
    Notice,
    SessionMode,
    StudentInfo,
)

RESCHEDULE_SUBJECT = "Rescheduled Counseling Appointment"
APPROVAL_SUBJECT = "Approved Counseling Appointment"

_IN_PERSON_LABEL = "Face-to-Face (In-person)"
_ONLINE_LABEL = "Online"


@dataclass(frozen=True)
class OfficeDirectory:
    """Campus to office-location lookup used for face-to-face sessions."""

    locations: Mapping[str, str] = field(default_factory=lambda: {
        "Main Campus": "Guidance Office, Admin Building (2nd Floor)",
        "Annex Campus": "Guidance Office, Annex Building (1st Floor)",
    })
    default_campus: str = "Main Campus"
    default_office: str = "Guidance Office"
    signature: str = "Guidance & Counseling Office"


DEFAULT_OFFICES = OfficeDirectory()


def resolve_office(
    counselor_campus: str | None,
    student_campus: str | None,
    offices: OfficeDirectory = DEFAULT_OFFICES,
) -> tuple[str, str]:
    """Return ``(campus, office)``.

    Campus falls back from the counselor's to the student's to the default;
    an unlisted campus gets the default office text.
    """
    campus = (counselor_campus or "").strip() or (student_campus or "").strip() \
        or offices.default_campus
    return campus, offices.locations.get(campus, offices.default_office)


def format_date(d: date | None) -> str:
    return d.isoformat() if d is not None else "—"


def format_time(t: time | None) -> str:
    """12-hour "hh:MM AM" text, the format students already see elsewhere."""
    if t is None:
        return "—"
    return t.strftime("%I:%M %p")


def _mode_label(mode: SessionMode | None) -> str:
    return _IN_PERSON_LABEL if mode == SessionMode.IN_PERSON else _ONLINE_LABEL


def _greeting(student: StudentInfo) -> list[str]:
    name = student.name.strip() or "Student"
    return [f"Hi {name},", "I hope you're doing well.", ""]


def _venue_lines(
    mode: SessionMode | None,
    counselor: CounselorInfo | None,
    student: StudentInfo,
    offices: OfficeDirectory,
) -> list[str]:
    if mode == SessionMode.IN_PERSON:
        campus, office = resolve_office(
            counselor.campus if counselor else None, student.campus, offices,
        )
        return [
            f"• Campus: {campus}",
            f"• Office: {office}",
            "• Please arrive 5-10 minutes early.",
        ]
    return ["• Tip: Please ensure you have a stable internet connection."]


def _closing(counselor: CounselorInfo | None, offices: OfficeDirectory) -> list[str]:
    name = counselor.name.strip() if counselor and counselor.name else ""
    return ["", "Thank you,", name or "Guidance Counselor", offices.signature]


def build_reschedule_notice(
    original: CounselingRequest,
    updated: CounselingRequest,
    counselor: CounselorInfo | None,
    student: StudentInfo,
    offices: OfficeDirectory = DEFAULT_OFFICES,
) -> Notice:
    """New schedule first, then the previous one, then an invitation to reply."""
    lines = _greeting(student)
    lines += [
        "This is to confirm that your counseling appointment has been rescheduled.",
        "",
        "New appointment",
        f"• Date: {format_date(updated.scheduled_date)}",
        f"• Time: {format_time(updated.scheduled_time)}",
        f"• Mode: {_mode_label(updated.mode)}",
    ]
    lines += _venue_lines(updated.mode, counselor, student, offices)
    lines += [
        "",
        "Previous appointment",
        f"• Date: {format_date(original.scheduled_date)}",
        f"• Time: {format_time(original.scheduled_time)}",
        f"• Mode: {_mode_label(original.mode)}",
        "",
        "If this schedule doesn't work for you, please reply to this email "
        "so we can arrange another available time.",
    ]
    lines += _closing(counselor, offices)
    return Notice(subject=RESCHEDULE_SUBJECT, body="\n".join(lines))


def build_approval_notice(
    request: CounselingRequest,
    counselor: CounselorInfo | None,
    student: StudentInfo,
    offices: OfficeDirectory = DEFAULT_OFFICES,
) -> Notice:
    lines = _greeting(student)
    lines += [
        "Your counseling appointment has been approved. Please see the details below:",
        "",
        "Appointment details",
        f"• Date: {format_date(request.scheduled_date)}",
        f"• Time: {format_time(request.scheduled_time)}",
        f"• Mode: {_mode_label(request.mode)}",
    ]
    if request.reason_text:
        lines.append(f"• Reason: {request.reason_text}")
    if request.mode == SessionMode.IN_PERSON:
        lines += _venue_lines(request.mode, counselor, student, offices)
    else:
        link = request.meeting_link.strip()
        lines += [
            "",
            "Meeting link",
            f"• {link or 'Link will be provided shortly.'}",
            "",
        ]
        lines += _venue_lines(request.mode, counselor, student, offices)
    lines += [
        "",
        "If you have any questions or need to adjust your schedule, please "
        "reply to this email as soon as possible.",
    ]
    lines += _closing(counselor, offices)
    return Notice(subject=APPROVAL_SUBJECT, body="\n".join(lines))
