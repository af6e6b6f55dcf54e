"""Student notice composition: reschedule and approval notices."""

from datetime import date, time

from counseling_kernel.domain.dtos import CounselorInfo, SessionMode, StudentInfo
from counseling_kernel.domain.notification import (
    APPROVAL_SUBJECT,
    DEFAULT_OFFICES,
    RESCHEDULE_SUBJECT,
    OfficeDirectory,
    build_approval_notice,
    build_reschedule_notice,
    format_date,
    format_time,
    resolve_office,
)
from tests.conftest import COUNSELOR, STUDENT, make_request


class TestResolveOffice:

    def test_counselor_campus_wins(self):
        campus, office = resolve_office("Main Campus", "Annex Campus")
        assert campus == "Main Campus"
        assert office == "Guidance Office, Admin Building (2nd Floor)"

    def test_falls_back_to_student_campus(self):
        campus, office = resolve_office("", "Annex Campus")
        assert campus == "Annex Campus"
        assert office == "Guidance Office, Annex Building (1st Floor)"

    def test_falls_back_to_default(self):
        assert resolve_office(None, None) == (
            "Main Campus", "Guidance Office, Admin Building (2nd Floor)",
        )

    def test_unlisted_campus_gets_default_office(self):
        assert resolve_office("North Campus", None) == ("North Campus", "Guidance Office")


class TestFormatting:

    def test_twelve_hour_time(self):
        assert format_time(time(8, 0)) == "08:00 AM"
        assert format_time(time(14, 30)) == "02:30 PM"

    def test_missing_values(self):
        assert format_date(None) == "—"
        assert format_time(None) == "—"
        assert format_date(date(2026, 2, 9)) == "2026-02-09"


class TestRescheduleNotice:

    def _notice(self, new_mode=SessionMode.IN_PERSON, counselor=COUNSELOR, student=STUDENT):
        original = make_request(
            scheduled_date=date(2026, 2, 9), scheduled_time=time(14, 0),
            mode=SessionMode.ONLINE,
        )
        updated = make_request(
            scheduled_date=date(2026, 2, 10), scheduled_time=time(9, 0), mode=new_mode,
        )
        return build_reschedule_notice(original, updated, counselor, student)

    def test_subject(self):
        assert self._notice().subject == RESCHEDULE_SUBJECT == "Rescheduled Counseling Appointment"

    def test_new_schedule_precedes_previous(self):
        body = self._notice().body
        new_at = body.index("New appointment")
        old_at = body.index("Previous appointment")
        assert new_at < old_at
        assert body.index("2026-02-10") < old_at < body.index("2026-02-09")
        assert "• Time: 09:00 AM" in body
        assert "• Time: 02:00 PM" in body

    def test_in_person_includes_campus_office_and_arrival_advice(self):
        body = self._notice().body
        assert "• Campus: Main Campus" in body
        assert "• Office: Guidance Office, Admin Building (2nd Floor)" in body
        assert "Please arrive 5-10 minutes early." in body
        assert "Face-to-Face (In-person)" in body

    def test_online_includes_connection_tip_and_no_office(self):
        body = self._notice(new_mode=SessionMode.ONLINE).body
        assert "stable internet connection" in body
        assert "• Campus:" not in body

    def test_reply_invitation_and_signature(self):
        body = self._notice().body
        assert "please reply to this email" in body
        assert body.rstrip().endswith("Ms. Santos\nGuidance & Counseling Office")

    def test_greeting_falls_back_to_student(self):
        body = self._notice(student=StudentInfo(student_ref="x")).body
        assert body.startswith("Hi Student,")

    def test_missing_counselor_signs_generically(self):
        body = self._notice(counselor=None).body
        assert "Guidance Counselor\nGuidance & Counseling Office" in body
        # campus falls back to the student's
        assert "• Campus: Annex Campus" in body

    def test_deterministic(self):
        assert self._notice() == self._notice()

    def test_custom_office_directory(self):
        offices = OfficeDirectory(
            locations={"Main Campus": "Room 101"},
            signature="Wellness Center",
        )
        original = make_request()
        updated = make_request(scheduled_time=time(9, 0))
        notice = build_reschedule_notice(original, updated, COUNSELOR, STUDENT, offices)
        assert "• Office: Room 101" in notice.body
        assert notice.body.endswith("Wellness Center")


class TestApprovalNotice:

    def test_online_with_link(self):
        request = make_request(
            mode=SessionMode.ONLINE, meeting_link="https://meet.example.com/x",
        )
        notice = build_approval_notice(request, COUNSELOR, STUDENT)
        assert notice.subject == APPROVAL_SUBJECT
        assert "Meeting link" in notice.body
        assert "• https://meet.example.com/x" in notice.body

    def test_online_without_link_promises_one(self):
        request = make_request(mode=SessionMode.ONLINE)
        body = build_approval_notice(request, COUNSELOR, STUDENT).body
        assert "Link will be provided shortly." in body

    def test_in_person_has_office_and_no_link_section(self):
        request = make_request(mode=SessionMode.IN_PERSON)
        body = build_approval_notice(request, COUNSELOR, STUDENT, DEFAULT_OFFICES).body
        assert "Meeting link" not in body
        assert "• Office: Guidance Office, Admin Building (2nd Floor)" in body
        assert "• Reason: Academic stress" in body

    def test_counselor_without_campus_uses_student_campus(self):
        counselor = CounselorInfo(counselor_ref="c-2", name="Mr. Cruz")
        body = build_approval_notice(make_request(), counselor, STUDENT).body
        assert "• Campus: Annex Campus" in body
        assert "Mr. Cruz" in body
