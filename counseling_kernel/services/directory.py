"""
counseling_kernel.services.directory -- Participant directory adapter.

A static ``ParticipantDirectory`` for hosts that load student and counselor
contact data up front.  Unknown students resolve to an entry with only the
reference set, so notices still render ("Hi Student,") instead of failing a
committed transition.
"""

from __future__ import annotations

from typing import Iterable

from counseling_kernel.domain.dtos import CounselorInfo, StudentInfo


class InMemoryParticipantDirectory:
    """Dictionary-backed ``ParticipantDirectory``."""

    def __init__(
        self,
        students: Iterable[StudentInfo] = (),
        counselors: Iterable[CounselorInfo] = (),
    ) -> None:
        self._students = {s.student_ref: s for s in students}
        self._counselors = {c.counselor_ref: c for c in counselors}

    def add_student(self, student: StudentInfo) -> None:
        self._students[student.student_ref] = student

    def add_counselor(self, counselor: CounselorInfo) -> None:
        self._counselors[counselor.counselor_ref] = counselor

    def student(self, student_ref: str) -> StudentInfo:
        return self._students.get(student_ref) or StudentInfo(student_ref=student_ref)

    def counselor(self, counselor_ref: str) -> CounselorInfo | None:
        return self._counselors.get(counselor_ref)
