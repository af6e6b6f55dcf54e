"""
Module: counseling_kernel.models.counseling_request
Responsibility: ORM persistence for counseling requests.

Architecture position: Kernel > Models.  May import from db/base.py and the
    pure domain DTOs it converts to and from.

Invariants enforced:
    - Status literals: DB check constraint limits status to the five
      canonical values, spelled exactly as existing callers expect.
    - Business id uniqueness: request_id is UNIQUE.
    - Version column: incremented on every write; the SQL request store
      compares it for optimistic concurrency.

Failure modes:
    - IntegrityError on duplicate request_id or an out-of-range status.
"""

from __future__ import annotations

from datetime import date, datetime, time

from sqlalchemy import CheckConstraint, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from counseling_kernel.db.base import Base
from counseling_kernel.domain.dtos import (
    CounselingRequest,
    RequestKind,
    RequestStatus,
    SessionMode,
)


class CounselingRequestModel(Base):
    """Persistent counseling request."""

    __tablename__ = "counseling_requests"

    __table_args__ = (
        CheckConstraint(
            "status IN ('Pending', 'Approved', 'Disapproved', 'Cancelled', "
            "'Rescheduled')",
            name="ck_counseling_requests_valid_status",
        ),
        CheckConstraint(
            "kind IN ('SessionRequest', 'Inquiry')",
            name="ck_counseling_requests_valid_kind",
        ),
        # Calendar reads are always date-scoped
        Index(
            "ix_counseling_requests_date_status",
            "scheduled_date", "status",
        ),
        Index("ix_counseling_requests_student", "student_ref"),
    )

    request_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="Pending")
    student_ref: Mapped[str] = mapped_column(String(100), nullable=False)
    counselor_ref: Mapped[str | None] = mapped_column(String(100), nullable=True)
    scheduled_date: Mapped[date | None] = mapped_column(nullable=True)
    scheduled_time: Mapped[time | None] = mapped_column(nullable=True)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=60)
    mode: Mapped[str | None] = mapped_column(String(20), nullable=True)
    reason_text: Mapped[str] = mapped_column(Text, nullable=False, default="")
    notes_text: Mapped[str] = mapped_column(Text, nullable=False, default="")
    course: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    meeting_link: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    created_at: Mapped[datetime | None] = mapped_column(nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(nullable=True)
    responded_at: Mapped[datetime | None] = mapped_column(nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    def __repr__(self) -> str:
        return (
            f"<CounselingRequest {self.request_id} {self.kind} "
            f"status={self.status} v{self.version}>"
        )

    def to_dto(self) -> CounselingRequest:
        """Convert ORM model to frozen domain DTO."""
        return CounselingRequest(
            request_id=self.request_id,
            kind=RequestKind(self.kind),
            status=RequestStatus(self.status),
            student_ref=self.student_ref,
            scheduled_date=self.scheduled_date,
            scheduled_time=self.scheduled_time,
            duration_minutes=self.duration_minutes,
            mode=SessionMode(self.mode) if self.mode else None,
            counselor_ref=self.counselor_ref,
            reason_text=self.reason_text or "",
            notes_text=self.notes_text or "",
            course=self.course or "",
            meeting_link=self.meeting_link or "",
            created_at=self.created_at,
            updated_at=self.updated_at,
            responded_at=self.responded_at,
            cancelled_at=self.cancelled_at,
            completed_at=self.completed_at,
            version=self.version,
        )

    @classmethod
    def from_dto(cls, dto: CounselingRequest) -> CounselingRequestModel:
        """Create ORM model from domain DTO."""
        model = cls(request_id=dto.request_id)
        model.copy_from(dto)
        return model

    def copy_from(self, dto: CounselingRequest) -> None:
        """Overwrite every mutable column with the DTO's values."""
        self.kind = dto.kind.value
        self.status = dto.status.value
        self.student_ref = dto.student_ref
        self.counselor_ref = dto.counselor_ref
        self.scheduled_date = dto.scheduled_date
        self.scheduled_time = dto.scheduled_time
        self.duration_minutes = dto.duration_minutes
        self.mode = dto.mode.value if dto.mode is not None else None
        self.reason_text = dto.reason_text
        self.notes_text = dto.notes_text
        self.course = dto.course
        self.meeting_link = dto.meeting_link
        self.created_at = dto.created_at
        self.updated_at = dto.updated_at
        self.responded_at = dto.responded_at
        self.cancelled_at = dto.cancelled_at
        self.completed_at = dto.completed_at
        self.version = dto.version
