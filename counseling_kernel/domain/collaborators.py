"""
Collaborator protocols (``counseling_kernel.domain.collaborators``).

Structural interfaces for everything the kernel consumes but does not own:
request storage, meeting-link creation, mail delivery and the participant
directory.  Adapters live in ``counseling_kernel.services``; tests and host
applications may supply their own.
"""

from __future__ import annotations

from typing import Any, Callable, Protocol, runtime_checkable

from counseling_kernel.domain.dtos import (
    CounselingRequest,
    CounselorInfo,
    LinkRequest,
    OutboundMail,
    RequestChange,
    RequestDraft,
    RequestFilter,
    StudentInfo,
)

ChangeListener = Callable[[RequestChange], None]


@runtime_checkable
class RequestRepository(Protocol):
    """CRUD access to request records.

    Implementations serialize writes per request id and guarantee that a
    read after a completed write observes it.
    """

    def get(self, request_id: str) -> CounselingRequest:
        """Raises NotFoundError."""
        ...

    def list(self, request_filter: RequestFilter | None = None) -> list[CounselingRequest]:
        ...

    def create(self, draft: RequestDraft) -> CounselingRequest:
        ...

    def update(
        self,
        request_id: str,
        patch: dict[str, Any],
        expected_version: int | None = None,
    ) -> CounselingRequest:
        """Raises NotFoundError, OptimisticLockError."""
        ...

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Register a change listener; returns an unsubscribe callable."""
        ...


@runtime_checkable
class MeetingLinkProvisioner(Protocol):
    """Creates a video-conferencing URL.  May block; raises ProvisioningError."""

    def create_link(self, link_request: LinkRequest) -> str:
        ...


@runtime_checkable
class MailDispatcher(Protocol):
    """Fire-and-forget mail delivery."""

    def send(self, mail: OutboundMail) -> None:
        ...


@runtime_checkable
class ParticipantDirectory(Protocol):
    """Lookup of student and counselor contact details."""

    def student(self, student_ref: str) -> StudentInfo:
        ...

    def counselor(self, counselor_ref: str) -> CounselorInfo | None:
        ...
