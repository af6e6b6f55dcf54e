"""In-memory request repository: creation, versioning, change notifications."""

from datetime import time

import pytest

from counseling_kernel.domain.dtos import (
    OutboundMail,
    RequestDraft,
    RequestFilter,
    RequestKind,
    RequestStatus,
    SessionMode,
)
from counseling_kernel.exceptions import (
    DuplicateRequestError,
    NotFoundError,
    OptimisticLockError,
    ValidationError,
)
from counseling_kernel.services.directory import InMemoryParticipantDirectory
from counseling_kernel.services.mail import OutboxMailDispatcher
from tests.conftest import NOW, STUDENT, TODAY, make_request


def _draft(**overrides) -> RequestDraft:
    values = dict(
        kind=RequestKind.SESSION_REQUEST,
        student_ref="stu-1",
        scheduled_date=TODAY,
        scheduled_time=time(10, 0),
        mode=SessionMode.ONLINE,
        reason_text="Career planning",
    )
    values.update(overrides)
    return RequestDraft(**values)


class TestCreate:

    def test_new_requests_start_pending(self, repository):
        created = repository.create(_draft())
        assert created.status == RequestStatus.PENDING
        assert created.version == 1
        assert created.duration_minutes == 60
        assert created.created_at == NOW
        assert created.request_id
        assert repository.get(created.request_id) == created

    def test_caller_supplied_id(self, repository):
        assert repository.create(_draft(request_id="req-7")).request_id == "req-7"

    def test_duplicate_id_rejected(self, repository):
        repository.create(_draft(request_id="req-7"))
        with pytest.raises(DuplicateRequestError):
            repository.create(_draft(request_id="req-7"))

    def test_inquiry_without_schedule(self, repository):
        created = repository.create(_draft(
            kind=RequestKind.INQUIRY, scheduled_date=None, scheduled_time=None, mode=None,
        ))
        assert created.start_at is None


class TestGetAndList:

    def test_unknown_id(self, repository):
        with pytest.raises(NotFoundError) as exc_info:
            repository.get("nope")
        assert exc_info.value.code == "REQUEST_NOT_FOUND"

    def test_list_with_filter(self, repository):
        repository.load([
            make_request("a", status=RequestStatus.APPROVED),
            make_request("b", status=RequestStatus.PENDING),
            make_request("c", status=RequestStatus.RESCHEDULED, student_ref="stu-2"),
        ])
        committed = RequestFilter(statuses=frozenset({
            RequestStatus.APPROVED, RequestStatus.RESCHEDULED,
        }))
        assert {r.request_id for r in repository.list(committed)} == {"a", "c"}
        assert {r.request_id for r in repository.list(RequestFilter(student_ref="stu-2"))} == {"c"}
        assert len(repository.list()) == 3


class TestUpdate:

    def test_patch_bumps_version(self, repository):
        repository.load([make_request("r1")])
        updated = repository.update("r1", {"notes_text": "follow up"})
        assert updated.version == 2
        assert repository.get("r1").notes_text == "follow up"

    def test_stale_version_leaves_record_untouched(self, repository):
        repository.load([make_request("r1")])
        repository.update("r1", {"notes_text": "v2"}, expected_version=1)

        with pytest.raises(OptimisticLockError) as exc_info:
            repository.update("r1", {"notes_text": "v3"}, expected_version=1)

        assert exc_info.value.expected_version == 1
        assert exc_info.value.actual_version == 2
        assert repository.get("r1").notes_text == "v2"

    def test_unknown_id(self, repository):
        with pytest.raises(NotFoundError):
            repository.update("nope", {"notes_text": "x"})

    def test_immutable_field_rejected(self, repository):
        repository.load([make_request("r1")])
        with pytest.raises(ValidationError):
            repository.update("r1", {"student_ref": "someone-else"})
        assert repository.get("r1").version == 1


class TestSubscribe:

    def test_listeners_see_creates_and_updates(self, repository):
        seen = []
        repository.subscribe(seen.append)

        created = repository.create(_draft(request_id="r1"))
        repository.update("r1", {"status": RequestStatus.CANCELLED})

        assert [c.change_type for c in seen] == ["created", "updated"]
        assert seen[0].request == created
        assert seen[1].request.status == RequestStatus.CANCELLED

    def test_unsubscribe(self, repository):
        seen = []
        unsubscribe = repository.subscribe(seen.append)
        unsubscribe()
        repository.create(_draft())
        assert seen == []

    def test_failing_listener_does_not_undo_write(self, repository, captured_logs):
        def broken(change):
            raise RuntimeError("viewer crashed")

        seen = []
        repository.subscribe(broken)
        repository.subscribe(seen.append)

        repository.create(_draft(request_id="r1"))

        assert repository.get("r1").status == RequestStatus.PENDING
        assert len(seen) == 1
        assert any(r["message"] == "change_listener_failed" for r in captured_logs())


class TestDirectoryAndOutbox:

    def test_unknown_student_resolves_to_bare_entry(self):
        directory = InMemoryParticipantDirectory(students=[STUDENT])
        assert directory.student("stu-1") == STUDENT
        assert directory.student("ghost").student_ref == "ghost"
        assert directory.student("ghost").email == ""
        assert directory.counselor("nobody") is None

    def test_outbox_drain(self):
        outbox = OutboxMailDispatcher()
        mail = OutboundMail(to="a@example.edu", subject="s", body="b")
        outbox.send(mail)
        assert outbox.sent == [mail]
        assert outbox.drain() == [mail]
        assert outbox.sent == []
