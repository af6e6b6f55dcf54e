"""
SqlRequestRepository against SQLite (or DATABASE_URL when set).

Same contract as the in-memory store; also checks the ORM round trip and
that the engine runs unchanged on top of it.
"""

from datetime import date, datetime, time

import pytest

from counseling_kernel.domain.dtos import (
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
)
from counseling_kernel.selectors.calendar_selector import CalendarProjector
from counseling_kernel.services.lifecycle_engine import LifecycleEngine
from counseling_kernel.services.sql_request_store import SqlRequestRepository
from tests.conftest import NOW, TODAY, make_request


class TestSqlRequestRepository:

    def test_round_trip_preserves_every_field(self, sql_repository):
        original = make_request(
            "r1",
            status=RequestStatus.APPROVED,
            mode=SessionMode.ONLINE,
            meeting_link="https://meet.example.com/x",
            notes_text="bring transcript",
            course="BS Psychology",
            responded_at=datetime(2026, 2, 2, 10, 30),
            completed_at=datetime(2026, 2, 9, 15, 0),
        )
        sql_repository.add(original)
        assert sql_repository.get("r1") == original

    def test_inquiry_without_schedule(self, sql_repository):
        sql_repository.add(make_request(
            "q1", kind=RequestKind.INQUIRY,
            scheduled_date=None, scheduled_time=None, mode=None, counselor_ref=None,
        ))
        loaded = sql_repository.get("q1")
        assert loaded.mode is None
        assert loaded.start_at is None

    def test_create_starts_pending(self, sql_repository):
        created = sql_repository.create(RequestDraft(
            kind=RequestKind.SESSION_REQUEST,
            student_ref="stu-1",
            scheduled_date=TODAY,
            scheduled_time=time(10, 0),
            mode=SessionMode.IN_PERSON,
            request_id="r-new",
        ))
        assert created.status == RequestStatus.PENDING
        assert created.created_at == NOW
        assert sql_repository.get("r-new") == created

    def test_duplicate_create_rejected(self, sql_repository):
        draft = RequestDraft(kind=RequestKind.INQUIRY, student_ref="stu-1", request_id="dup")
        sql_repository.create(draft)
        with pytest.raises(DuplicateRequestError):
            sql_repository.create(draft)

    def test_create_losing_insert_race_is_a_duplicate(self, session_factory, clock):
        repository = _StaleCheckRepository(session_factory, clock=clock)
        draft = RequestDraft(kind=RequestKind.INQUIRY, student_ref="stu-1", request_id="dup")
        repository.create(draft)
        seen = []
        repository.subscribe(seen.append)

        repository.stale_checks = 1
        with pytest.raises(DuplicateRequestError):
            repository.create(draft)

        assert seen == []
        assert len(repository.list()) == 1

    def test_unknown_id(self, sql_repository):
        with pytest.raises(NotFoundError):
            sql_repository.get("nope")
        with pytest.raises(NotFoundError):
            sql_repository.update("nope", {"notes_text": "x"})

    def test_list_filters_in_sql(self, sql_repository):
        sql_repository.add(make_request("a", status=RequestStatus.APPROVED))
        sql_repository.add(make_request("b", status=RequestStatus.PENDING))
        sql_repository.add(make_request(
            "c", status=RequestStatus.RESCHEDULED, scheduled_date=date(2026, 2, 10),
        ))

        committed = RequestFilter(
            statuses=frozenset({RequestStatus.APPROVED, RequestStatus.RESCHEDULED}),
            kind=RequestKind.SESSION_REQUEST,
        )
        assert [r.request_id for r in sql_repository.list(committed)] == ["a", "c"]
        on_day = RequestFilter(scheduled_date=TODAY)
        assert [r.request_id for r in sql_repository.list(on_day)] == ["a", "b"]

    def test_versioned_update(self, sql_repository):
        sql_repository.add(make_request("r1"))
        updated = sql_repository.update("r1", {"notes_text": "v2"}, expected_version=1)
        assert updated.version == 2

        with pytest.raises(OptimisticLockError):
            sql_repository.update("r1", {"notes_text": "v3"}, expected_version=1)
        assert sql_repository.get("r1").notes_text == "v2"

    def test_change_notifications(self, sql_repository):
        seen = []
        sql_repository.subscribe(seen.append)
        sql_repository.add(make_request("r1"))
        sql_repository.update("r1", {"notes_text": "x"})
        assert [c.change_type for c in seen] == ["updated"]


class TestEngineOnSqlStore:

    def test_lifecycle_and_calendar(self, sql_repository, directory, mailer, clock, runner):
        engine = LifecycleEngine(
            sql_repository, directory, mailer, clock=clock, runner=runner,
        )
        sql_repository.add(make_request("r1", scheduled_date=date(2026, 2, 10)))

        engine.approve("r1")
        engine.reschedule("r1", "2026-02-10", "13:00", "InPerson")

        stored = sql_repository.get("r1")
        assert stored.status == RequestStatus.RESCHEDULED
        assert stored.scheduled_time == time(13, 0)
        assert stored.version == 3

        sessions = CalendarProjector(sql_repository, clock).project_for_date("2026-02-10")
        assert [(s.session_id, s.start_time) for s in sessions] == [("r1", time(13, 0))]


class _StaleCheckRepository(SqlRequestRepository):
    """Existence check that misses rows committed by a concurrent create."""

    stale_checks = 0

    def _exists(self, session, request_id):
        if self.stale_checks:
            self.stale_checks -= 1
            return False
        return super()._exists(session, request_id)
