"""
Pytest fixtures for the counseling kernel test suite.

Provides:
- Structured logging capture
- Deterministic clock, in-memory stores and a wired LifecycleEngine
- A SQLite-backed SqlRequestRepository

Environment Variables:
- DATABASE_URL: Database URL for the SQL store tests.  Defaults to an
  in-memory SQLite database.
"""

import json
import logging
import os
import threading
from datetime import date, datetime, time
from io import StringIO

import pytest

from counseling_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from counseling_kernel.domain.clock import DeterministicClock
from counseling_kernel.domain.dtos import (
    CounselingRequest,
    CounselorInfo,
    RequestKind,
    RequestStatus,
    SessionMode,
    StudentInfo,
)
from counseling_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from counseling_kernel.services.directory import InMemoryParticipantDirectory
from counseling_kernel.services.lifecycle_engine import LifecycleEngine
from counseling_kernel.services.mail import OutboxMailDispatcher
from counseling_kernel.services.provisioning import ProvisioningRunner
from counseling_kernel.services.request_store import InMemoryRequestRepository
from counseling_kernel.services.sql_request_store import SqlRequestRepository

# Monday morning; every fixture request is relative to this.
NOW = datetime(2026, 2, 9, 8, 0)
TODAY = NOW.date()

DEFAULT_DATABASE_URL = "sqlite://"


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture counseling_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, engine):
            engine.approve("r1")
            logs = captured_logs()
            assert any(r["message"] == "request_transitioned" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("counseling_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Builders
# =============================================================================


def make_request(
    request_id: str = "r1",
    status: RequestStatus = RequestStatus.PENDING,
    kind: RequestKind = RequestKind.SESSION_REQUEST,
    scheduled_date: date | None = TODAY,
    scheduled_time: time | None = time(14, 0),
    mode: SessionMode | None = SessionMode.IN_PERSON,
    student_ref: str = "stu-1",
    counselor_ref: str | None = "c-1",
    **overrides,
) -> CounselingRequest:
    """A request record with sensible defaults for the fixture directory."""
    values = dict(
        request_id=request_id,
        kind=kind,
        status=status,
        student_ref=student_ref,
        scheduled_date=scheduled_date,
        scheduled_time=scheduled_time,
        mode=mode,
        counselor_ref=counselor_ref,
        reason_text="Academic stress",
        created_at=datetime(2026, 2, 1, 9, 0),
        updated_at=datetime(2026, 2, 1, 9, 0),
    )
    values.update(overrides)
    return CounselingRequest(**values)


STUDENT = StudentInfo(
    student_ref="stu-1",
    name="Dana Reyes",
    email="dana@example.edu",
    campus="Annex Campus",
    student_number="2023-0001",
    course="BS Psychology",
)

COUNSELOR = CounselorInfo(
    counselor_ref="c-1",
    name="Ms. Santos",
    email="santos@example.edu",
    campus="Main Campus",
)


# =============================================================================
# Collaborator doubles
# =============================================================================


class StubProvisioner:
    """Returns a fixed link; records every call."""

    def __init__(self, link: str = "https://meet.example.com/abc-defg-hij"):
        self.link = link
        self.calls = []

    def create_link(self, request):
        self.calls.append(request)
        return self.link


class FailingProvisioner:
    def __init__(self, message: str = "provider unavailable"):
        self.message = message
        self.calls = 0

    def create_link(self, request):
        self.calls += 1
        raise ConnectionError(self.message)


class GatedProvisioner(StubProvisioner):
    """Blocks inside create_link until ``release()`` is called."""

    def __init__(self, link: str = "https://meet.example.com/late-link"):
        super().__init__(link)
        self.started = threading.Event()
        self._gate = threading.Event()

    def release(self) -> None:
        self._gate.set()

    def create_link(self, request):
        self.started.set()
        self._gate.wait(timeout=5)
        return super().create_link(request)


class ExplodingMailer:
    def __init__(self):
        self.attempts = 0

    def send(self, mail):
        self.attempts += 1
        raise RuntimeError("smtp down")


# =============================================================================
# Core fixtures
# =============================================================================


@pytest.fixture
def clock():
    return DeterministicClock(NOW)


@pytest.fixture
def repository(clock):
    return InMemoryRequestRepository(clock=clock)


@pytest.fixture
def directory():
    return InMemoryParticipantDirectory(students=[STUDENT], counselors=[COUNSELOR])


@pytest.fixture
def mailer():
    return OutboxMailDispatcher()


@pytest.fixture
def provisioner():
    return StubProvisioner()


@pytest.fixture
def runner():
    runner = ProvisioningRunner(max_workers=2)
    yield runner
    runner.shutdown(wait=True)


@pytest.fixture
def engine(repository, directory, mailer, provisioner, clock, runner):
    return LifecycleEngine(
        repository=repository,
        directory=directory,
        mailer=mailer,
        provisioner=provisioner,
        clock=clock,
        runner=runner,
    )


@pytest.fixture
def make_engine(repository, directory, mailer, clock, runner):
    """Factory for engines with non-default collaborators."""

    def _make(**overrides) -> LifecycleEngine:
        kwargs = dict(
            repository=repository,
            directory=directory,
            mailer=mailer,
            provisioner=StubProvisioner(),
            clock=clock,
            runner=runner,
        )
        kwargs.update(overrides)
        return LifecycleEngine(**kwargs)

    return _make


# =============================================================================
# SQL store
# =============================================================================


def get_database_url() -> str:
    return os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)


@pytest.fixture
def session_factory():
    init_engine_from_url(get_database_url())
    create_tables()
    yield get_session_factory()
    drop_tables()
    reset_engine()


@pytest.fixture
def sql_repository(session_factory, clock):
    return SqlRequestRepository(session_factory, clock=clock)
