"""
counseling_kernel.services.request_store -- In-memory request repository.

Responsibility:
    Process-local implementation of ``RequestRepository``.  Used by tests,
    demos and single-process hosts; ``sql_request_store`` is the durable
    counterpart.

Invariants enforced:
    - Per-id serialized writes: every update holds that id's lock for the
      read-check-write sequence.
    - Optimistic versioning: ``expected_version`` mismatches raise
      OptimisticLockError and leave the record untouched.
    - Creation always yields a Pending record with the standard duration.
    - Listeners are notified after the write lock is released.

Failure modes:
    - NotFoundError for an unknown id.
    - DuplicateRequestError when creating with an id that exists.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Iterable
from uuid import uuid4

from counseling_kernel.domain.clock import Clock, SystemClock
from counseling_kernel.domain.collaborators import ChangeListener
from counseling_kernel.domain.dtos import (
    SESSION_DURATION_MINUTES,
    CounselingRequest,
    RequestChange,
    RequestDraft,
    RequestFilter,
    RequestStatus,
    apply_patch,
)
from counseling_kernel.exceptions import (
    DuplicateRequestError,
    NotFoundError,
    OptimisticLockError,
)
from counseling_kernel.logging_config import get_logger

logger = get_logger("services.request_store")


def request_from_draft(draft: RequestDraft, request_id: str, clock: Clock) -> CounselingRequest:
    """Build the initial Pending record for a student's draft."""
    now = clock.now()
    return CounselingRequest(
        request_id=request_id,
        kind=draft.kind,
        status=RequestStatus.PENDING,
        student_ref=draft.student_ref,
        scheduled_date=draft.scheduled_date,
        scheduled_time=draft.scheduled_time,
        duration_minutes=SESSION_DURATION_MINUTES,
        mode=draft.mode,
        counselor_ref=draft.counselor_ref,
        reason_text=draft.reason_text,
        notes_text=draft.notes_text,
        course=draft.course,
        created_at=now,
        updated_at=now,
    )


class ChangeNotifier:
    """Fan-out of ``RequestChange`` events to subscribed listeners."""

    def __init__(self) -> None:
        self._listeners: list[ChangeListener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    def publish(self, change: RequestChange) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(change)
            except Exception:
                # A broken viewer must not undo a committed write
                logger.exception(
                    "change_listener_failed",
                    extra={
                        "request_id": change.request.request_id,
                        "change_type": change.change_type,
                    },
                )


class InMemoryRequestRepository:
    """Thread-safe in-memory ``RequestRepository``."""

    def __init__(
        self,
        clock: Clock | None = None,
        requests: Iterable[CounselingRequest] = (),
    ) -> None:
        self._clock = clock or SystemClock()
        self._records: dict[str, CounselingRequest] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()
        self._notifier = ChangeNotifier()
        self.load(requests)

    def _lock_for(self, request_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(request_id)
            if lock is None:
                lock = self._locks[request_id] = threading.Lock()
            return lock

    def load(self, requests: Iterable[CounselingRequest]) -> None:
        """Import existing records as-is (migration and fixtures)."""
        for request in requests:
            with self._lock_for(request.request_id):
                self._records[request.request_id] = request

    def get(self, request_id: str) -> CounselingRequest:
        record = self._records.get(request_id)
        if record is None:
            raise NotFoundError(request_id)
        return record

    def list(self, request_filter: RequestFilter | None = None) -> list[CounselingRequest]:
        with self._registry_lock:
            snapshot = list(self._records.values())
        if request_filter is None:
            return snapshot
        return [r for r in snapshot if request_filter.matches(r)]

    def create(self, draft: RequestDraft) -> CounselingRequest:
        request_id = draft.request_id or str(uuid4())
        with self._lock_for(request_id):
            if request_id in self._records:
                raise DuplicateRequestError(request_id)
            record = request_from_draft(draft, request_id, self._clock)
            self._records[request_id] = record

        logger.info(
            "request_created",
            extra={
                "request_id": request_id,
                "kind": record.kind.value,
                "student_ref": record.student_ref,
            },
        )
        self._notifier.publish(RequestChange("created", record))
        return record

    def update(
        self,
        request_id: str,
        patch: dict[str, Any],
        expected_version: int | None = None,
    ) -> CounselingRequest:
        with self._lock_for(request_id):
            current = self._records.get(request_id)
            if current is None:
                raise NotFoundError(request_id)
            if expected_version is not None and current.version != expected_version:
                raise OptimisticLockError(request_id, expected_version, current.version)
            updated = apply_patch(current, patch)
            self._records[request_id] = updated

        self._notifier.publish(RequestChange("updated", updated))
        return updated

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        return self._notifier.subscribe(listener)
