"""
counseling_kernel.services.sql_request_store -- SQLAlchemy request repository.

Responsibility:
    Durable implementation of ``RequestRepository`` over the
    ``counseling_requests`` table.  Each call runs in its own transaction
    from the injected session factory.

Invariants enforced:
    - Per-id serialized writes: update() selects the row FOR UPDATE (a row
      lock on PostgreSQL) and compares ``version`` before writing.
    - Change notifications are published only after commit.
    - Returns frozen DTOs, never ORM instances.

Failure modes:
    - NotFoundError for an unknown id.
    - DuplicateRequestError when creating with an id that exists, including
      a concurrent create that wins the insert race.
    - OptimisticLockError on a stale ``expected_version``.
    - SQLAlchemy errors propagate unmodified after rollback.
"""

from __future__ import annotations

from typing import Any, Callable
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from counseling_kernel.db.engine import session_scope
from counseling_kernel.domain.clock import Clock, SystemClock
from counseling_kernel.domain.collaborators import ChangeListener
from counseling_kernel.domain.dtos import (
    CounselingRequest,
    RequestChange,
    RequestDraft,
    RequestFilter,
    apply_patch,
)
from counseling_kernel.exceptions import (
    DuplicateRequestError,
    NotFoundError,
    OptimisticLockError,
)
from counseling_kernel.logging_config import get_logger
from counseling_kernel.models.counseling_request import CounselingRequestModel
from counseling_kernel.services.request_store import ChangeNotifier, request_from_draft

logger = get_logger("services.sql_request_store")


class SqlRequestRepository:
    """``RequestRepository`` backed by a relational database."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Clock | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._notifier = ChangeNotifier()

    def _load_model(
        self,
        session: Session,
        request_id: str,
        for_update: bool = False,
    ) -> CounselingRequestModel:
        stmt = select(CounselingRequestModel).where(
            CounselingRequestModel.request_id == request_id
        )
        if for_update:
            stmt = stmt.with_for_update()
        model = session.execute(stmt).scalar_one_or_none()
        if model is None:
            raise NotFoundError(request_id)
        return model

    @staticmethod
    def _exists(session: Session, request_id: str) -> bool:
        return session.execute(
            select(CounselingRequestModel.id).where(
                CounselingRequestModel.request_id == request_id
            )
        ).scalar_one_or_none() is not None

    def get(self, request_id: str) -> CounselingRequest:
        with session_scope(self._session_factory) as session:
            return self._load_model(session, request_id).to_dto()

    def list(self, request_filter: RequestFilter | None = None) -> list[CounselingRequest]:
        stmt = select(CounselingRequestModel)
        f = request_filter or RequestFilter()
        if f.statuses is not None:
            stmt = stmt.where(
                CounselingRequestModel.status.in_([s.value for s in f.statuses])
            )
        if f.kind is not None:
            stmt = stmt.where(CounselingRequestModel.kind == f.kind.value)
        if f.scheduled_date is not None:
            stmt = stmt.where(CounselingRequestModel.scheduled_date == f.scheduled_date)
        if f.student_ref is not None:
            stmt = stmt.where(CounselingRequestModel.student_ref == f.student_ref)
        if f.counselor_ref is not None:
            stmt = stmt.where(CounselingRequestModel.counselor_ref == f.counselor_ref)
        stmt = stmt.order_by(CounselingRequestModel.request_id)

        with session_scope(self._session_factory) as session:
            return [m.to_dto() for m in session.execute(stmt).scalars()]

    def add(self, request: CounselingRequest) -> CounselingRequest:
        """Insert an existing record as-is (migration and fixtures)."""
        with session_scope(self._session_factory) as session:
            session.add(CounselingRequestModel.from_dto(request))
        return request

    def create(self, draft: RequestDraft) -> CounselingRequest:
        request_id = draft.request_id or str(uuid4())
        record = request_from_draft(draft, request_id, self._clock)

        with session_scope(self._session_factory) as session:
            if self._exists(session, request_id):
                raise DuplicateRequestError(request_id)
            session.add(CounselingRequestModel.from_dto(record))
            try:
                session.flush()
            except IntegrityError:
                # Concurrent create with the same request_id won the insert
                session.rollback()
                if not self._exists(session, request_id):
                    raise
                logger.warning(
                    "concurrent_request_insert_conflict",
                    extra={"request_id": request_id},
                )
                raise DuplicateRequestError(request_id) from None

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
        with session_scope(self._session_factory) as session:
            model = self._load_model(session, request_id, for_update=True)
            if expected_version is not None and model.version != expected_version:
                raise OptimisticLockError(request_id, expected_version, model.version)
            updated = apply_patch(model.to_dto(), patch)
            model.copy_from(updated)

        self._notifier.publish(RequestChange("updated", updated))
        return updated

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        return self._notifier.subscribe(listener)
