"""
counseling_kernel.services.lifecycle_engine -- Counseling request transitions.

Responsibility:
    Validates and applies the request lifecycle transitions (approve,
    disapprove, cancel, reschedule), enforces the two-hour notice rules, and
    emits the side effects that follow a commit: meeting-link provisioning
    and student notices.

Architecture position:
    Kernel > Services.  May import from domain/ and services/.  Talks to
    storage, mail, directory and the link provider only through the
    protocols in ``domain.collaborators``.

Invariants enforced:
    - Status changes only through REQUEST_WORKFLOW transitions.
    - One record per call: read, validate, write with expected_version.
    - Guard failures and state errors leave the record untouched.
    - Approval commits before provisioning starts; a provisioning failure
      never rolls the approval back.
    - A provisioned link never overwrites one the counselor already set.
    - meeting_link is empty whenever mode is InPerson, and is cleared on
      every reschedule.

Failure modes:
    - ValidationError on malformed input (raised before any read).
    - TerminalStateError for Disapproved/Cancelled requests.
    - InvalidTransitionError for actions not legal from the current status.
    - SchedulingWindowError naming the failed guard.
    - NotFoundError / OptimisticLockError from the repository, unmodified.
    - Provisioning failures surface as ProvisioningWarning on the
      provisioning outcome only.
"""

from __future__ import annotations

import time as _time
from concurrent.futures import Future
from dataclasses import dataclass, field
from datetime import date, time
from typing import Any, Callable, Iterable

from counseling_kernel.domain.clock import Clock, SystemClock
from counseling_kernel.domain.collaborators import (
    MailDispatcher,
    MeetingLinkProvisioner,
    ParticipantDirectory,
    RequestRepository,
)
from counseling_kernel.domain.dtos import (
    CounselingRequest,
    LinkRequest,
    Notice,
    OutboundMail,
    RequestStatus,
    SessionMode,
    normalize_mode,
)
from counseling_kernel.domain.lifecycle import (
    ACTION_APPROVE,
    ACTION_CANCEL,
    ACTION_DISAPPROVE,
    ACTION_RESCHEDULE,
    NEW_SLOT_GUARD,
    NOTICE_GUARD,
    REQUEST_WORKFLOW,
)
from counseling_kernel.domain.notification import (
    DEFAULT_OFFICES,
    OfficeDirectory,
    build_approval_notice,
    build_reschedule_notice,
)
from counseling_kernel.domain.time_rules import (
    DEFAULT_POLICY,
    SchedulingPolicy,
    is_at_least_notice_minutes,
    parse_calendar_date,
    parse_clock_time,
    session_start,
)
from counseling_kernel.domain.workflow import Transition
from counseling_kernel.exceptions import (
    CounselingKernelError,
    InvalidTransitionError,
    OptimisticLockError,
    ProvisioningWarning,
    SchedulingWindowError,
    TerminalStateError,
    ValidationError,
)
from counseling_kernel.logging_config import LogContext, get_logger
from counseling_kernel.services.provisioning import (
    ProvisioningOutcome,
    ProvisioningRunner,
    settled,
)

logger = get_logger("services.lifecycle_engine")

TRACE_TYPE_LIFECYCLE_TRANSITION = "LIFECYCLE_TRANSITION"
OUTCOME_SUCCESS = "success"
OUTCOME_TERMINAL = "terminal_state"
OUTCOME_NO_TRANSITION = "no_transition"
OUTCOME_GUARD_FAILED = "guard_failed"

ACTION_SET_MEETING_LINK = "set_meeting_link"
ACTION_MARK_COMPLETED = "mark_completed"

# Re-reads allowed when a concurrent write races the link patch
_LINK_PATCH_ATTEMPTS = 3


@dataclass(frozen=True)
class TransitionOutcome:
    """Result of a committed transition.

    ``provisioning`` is set for online approvals and resolves to a
    ``ProvisioningOutcome`` once the link provider answers.
    """

    action: str
    previous_status: RequestStatus
    request: CounselingRequest
    provisioning: Future | None = None
    notices: tuple[OutboundMail, ...] = ()


@dataclass(frozen=True)
class BatchResult:
    """Per-item results of a batch action.  Partial completion is normal."""

    succeeded: tuple[TransitionOutcome, ...] = ()
    failed: tuple[tuple[str, CounselingKernelError], ...] = ()

    @property
    def all_succeeded(self) -> bool:
        return not self.failed


@dataclass
class _Plan:
    transition: Transition | None
    patch: dict[str, Any] = field(default_factory=dict)


def _require_id(request_id: Any) -> str:
    rid = str(request_id or "").strip()
    if not rid:
        raise ValidationError("request_id", "must be a non-empty identifier")
    return rid


class LifecycleEngine:
    """Applies lifecycle transitions to counseling requests."""

    def __init__(
        self,
        repository: RequestRepository,
        directory: ParticipantDirectory,
        mailer: MailDispatcher,
        provisioner: MeetingLinkProvisioner | None = None,
        clock: Clock | None = None,
        policy: SchedulingPolicy = DEFAULT_POLICY,
        offices: OfficeDirectory = DEFAULT_OFFICES,
        runner: ProvisioningRunner | None = None,
        outcome_sink: Callable[[dict], None] | None = None,
    ) -> None:
        self._repository = repository
        self._directory = directory
        self._mailer = mailer
        self._provisioner = provisioner
        self._clock = clock or SystemClock()
        self._policy = policy
        self._offices = offices
        self._runner = runner or ProvisioningRunner()
        self._outcome_sink = outcome_sink

    # ------------------------------------------------------------------
    # Public transitions
    # ------------------------------------------------------------------

    def approve(self, request_id: str, counselor_ref: str | None = None) -> TransitionOutcome:
        """Pending/Rescheduled -> Approved.  Online requests get a link later."""
        rid = _require_id(request_id)

        def plan(current: CounselingRequest) -> _Plan:
            patch: dict[str, Any] = {
                "responded_at": self._clock.now(),
                "meeting_link": "",
            }
            if counselor_ref:
                patch["counselor_ref"] = counselor_ref
            return _Plan(self._lookup(current, ACTION_APPROVE), patch)

        with LogContext.bind(counselor_ref=counselor_ref or None):
            previous, updated = self._apply(rid, ACTION_APPROVE, plan)

            if not updated.is_session_request:
                return TransitionOutcome(ACTION_APPROVE, previous.status, updated)

            if updated.mode == SessionMode.ONLINE:
                future = self._start_provisioning(updated)
                return TransitionOutcome(
                    ACTION_APPROVE, previous.status, updated, provisioning=future,
                )

            mail = self._dispatch_approval_notice(updated)
        return TransitionOutcome(
            ACTION_APPROVE, previous.status, updated,
            notices=(mail,) if mail else (),
        )

    def disapprove(self, request_id: str) -> TransitionOutcome:
        """Pending/Rescheduled -> Disapproved (terminal)."""
        rid = _require_id(request_id)

        def plan(current: CounselingRequest) -> _Plan:
            return _Plan(
                self._lookup(current, ACTION_DISAPPROVE),
                {"responded_at": self._clock.now(), "meeting_link": ""},
            )

        previous, updated = self._apply(rid, ACTION_DISAPPROVE, plan)
        return TransitionOutcome(ACTION_DISAPPROVE, previous.status, updated)

    def cancel(self, request_id: str) -> TransitionOutcome:
        """Pending/Approved/Rescheduled -> Cancelled (terminal)."""
        rid = _require_id(request_id)

        def plan(current: CounselingRequest) -> _Plan:
            return _Plan(
                self._lookup(current, ACTION_CANCEL),
                {"cancelled_at": self._clock.now()},
            )

        previous, updated = self._apply(rid, ACTION_CANCEL, plan)
        return TransitionOutcome(ACTION_CANCEL, previous.status, updated)

    def reschedule(
        self,
        request_id: str,
        new_date: date | str,
        new_time: time | str,
        new_mode: SessionMode | str,
    ) -> TransitionOutcome:
        """Move a session to a new slot, subject to the notice and new-slot guards."""
        rid = _require_id(request_id)
        target_date = parse_calendar_date(new_date)
        target_time = parse_clock_time(new_time)
        target_mode = normalize_mode(new_mode)
        target_start = session_start(target_date, target_time)

        def plan(current: CounselingRequest) -> _Plan:
            transition = self._lookup(current, ACTION_RESCHEDULE)
            if not current.is_session_request:
                raise InvalidTransitionError(
                    current.request_id, current.status.value, ACTION_RESCHEDULE,
                    "inquiries have no schedule",
                )
            now = self._clock.now()
            minimum = self._policy.notice_minutes
            for guard in transition.guards:
                if guard == NOTICE_GUARD:
                    committed_start = current.start_at
                    # An unscheduled record has no slot to protect
                    if committed_start is not None and not is_at_least_notice_minutes(
                        committed_start, now, minimum,
                    ):
                        raise SchedulingWindowError(
                            current.request_id, SchedulingWindowError.NOTICE,
                            committed_start.isoformat(timespec="minutes"),
                            now.isoformat(timespec="minutes"), minimum,
                        )
                elif guard == NEW_SLOT_GUARD:
                    if not is_at_least_notice_minutes(target_start, now, minimum):
                        raise SchedulingWindowError(
                            current.request_id, SchedulingWindowError.NEW_SLOT,
                            target_start.isoformat(timespec="minutes"),
                            now.isoformat(timespec="minutes"), minimum,
                        )
            return _Plan(transition, {
                "scheduled_date": target_date,
                "scheduled_time": target_time,
                "mode": target_mode,
                "duration_minutes": self._policy.session_minutes,
                "meeting_link": "",
                "completed_at": None,
            })

        previous, updated = self._apply(rid, ACTION_RESCHEDULE, plan)

        student = self._directory.student(updated.student_ref)
        counselor = (
            self._directory.counselor(updated.counselor_ref)
            if updated.counselor_ref else None
        )
        notice = build_reschedule_notice(previous, updated, counselor, student, self._offices)
        mail = self._dispatch(updated, student.email, notice)
        return TransitionOutcome(
            ACTION_RESCHEDULE, previous.status, updated,
            notices=(mail,) if mail else (),
        )

    def set_meeting_link(self, request_id: str, link: str) -> TransitionOutcome:
        """Counselor-entered link for a committed online session.  Status unchanged."""
        rid = _require_id(request_id)
        clean = str(link or "").strip()
        if clean and not clean.startswith(("https://", "http://")):
            raise ValidationError("meeting_link", "must be an http(s) URL")

        def plan(current: CounselingRequest) -> _Plan:
            self._require_committed(current, ACTION_SET_MEETING_LINK)
            if current.mode != SessionMode.ONLINE:
                raise InvalidTransitionError(
                    current.request_id, current.status.value, ACTION_SET_MEETING_LINK,
                    "in-person sessions carry no meeting link",
                )
            return _Plan(None, {"meeting_link": clean})

        previous, updated = self._apply(rid, ACTION_SET_MEETING_LINK, plan)
        return TransitionOutcome(ACTION_SET_MEETING_LINK, previous.status, updated)

    def mark_completed(self, request_id: str) -> TransitionOutcome:
        """Flag a committed session as held.  The calendar moves it to History."""
        rid = _require_id(request_id)

        def plan(current: CounselingRequest) -> _Plan:
            self._require_committed(current, ACTION_MARK_COMPLETED)
            if not current.is_session_request:
                raise InvalidTransitionError(
                    current.request_id, current.status.value, ACTION_MARK_COMPLETED,
                    "inquiries have no session",
                )
            if current.completed_at is not None:
                raise InvalidTransitionError(
                    current.request_id, current.status.value, ACTION_MARK_COMPLETED,
                    "already completed",
                )
            return _Plan(None, {"completed_at": self._clock.now()})

        previous, updated = self._apply(rid, ACTION_MARK_COMPLETED, plan)
        return TransitionOutcome(ACTION_MARK_COMPLETED, previous.status, updated)

    def approve_many(
        self,
        request_ids: Iterable[str],
        counselor_ref: str | None = None,
    ) -> BatchResult:
        return self._batch(request_ids, lambda rid: self.approve(rid, counselor_ref))

    def cancel_many(self, request_ids: Iterable[str]) -> BatchResult:
        return self._batch(request_ids, self.cancel)

    def shutdown(self, wait: bool = True) -> None:
        """Stop the provisioning workers."""
        self._runner.shutdown(wait=wait)

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    def _lookup(self, current: CounselingRequest, action: str) -> Transition:
        status = current.status.value
        if REQUEST_WORKFLOW.is_terminal(status):
            raise TerminalStateError(current.request_id, status, action)
        transition = REQUEST_WORKFLOW.find_transition(status, action)
        if transition is None:
            raise InvalidTransitionError(current.request_id, status, action)
        return transition

    def _require_committed(self, current: CounselingRequest, action: str) -> None:
        if REQUEST_WORKFLOW.is_terminal(current.status.value):
            raise TerminalStateError(current.request_id, current.status.value, action)
        if not current.is_committed:
            raise InvalidTransitionError(
                current.request_id, current.status.value, action,
                "only Approved or Rescheduled sessions qualify",
            )

    def _apply(
        self,
        request_id: str,
        action: str,
        plan: Callable[[CounselingRequest], _Plan],
    ) -> tuple[CounselingRequest, CounselingRequest]:
        """Read, plan, write.  Returns (before, after)."""
        start = _time.monotonic()
        with LogContext.bind(request_id=request_id, action=action):
            current = self._repository.get(request_id)
            try:
                planned = plan(current)
            except TerminalStateError as exc:
                self._trace(action, current, OUTCOME_TERMINAL, str(exc), start)
                raise
            except SchedulingWindowError as exc:
                self._trace(action, current, OUTCOME_GUARD_FAILED, exc.guard, start)
                logger.info(
                    "reschedule_rejected",
                    extra={"request_id": request_id, "guard": exc.guard},
                )
                raise
            except InvalidTransitionError as exc:
                self._trace(action, current, OUTCOME_NO_TRANSITION, exc.reason, start)
                raise

            patch = dict(planned.patch)
            if planned.transition is not None:
                patch["status"] = RequestStatus(planned.transition.to_state)
            patch["updated_at"] = self._clock.now()

            updated = self._repository.update(
                request_id, patch, expected_version=current.version,
            )
            self._trace(action, current, OUTCOME_SUCCESS, "", start, updated.status)
            logger.info(
                "request_transitioned",
                extra={
                    "request_id": request_id,
                    "action": action,
                    "from_status": current.status.value,
                    "to_status": updated.status.value,
                },
            )
            return current, updated

    def _batch(
        self,
        request_ids: Iterable[str],
        step: Callable[[str], TransitionOutcome],
    ) -> BatchResult:
        succeeded: list[TransitionOutcome] = []
        failed: list[tuple[str, CounselingKernelError]] = []
        for rid in request_ids:
            try:
                succeeded.append(step(rid))
            except CounselingKernelError as exc:
                failed.append((str(rid), exc))
        return BatchResult(tuple(succeeded), tuple(failed))

    # ------------------------------------------------------------------
    # Side effects
    # ------------------------------------------------------------------

    def _start_provisioning(self, committed: CounselingRequest) -> Future:
        if self._provisioner is None:
            warning = ProvisioningWarning(committed.request_id, "no link provider configured")
            logger.warning(
                "meeting_link_provisioning_failed",
                extra={"request_id": committed.request_id, "reason": warning.reason},
            )
            self._dispatch_approval_notice(committed)
            return settled(ProvisioningOutcome(
                committed.request_id, request=committed, warning=warning,
            ))

        student = self._directory.student(committed.student_ref)
        counselor = (
            self._directory.counselor(committed.counselor_ref)
            if committed.counselor_ref else None
        )
        link_request = LinkRequest(
            date=committed.scheduled_date,
            time=committed.scheduled_time,
            student_contact=student.email,
            counselor_name=counselor.name if counselor else "",
            reason=committed.reason_text,
        )
        provisioner = self._provisioner
        context = {**LogContext.get_all(), "request_id": committed.request_id}

        def job() -> ProvisioningOutcome:
            with LogContext.bind(**context):
                return self._provision(committed, provisioner, link_request)

        return self._runner.submit(committed.request_id, job)

    def _provision(
        self,
        committed: CounselingRequest,
        provisioner: MeetingLinkProvisioner,
        link_request: LinkRequest,
    ) -> ProvisioningOutcome:
        rid = committed.request_id
        try:
            link = str(provisioner.create_link(link_request) or "").strip()
        except Exception as exc:
            logger.warning(
                "meeting_link_provisioning_failed",
                extra={"request_id": rid, "reason": str(exc)},
                exc_info=True,
            )
            return self._without_link(committed, str(exc))

        if not link:
            logger.warning(
                "meeting_link_provisioning_failed",
                extra={"request_id": rid, "reason": "empty link"},
            )
            return self._without_link(committed, "provider returned an empty link")

        for _ in range(_LINK_PATCH_ATTEMPTS):
            current = self._repository.get(rid)
            if not self._link_still_wanted(committed, current):
                logger.info(
                    "meeting_link_discarded",
                    extra={"request_id": rid, "status": current.status.value},
                )
                return ProvisioningOutcome(rid, meeting_link=link, request=current)
            try:
                updated = self._repository.update(
                    rid,
                    {"meeting_link": link, "updated_at": self._clock.now()},
                    expected_version=current.version,
                )
            except OptimisticLockError:
                continue
            logger.info("meeting_link_provisioned", extra={"request_id": rid})
            self._dispatch_approval_notice(updated)
            return ProvisioningOutcome(rid, meeting_link=link, applied=True, request=updated)

        logger.warning(
            "meeting_link_provisioning_failed",
            extra={"request_id": rid, "reason": "link patch conflicted"},
        )
        return self._without_link(committed, "link patch conflicted")

    def _without_link(self, committed: CounselingRequest, reason: str) -> ProvisioningOutcome:
        """Downgrade a provider failure: keep the approval, warn, notify."""
        rid = committed.request_id
        warning = ProvisioningWarning(rid, reason)
        current = self._repository.get(rid)
        if self._link_still_wanted(committed, current):
            self._dispatch_approval_notice(current)
        return ProvisioningOutcome(rid, request=current, warning=warning)

    @staticmethod
    def _link_still_wanted(committed: CounselingRequest, current: CounselingRequest) -> bool:
        """The link belongs to the approval that requested it, and only that one.

        A link the counselor entered while the provider was busy wins.
        """
        return (
            current.status == RequestStatus.APPROVED
            and current.mode == SessionMode.ONLINE
            and not current.meeting_link
            and current.scheduled_date == committed.scheduled_date
            and current.scheduled_time == committed.scheduled_time
            and current.responded_at == committed.responded_at
        )

    def _dispatch_approval_notice(self, request: CounselingRequest) -> OutboundMail | None:
        student = self._directory.student(request.student_ref)
        counselor = (
            self._directory.counselor(request.counselor_ref)
            if request.counselor_ref else None
        )
        notice = build_approval_notice(request, counselor, student, self._offices)
        return self._dispatch(request, student.email, notice)

    def _dispatch(
        self,
        request: CounselingRequest,
        to: str,
        notice: Notice,
    ) -> OutboundMail | None:
        if not to:
            logger.warning(
                "notice_skipped_no_recipient",
                extra={"request_id": request.request_id, "subject": notice.subject},
            )
            return None
        mail = OutboundMail(to=to, subject=notice.subject, body=notice.body)
        try:
            self._mailer.send(mail)
        except Exception:
            # Delivery is fire-and-forget; the transition is already committed
            logger.exception(
                "notice_dispatch_failed",
                extra={"request_id": request.request_id, "subject": notice.subject},
            )
            return None
        logger.info(
            "notice_dispatched",
            extra={"request_id": request.request_id, "subject": notice.subject},
        )
        return mail

    # ------------------------------------------------------------------
    # Tracing
    # ------------------------------------------------------------------

    def _trace(
        self,
        action: str,
        current: CounselingRequest,
        outcome: str,
        reason: str,
        started: float,
        to_status: RequestStatus | None = None,
    ) -> None:
        """Emit one structured record per transition attempt."""
        record: dict[str, Any] = {
            "trace_type": TRACE_TYPE_LIFECYCLE_TRANSITION,
            "ts": self._clock.now().isoformat(),
            "action": action,
            "request_id": current.request_id,
            "from_status": current.status.value,
            "outcome": outcome,
            "reason": reason,
            "duration_ms": round((_time.monotonic() - started) * 1000, 3),
        }
        if to_status is not None:
            record["to_status"] = to_status.value
        record.update(LogContext.get_all())
        logger.info("lifecycle_transition", extra=record)
        if self._outcome_sink is not None:
            self._outcome_sink(record)
