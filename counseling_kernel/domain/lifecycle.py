"""
Counseling request lifecycle (``counseling_kernel.domain.lifecycle``).

Declares the request state machine as a ``Workflow``.  The lifecycle engine
looks transitions up here and never hard-codes edges.

    Pending ──approve──────> Approved
    Pending ──disapprove───> Disapproved   (terminal)
    Pending ──cancel───────> Cancelled     (terminal)
    Pending ──reschedule───> Rescheduled
    Approved ──cancel──────> Cancelled
    Approved ──reschedule──> Rescheduled
    Rescheduled ──approve──> Approved
    Rescheduled ──disapprove> Disapproved
    Rescheduled ──cancel───> Cancelled
    Rescheduled ──reschedule> Rescheduled
"""

from __future__ import annotations

from counseling_kernel.domain.dtos import RequestStatus
from counseling_kernel.domain.workflow import Guard, Transition, Workflow

ACTION_APPROVE = "approve"
ACTION_DISAPPROVE = "disapprove"
ACTION_CANCEL = "cancel"
ACTION_RESCHEDULE = "reschedule"

NOTICE_GUARD = Guard(
    name="notice",
    description="A committed session can only be moved while it starts at "
                "least the minimum notice after now",
)
NEW_SLOT_GUARD = Guard(
    name="new_slot",
    description="The proposed slot must start at least the minimum notice after now",
)

_PENDING = RequestStatus.PENDING.value
_APPROVED = RequestStatus.APPROVED.value
_DISAPPROVED = RequestStatus.DISAPPROVED.value
_CANCELLED = RequestStatus.CANCELLED.value
_RESCHEDULED = RequestStatus.RESCHEDULED.value

REQUEST_WORKFLOW = Workflow(
    name="counseling_request",
    description="Counselor review of a student's session request or inquiry",
    initial_state=_PENDING,
    states=(_PENDING, _APPROVED, _DISAPPROVED, _CANCELLED, _RESCHEDULED),
    transitions=(
        Transition(_PENDING, _APPROVED, ACTION_APPROVE),
        Transition(_PENDING, _DISAPPROVED, ACTION_DISAPPROVE),
        Transition(_PENDING, _CANCELLED, ACTION_CANCEL),
        # Pending has no committed slot, so only the new-slot guard applies
        Transition(_PENDING, _RESCHEDULED, ACTION_RESCHEDULE, guards=(NEW_SLOT_GUARD,)),
        Transition(_APPROVED, _CANCELLED, ACTION_CANCEL),
        Transition(
            _APPROVED, _RESCHEDULED, ACTION_RESCHEDULE,
            guards=(NOTICE_GUARD, NEW_SLOT_GUARD),
        ),
        Transition(_RESCHEDULED, _APPROVED, ACTION_APPROVE),
        Transition(_RESCHEDULED, _DISAPPROVED, ACTION_DISAPPROVE),
        Transition(_RESCHEDULED, _CANCELLED, ACTION_CANCEL),
        Transition(
            _RESCHEDULED, _RESCHEDULED, ACTION_RESCHEDULE,
            guards=(NOTICE_GUARD, NEW_SLOT_GUARD),
        ),
    ),
    terminal_states=(_DISAPPROVED, _CANCELLED),
)

TERMINAL_STATUSES: frozenset[RequestStatus] = frozenset(
    RequestStatus(s) for s in REQUEST_WORKFLOW.terminal_states
)
