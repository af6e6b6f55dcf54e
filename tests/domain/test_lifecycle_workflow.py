"""Request state machine declaration and Workflow validation."""

import pytest

from counseling_kernel.domain.dtos import RequestStatus
from counseling_kernel.domain.lifecycle import (
    ACTION_APPROVE,
    ACTION_CANCEL,
    ACTION_DISAPPROVE,
    ACTION_RESCHEDULE,
    NEW_SLOT_GUARD,
    NOTICE_GUARD,
    REQUEST_WORKFLOW,
    TERMINAL_STATUSES,
)
from counseling_kernel.domain.workflow import Transition, Workflow

P, A, D, C, R = (s.value for s in (
    RequestStatus.PENDING,
    RequestStatus.APPROVED,
    RequestStatus.DISAPPROVED,
    RequestStatus.CANCELLED,
    RequestStatus.RESCHEDULED,
))


class TestRequestWorkflow:

    def test_states_are_the_status_literals(self):
        assert set(REQUEST_WORKFLOW.states) == {
            "Pending", "Approved", "Disapproved", "Cancelled", "Rescheduled",
        }
        assert REQUEST_WORKFLOW.initial_state == "Pending"

    def test_terminal_states(self):
        assert TERMINAL_STATUSES == {RequestStatus.DISAPPROVED, RequestStatus.CANCELLED}
        for state in (D, C):
            assert REQUEST_WORKFLOW.actions_from(state) == ()

    @pytest.mark.parametrize("from_state, action, to_state", [
        (P, ACTION_APPROVE, A),
        (P, ACTION_DISAPPROVE, D),
        (P, ACTION_CANCEL, C),
        (P, ACTION_RESCHEDULE, R),
        (A, ACTION_CANCEL, C),
        (A, ACTION_RESCHEDULE, R),
        (R, ACTION_APPROVE, A),
        (R, ACTION_DISAPPROVE, D),
        (R, ACTION_CANCEL, C),
        (R, ACTION_RESCHEDULE, R),
    ])
    def test_legal_edges(self, from_state, action, to_state):
        transition = REQUEST_WORKFLOW.find_transition(from_state, action)
        assert transition is not None
        assert transition.to_state == to_state

    @pytest.mark.parametrize("from_state, action", [
        (A, ACTION_APPROVE),
        (A, ACTION_DISAPPROVE),
    ])
    def test_missing_edges(self, from_state, action):
        assert REQUEST_WORKFLOW.find_transition(from_state, action) is None

    def test_pending_reschedule_checks_only_new_slot(self):
        transition = REQUEST_WORKFLOW.find_transition(P, ACTION_RESCHEDULE)
        assert transition.guards == (NEW_SLOT_GUARD,)

    @pytest.mark.parametrize("from_state", [A, R])
    def test_committed_reschedule_checks_notice_then_new_slot(self, from_state):
        transition = REQUEST_WORKFLOW.find_transition(from_state, ACTION_RESCHEDULE)
        assert transition.guards == (NOTICE_GUARD, NEW_SLOT_GUARD)


class TestWorkflowValidation:

    def test_unknown_initial_state_rejected(self):
        with pytest.raises(ValueError, match="initial state"):
            Workflow("w", "", "Nowhere", ("A",), ())

    def test_transition_to_undeclared_state_rejected(self):
        with pytest.raises(ValueError, match="undeclared state"):
            Workflow("w", "", "A", ("A",), (Transition("A", "B", "go"),))

    def test_terminal_state_with_outgoing_edge_rejected(self):
        with pytest.raises(ValueError, match="terminal state"):
            Workflow(
                "w", "", "A", ("A", "B"),
                (Transition("B", "A", "revive"),),
                terminal_states=("B",),
            )
