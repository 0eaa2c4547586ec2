"""
Tests for the request status workflow table.
"""
from datetime import datetime, timezone

import pytest

from servicedesk.core.exceptions import InvalidStatusTransitionError
from servicedesk.models.enums import RequestStatus as S
from servicedesk.services import workflow

LEGAL_EDGES = {
    (S.DRAFT, S.SUBMITTED), (S.DRAFT, S.CANCELLED),
    (S.SUBMITTED, S.UNDER_REVIEW), (S.SUBMITTED, S.REJECTED), (S.SUBMITTED, S.CANCELLED),
    (S.UNDER_REVIEW, S.APPROVED), (S.UNDER_REVIEW, S.REJECTED),
    (S.UNDER_REVIEW, S.ON_HOLD), (S.UNDER_REVIEW, S.CANCELLED),
    (S.APPROVED, S.IN_PROGRESS), (S.APPROVED, S.CANCELLED),
    (S.IN_PROGRESS, S.COMPLETED), (S.IN_PROGRESS, S.ON_HOLD), (S.IN_PROGRESS, S.CANCELLED),
    (S.ON_HOLD, S.IN_PROGRESS), (S.ON_HOLD, S.UNDER_REVIEW), (S.ON_HOLD, S.CANCELLED),
    (S.COMPLETED, S.DELIVERED),
}


class TestTransitionTable:

    def test_every_status_has_an_entry(self):
        assert set(workflow.STATUS_TRANSITIONS) == set(S)

    def test_edges_match_the_workflow(self):
        edges = {
            (source, target)
            for source, targets in workflow.STATUS_TRANSITIONS.items()
            for target in targets
        }
        assert edges == LEGAL_EDGES

    def test_terminal_statuses(self):
        assert workflow.TERMINAL_STATUSES == {S.REJECTED, S.DELIVERED, S.CANCELLED}
        for status in workflow.TERMINAL_STATUSES:
            assert workflow.allowed_transitions(status) == []
            assert workflow.is_terminal(status)

    def test_initial_status_is_draft(self):
        assert workflow.INITIAL_STATUS == S.DRAFT

    def test_no_self_transitions(self):
        for status in S:
            assert not workflow.can_transition(status, status)

    def test_allowed_transitions_keep_table_order(self):
        assert workflow.allowed_transitions(S.SUBMITTED) == [S.UNDER_REVIEW, S.REJECTED, S.CANCELLED]

    def test_accepts_raw_string_values(self):
        assert workflow.can_transition("DRAFT", "SUBMITTED")
        assert workflow.allowed_transitions("COMPLETED") == [S.DELIVERED]


class TestValidateTransition:

    @pytest.mark.parametrize("source,target", sorted(LEGAL_EDGES, key=lambda e: (e[0].value, e[1].value)))
    def test_legal_edges_pass(self, source, target):
        workflow.validate_transition(source, target)

    def test_every_illegal_pair_is_rejected(self):
        for source in S:
            for target in S:
                if (source, target) in LEGAL_EDGES:
                    continue
                with pytest.raises(InvalidStatusTransitionError) as exc_info:
                    workflow.validate_transition(source, target)
                error = exc_info.value
                assert error.current_status == source.value
                assert error.requested_status == target.value
                assert error.allowed_transitions == [s.value for s in workflow.allowed_transitions(source)]

    def test_error_body_lists_allowed_destinations(self):
        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            workflow.validate_transition(S.SUBMITTED, S.DELIVERED)

        body = exc_info.value.to_dict()
        assert body["status_code"] == 400
        assert body["error"] == "invalid_status_transition"
        assert body["current_status"] == "SUBMITTED"
        assert body["requested_status"] == "DELIVERED"
        assert body["allowed_transitions"] == ["UNDER_REVIEW", "REJECTED", "CANCELLED"]
        assert "UNDER_REVIEW, REJECTED, CANCELLED" in body["message"]
        assert body["message_ar"]

    def test_final_status_message(self):
        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            workflow.validate_transition(S.DELIVERED, S.IN_PROGRESS)

        assert exc_info.value.allowed_transitions == []
        assert "final status" in exc_info.value.message


class TestSideEffects:

    def test_rejection_records_bilingual_reason(self):
        effects = workflow.transition_side_effects(S.REJECTED, "Missing drawings", "المخططات ناقصة")
        assert effects == {"rejection_reason": "Missing drawings", "rejection_reason_ar": "المخططات ناقصة"}

    def test_cancellation_records_bilingual_reason(self):
        effects = workflow.transition_side_effects(S.CANCELLED, "No longer needed", None)
        assert effects == {"cancellation_reason": "No longer needed", "cancellation_reason_ar": None}

    def test_completed_and_delivered_stamp_time(self):
        now = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
        assert workflow.transition_side_effects(S.COMPLETED, now=now) == {"completed_at": now}
        assert workflow.transition_side_effects(S.DELIVERED, now=now) == {"delivered_at": now}

    @pytest.mark.parametrize("target", [S.SUBMITTED, S.UNDER_REVIEW, S.APPROVED, S.IN_PROGRESS, S.ON_HOLD])
    def test_other_targets_have_no_side_effects(self, target):
        assert workflow.transition_side_effects(target, "ignored", "ignored") == {}
