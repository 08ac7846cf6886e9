"""Tests for the conversation phase state machine."""

import pytest

from tappy.conversation.state_machine import (
    ConversationPhase,
    ConversationStateMachine,
    InvalidTransitionError,
    TransitionTrigger,
    phase_of,
)
from tappy.schemas.session_schema import (
    BranchingPhase,
    CapturingLeadPhase,
    DisambiguatingPhase,
    FollowUpPhase,
    IdlePhase,
)


class TestInitialState:
    def test_starts_idle(self, state_machine):
        assert state_machine.current_state == ConversationPhase.IDLE

    def test_initial_trace_has_one_entry(self, state_machine):
        assert state_machine.get_state_trace() == ["idle"]

    def test_custom_initial_phase(self):
        sm = ConversationStateMachine(ConversationPhase.LEAD_CAPTURE)
        assert sm.current_state == ConversationPhase.LEAD_CAPTURE


class TestFreshMatching:
    def test_answered_stays_idle(self, state_machine):
        assert state_machine.transition(TransitionTrigger.ANSWERED) == ConversationPhase.IDLE

    def test_answered_with_branch(self, state_machine):
        new = state_machine.transition(TransitionTrigger.ANSWERED_WITH_BRANCH)
        assert new == ConversationPhase.BRANCH_PENDING

    def test_ambiguous_match(self, state_machine):
        new = state_machine.transition(TransitionTrigger.AMBIGUOUS_MATCH)
        assert new == ConversationPhase.DISAMBIGUATING

    def test_sales_intent_starts_lead_capture(self, state_machine):
        new = state_machine.transition(TransitionTrigger.SALES_INTENT)
        assert new == ConversationPhase.LEAD_CAPTURE

    def test_branch_trigger_invalid_from_idle(self, state_machine):
        with pytest.raises(InvalidTransitionError):
            state_machine.transition(TransitionTrigger.BRANCH_FOLLOWED)


class TestBranching:
    def test_branch_chain_then_resolve(self, state_machine):
        state_machine.transition(TransitionTrigger.ANSWERED_WITH_BRANCH)
        state_machine.transition(TransitionTrigger.BRANCH_FOLLOWED)
        state_machine.transition(TransitionTrigger.BRANCH_REPROMPTED)
        new = state_machine.transition(TransitionTrigger.BRANCH_RESOLVED)
        assert new == ConversationPhase.IDLE
        assert state_machine.get_state_trace() == [
            "idle", "branch_pending", "branch_pending", "branch_pending", "idle",
        ]

    def test_sales_intent_not_allowed_mid_branch(self, state_machine):
        state_machine.transition(TransitionTrigger.ANSWERED_WITH_BRANCH)
        with pytest.raises(InvalidTransitionError):
            state_machine.transition(TransitionTrigger.SALES_INTENT)


class TestDisambiguation:
    def test_choice_with_branch(self, state_machine):
        state_machine.transition(TransitionTrigger.AMBIGUOUS_MATCH)
        new = state_machine.transition(TransitionTrigger.CHOICE_WITH_BRANCH)
        assert new == ConversationPhase.BRANCH_PENDING

    def test_reprompt_keeps_disambiguating(self, state_machine):
        state_machine.transition(TransitionTrigger.AMBIGUOUS_MATCH)
        new = state_machine.transition(TransitionTrigger.CHOICE_REPROMPTED)
        assert new == ConversationPhase.DISAMBIGUATING


class TestFollowUp:
    def test_answer_with_follow_up(self, state_machine):
        new = state_machine.transition(TransitionTrigger.ANSWERED_WITH_FOLLOW_UP)
        assert new == ConversationPhase.FOLLOW_UP

    def test_choice_with_follow_up(self, state_machine):
        state_machine.transition(TransitionTrigger.AMBIGUOUS_MATCH)
        new = state_machine.transition(TransitionTrigger.CHOICE_WITH_FOLLOW_UP)
        assert new == ConversationPhase.FOLLOW_UP

    @pytest.mark.parametrize("trigger", [
        TransitionTrigger.FOLLOW_UP_RESOLVED,
        TransitionTrigger.FOLLOW_UP_ESCALATED,
        TransitionTrigger.FOLLOW_UP_ABANDONED,
    ])
    def test_every_outcome_returns_to_idle(self, trigger):
        sm = ConversationStateMachine(ConversationPhase.FOLLOW_UP)
        assert sm.transition(trigger) == ConversationPhase.IDLE

    def test_no_second_answer_while_waiting(self):
        sm = ConversationStateMachine(ConversationPhase.FOLLOW_UP)
        with pytest.raises(InvalidTransitionError):
            sm.transition(TransitionTrigger.ANSWERED)


class TestLeadCapture:
    def test_fields_then_complete(self, state_machine):
        state_machine.transition(TransitionTrigger.SALES_INTENT)
        for _ in range(3):
            state_machine.transition(TransitionTrigger.LEAD_FIELD_SUBMITTED)
        new = state_machine.transition(TransitionTrigger.LEAD_COMPLETED)
        assert new == ConversationPhase.IDLE

    def test_error_lists_valid_triggers(self, state_machine):
        state_machine.transition(TransitionTrigger.SALES_INTENT)
        with pytest.raises(InvalidTransitionError, match="lead_field_submitted"):
            state_machine.transition(TransitionTrigger.ANSWERED)


class TestRestart:
    @pytest.mark.parametrize("phase", list(ConversationPhase))
    def test_restart_valid_from_every_phase(self, phase):
        sm = ConversationStateMachine(phase)
        assert TransitionTrigger.RESTART in sm.get_valid_triggers()
        assert sm.transition(TransitionTrigger.RESTART) == ConversationPhase.IDLE


class TestPhaseOf:
    def test_maps_each_session_phase(self):
        assert phase_of(IdlePhase()) == ConversationPhase.IDLE
        assert phase_of(BranchingPhase(faq_id="faq-3")) == ConversationPhase.BRANCH_PENDING
        assert phase_of(DisambiguatingPhase(option_ids=["a", "b"])) == ConversationPhase.DISAMBIGUATING
        assert phase_of(CapturingLeadPhase()) == ConversationPhase.LEAD_CAPTURE
        assert phase_of(FollowUpPhase(faq_id="faq-8")) == ConversationPhase.FOLLOW_UP

    def test_unknown_phase_raises(self):
        with pytest.raises(TypeError):
            phase_of(object())
