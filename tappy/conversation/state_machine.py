"""
Finite state machine for the per-session conversation phase.

Five phases and explicit transitions with triggers. The router asks the
machine before every phase change, so a turn can never leave a session
in a phase the transition table does not allow.

Usage:
    sm = ConversationStateMachine(ConversationPhase.IDLE)
    sm.transition(TransitionTrigger.SALES_INTENT)
    assert sm.current_state == ConversationPhase.LEAD_CAPTURE
"""

import logging
from dataclasses import dataclass
from enum import Enum

from tappy.schemas.session_schema import (
    BranchingPhase,
    CapturingLeadPhase,
    DisambiguatingPhase,
    FollowUpPhase,
    IdlePhase,
)

logger = logging.getLogger(__name__)


class ConversationPhase(str, Enum):
    """All possible phases of a conversation."""
    IDLE = "idle"
    BRANCH_PENDING = "branch_pending"
    DISAMBIGUATING = "disambiguating"
    FOLLOW_UP = "follow_up"
    LEAD_CAPTURE = "lead_capture"


class TransitionTrigger(str, Enum):
    """Events that cause phase transitions."""
    ANSWERED = "answered"
    ANSWERED_WITH_BRANCH = "answered_with_branch"
    ANSWERED_WITH_FOLLOW_UP = "answered_with_follow_up"
    AMBIGUOUS_MATCH = "ambiguous_match"
    NO_MATCH = "no_match"
    SALES_INTENT = "sales_intent"
    BRANCH_FOLLOWED = "branch_followed"
    BRANCH_RESOLVED = "branch_resolved"
    BRANCH_REPROMPTED = "branch_reprompted"
    BRANCH_ABANDONED = "branch_abandoned"
    CHOICE_WITH_BRANCH = "choice_with_branch"
    CHOICE_WITH_FOLLOW_UP = "choice_with_follow_up"
    CHOICE_ANSWERED = "choice_answered"
    CHOICE_REPROMPTED = "choice_reprompted"
    CHOICE_ABANDONED = "choice_abandoned"
    FOLLOW_UP_RESOLVED = "follow_up_resolved"
    FOLLOW_UP_ESCALATED = "follow_up_escalated"
    FOLLOW_UP_ABANDONED = "follow_up_abandoned"
    LEAD_FIELD_SUBMITTED = "lead_field_submitted"
    LEAD_COMPLETED = "lead_completed"
    RESTART = "restart"


@dataclass(frozen=True)
class Transition:
    """A single valid phase transition."""
    from_state: ConversationPhase
    to_state: ConversationPhase
    trigger: TransitionTrigger


class InvalidTransitionError(Exception):
    """Raised when a transition is not valid from the current phase."""


def phase_of(phase: object) -> ConversationPhase:
    """Map a stored session phase model to its state machine phase."""
    if isinstance(phase, BranchingPhase):
        return ConversationPhase.BRANCH_PENDING
    if isinstance(phase, DisambiguatingPhase):
        return ConversationPhase.DISAMBIGUATING
    if isinstance(phase, FollowUpPhase):
        return ConversationPhase.FOLLOW_UP
    if isinstance(phase, CapturingLeadPhase):
        return ConversationPhase.LEAD_CAPTURE
    if isinstance(phase, IdlePhase):
        return ConversationPhase.IDLE
    raise TypeError(f"Unknown session phase: {phase!r}")


class ConversationStateMachine:
    """
    Deterministic phase machine for one conversational turn.

    Every transition must be explicitly defined. A router decision
    without a matching transition is rejected with the list of triggers
    that are allowed from the current phase.
    """

    TRANSITIONS: list[Transition] = [
        # --- Fresh matching ---
        Transition(ConversationPhase.IDLE, ConversationPhase.IDLE,
                   TransitionTrigger.ANSWERED),
        Transition(ConversationPhase.IDLE, ConversationPhase.BRANCH_PENDING,
                   TransitionTrigger.ANSWERED_WITH_BRANCH),
        Transition(ConversationPhase.IDLE, ConversationPhase.FOLLOW_UP,
                   TransitionTrigger.ANSWERED_WITH_FOLLOW_UP),
        Transition(ConversationPhase.IDLE, ConversationPhase.DISAMBIGUATING,
                   TransitionTrigger.AMBIGUOUS_MATCH),
        Transition(ConversationPhase.IDLE, ConversationPhase.IDLE,
                   TransitionTrigger.NO_MATCH),
        Transition(ConversationPhase.IDLE, ConversationPhase.LEAD_CAPTURE,
                   TransitionTrigger.SALES_INTENT),

        # --- Branching ---
        Transition(ConversationPhase.BRANCH_PENDING, ConversationPhase.BRANCH_PENDING,
                   TransitionTrigger.BRANCH_FOLLOWED),
        Transition(ConversationPhase.BRANCH_PENDING, ConversationPhase.IDLE,
                   TransitionTrigger.BRANCH_RESOLVED),
        Transition(ConversationPhase.BRANCH_PENDING, ConversationPhase.BRANCH_PENDING,
                   TransitionTrigger.BRANCH_REPROMPTED),
        Transition(ConversationPhase.BRANCH_PENDING, ConversationPhase.IDLE,
                   TransitionTrigger.BRANCH_ABANDONED),

        # --- Disambiguation ---
        Transition(ConversationPhase.DISAMBIGUATING, ConversationPhase.BRANCH_PENDING,
                   TransitionTrigger.CHOICE_WITH_BRANCH),
        Transition(ConversationPhase.DISAMBIGUATING, ConversationPhase.FOLLOW_UP,
                   TransitionTrigger.CHOICE_WITH_FOLLOW_UP),
        Transition(ConversationPhase.DISAMBIGUATING, ConversationPhase.IDLE,
                   TransitionTrigger.CHOICE_ANSWERED),
        Transition(ConversationPhase.DISAMBIGUATING, ConversationPhase.DISAMBIGUATING,
                   TransitionTrigger.CHOICE_REPROMPTED),
        Transition(ConversationPhase.DISAMBIGUATING, ConversationPhase.IDLE,
                   TransitionTrigger.CHOICE_ABANDONED),

        # --- Support follow-up ---
        Transition(ConversationPhase.FOLLOW_UP, ConversationPhase.IDLE,
                   TransitionTrigger.FOLLOW_UP_RESOLVED),
        Transition(ConversationPhase.FOLLOW_UP, ConversationPhase.IDLE,
                   TransitionTrigger.FOLLOW_UP_ESCALATED),
        Transition(ConversationPhase.FOLLOW_UP, ConversationPhase.IDLE,
                   TransitionTrigger.FOLLOW_UP_ABANDONED),

        # --- Lead capture ---
        Transition(ConversationPhase.LEAD_CAPTURE, ConversationPhase.LEAD_CAPTURE,
                   TransitionTrigger.LEAD_FIELD_SUBMITTED),
        Transition(ConversationPhase.LEAD_CAPTURE, ConversationPhase.IDLE,
                   TransitionTrigger.LEAD_COMPLETED),

        # --- Universal restart ---
        Transition(ConversationPhase.IDLE, ConversationPhase.IDLE,
                   TransitionTrigger.RESTART),
        Transition(ConversationPhase.BRANCH_PENDING, ConversationPhase.IDLE,
                   TransitionTrigger.RESTART),
        Transition(ConversationPhase.DISAMBIGUATING, ConversationPhase.IDLE,
                   TransitionTrigger.RESTART),
        Transition(ConversationPhase.FOLLOW_UP, ConversationPhase.IDLE,
                   TransitionTrigger.RESTART),
        Transition(ConversationPhase.LEAD_CAPTURE, ConversationPhase.IDLE,
                   TransitionTrigger.RESTART),
    ]

    def __init__(self, initial: ConversationPhase = ConversationPhase.IDLE) -> None:
        self._current_state = initial
        self._trace: list[ConversationPhase] = [initial]

    @property
    def current_state(self) -> ConversationPhase:
        return self._current_state

    def transition(self, trigger: TransitionTrigger) -> ConversationPhase:
        """
        Execute a phase transition.

        Args:
            trigger: The event triggering the transition.

        Returns:
            The new conversation phase.

        Raises:
            InvalidTransitionError: If no valid transition exists.
        """
        for t in self.TRANSITIONS:
            if t.from_state == self._current_state and t.trigger == trigger:
                old_state = self._current_state
                self._current_state = t.to_state
                self._trace.append(self._current_state)
                logger.debug(
                    "Phase transition: %s -> %s (trigger: %s)",
                    old_state.value, self._current_state.value, trigger.value,
                )
                return self._current_state

        valid = [t.value for t in self.get_valid_triggers()]
        raise InvalidTransitionError(
            f"No valid transition from '{self._current_state.value}' "
            f"with trigger '{trigger.value}'. Valid triggers: {valid}"
        )

    def get_valid_triggers(self) -> list[TransitionTrigger]:
        """Return all triggers valid from the current phase."""
        return [t.trigger for t in self.TRANSITIONS if t.from_state == self._current_state]

    def get_state_trace(self) -> list[str]:
        """Return ordered list of phase names visited."""
        return [state.value for state in self._trace]
