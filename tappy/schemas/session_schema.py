"""Per-session conversation state.

The conversation phase is a tagged union so that illegal combinations
(for example a pending option list while capturing a lead) cannot be
represented. The flat accessors (``current_id``, ``awaiting_choice`` ...)
give read-only views over the active phase.
"""

import time
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field


class LeadStep(str, Enum):
    """Position in the lead-capture flow."""

    NONE = "none"
    NAME = "name"
    COMPANY = "company"
    EMAIL = "email"
    COMMENTS = "comments"


class LeadFields(BaseModel):
    name: Optional[str] = None
    company: Optional[str] = None
    email: Optional[str] = None
    comments: Optional[str] = None


class IdlePhase(BaseModel):
    kind: Literal["idle"] = "idle"


class BranchingPhase(BaseModel):
    """A FAQ with a yes/no question is in focus."""

    kind: Literal["branching"] = "branching"
    faq_id: str


class DisambiguatingPhase(BaseModel):
    """A numbered option list was presented and awaits a choice."""

    kind: Literal["disambiguating"] = "disambiguating"
    option_ids: list[str]


class FollowUpPhase(BaseModel):
    """A support answer was shown and asked whether it resolved the issue."""

    kind: Literal["follow_up"] = "follow_up"
    faq_id: Optional[str] = None


class CapturingLeadPhase(BaseModel):
    """Collecting the four lead fields in order."""

    kind: Literal["capturing_lead"] = "capturing_lead"
    step: LeadStep = LeadStep.NAME
    fields: LeadFields = Field(default_factory=LeadFields)
    suggested_email: Optional[str] = None


SessionPhase = Annotated[
    Union[IdlePhase, BranchingPhase, DisambiguatingPhase, FollowUpPhase, CapturingLeadPhase],
    Field(discriminator="kind"),
]


class SessionState(BaseModel):
    """Durable state for one conversation, keyed by an opaque session id."""

    phase: SessionPhase = Field(default_factory=IdlePhase)
    last_topic: Optional[str] = None
    last_message: Optional[str] = None
    timestamp: float = Field(default_factory=time.time)

    @property
    def current_id(self) -> Optional[str]:
        if isinstance(self.phase, BranchingPhase):
            return self.phase.faq_id
        return None

    @property
    def awaiting_choice(self) -> bool:
        return isinstance(self.phase, DisambiguatingPhase)

    @property
    def awaiting_follow_up(self) -> bool:
        return isinstance(self.phase, FollowUpPhase)

    @property
    def last_options_list(self) -> list[str]:
        if isinstance(self.phase, DisambiguatingPhase):
            return list(self.phase.option_ids)
        return []

    @property
    def lead_step(self) -> LeadStep:
        if isinstance(self.phase, CapturingLeadPhase):
            return self.phase.step
        return LeadStep.NONE

    def is_expired(self, expiry_seconds: float, now: Optional[float] = None) -> bool:
        now = time.time() if now is None else now
        return now - self.timestamp > expiry_seconds
