"""
Lead capture: a four-step linear flow Name -> Company -> Email -> Comments.

Each step trims and stores the visitor's reply. Only the email step
validates; an invalid address re-prompts without advancing. A valid
address on a commonly misspelt domain asks "did you mean ...?" first.

Usage:
    flow = LeadCaptureFlow()
    phase, prompt = flow.start()
    result = flow.submit(phase, "Sam Taylor")
    result.phase.step  # LeadStep.COMPANY
"""

import logging
from dataclasses import dataclass
from html import escape
from typing import Callable, Optional

from tappy.conversation.branching import Answer, classify_reply
from tappy.schemas.lead_schema import LeadRecord
from tappy.schemas.session_schema import CapturingLeadPhase, LeadStep
from tappy.utils import is_valid_email, suggest_email_correction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LeadFieldDefinition:
    """Schema for a single lead field to collect."""

    step: LeadStep
    display_name: str
    prompt: str
    validator: Optional[Callable[[str], bool]] = None
    error_message: str = ""


@dataclass(frozen=True)
class LeadCaptureResult:
    """Outcome of one submitted reply.

    ``phase`` is None once the lead is complete, in which case ``lead``
    holds the record to append to the lead log.
    """

    phase: Optional[CapturingLeadPhase]
    message: str
    accepted: bool
    lead: Optional[LeadRecord] = None


class LeadCaptureFlow:
    """Drives the lead-capture phase forward one reply at a time."""

    FIELDS: list[LeadFieldDefinition] = [
        LeadFieldDefinition(
            step=LeadStep.NAME,
            display_name="name",
            prompt="What's your <strong>name</strong> so we can include it on the quotation?",
        ),
        LeadFieldDefinition(
            step=LeadStep.COMPANY,
            display_name="company name",
            prompt="Thanks {name}! What's your <strong>company name</strong>?",
        ),
        LeadFieldDefinition(
            step=LeadStep.EMAIL,
            display_name="email address",
            prompt=(
                "Great, and what's your <strong>email address</strong>? "
                "(we'll send your quote there)"
            ),
            validator=is_valid_email,
            error_message=(
                "⚠️ That doesn't look like a valid email address. Could you double-check it?"
            ),
        ),
        LeadFieldDefinition(
            step=LeadStep.COMMENTS,
            display_name="comments",
            prompt="Perfect. Lastly, any <strong>comments or requirements</strong> for your quote?",
        ),
    ]

    def _get_definition(self, step: LeadStep) -> LeadFieldDefinition:
        for defn in self.FIELDS:
            if defn.step == step:
                return defn
        raise ValueError(f"Unknown lead step: {step}")

    def _next_step(self, step: LeadStep) -> Optional[LeadStep]:
        order = [defn.step for defn in self.FIELDS]
        position = order.index(step)
        return order[position + 1] if position + 1 < len(order) else None

    def prompt_for(self, phase: CapturingLeadPhase) -> str:
        defn = self._get_definition(phase.step)
        return defn.prompt.format(name=escape(phase.fields.name or ""))

    def start(self) -> tuple[CapturingLeadPhase, str]:
        phase = CapturingLeadPhase(step=LeadStep.NAME)
        return phase, self.prompt_for(phase)

    def submit(self, phase: CapturingLeadPhase, raw_value: str) -> LeadCaptureResult:
        """Store a reply for the current step and move forward if it is acceptable."""
        phase = phase.model_copy(deep=True)
        value = raw_value.strip()
        defn = self._get_definition(phase.step)

        if phase.step == LeadStep.EMAIL and phase.suggested_email:
            return self._answer_suggestion(phase, value)

        if not value:
            return LeadCaptureResult(phase=phase, message=self.prompt_for(phase), accepted=False)

        if defn.validator and not defn.validator(value):
            logger.debug("Lead field '%s' validation failed: %r", defn.display_name, value)
            return LeadCaptureResult(phase=phase, message=defn.error_message, accepted=False)

        if phase.step == LeadStep.EMAIL:
            suggestion = suggest_email_correction(value)
            if suggestion and suggestion != value.lower():
                phase.fields.email = value
                phase.suggested_email = suggestion
                return LeadCaptureResult(
                    phase=phase,
                    message=f"Did you mean <strong>{escape(suggestion)}</strong>? (yes/no)",
                    accepted=False,
                )

        return self._accept(phase, value)

    def _answer_suggestion(self, phase: CapturingLeadPhase, value: str) -> LeadCaptureResult:
        answer = classify_reply(value)
        suggestion = phase.suggested_email
        typed = phase.fields.email
        phase.suggested_email = None
        phase.fields.email = None
        if answer is Answer.YES and suggestion:
            return self._accept(phase, suggestion)
        if answer is Answer.NO and typed:
            return self._accept(phase, typed)
        # anything else is a fresh email entry
        return self.submit(phase, value)

    def _accept(self, phase: CapturingLeadPhase, value: str) -> LeadCaptureResult:
        setattr(phase.fields, phase.step.value, value)
        logger.debug("Lead field '%s' captured", phase.step.value)

        next_step = self._next_step(phase.step)
        if next_step is None:
            fields = phase.fields
            lead = LeadRecord(
                name=fields.name or "",
                company=fields.company or "",
                email=fields.email or "",
                comments=fields.comments or "",
            )
            logger.info("Lead capture complete for %s", fields.email)
            return LeadCaptureResult(phase=None, message="", accepted=True, lead=lead)

        phase.step = next_step
        return LeadCaptureResult(phase=phase, message=self.prompt_for(phase), accepted=True)
