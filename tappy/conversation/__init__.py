from tappy.conversation.branching import Advance, Reprompt, resolve_branch
from tappy.conversation.intent import Intent, IntentClassifier, KeywordIntentClassifier
from tappy.conversation.lead_capture import LeadCaptureFlow
from tappy.conversation.router import IntentRouter, InvalidMessageError
from tappy.conversation.state_machine import (
    ConversationPhase,
    ConversationStateMachine,
    TransitionTrigger,
)

__all__ = [
    "IntentRouter",
    "InvalidMessageError",
    "ConversationStateMachine",
    "ConversationPhase",
    "TransitionTrigger",
    "LeadCaptureFlow",
    "Intent",
    "IntentClassifier",
    "KeywordIntentClassifier",
    "Advance",
    "Reprompt",
    "resolve_branch",
]
