"""
Keyword heuristics for routing a fresh message.

The router depends only on the ``IntentClassifier`` protocol, so the
keyword sets below can be swapped for a model-based classifier without
touching routing logic.
"""

import logging
import re
from enum import Enum
from typing import Optional, Protocol

from tappy.utils import normalize_text

logger = logging.getLogger(__name__)


class Intent(str, Enum):
    SALES = "sales"
    SUPPORT = "support"
    NONE = "none"


class Command(str, Enum):
    """Universal commands honoured in every conversation phase."""

    RESET = "reset"
    RESTART = "restart"
    END = "end"


COMMANDS: dict[str, Command] = {
    "reset": Command.RESET,
    "restart": Command.RESTART,
    "new question": Command.RESTART,
    "start new question": Command.RESTART,
    "end": Command.END,
    "end chat": Command.END,
    "exit": Command.END,
    "close": Command.END,
}

GREETING_PATTERN = re.compile(
    r"^(hi|hello|hey|hiya|good\s(morning|afternoon|evening))\b", re.IGNORECASE
)
MAX_GREETING_WORDS = 3


class IntentClassifier(Protocol):
    def classify(self, text: str) -> Intent: ...


class KeywordIntentClassifier:
    """Sales vs support detection from two disjoint keyword sets.

    Support keywords win: a message that mentions both a price and a
    broken device is a support request.
    """

    SALES_PATTERNS = [
        re.compile(r"\b(price|prices|cost|costs|quote|quotation|pricing|rates?|fees?|charges?)\b"),
        re.compile(r"\b(how much|what'?s the price|what is the price)\b"),
        re.compile(r"\b(buy|purchase|get started|sign up)\b"),
        re.compile(r"\b(demo|trial|presentation|walkthrough)\b"),
        re.compile(r"\b(plans?|packages?|bundles?|subscriptions?|subscribe|monthly|yearly)\b"),
    ]

    SUPPORT_PATTERN = re.compile(
        r"\b(error|errors|issue|problem|not working|failed|failing|cannot|can'?t|won'?t|stopped"
        r"|broken|troubleshoot|fix|repair|connect|connection|login|log in|setup|set up|install"
        r"|configure|update|scanner|printer|display|reader|ped|terminal|card machine|device"
        r"|screen|offline)\b"
    )

    def is_sales(self, text: str) -> bool:
        lower = text.lower()
        return any(p.search(lower) for p in self.SALES_PATTERNS)

    def is_support(self, text: str) -> bool:
        return bool(self.SUPPORT_PATTERN.search(text.lower()))

    def classify(self, text: str) -> Intent:
        if self.is_support(text):
            return Intent.SUPPORT
        if self.is_sales(text):
            logger.debug("Sales intent detected: %r", text)
            return Intent.SALES
        return Intent.NONE


def parse_command(text: str) -> Optional[Command]:
    """Return the universal command the whole message names, if any."""
    return COMMANDS.get(normalize_text(text))


def is_greeting(text: str) -> bool:
    stripped = text.strip()
    return bool(GREETING_PATTERN.match(stripped)) and len(stripped.split()) <= MAX_GREETING_WORDS
