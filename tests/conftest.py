"""Shared test fixtures and helpers."""

from typing import Optional

import pytest

from tappy.conversation.router import IntentRouter
from tappy.conversation.state_machine import ConversationStateMachine
from tappy.fallback.completion import CompletionError
from tappy.knowledge.corpus import FaqCorpus
from tappy.matching.selector import MatchSelector
from tappy.schemas.faq_schema import FaqRecord
from tappy.storage.lead_store import InMemoryLeadStore
from tappy.storage.session_store import InMemoryStore, SessionStore


def make_record(
    id: str,
    title: str,
    intro: str = "",
    steps: Optional[list[str]] = None,
    next: Optional[dict] = None,
    link: Optional[str] = None,
    category: str = "general",
) -> FaqRecord:
    """Helper to create a FaqRecord."""
    return FaqRecord(
        id=id,
        title=title,
        intro=intro,
        steps=tuple(steps or ()),
        next=next,
        link=link,
        category=category,
    )


SAMPLE_RECORDS = [
    make_record(
        "pos-hardware", "POS Hardware",
        intro="Tills, printers and cash drawers for your counter.",
        link="/hardware.html", category="sales",
    ),
    make_record(
        "faq-3", "Receipt printer not printing",
        intro="Check the paper roll and cable.",
        steps=["Reload the paper roll.", "Reseat the cable."],
        next={"question": "Is it printing now?",
              "options": {"yes": "faq-7", "no": "Printer still broken"}},
        category="support",
    ),
    make_record("faq-7", "Printing fixed", intro="Glad that sorted it.", category="support"),
    make_record(
        "faq-8", "Printer still broken",
        intro="Contact support for a remote check.",
        link="/contacts.html", category="support",
    ),
    make_record(
        "faq-9", "Card reader pairing",
        intro="Pair the reader from Settings.",
        next={"question": "Did the reader pair?",
              "options": {"yes": "https://example.com/payments", "no": "somewhere undefined"}},
        category="support",
    ),
    make_record(
        "voucher-setup", "Voucher setup guide",
        steps=["Open the setup assistant."],
    ),
    make_record(
        "voucher-balance", "Voucher balance",
        intro="Check a voucher balance at the till.",
    ),
    make_record(
        "voucher-templates", "Voucher templates",
        intro="Design voucher templates during setup.",
    ),
]


class FakeCompletion:
    """Completion fallback double that records calls."""

    def __init__(self, answer: str = "Here is some help.", error: Optional[Exception] = None):
        self.answer = answer
        self.error = error
        self.calls: list[tuple[str, Optional[str]]] = []

    async def complete(self, message: str, topic: Optional[str] = None) -> str:
        self.calls.append((message, topic))
        if self.error is not None:
            raise self.error
        return self.answer


@pytest.fixture
def corpus():
    return FaqCorpus(SAMPLE_RECORDS)


@pytest.fixture
def selector():
    return MatchSelector(
        threshold=6, dominance_ratio=1.9, absolute_auto_select=12, max_options=8, topic_boost=2.0
    )


@pytest.fixture
def session_store():
    return SessionStore(InMemoryStore(), expiry_hours=12)


@pytest.fixture
def lead_store():
    return InMemoryLeadStore()


@pytest.fixture
def state_machine():
    return ConversationStateMachine()


@pytest.fixture
def router(corpus, session_store, lead_store, selector):
    return IntentRouter(corpus, session_store, lead_store, selector=selector)


@pytest.fixture
def failing_completion():
    return FakeCompletion(error=CompletionError("service down"))
