"""
Intent router: one entry point per conversational turn.

Priority per incoming message:
1. Universal commands (reset, restart/new question, end/exit/close)
2. Lead capture in progress
3. A FAQ with a yes/no branch in focus
4. A pending disambiguation menu
5. A short yes/no reply to "Did that resolve your issue?"
6. Fresh routing: greeting, sales intent (starts lead capture), exact
   title anywhere in the corpus, then FAQ matching
7. No match: cached answer, completion fallback, then the contact-sales reply

Support answers without a branch question end with "Did that resolve
your issue?"; a yes closes the topic, a no points at the support team.

Each turn reads the session once, works on a copy, and persists once at
the end. Store reads and writes run in worker threads so file-backed
stores never block the event loop. Any unexpected fault is logged and
answered with the generic no-match reply, leaving the stored session
untouched.

Usage:
    router = IntentRouter(corpus, SessionStore(), JsonlLeadStore(path))
    reply = await router.handle_message("hardware", session_id)
"""

import asyncio
import logging
import weakref
from typing import Optional

from tappy.config import settings
from tappy.conversation.branching import Advance, Answer, classify_reply, resolve_branch
from tappy.conversation.disambiguation import resolve_choice
from tappy.conversation.intent import (
    Command,
    Intent,
    IntentClassifier,
    KeywordIntentClassifier,
    is_greeting,
    parse_command,
)
from tappy.conversation.lead_capture import LeadCaptureFlow
from tappy.conversation.state_machine import (
    ConversationStateMachine,
    InvalidTransitionError,
    TransitionTrigger,
    phase_of,
)
from tappy.fallback.cache import CompletionCache
from tappy.fallback.completion import CompletionError, CompletionFallback
from tappy.knowledge.corpus import FaqCorpus
from tappy.logging_context import session_scope
from tappy.matching.selector import AutoSelect, Disambiguate, MatchSelector, NoMatch
from tappy.matching.topics import detect_topic
from tappy.prompts import reply_templates as replies
from tappy.schemas.faq_schema import FaqRecord
from tappy.schemas.reply_schema import ReplyPayload
from tappy.schemas.session_schema import (
    BranchingPhase,
    CapturingLeadPhase,
    DisambiguatingPhase,
    FollowUpPhase,
    IdlePhase,
    SessionState,
)
from tappy.storage.lead_store import LeadStore
from tappy.storage.session_store import SessionStore

logger = logging.getLogger(__name__)

DECLARED_CONTEXTS = ("sales", "support", "general")

# Longer replies to the follow-up question are treated as a new question
MAX_FOLLOW_UP_WORDS = 3


class InvalidMessageError(ValueError):
    """Raised for an empty, non-string or over-long message."""


class _Turn:
    """Mutable working copy of a session for a single turn."""

    def __init__(self, state: SessionState) -> None:
        self.state = state.model_copy(deep=True)
        self.machine = ConversationStateMachine(phase_of(self.state.phase))
        self.delete = False

    def move(self, trigger: TransitionTrigger, phase: object) -> None:
        """Change phase through the state machine."""
        target = self.machine.transition(trigger)
        if phase_of(phase) != target:
            raise InvalidTransitionError(
                f"Trigger '{trigger.value}' leads to '{target.value}', "
                f"not '{phase_of(phase).value}'"
            )
        self.state.phase = phase


def _wants_follow_up(record: FaqRecord) -> bool:
    return record.category == "support" and record.next is None


class IntentRouter:
    """Routes a message plus session state to a reply and the next session state."""

    def __init__(
        self,
        corpus: FaqCorpus,
        sessions: SessionStore,
        leads: LeadStore,
        selector: Optional[MatchSelector] = None,
        classifier: Optional[IntentClassifier] = None,
        fallback: Optional[CompletionFallback] = None,
        lead_flow: Optional[LeadCaptureFlow] = None,
        cache: Optional[CompletionCache] = None,
        max_message_length: int = settings.max_message_length,
    ) -> None:
        self.corpus = corpus
        self.sessions = sessions
        self.leads = leads
        self.selector = selector or MatchSelector()
        self.classifier = classifier or KeywordIntentClassifier()
        self.fallback = fallback
        self.lead_flow = lead_flow or LeadCaptureFlow()
        self.cache = cache
        self.max_message_length = max_message_length
        # A lock lives only while some turn holds or awaits it
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    def validate_message(self, message: object) -> str:
        if not isinstance(message, str) or not message.strip():
            raise InvalidMessageError("Missing or invalid message")
        if len(message) > self.max_message_length:
            raise InvalidMessageError(
                f"Message exceeds {self.max_message_length} characters"
            )
        return message.strip()

    def reset_session(self, session_id: str) -> None:
        """Forget everything about a session. Safe to call repeatedly."""
        with session_scope(session_id):
            self.sessions.delete(session_id)
            logger.info("Session reset")

    async def handle_message(
        self,
        message: str,
        session_id: str,
        declared_context: Optional[str] = None,
    ) -> ReplyPayload:
        """Process one visitor message and return the reply payload.

        Raises:
            InvalidMessageError: before any routing, for empty or over-long input.
        """
        text = self.validate_message(message)
        if declared_context not in DECLARED_CONTEXTS:
            declared_context = None

        with session_scope(session_id):
            async with self._lock_for(session_id):
                try:
                    state = await asyncio.to_thread(self.sessions.get, session_id)
                    turn = _Turn(state)
                    reply = await self._route(text, turn, declared_context)
                except Exception:
                    logger.exception("Router fault while handling message")
                    return replies.no_match_reply()

                if turn.delete:
                    await asyncio.to_thread(self.reset_session, session_id)
                else:
                    turn.state.last_message = text
                    await asyncio.to_thread(self.sessions.save, session_id, turn.state)
                return reply

    async def _route(
        self, text: str, turn: _Turn, declared_context: Optional[str]
    ) -> ReplyPayload:
        command = parse_command(text)
        if command is not None:
            return self._handle_command(command, turn)

        phase = turn.state.phase
        if isinstance(phase, CapturingLeadPhase):
            return await self._continue_lead(text, turn, phase)

        if isinstance(phase, BranchingPhase):
            record = self.corpus.get(phase.faq_id)
            if record is not None and record.next is not None:
                return self._continue_branch(text, turn, record)
            logger.warning("Branch target '%s' no longer available", phase.faq_id)
            turn.move(TransitionTrigger.BRANCH_ABANDONED, IdlePhase())

        elif isinstance(phase, DisambiguatingPhase):
            options = [r for r in (self.corpus.get(i) for i in phase.option_ids) if r]
            if options:
                return self._continue_choice(text, turn, options)
            turn.move(TransitionTrigger.CHOICE_ABANDONED, IdlePhase())

        elif isinstance(phase, FollowUpPhase):
            reply = self._continue_follow_up(text, turn)
            if reply is not None:
                return reply
            turn.move(TransitionTrigger.FOLLOW_UP_ABANDONED, IdlePhase())

        return await self._route_fresh(text, turn, declared_context)

    def _handle_command(self, command: Command, turn: _Turn) -> ReplyPayload:
        logger.info("Command received: %s", command.value)
        if command is Command.RESET:
            turn.delete = True
            return replies.greeting_reply()
        if command is Command.END:
            turn.delete = True
            return replies.farewell_reply()
        turn.move(TransitionTrigger.RESTART, IdlePhase())
        return replies.restart_reply()

    # ------------------------------------------------------------------ #
    # In-flight phases
    # ------------------------------------------------------------------ #

    async def _continue_lead(
        self, text: str, turn: _Turn, phase: CapturingLeadPhase
    ) -> ReplyPayload:
        result = self.lead_flow.submit(phase, text)
        if result.phase is not None:
            turn.move(TransitionTrigger.LEAD_FIELD_SUBMITTED, result.phase)
            return replies.lead_prompt_reply(result.message)

        turn.move(TransitionTrigger.LEAD_COMPLETED, IdlePhase())
        lead = result.lead
        if lead is not None and not await asyncio.to_thread(self.leads.append, lead):
            logger.warning("Lead could not be stored; visitor still thanked")
        return replies.lead_complete_reply(
            lead.name if lead else None, lead.email if lead else None
        )

    def _continue_branch(self, text: str, turn: _Turn, record: FaqRecord) -> ReplyPayload:
        outcome = resolve_branch(record, text, self.corpus)
        if not isinstance(outcome, Advance):
            turn.move(TransitionTrigger.BRANCH_REPROMPTED, turn.state.phase)
            return replies.branch_reprompt_reply(record, outcome.question)

        if outcome.record is not None:
            nxt = outcome.record
            if nxt.next is not None:
                turn.move(TransitionTrigger.BRANCH_FOLLOWED, BranchingPhase(faq_id=nxt.id))
                return replies.branch_reply(nxt)
            turn.move(TransitionTrigger.BRANCH_RESOLVED, IdlePhase())
            return replies.record_reply(nxt)

        turn.move(TransitionTrigger.BRANCH_RESOLVED, IdlePhase())
        return replies.link_reply(outcome.link or "")

    def _continue_choice(
        self, text: str, turn: _Turn, options: list[FaqRecord]
    ) -> ReplyPayload:
        chosen = resolve_choice(text, options)
        if chosen is None:
            turn.move(TransitionTrigger.CHOICE_REPROMPTED, turn.state.phase)
            return replies.options_reply(options, retry=True)
        if chosen.next is not None:
            turn.move(TransitionTrigger.CHOICE_WITH_BRANCH, BranchingPhase(faq_id=chosen.id))
            return replies.branch_reply(chosen)
        if _wants_follow_up(chosen):
            turn.move(TransitionTrigger.CHOICE_WITH_FOLLOW_UP, FollowUpPhase(faq_id=chosen.id))
            return replies.with_follow_up(replies.record_reply(chosen))
        turn.move(TransitionTrigger.CHOICE_ANSWERED, IdlePhase())
        return replies.record_reply(chosen)

    def _continue_follow_up(self, text: str, turn: _Turn) -> Optional[ReplyPayload]:
        """Answer a short yes/no to the follow-up question; None means route afresh."""
        if len(text.split()) > MAX_FOLLOW_UP_WORDS:
            return None
        answer = classify_reply(text)
        if answer is Answer.YES:
            turn.move(TransitionTrigger.FOLLOW_UP_RESOLVED, IdlePhase())
            return replies.resolved_reply()
        if answer is Answer.NO:
            logger.info("Support answer did not resolve the issue")
            turn.move(TransitionTrigger.FOLLOW_UP_ESCALATED, IdlePhase())
            return replies.contact_support_reply()
        return None

    # ------------------------------------------------------------------ #
    # Fresh messages
    # ------------------------------------------------------------------ #

    async def _route_fresh(
        self, text: str, turn: _Turn, declared_context: Optional[str]
    ) -> ReplyPayload:
        if is_greeting(text):
            return replies.greeting_reply()

        intent = self.classifier.classify(text)
        if intent is Intent.SALES:
            phase, prompt = self.lead_flow.start()
            turn.move(TransitionTrigger.SALES_INTENT, phase)
            return replies.lead_intro_reply(prompt)

        topic = detect_topic(text)
        if topic:
            turn.state.last_topic = topic

        category = declared_context if declared_context in ("sales", "support") else None
        if category is None and intent is Intent.SUPPORT:
            category = "support"

        result = self.selector.exact_match(text, self.corpus.records)
        if result is None:
            result = self.selector.select(
                text, self.corpus.subset(category), turn.state.last_topic
            )
        if isinstance(result, NoMatch) and category is not None:
            result = self.selector.select(text, self.corpus.records, turn.state.last_topic)

        if isinstance(result, AutoSelect):
            record = result.record
            if record.next is not None:
                turn.move(TransitionTrigger.ANSWERED_WITH_BRANCH, BranchingPhase(faq_id=record.id))
                return replies.branch_reply(record)
            if _wants_follow_up(record):
                turn.move(
                    TransitionTrigger.ANSWERED_WITH_FOLLOW_UP, FollowUpPhase(faq_id=record.id)
                )
                return replies.with_follow_up(replies.record_reply(record))
            turn.move(TransitionTrigger.ANSWERED, IdlePhase())
            return replies.record_reply(record)

        if isinstance(result, Disambiguate):
            records = result.records
            turn.move(
                TransitionTrigger.AMBIGUOUS_MATCH,
                DisambiguatingPhase(option_ids=[r.id for r in records]),
            )
            return replies.options_reply(records)

        return await self._fallback_reply(text, turn)

    async def _fallback_reply(self, text: str, turn: _Turn) -> ReplyPayload:
        if self.cache is not None:
            cached = await asyncio.to_thread(self.cache.lookup, text)
            if cached is not None:
                turn.move(TransitionTrigger.ANSWERED_WITH_FOLLOW_UP, FollowUpPhase())
                return replies.with_follow_up(replies.completion_reply(cached, source="cache"))

        if self.fallback is not None:
            try:
                answer = await self.fallback.complete(text, turn.state.last_topic)
            except CompletionError as exc:
                logger.warning("Completion fallback unavailable: %s", exc)
            else:
                if self.cache is not None:
                    await asyncio.to_thread(self.cache.store, text, answer)
                turn.move(TransitionTrigger.ANSWERED_WITH_FOLLOW_UP, FollowUpPhase())
                return replies.with_follow_up(replies.completion_reply(answer))

        turn.move(TransitionTrigger.NO_MATCH, IdlePhase())
        return replies.no_match_reply()
