"""
Yes/no branch evaluation for FAQ records with a follow-up question.

``resolve_branch`` is total: every (record, reply) pair yields either
``Advance`` or ``Reprompt``. Targets resolve by id, then by title
(case-insensitive), then as an external URL.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from tappy.knowledge.corpus import FaqCorpus, is_url_like
from tappy.schemas.faq_schema import FaqRecord

logger = logging.getLogger(__name__)


class Answer(str, Enum):
    YES = "yes"
    NO = "no"
    UNCLASSIFIED = "unclassified"


_AFFIRMATIVE = re.compile(r"\b(yes|yeah|yep|yup)\b", re.IGNORECASE)
_NEGATIVE = re.compile(r"\b(no|nope|nah|not)\b", re.IGNORECASE)


@dataclass(frozen=True)
class Advance:
    """Move to another record, or hand the visitor an external link."""

    record: Optional[FaqRecord] = None
    link: Optional[str] = None


@dataclass(frozen=True)
class Reprompt:
    question: str


BranchResult = Union[Advance, Reprompt]


def classify_reply(text: str) -> Answer:
    """Affirmative is checked first, so "yes, no problem" counts as yes."""
    if _AFFIRMATIVE.search(text):
        return Answer.YES
    if _NEGATIVE.search(text):
        return Answer.NO
    return Answer.UNCLASSIFIED


def resolve_target(target: str, corpus: FaqCorpus) -> Optional[Union[FaqRecord, str]]:
    target = (target or "").strip()
    if not target:
        return None
    record = corpus.get(target) or corpus.find_by_title(target)
    if record is not None:
        return record
    if is_url_like(target):
        return target
    return None


def resolve_branch(current: FaqRecord, reply: str, corpus: FaqCorpus) -> BranchResult:
    """Resolve a visitor's yes/no reply against the record's branch.

    Callers must only pass records that carry a ``next`` branch.
    """
    branch = current.next
    if branch is None:
        raise ValueError(f"FAQ '{current.id}' has no branch to resolve")

    answer = classify_reply(reply)
    if answer is Answer.UNCLASSIFIED:
        return Reprompt(question=branch.question)

    target = branch.options.yes if answer is Answer.YES else branch.options.no
    resolved = resolve_target(target, corpus)
    if resolved is None:
        logger.warning(
            "Unresolvable %s target %r on FAQ '%s'", answer.value, target, current.id
        )
        return Reprompt(question=branch.question)
    if isinstance(resolved, FaqRecord):
        return Advance(record=resolved)
    return Advance(link=resolved)
