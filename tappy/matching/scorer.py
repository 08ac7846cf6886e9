"""
Relevance scoring between a free-text query and a FAQ record.

Additive rule, applied in this order:
    exact title equality (normalized)           +10
    normalized query is a substring of haystack  +6
    each distinct query token (len > 2, not a stopword):
        whole-word occurrences in haystack       x2

Two refinements over plain token counting: a query token is counted once
no matter how often the visitor repeats it, and stopwords (filler and
symptom words such as "the" or "working" that appear in most records)
do not score. Callers may pass their own stopword set, an empty set turns
the filter off.

Pure and deterministic: the same query and record always give the same score.
"""

import re

from tappy.schemas.faq_schema import FaqRecord
from tappy.utils import normalize_text, tokenize

EXACT_TITLE_POINTS = 10
SUBSTRING_POINTS = 6
TOKEN_POINTS = 2
MIN_TOKEN_LENGTH = 3

DEFAULT_STOPWORDS = frozenset({
    "the", "and", "for", "not", "please", "help", "our", "issue", "problem",
    "showing", "stopped", "working", "doesnt", "wont", "turn", "off", "down",
    "any", "can", "you", "how", "what", "with", "this", "that", "are",
})


def query_tokens(query: str, stopwords: frozenset[str] = DEFAULT_STOPWORDS) -> list[str]:
    """Distinct scoring tokens of a query, in first-seen order."""
    seen: list[str] = []
    for token in tokenize(query):
        if len(token) >= MIN_TOKEN_LENGTH and token not in stopwords and token not in seen:
            seen.append(token)
    return seen


def count_word(token: str, haystack: str) -> int:
    return len(re.findall(rf"\b{re.escape(token)}\b", haystack))


def score(
    query: str, record: FaqRecord, stopwords: frozenset[str] = DEFAULT_STOPWORDS
) -> float:
    """Score a record against a query. Always >= 0."""
    normalized_query = normalize_text(query)
    if not normalized_query:
        return 0.0

    haystack = normalize_text(record.haystack)
    total = 0.0
    if normalize_text(record.title) == normalized_query:
        total += EXACT_TITLE_POINTS
    if normalized_query in haystack:
        total += SUBSTRING_POINTS
    for token in query_tokens(normalized_query, stopwords):
        total += count_word(token, haystack) * TOKEN_POINTS
    return total
