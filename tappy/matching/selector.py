"""
Match selection over scored FAQ records.

Decides between three outcomes:
    NoMatch       nothing clears the score threshold
    AutoSelect    one clear winner (sole match, dominant ratio, large score,
                  or an exact title match which short-circuits scoring)
    Disambiguate  several close candidates, capped and ordered by score

Usage:
    selector = MatchSelector()
    result = selector.select("voucher setup", corpus.records, topic="vouchers")
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Union

from tappy.config import settings
from tappy.matching.scorer import DEFAULT_STOPWORDS, score
from tappy.matching.topics import topic_hits
from tappy.schemas.faq_schema import FaqRecord
from tappy.utils import normalize_text

logger = logging.getLogger(__name__)

MIN_TOPIC_HITS = 2


@dataclass(frozen=True)
class ScoredRecord:
    record: FaqRecord
    score: float
    rank: float


@dataclass(frozen=True)
class NoMatch:
    pass


@dataclass(frozen=True)
class AutoSelect:
    record: FaqRecord
    score: float
    exact: bool = False


@dataclass(frozen=True)
class Disambiguate:
    candidates: tuple[ScoredRecord, ...]

    @property
    def records(self) -> list[FaqRecord]:
        return [c.record for c in self.candidates]


MatchResult = Union[NoMatch, AutoSelect, Disambiguate]


class MatchSelector:
    """Applies thresholds and confidence ratios to scored records."""

    def __init__(
        self,
        threshold: float = settings.matching.match_threshold,
        dominance_ratio: float = settings.matching.dominance_ratio,
        absolute_auto_select: float = settings.matching.absolute_auto_select,
        max_options: int = settings.matching.max_options,
        topic_boost: float = settings.matching.topic_boost,
        stopwords: Optional[frozenset[str]] = settings.matching.stopwords,
    ) -> None:
        self.threshold = threshold
        self.dominance_ratio = dominance_ratio
        self.absolute_auto_select = absolute_auto_select
        self.max_options = max_options
        self.topic_boost = topic_boost
        self.stopwords = DEFAULT_STOPWORDS if stopwords is None else stopwords

    def rank(
        self, query: str, records: Sequence[FaqRecord], topic: Optional[str] = None
    ) -> list[ScoredRecord]:
        """Records clearing the threshold, best first, corpus order on ties.

        Eligibility uses the raw score. The topic boost only reorders
        records that are already eligible.
        """
        eligible: list[ScoredRecord] = []
        for record in records:
            raw = score(query, record, self.stopwords)
            if raw < self.threshold:
                continue
            rank = raw
            if topic and self.topic_boost and topic_hits(topic, record.haystack) >= MIN_TOPIC_HITS:
                rank += self.topic_boost
            eligible.append(ScoredRecord(record=record, score=raw, rank=rank))
        # sorted() is stable, so equal ranks keep corpus order
        return sorted(eligible, key=lambda s: s.rank, reverse=True)

    def exact_match(self, query: str, records: Sequence[FaqRecord]) -> Optional[AutoSelect]:
        """First record whose normalized title equals the normalized query."""
        normalized = normalize_text(query)
        if not normalized:
            return None
        for record in records:
            if normalize_text(record.title) == normalized:
                logger.debug("Exact title match: %s", record.id)
                return AutoSelect(
                    record=record, score=score(query, record, self.stopwords), exact=True
                )
        return None

    def select(
        self, query: str, records: Sequence[FaqRecord], topic: Optional[str] = None
    ) -> MatchResult:
        if not normalize_text(query):
            return NoMatch()

        exact = self.exact_match(query, records)
        if exact is not None:
            return exact

        ranked = self.rank(query, records, topic)
        if not ranked:
            return NoMatch()

        top = ranked[0]
        if len(ranked) == 1 or self._dominates(top.rank, ranked[1].rank):
            logger.debug("Auto-selected %s (score %.1f)", top.record.id, top.score)
            return AutoSelect(record=top.record, score=top.score)

        candidates = tuple(ranked[: self.max_options])
        logger.debug(
            "Ambiguous query '%s': %s", normalize_text(query), [c.record.id for c in candidates]
        )
        return Disambiguate(candidates=candidates)

    def _dominates(self, top: float, second: float) -> bool:
        if top >= self.absolute_auto_select:
            return True
        return second > 0 and top / second >= self.dominance_ratio
