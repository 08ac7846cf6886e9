"""
Reuse of earlier completion answers for similar support questions.

Answers are stored under the visitor's normalized message. A lookup picks
the stored question whose words overlap the new message best, measured as
the share of the stored question's words found in the message. Answers
that talk about pricing are never replayed; pricing goes through lead
capture instead.

Usage:
    cache = CompletionCache(JsonFileStore(Path("data/support_cache.json")))
    cache.store("till wont print receipts", answer)
    cache.lookup("my till wont print")   # -> answer
"""

import logging
import time
from typing import Optional

from tenacity import retry, stop_after_attempt, wait_exponential

from tappy.config import settings
from tappy.storage.session_store import KeyValueStore
from tappy.utils import normalize_text, tokenize

logger = logging.getLogger(__name__)

EXCLUDED_WORD = "pricing"


class CompletionCache:
    """Word-overlap lookup over previously completed answers."""

    def __init__(
        self,
        backend: KeyValueStore,
        min_overlap: float = settings.fallback.cache_min_overlap,
    ) -> None:
        self._backend = backend
        self.min_overlap = min_overlap

    def __len__(self) -> int:
        return len(self._backend.keys())

    def lookup(self, message: str) -> Optional[str]:
        """Best cached answer for the message, or None below the overlap floor."""
        words = set(tokenize(message))
        if not words:
            return None

        best_answer: Optional[str] = None
        best_overlap = 0.0
        for key in self._backend.keys():
            key_words = key.split()
            if not key_words:
                continue
            overlap = sum(1 for w in key_words if w in words) / len(key_words)
            if overlap < self.min_overlap or overlap <= best_overlap:
                continue
            entry = self._backend.get(key) or {}
            answer = entry.get("answer")
            if not isinstance(answer, str) or EXCLUDED_WORD in answer.lower():
                continue
            best_answer, best_overlap = answer, overlap

        if best_answer is not None:
            logger.debug("Cache hit (overlap %.2f)", best_overlap)
        return best_answer

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.05, min=0.05, max=0.5),
        reraise=True,
    )
    def _write(self, key: str, entry: dict) -> None:
        self._backend.set(key, entry)

    def store(self, message: str, answer: str) -> bool:
        """Remember an answer. Returns False if every write attempt failed."""
        key = normalize_text(message)
        if not key or not answer.strip():
            return False
        try:
            self._write(key, {"answer": answer, "time": time.time()})
        except Exception:
            logger.warning("Failed to cache completion answer", exc_info=True)
            return False
        return True
