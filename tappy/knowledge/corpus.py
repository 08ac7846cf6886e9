"""
FAQ corpus loaded once at startup.

One JSON file per category (support, sales, general). Each file holds an
ordered list of records. Malformed entries are logged and skipped so a
single bad record never fails the whole load.

Two entry shapes are accepted:
    {"id", "title", "intro", "steps", "next", "link", "icon"}
    {"questions": [...], "answers": [...], "icon"}   (older export format)
"""

import json
import logging
import os
import re
from typing import Any, Iterable, Optional

from pydantic import ValidationError

from tappy.schemas.faq_schema import FaqRecord
from tappy.utils import normalize_text

logger = logging.getLogger(__name__)

CATEGORIES = ("sales", "support", "general")

_URL_SHAPED = re.compile(r"^(https?://|www\.|/)\S*$", re.IGNORECASE)


def is_url_like(value: str) -> bool:
    return bool(_URL_SHAPED.match(value.strip()))


def _coerce_entry(raw: dict[str, Any], category: str, position: int) -> dict[str, Any]:
    """Map a raw JSON entry onto the FaqRecord field layout."""
    entry = dict(raw)
    if "title" not in entry and entry.get("questions"):
        entry["title"] = entry["questions"][0]
    if "steps" not in entry and entry.get("answers"):
        entry["steps"] = entry["answers"]
    entry.pop("questions", None)
    entry.pop("answers", None)
    entry.setdefault("id", f"{category}-{position}")
    entry["category"] = entry.get("category") or category
    if isinstance(entry.get("steps"), list):
        entry["steps"] = tuple(str(s) for s in entry["steps"] if str(s).strip())
    return entry


def parse_records(raw_entries: Iterable[Any], category: str = "general") -> list[FaqRecord]:
    """Validate raw entries, skipping anything malformed."""
    records: list[FaqRecord] = []
    for position, raw in enumerate(raw_entries, start=1):
        if not isinstance(raw, dict):
            logger.warning("Skipping %s FAQ #%d: not an object", category, position)
            continue
        try:
            record = FaqRecord(**_coerce_entry(raw, category, position))
        except (ValidationError, TypeError) as exc:
            logger.warning("Skipping %s FAQ #%d: %s", category, position, exc)
            continue
        if not record.steps and not record.intro.strip():
            logger.warning("Skipping %s FAQ '%s': no intro or steps", category, record.id)
            continue
        records.append(record)
    return records


class FaqCorpus:
    """Read-only, ordered collection of FAQ records with id/title lookups."""

    def __init__(self, records: Iterable[FaqRecord]) -> None:
        self._records: list[FaqRecord] = []
        self._by_id: dict[str, FaqRecord] = {}
        self._by_title: dict[str, FaqRecord] = {}
        for record in records:
            if record.id in self._by_id:
                logger.warning("Skipping duplicate FAQ id '%s'", record.id)
                continue
            self._records.append(record)
            self._by_id[record.id] = record
            self._by_title.setdefault(normalize_text(record.title), record)
        logger.info("FAQ corpus ready with %d records", len(self._records))

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self):
        return iter(self._records)

    @property
    def records(self) -> list[FaqRecord]:
        return list(self._records)

    def get(self, faq_id: str) -> Optional[FaqRecord]:
        return self._by_id.get(faq_id)

    def find_by_title(self, title: str) -> Optional[FaqRecord]:
        """Case- and punctuation-insensitive title lookup."""
        return self._by_title.get(normalize_text(title))

    def subset(self, category: Optional[str]) -> list[FaqRecord]:
        """Records for a category plus general records, in corpus order.

        Unknown or general categories return the whole corpus.
        """
        if category not in ("sales", "support"):
            return self.records
        return [r for r in self._records if r.category in (category, "general")]

    @classmethod
    def from_files(cls, paths: dict[str, str]) -> "FaqCorpus":
        """Load one JSON list per category. Missing or unreadable files are skipped."""
        records: list[FaqRecord] = []
        for category in CATEGORIES:
            path = paths.get(category)
            if not path:
                continue
            if not os.path.exists(path):
                logger.warning("FAQ file not found: %s", path)
                continue
            try:
                with open(path, encoding="utf-8") as fh:
                    data = json.load(fh)
            except (OSError, json.JSONDecodeError) as exc:
                logger.error("Failed to load %s: %s", path, exc)
                continue
            if not isinstance(data, list):
                logger.error("FAQ file %s must contain a list, got %s", path, type(data).__name__)
                continue
            loaded = parse_records(data, category)
            logger.info("Loaded %d %s FAQ entries from %s", len(loaded), category, path)
            records.extend(loaded)
        return cls(records)
