"""
Append-only sales lead log.

One JSON object per line, never rewritten. Appends are retried and
then logged on failure so a storage hiccup cannot break the conversation.
"""

import json
import logging
from pathlib import Path
from typing import Protocol

from tenacity import retry, stop_after_attempt, wait_exponential

from tappy.schemas.lead_schema import LeadRecord

logger = logging.getLogger(__name__)


class LeadStore(Protocol):
    def append(self, lead: LeadRecord) -> bool: ...


class InMemoryLeadStore:
    def __init__(self) -> None:
        self.leads: list[LeadRecord] = []

    def append(self, lead: LeadRecord) -> bool:
        self.leads.append(lead)
        return True


class JsonlLeadStore:
    """Lead log backed by a JSON-lines file."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.05, min=0.05, max=0.5),
        reraise=True,
    )
    def _write_line(self, line: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("a", encoding="utf-8") as fh:
            fh.write(line + "\n")

    def append(self, lead: LeadRecord) -> bool:
        line = json.dumps(lead.model_dump(), ensure_ascii=False)
        try:
            self._write_line(line)
        except OSError:
            logger.error("Failed to append lead to %s", self._path, exc_info=True)
            return False
        logger.info("Lead appended to %s", self._path)
        return True

    def read_all(self) -> list[LeadRecord]:
        """Read back every well-formed line."""
        if not self._path.exists():
            return []
        leads: list[LeadRecord] = []
        with self._path.open(encoding="utf-8") as fh:
            for number, line in enumerate(fh, start=1):
                if not line.strip():
                    continue
                try:
                    leads.append(LeadRecord.model_validate_json(line))
                except ValueError:
                    logger.warning("Skipping malformed lead on line %d", number)
        return leads
