"""Sales lead records."""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class LeadRecord(BaseModel):
    """A completed quote request. Appended once, never rewritten."""

    model_config = ConfigDict(frozen=True)

    name: str
    company: str
    email: str
    comments: str
    time: str = Field(default_factory=_utc_now_iso)
