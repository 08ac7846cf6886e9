"""FAQ corpus data models."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BranchOptions(BaseModel):
    """Targets for a yes/no answer: a record id, a record title, or a URL."""

    model_config = ConfigDict(frozen=True)

    yes: str
    no: str


class FaqBranch(BaseModel):
    """A yes/no decision edge attached to a FAQ record."""

    model_config = ConfigDict(frozen=True)

    question: str
    options: BranchOptions


class FaqRecord(BaseModel):
    """A single FAQ entry. Immutable once the corpus is loaded."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    intro: str = ""
    steps: tuple[str, ...] = Field(default_factory=tuple)
    next: Optional[FaqBranch] = None
    link: Optional[str] = None
    category: str = "general"
    icon: Optional[str] = None

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title must not be empty")
        return value

    @property
    def haystack(self) -> str:
        """Searchable text: title, intro and steps joined with spaces."""
        return " ".join([self.title, self.intro, *self.steps])
