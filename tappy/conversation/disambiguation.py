"""Resolving a visitor's pick from a numbered option list."""

from typing import Optional, Sequence

from tappy.schemas.faq_schema import FaqRecord
from tappy.utils import normalize_text


def resolve_choice(text: str, options: Sequence[FaqRecord]) -> Optional[FaqRecord]:
    """Match a 1-based index or a case-insensitive label fragment.

    Returns None when nothing matches or a fragment matches more than one label.
    """
    stripped = text.strip().rstrip(".)")
    if stripped.isdigit():
        index = int(stripped)
        if 1 <= index <= len(options):
            return options[index - 1]
        return None

    wanted = normalize_text(text)
    if not wanted:
        return None
    for option in options:
        if normalize_text(option.title) == wanted:
            return option
    partial = [o for o in options if wanted in normalize_text(o.title)]
    if len(partial) == 1:
        return partial[0]
    return None
