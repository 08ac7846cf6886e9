"""Shared text utilities used across the FAQ assistant."""

import re
from typing import Optional

_PUNCTUATION = re.compile(r"[^\w\s]")
_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

COMMON_EMAIL_DOMAINS = ("gmail.com", "outlook.com", "hotmail.com", "yahoo.com", "icloud.com")

EMAIL_DOMAIN_CORRECTIONS = {
    "gamil.com": "gmail.com",
    "gmal.com": "gmail.com",
    "gnail.com": "gmail.com",
    "gmail.con": "gmail.com",
    "outlok.com": "outlook.com",
    "outlook.cmo": "outlook.com",
    "hotmial.com": "hotmail.com",
    "yahho.com": "yahoo.com",
    "yahoo.con": "yahoo.com",
    "iclod.com": "icloud.com",
    "icloud.cmo": "icloud.com",
}


def tokenize(text: str) -> list[str]:
    """Lowercase, strip punctuation and split on whitespace.

    Examples:
        >>> tokenize("How do I set up the Printer?")
        ['how', 'do', 'i', 'set', 'up', 'the', 'printer']
    """
    return _PUNCTUATION.sub(" ", text.lower()).split()


def normalize_text(text: str) -> str:
    """Collapse a string to its normalized token sequence.

    Examples:
        >>> normalize_text("  POS   Hardware! ")
        'pos hardware'
    """
    return " ".join(tokenize(text))


def is_valid_email(value: str) -> bool:
    return bool(_EMAIL.match(value.strip()))


def suggest_email_correction(email: str) -> Optional[str]:
    """Return a corrected address when the domain is a known misspelling.

    Examples:
        >>> suggest_email_correction("sam@gamil.com")
        'sam@gmail.com'
        >>> suggest_email_correction("sam@gmail")
        'sam@gmail.com'
        >>> suggest_email_correction("sam@example.com") is None
        True
    """
    lower = email.lower().strip()
    local, _, domain = lower.partition("@")
    if not domain:
        return None
    if domain in EMAIL_DOMAIN_CORRECTIONS:
        return f"{local}@{EMAIL_DOMAIN_CORRECTIONS[domain]}"
    for valid in COMMON_EMAIL_DOMAINS:
        if domain == valid.rsplit(".", 1)[0]:
            return f"{local}@{valid}"
    return None


def format_steps(text: str) -> str:
    """Render plain answer text as simple HTML for the chat widget.

    Examples:
        >>> format_steps("Step 1: Open **Tapa Office**")
        '<strong>Step 1:</strong> Open <strong>Tapa Office</strong>'
    """
    html = text.strip()
    html = re.sub(r"\n+", "<br>", html)
    html = re.sub(r"(Step\s?\d+[:.)])\s*", r"<br><strong>\1</strong> ", html, flags=re.IGNORECASE)
    html = re.sub(r"\*\*(.*?)\*\*", r"<strong>\1</strong>", html)
    html = re.sub(r"\*(.*?)\*", r"<em>\1</em>", html)
    html = re.sub(r"(<br>\s*){2,}", "<br>", html)
    if html.startswith("<br>"):
        html = html[len("<br>"):]
    return html
