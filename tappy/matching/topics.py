"""Keyword topic detection used to bias ranking toward the visitor's last topic."""

import re
from typing import Optional

from tappy.utils import tokenize

TOPIC_PATTERNS: dict[str, re.Pattern[str]] = {
    "payments": re.compile(
        r"\b(card|tapapay|payments?|terminal|epos|ped|merchant|reader|stripe|worldpay"
        r"|trustpayments|dojo|globalpayments)\b",
        re.IGNORECASE,
    ),
    "vouchers": re.compile(r"\b(vouchers?|giveavoucher|gift)\b", re.IGNORECASE),
    "onlineordering": re.compile(
        r"\b(iwantfed|order online|online ordering|menu)\b", re.IGNORECASE
    ),
    "reservations": re.compile(
        r"\b(booking|resdiary|table|reservations?|guestline|mews|protel)\b", re.IGNORECASE
    ),
}

TOPIC_KEYWORDS: dict[str, frozenset[str]] = {
    "payments": frozenset({
        "payment", "payments", "card", "terminal", "tapapay", "stripe", "worldpay",
        "trustpayments", "dojo", "globalpayments", "integrated",
    }),
    "vouchers": frozenset({"voucher", "vouchers", "giveavoucher", "gift"}),
    "onlineordering": frozenset({"order", "iwantfed", "delivery", "pickup", "menu", "online"}),
    "reservations": frozenset({"booking", "resdiary", "table", "guestline", "mews", "protel"}),
}


def detect_topic(text: str) -> Optional[str]:
    """Return the first topic whose pattern appears in the text."""
    for topic, pattern in TOPIC_PATTERNS.items():
        if pattern.search(text):
            return topic
    return None


def topic_hits(topic: str, text: str) -> int:
    """Count distinct topic keywords present in the text."""
    keywords = TOPIC_KEYWORDS.get(topic)
    if not keywords:
        return 0
    return len(keywords.intersection(tokenize(text)))
