"""
System prompt for the text completion fallback.

Business-specific values are injected from configuration, not hardcoded.
"""

from typing import Optional

from tappy.config import settings

_biz = settings.business

BUSINESS_CONTEXT = f"""
You are {_biz.assistant_name}, the {_biz.name} website assistant.
Respond only about {_biz.products}.
"""

CHAT_STYLE_RULES = """
RULES:
- Keep responses concise and relevant, at most a short paragraph or a few steps.
- Offer troubleshooting steps or explanations where possible.
- Never quote prices. For pricing, suggest a tailored quote from the sales team.
- If you do not know the answer, say so and suggest contacting support.
"""


def build_fallback_system_prompt(topic: Optional[str] = None) -> str:
    """System prompt naming the product family and the visitor's current topic."""
    return f"{BUSINESS_CONTEXT}\nCurrent topic: {topic or 'general'}.\n{CHAT_STYLE_RULES}"
