"""Reply text shown in the chat widget.

Visitor-supplied text is escaped before it is echoed back. FAQ content is
trusted corpus text and may carry simple markup.
"""

from html import escape
from typing import Optional, Sequence

from tappy.config import settings
from tappy.schemas.faq_schema import FaqRecord
from tappy.schemas.reply_schema import OptionsReply, ReplyOption, TextReply, YesNoReply
from tappy.utils import format_steps

_biz = settings.business


def _link(url: str, label: str) -> str:
    return f"<a href='{escape(url, quote=True)}' target='_blank'>{label}</a>"


def greeting_reply() -> TextReply:
    return TextReply(
        html=(
            f"👋 Hi there! I'm {_biz.assistant_name}, your {_biz.name} assistant.<br>"
            "How can I help today? For example <em>'set up vouchers'</em> "
            "or <em>'online ordering setup'</em>."
        ),
    )


def farewell_reply() -> TextReply:
    return TextReply(html="👋 Thanks for chatting! Talk soon.")


def restart_reply() -> TextReply:
    return TextReply(html="✅ No problem. Please type your new question below.")


def no_match_reply() -> TextReply:
    return TextReply(
        html=(
            "Sorry, I couldn't find a match for that.<br>"
            f"You can {_link(_biz.contact_sales_url, 'contact our sales team')} "
            f"or {_link(_biz.browse_faq_url, 'browse our FAQs')}."
        ),
    )


def completion_reply(text: str, source: str = "completion") -> TextReply:
    return TextReply(html=format_steps(text), source=source)


def record_reply(record: FaqRecord) -> TextReply:
    """Render a record that has no branch question."""
    parts = []
    heading = f"<strong>{record.title}</strong>"
    parts.append(f"{record.icon} {heading}" if record.icon else heading)
    if record.intro:
        parts.append(format_steps(record.intro))
    if record.steps:
        items = "".join(f"<li>{format_steps(step)}</li>" for step in record.steps)
        parts.append(f"<ol>{items}</ol>")
    if record.link:
        parts.append(_link(record.link, "Learn more"))
    return TextReply(html="<br>".join(parts), source="faq")


def branch_reply(record: FaqRecord) -> YesNoReply:
    if record.next is None:
        raise ValueError(f"FAQ '{record.id}' has no branch question")
    return YesNoReply(
        title=record.title,
        intro=format_steps(record.intro) if record.intro else "",
        steps=[format_steps(step) for step in record.steps],
        question=record.next.question,
    )


def branch_reprompt_reply(record: FaqRecord, question: str) -> YesNoReply:
    return YesNoReply(
        title=record.title,
        intro="Sorry, I didn't catch that. Please answer yes or no, or type 'new question'.",
        question=question,
    )


FOLLOW_UP_QUESTION = "Did that resolve your issue? (yes/no)"


def with_follow_up(reply: TextReply) -> TextReply:
    """Append the resolved-or-not question to a support answer."""
    return reply.model_copy(update={"html": f"{reply.html}<br><br>{FOLLOW_UP_QUESTION}"})


def resolved_reply() -> TextReply:
    return TextReply(
        html="✅ Great! I'm glad that helped. Is there anything else I can do for you?",
    )


def contact_support_reply() -> TextReply:
    return TextReply(
        html=(
            "Sorry that didn't fix it. "
            f"You can {_link(_biz.contact_support_url, 'contact our support team')} "
            "for further help.<br>"
            "Or type <em>'new question'</em> to ask something else, "
            "or <em>'end chat'</em> to finish."
        ),
    )


def link_reply(url: str) -> TextReply:
    return TextReply(
        html=f"You'll find more on this here: {_link(url, escape(url))}",
        source="faq",
    )


def options_reply(records: Sequence[FaqRecord], retry: bool = False) -> OptionsReply:
    intro = (
        "Sorry, I couldn't tell which one you meant. "
        "Please reply with the number or name of an option:"
        if retry
        else "I found a few possible answers. Which one matches your question?"
    )
    return OptionsReply(
        intro=intro,
        options=[ReplyOption(label=r.title, index=i) for i, r in enumerate(records, start=1)],
    )


# --- Lead capture ---

def lead_intro_reply(prompt: str) -> TextReply:
    return TextReply(
        html=(
            f"💡 Pricing for {_biz.name} depends on your setup and business type, "
            "so we'll prepare a tailored quote.<br><br>" + prompt
        ),
        source="lead",
    )


def lead_prompt_reply(text: str) -> TextReply:
    return TextReply(html=text, source="lead")


def lead_complete_reply(name: Optional[str], email: Optional[str]) -> TextReply:
    return TextReply(
        html=(
            f"✅ Thanks {escape(name or '')}! Your quote request has been logged.<br>"
            f"Our team will contact you shortly at <strong>{escape(email or '')}</strong>.<br><br>"
            "Would you like to ask about anything else?"
        ),
        source="lead",
    )
