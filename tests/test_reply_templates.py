"""Tests for reply rendering."""

import pytest

from conftest import make_record
from tappy.prompts import reply_templates as replies


class TestBranchReply:
    def test_renders_question(self):
        record = make_record(
            "faq-3", "Receipt printer not printing",
            next={"question": "Is it printing now?", "options": {"yes": "a", "no": "b"}},
        )
        assert replies.branch_reply(record).question == "Is it printing now?"

    def test_record_without_branch_is_rejected(self):
        with pytest.raises(ValueError, match="faq-7"):
            replies.branch_reply(make_record("faq-7", "Printing fixed"))


class TestFollowUp:
    def test_question_is_appended_and_source_kept(self):
        reply = replies.with_follow_up(replies.completion_reply("Restart it.", source="cache"))
        assert reply.html == "Restart it.<br><br>Did that resolve your issue? (yes/no)"
        assert reply.source == "cache"

    def test_contact_support_links_support_page(self):
        html = replies.contact_support_reply().html
        assert "href='/contacts.html'" in html
        assert "end chat" in html
