"""Tests for yes/no branch evaluation."""

import pytest

from conftest import SAMPLE_RECORDS
from tappy.conversation.branching import (
    Advance,
    Answer,
    Reprompt,
    classify_reply,
    resolve_branch,
)


class TestClassifyReply:
    @pytest.mark.parametrize("text", ["yes", "Yes please", "yeah go on", "yep", "YUP"])
    def test_affirmative(self, text):
        assert classify_reply(text) == Answer.YES

    @pytest.mark.parametrize("text", ["no", "Nope", "nah", "not yet"])
    def test_negative(self, text):
        assert classify_reply(text) == Answer.NO

    def test_affirmative_checked_first(self):
        assert classify_reply("yes, no problem") == Answer.YES

    @pytest.mark.parametrize("text", ["maybe", "I'm unsure", "nothing changed", "eyes"])
    def test_unclassified(self, text):
        assert classify_reply(text) == Answer.UNCLASSIFIED


class TestResolveBranch:
    def test_yes_resolves_by_id(self, corpus):
        result = resolve_branch(corpus.get("faq-3"), "Yes please", corpus)
        assert isinstance(result, Advance)
        assert result.record.id == "faq-7"

    def test_no_resolves_by_title(self, corpus):
        result = resolve_branch(corpus.get("faq-3"), "no", corpus)
        assert isinstance(result, Advance)
        assert result.record.id == "faq-8"

    def test_unclear_reply_repeats_question(self, corpus):
        result = resolve_branch(corpus.get("faq-3"), "maybe", corpus)
        assert result == Reprompt(question="Is it printing now?")

    def test_url_target_becomes_link(self, corpus):
        result = resolve_branch(corpus.get("faq-9"), "yes", corpus)
        assert result == Advance(link="https://example.com/payments")

    def test_unresolvable_target_reprompts(self, corpus):
        result = resolve_branch(corpus.get("faq-9"), "no", corpus)
        assert result == Reprompt(question="Did the reader pair?")

    def test_record_without_branch_raises(self, corpus):
        with pytest.raises(ValueError):
            resolve_branch(corpus.get("faq-7"), "yes", corpus)

    @pytest.mark.parametrize("reply", ["yes", "no", "maybe", "", "42", "not sure yes"])
    def test_always_advances_or_reprompts(self, corpus, reply):
        for record in SAMPLE_RECORDS:
            if record.next is None:
                continue
            assert isinstance(resolve_branch(record, reply, corpus), (Advance, Reprompt))
