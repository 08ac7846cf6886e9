"""Tests for query/record relevance scoring."""

import pytest

from conftest import SAMPLE_RECORDS, make_record
from tappy.matching.scorer import count_word, query_tokens, score


def _record(record_id):
    return next(r for r in SAMPLE_RECORDS if r.id == record_id)


class TestQueryTokens:
    def test_drops_stopwords_and_short_tokens(self):
        assert query_tokens("How do I fix the printer?") == ["fix", "printer"]

    def test_tokens_are_distinct(self):
        assert query_tokens("printer Printer PRINTER") == ["printer"]

    def test_custom_stopwords(self):
        assert query_tokens("fix the printer", stopwords=frozenset({"printer"})) == ["fix", "the"]


class TestCountWord:
    def test_whole_words_only(self):
        assert count_word("pos", "possible pos system pos") == 2


class TestScore:
    def test_exact_title_scores_highest(self):
        # title +10, substring +6, "pos" and "hardware" once each
        assert score("POS Hardware", _record("pos-hardware")) == 20

    def test_single_keyword(self):
        # substring +6, "hardware" once
        assert score("hardware", _record("pos-hardware")) == 8

    def test_token_occurrences_accumulate(self):
        # "voucher setup" substring +6, voucher x1, setup x2
        assert score("voucher setup", _record("voucher-setup")) == 12

    def test_empty_stopword_set_scores_every_token(self):
        # substring +6, "the" once
        assert score("the", _record("voucher-balance"), stopwords=frozenset()) == 8

    def test_unrelated_query_scores_zero(self):
        assert score("zebra crossing", _record("pos-hardware")) == 0

    @pytest.mark.parametrize("query", ["", "   ", "?!"])
    def test_empty_query_scores_zero(self, query):
        assert score(query, _record("faq-3")) == 0

    def test_stopwords_do_not_score(self):
        record = make_record("x", "Something", intro="the the the and and")
        assert score("the and", record) == 6  # substring only

    def test_deterministic(self):
        record = _record("faq-3")
        assert score("printer paper", record) == score("printer paper", record)

    def test_never_negative(self):
        for record in SAMPLE_RECORDS:
            assert score("anything at all", record) >= 0
