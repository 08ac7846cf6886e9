"""Tests for the HTTP chat endpoint."""

import pytest
from fastapi.testclient import TestClient

from tappy.api import create_app


@pytest.fixture
def client(router):
    with TestClient(create_app(router)) as test_client:
        yield test_client


class TestChatEndpoint:
    def test_answers_and_mints_session(self, client):
        response = client.post("/api/chat", json={"message": "hardware"})
        assert response.status_code == 200
        body = response.json()
        assert body["session_id"]
        assert body["reply"]["type"] == "text"
        assert body["reply"]["source"] == "faq"
        assert response.cookies.get("tappy_session") == body["session_id"]

    def test_cookie_carries_session(self, client):
        first = client.post("/api/chat", json={"message": "voucher"}).json()
        assert first["reply"]["type"] == "options"

        second = client.post("/api/chat", json={"message": "2"}).json()
        assert second["session_id"] == first["session_id"]
        assert "Voucher templates" in second["reply"]["html"]

    def test_explicit_session_id_is_echoed(self, client, session_store):
        body = client.post(
            "/api/chat", json={"message": "Receipt printer not printing", "session_id": "abc"}
        ).json()
        assert body["session_id"] == "abc"
        assert body["reply"]["type"] == "yes_no"
        assert session_store.peek("abc").current_id == "faq-3"

    @pytest.mark.parametrize("payload", [{"message": ""}, {"message": "   "}, {}])
    def test_empty_message_is_rejected(self, client, payload):
        response = client.post("/api/chat", json=payload)
        assert response.status_code == 400

    def test_unknown_context_is_invalid(self, client):
        response = client.post("/api/chat", json={"message": "hardware", "context": "billing"})
        assert response.status_code == 422

    def test_reset_clears_session(self, client, session_store):
        client.post("/api/chat", json={"message": "How much does it cost?", "session_id": "abc"})
        body = client.post("/api/chat", json={"reset": True, "session_id": "abc"}).json()
        assert "Tappy" in body["reply"]["html"]
        assert session_store.peek("abc") is None


class TestHealth:
    def test_reports_corpus_size(self, client, corpus):
        response = client.get("/health")
        assert response.json() == {"status": "ok", "faq_records": len(corpus)}
