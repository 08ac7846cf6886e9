"""Tests for session persistence, expiry and sweeping."""

import json
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from tappy.schemas.session_schema import (
    BranchingPhase,
    CapturingLeadPhase,
    FollowUpPhase,
    IdlePhase,
    LeadStep,
    SessionState,
)
from tappy.storage.session_store import InMemoryStore, JsonFileStore, SessionStore


class FailingStore(InMemoryStore):
    """Backend whose writes always fail."""

    def __init__(self):
        super().__init__()
        self.attempts = 0

    def set(self, key, value):
        self.attempts += 1
        raise OSError("disk full")


def _age(backend, session_id, seconds):
    raw = backend.get(session_id)
    raw["timestamp"] = time.time() - seconds
    backend.set(session_id, raw)


class TestGetOrCreate:
    def test_creates_idle_session(self, session_store):
        state = session_store.get("s1")
        assert isinstance(state.phase, IdlePhase)
        assert session_store.peek("s1") is not None

    def test_peek_does_not_create(self, session_store):
        assert session_store.peek("unknown") is None

    def test_round_trip_keeps_phase(self, session_store):
        state = SessionState(phase=CapturingLeadPhase(step=LeadStep.EMAIL))
        state.phase.fields.name = "Sam"
        session_store.save("s1", state)

        loaded = session_store.get("s1")
        assert loaded.lead_step == LeadStep.EMAIL
        assert loaded.phase.fields.name == "Sam"

    def test_update_merges_fields(self, session_store):
        session_store.get("s1")
        session_store.update("s1", last_topic="vouchers")
        assert session_store.peek("s1").last_topic == "vouchers"


class TestExpiry:
    def test_expired_session_is_replaced(self):
        backend = InMemoryStore()
        store = SessionStore(backend, expiry_hours=1)
        store.save("s1", SessionState(phase=BranchingPhase(faq_id="faq-3")))
        _age(backend, "s1", 2 * 3600)

        state = store.get("s1")
        assert isinstance(state.phase, IdlePhase)

    def test_recent_session_survives(self):
        backend = InMemoryStore()
        store = SessionStore(backend, expiry_hours=1)
        store.save("s1", SessionState(phase=BranchingPhase(faq_id="faq-3")))
        _age(backend, "s1", 30 * 60)

        assert store.get("s1").current_id == "faq-3"

    def test_sweep_removes_only_stale_sessions(self):
        backend = InMemoryStore()
        store = SessionStore(backend, expiry_hours=1)
        store.get("old")
        store.get("new")
        _age(backend, "old", 2 * 3600)

        assert store.sweep_expired() == 1
        assert backend.keys() == ["new"]

    def test_sweep_with_explicit_clock(self, session_store):
        session_store.get("a")
        session_store.get("b")
        assert session_store.sweep_expired(now=time.time() + 13 * 3600) == 2


class TestResilience:
    def test_corrupt_entry_is_discarded(self):
        backend = InMemoryStore()
        backend.set("bad", {"phase": {"kind": "dancing"}})
        store = SessionStore(backend)

        assert store.peek("bad") is None
        assert backend.get("bad") is None

    def test_failed_save_returns_false(self):
        backend = FailingStore()
        store = SessionStore(backend)

        assert store.save("s1", SessionState()) is False
        assert backend.attempts == 3

    def test_get_survives_failed_save(self):
        store = SessionStore(FailingStore())
        assert isinstance(store.get("s1").phase, IdlePhase)

    def test_delete_is_idempotent(self, session_store):
        session_store.get("s1")
        session_store.delete("s1")
        session_store.delete("s1")
        assert session_store.peek("s1") is None


class TestJsonFileStore:
    def test_survives_restart(self, tmp_path):
        path = tmp_path / "sessions.json"
        SessionStore(JsonFileStore(path)).save(
            "s1", SessionState(phase=BranchingPhase(faq_id="faq-3"), last_topic="payments")
        )

        reloaded = SessionStore(JsonFileStore(path)).peek("s1")
        assert reloaded.current_id == "faq-3"
        assert reloaded.last_topic == "payments"

    def test_file_is_valid_json(self, tmp_path):
        path = tmp_path / "sessions.json"
        SessionStore(JsonFileStore(path)).get("s1")
        data = json.loads(path.read_text())
        assert data["s1"]["phase"]["kind"] == "idle"

    def test_unreadable_file_starts_empty(self, tmp_path):
        path = tmp_path / "sessions.json"
        path.write_text("{broken")
        assert JsonFileStore(path).keys() == []

    def test_delete_rewrites_file(self, tmp_path):
        path = tmp_path / "sessions.json"
        store = SessionStore(JsonFileStore(path))
        store.get("s1")
        store.delete("s1")
        assert json.loads(path.read_text()) == {}

    def test_concurrent_writes_from_threads(self, tmp_path):
        path = tmp_path / "sessions.json"
        store = SessionStore(JsonFileStore(path))
        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda n: store.save(f"s{n}", SessionState()), range(40)))

        assert len(json.loads(path.read_text())) == 40
        assert len(JsonFileStore(path).keys()) == 40

    def test_follow_up_phase_survives_restart(self, tmp_path):
        path = tmp_path / "sessions.json"
        SessionStore(JsonFileStore(path)).save(
            "s1", SessionState(phase=FollowUpPhase(faq_id="faq-8"))
        )
        reloaded = SessionStore(JsonFileStore(path)).peek("s1")
        assert reloaded.phase == FollowUpPhase(faq_id="faq-8")
        assert reloaded.awaiting_follow_up


class TestSessionStateViews:
    def test_flat_accessors(self):
        state = SessionState()
        assert state.current_id is None
        assert not state.awaiting_choice
        assert state.last_options_list == []
        assert state.lead_step == LeadStep.NONE
        assert not state.awaiting_follow_up

    @pytest.mark.parametrize("age,expired", [(10, False), (3601, True)])
    def test_is_expired(self, age, expired):
        state = SessionState(timestamp=1000.0)
        assert state.is_expired(3600, now=1000.0 + age) is expired
