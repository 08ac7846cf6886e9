"""
Session state persistence behind a small key-value interface.

``SessionStore`` owns expiry and (de)serialization; the backend only
stores plain dicts. Two backends ship: an in-memory dict for tests and
single-process use, and a JSON file that is rewritten after every change.

Persist failures are retried, then logged. A failed write never fails the
turn; the next access may then see older state (accepted degraded mode).
"""

import json
import logging
import os
import tempfile
import threading
import time
from pathlib import Path
from typing import Any, Optional, Protocol

from pydantic import ValidationError
from tenacity import retry, stop_after_attempt, wait_exponential

from tappy.config import settings
from tappy.schemas.session_schema import SessionState

logger = logging.getLogger(__name__)

_retry_write = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.05, min=0.05, max=0.5),
    reraise=True,
)


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[dict[str, Any]]: ...

    def set(self, key: str, value: dict[str, Any]) -> None: ...

    def delete(self, key: str) -> None: ...

    def keys(self) -> list[str]: ...


class InMemoryStore:
    """Process-local dict backend."""

    def __init__(self) -> None:
        self._data: dict[str, dict[str, Any]] = {}

    def get(self, key: str) -> Optional[dict[str, Any]]:
        value = self._data.get(key)
        return dict(value) if value is not None else None

    def set(self, key: str, value: dict[str, Any]) -> None:
        self._data[key] = dict(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data.keys())


class JsonFileStore:
    """Whole-file JSON backend, hydrated on start and rewritten on change.

    Safe to call from worker threads; one lock guards the dict and the file.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._data: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()
        self._load()

    def _load(self) -> None:
        if not self._path.exists():
            return
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable store file %s: %s", self._path, exc)
            return
        if isinstance(data, dict):
            self._data = {k: v for k, v in data.items() if isinstance(v, dict)}
        logger.info("Loaded %d entries from %s", len(self._data), self._path)

    def _persist(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self._path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(self._data, fh, ensure_ascii=False, indent=2)
            os.replace(tmp, self._path)
        except OSError:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def get(self, key: str) -> Optional[dict[str, Any]]:
        with self._lock:
            value = self._data.get(key)
        return dict(value) if value is not None else None

    def set(self, key: str, value: dict[str, Any]) -> None:
        with self._lock:
            self._data[key] = dict(value)
            self._persist()

    def delete(self, key: str) -> None:
        with self._lock:
            if self._data.pop(key, None) is not None:
                self._persist()

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._data.keys())


class SessionStore:
    """Get-or-create, save, delete and expiry sweep for session state."""

    def __init__(
        self,
        backend: Optional[KeyValueStore] = None,
        expiry_hours: float = settings.session.expiry_hours,
    ) -> None:
        self._backend: KeyValueStore = backend if backend is not None else InMemoryStore()
        self._expiry_seconds = expiry_hours * 3600

    @property
    def expiry_seconds(self) -> float:
        return self._expiry_seconds

    def _read(self, session_id: str) -> Optional[SessionState]:
        raw = self._backend.get(session_id)
        if raw is None:
            return None
        try:
            return SessionState.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Discarding corrupt session %s: %s", session_id, exc)
            self.delete(session_id)
            return None

    def get(self, session_id: str) -> SessionState:
        """Return the session, creating and persisting a fresh one if absent or expired."""
        state = self._read(session_id)
        if state is not None and state.is_expired(self._expiry_seconds):
            logger.info("Session %s expired", session_id)
            self.delete(session_id)
            state = None
        if state is None:
            state = SessionState()
            self.save(session_id, state)
        return state

    def peek(self, session_id: str) -> Optional[SessionState]:
        """Read without creating."""
        return self._read(session_id)

    def save(self, session_id: str, state: SessionState) -> bool:
        """Stamp activity time and persist. Returns False if every attempt failed."""
        state.timestamp = time.time()
        payload = state.model_dump(mode="json")
        try:
            _retry_write(self._backend.set)(session_id, payload)
        except Exception:
            logger.warning("Failed to persist session %s", session_id, exc_info=True)
            return False
        return True

    def update(self, session_id: str, **changes: Any) -> SessionState:
        """Merge field changes into the stored session and persist."""
        state = self.get(session_id)
        merged = state.model_copy(update=changes)
        merged = SessionState.model_validate(merged.model_dump())
        self.save(session_id, merged)
        return merged

    def delete(self, session_id: str) -> None:
        """Idempotent removal."""
        try:
            _retry_write(self._backend.delete)(session_id)
        except Exception:
            logger.warning("Failed to delete session %s", session_id, exc_info=True)

    def sweep_expired(self, now: Optional[float] = None) -> int:
        """Drop sessions idle longer than the expiry window. Returns the count removed."""
        now = time.time() if now is None else now
        removed = 0
        for session_id in self._backend.keys():
            raw = self._backend.get(session_id)
            if raw is None:
                continue
            timestamp = raw.get("timestamp")
            if not isinstance(timestamp, (int, float)) or now - timestamp > self._expiry_seconds:
                self.delete(session_id)
                removed += 1
        if removed:
            logger.info("Cleaned up %d expired sessions", removed)
        return removed


def build_session_store() -> SessionStore:
    """Session store per configuration: JSON file when a path is set, else in-memory."""
    if settings.session.store_path:
        return SessionStore(JsonFileStore(Path(settings.session.store_path)))
    return SessionStore(InMemoryStore())
