"""Session id correlation for log records.

Every record created while a turn is being handled carries ``session_id``,
so one visitor's conversation can be followed through the router, stores
and fallback from the root log format. Records created outside a turn
carry ``-``.

Usage:
    install_record_factory()          # done once by load_config()
    with session_scope("9f1c..."):
        logger.info("Routing message")    # ... [session=9f1c...]: Routing message
"""

import contextlib
import logging
from contextvars import ContextVar
from typing import Iterator

NO_SESSION = "-"

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s [session=%(session_id)s]: %(message)s"

_session_id: ContextVar[str] = ContextVar("session_id", default=NO_SESSION)


def get_session_id() -> str:
    return _session_id.get()


@contextlib.contextmanager
def session_scope(session_id: str) -> Iterator[None]:
    """Bind a session id to every record logged inside the block."""
    token = _session_id.set(session_id)
    try:
        yield
    finally:
        _session_id.reset(token)


def install_record_factory() -> None:
    """Stamp the current session id on every new LogRecord.

    Idempotent: a second call leaves the installed factory alone.
    """
    base = logging.getLogRecordFactory()
    if getattr(base, "stamps_session_id", False):
        return

    def factory(*args, **kwargs) -> logging.LogRecord:
        record = base(*args, **kwargs)
        record.session_id = _session_id.get()
        return record

    factory.stamps_session_id = True  # type: ignore[attr-defined]
    logging.setLogRecordFactory(factory)
