"""Per-turn session tagging for log records.

The engine tags each turn with the visitor's session id for the
duration of the request, so every record emitted while the turn is in
flight (engine, transport, normalizer) carries ``session_id``. Outside
a turn records carry ``-``.

Usage:
    from chatbridge.logging_context import get_session_logger, session_scope

    logger = get_session_logger(__name__)
    with session_scope("3f2c9a4e-..."):
        logger.info("Sending turn")  # record.session_id == "3f2c9a4e-..."
"""

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

NO_SESSION = "-"

_session_id: ContextVar[str] = ContextVar("session_id", default=NO_SESSION)


@contextmanager
def session_scope(session_id: str) -> Iterator[None]:
    """Tag records with ``session_id`` until the block exits."""
    token = _session_id.set(session_id)
    try:
        yield
    finally:
        _session_id.reset(token)


class SessionIdFilter(logging.Filter):
    """Injects session_id into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.session_id = _session_id.get()  # type: ignore[attr-defined]
        return True


def install_session_filter(handlers: list[logging.Handler]) -> None:
    """Attach a SessionIdFilter to each handler that lacks one.

    Handler filters run for records from every logger, including
    third-party ones, so a ``%(session_id)s`` format never meets a
    record without the attribute.
    """
    for handler in handlers:
        if not any(isinstance(f, SessionIdFilter) for f in handler.filters):
            handler.addFilter(SessionIdFilter())


def get_session_logger(name: str) -> logging.Logger:
    """Return a logger with the SessionIdFilter attached."""
    logger = logging.getLogger(name)
    if not any(isinstance(f, SessionIdFilter) for f in logger.filters):
        logger.addFilter(SessionIdFilter())
    return logger
