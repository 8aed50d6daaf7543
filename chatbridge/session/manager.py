"""
Conversation identity owner.

Usage:
    manager = SessionManager(FileSessionStore(".chat_session.json", "chat:session_id"))
    session_id = manager.ensure()                      # read or create
    maybe_id = manager.ensure(create_if_missing=False) # never creates
"""

import logging
import random
import string
import threading
import time
import uuid
from typing import Optional

from chatbridge.session.store import SessionStore

logger = logging.getLogger(__name__)

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


def generate_session_id() -> str:
    """Return a random UUID4, or a timestamp-based id if the OS has no random source."""
    try:
        return str(uuid.uuid4())
    except NotImplementedError:
        suffix = "".join(random.choices(_SUFFIX_ALPHABET, k=9))
        return f"session_{int(time.time() * 1000)}_{suffix}"


class SessionManager:
    """
    Caches the session identifier and persists it through a SessionStore.

    Once an identifier is cached it is returned without touching storage,
    so at most one identifier is generated per manager until ``clear()``.
    """

    def __init__(self, store: SessionStore) -> None:
        self._store = store
        self._cached: Optional[str] = None
        self._lock = threading.Lock()

    @property
    def current(self) -> Optional[str]:
        """The cached identifier, without consulting storage."""
        return self._cached

    def ensure(self, create_if_missing: bool = True) -> Optional[str]:
        """
        Return the session identifier, loading or creating it as needed.

        Args:
            create_if_missing: When False, return None instead of creating
                an identifier if none is cached or persisted.
        """
        with self._lock:
            if self._cached:
                return self._cached

            existing = self._store.read()
            if existing:
                self._cached = existing
                logger.debug("Resumed chat session %s", existing)
                return existing

            if not create_if_missing:
                return None

            new_id = generate_session_id()
            self._cached = new_id
            self._store.write(new_id)
            logger.info("Started chat session %s", new_id)
            return new_id

    def clear(self) -> None:
        """Forget the identifier in memory and in storage."""
        with self._lock:
            self._cached = None
            self._store.clear()
        logger.info("Chat session cleared")
