"""
Persistent storage for the conversation identifier.

The store is a single-key view over a key-value scope: a JSON file that
plays the role browser local storage plays for the web widget. Every
operation is fail-soft. Unreadable, unwritable or corrupt storage is
logged and treated as "nothing persisted".
"""

import json
import logging
from pathlib import Path
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class SessionStore(Protocol):
    """Read/write/clear contract for the persisted session identifier."""

    def read(self) -> Optional[str]: ...

    def write(self, session_id: str) -> None: ...

    def clear(self) -> None: ...


class InMemorySessionStore:
    """Process-local store. Used when no persistent scope is wanted."""

    def __init__(self, initial: Optional[str] = None) -> None:
        self._value = initial

    def read(self) -> Optional[str]:
        return self._value

    def write(self, session_id: str) -> None:
        self._value = session_id

    def clear(self) -> None:
        self._value = None


class FileSessionStore:
    """
    Stores the identifier under ``key`` in a JSON object file.

    Other keys in the same file are preserved, so several widgets can
    share one storage scope.
    """

    def __init__(self, path: str | Path, key: str) -> None:
        self.path = Path(path)
        self.key = key

    def _load(self) -> dict:
        if not self.path.exists():
            return {}
        data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object in {self.path}")
        return data

    def _dump(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")

    def read(self) -> Optional[str]:
        try:
            value = self._load().get(self.key)
        except (OSError, ValueError) as exc:
            logger.warning("Unable to read chat session from %s: %s", self.path, exc)
            return None
        return value if isinstance(value, str) and value else None

    def write(self, session_id: str) -> None:
        try:
            data = self._load()
        except (OSError, ValueError) as exc:
            logger.warning("Discarding unreadable session storage %s: %s", self.path, exc)
            data = {}
        data[self.key] = session_id
        try:
            self._dump(data)
        except OSError as exc:
            logger.warning("Unable to store chat session in %s: %s", self.path, exc)

    def clear(self) -> None:
        try:
            data = self._load()
            if self.key not in data:
                return
            del data[self.key]
            self._dump(data)
        except (OSError, ValueError) as exc:
            logger.warning("Unable to clear chat session in %s: %s", self.path, exc)
