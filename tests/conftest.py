"""Shared test fixtures and helpers."""

from typing import Any, Optional

import pytest

from chatbridge.conversation.engine import ConversationEngine
from chatbridge.conversation.normalizer import ResponseNormalizer
from chatbridge.schemas.chat_schema import OutboundPayload
from chatbridge.session.manager import SessionManager
from chatbridge.session.store import InMemorySessionStore
from chatbridge.transport import TransportResult


class FakeTransport:
    """Returns queued results and records every payload it was given."""

    def __init__(self, *results: TransportResult) -> None:
        self.results = list(results)
        self.payloads: list[OutboundPayload] = []

    def reply(self, data: Any) -> "FakeTransport":
        self.results.append(TransportResult.success(data, 200))
        return self

    def fail(self, error: str = "connection refused", status_code: Optional[int] = None) -> "FakeTransport":
        self.results.append(TransportResult.failure(error, status_code))
        return self

    async def post(self, payload: OutboundPayload) -> TransportResult:
        self.payloads.append(payload)
        return self.results.pop(0)


class RaisingTransport:
    """Simulates a transport that rejects outright."""

    def __init__(self, exc: Exception) -> None:
        self.exc = exc

    async def post(self, payload: OutboundPayload) -> TransportResult:
        raise self.exc


class CountingStore(InMemorySessionStore):
    """In-memory store that counts storage access."""

    def __init__(self, initial: Optional[str] = None) -> None:
        super().__init__(initial)
        self.reads = 0
        self.writes = 0

    def read(self) -> Optional[str]:
        self.reads += 1
        return super().read()

    def write(self, session_id: str) -> None:
        self.writes += 1
        super().write(session_id)


@pytest.fixture
def store():
    return CountingStore()


@pytest.fixture
def session_manager(store):
    return SessionManager(store)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def normalizer():
    return ResponseNormalizer()


@pytest.fixture
def engine(session_manager, transport, normalizer):
    return ConversationEngine(session_manager, transport, normalizer)


def make_wrapped_slot(
    start: Optional[str] = "2024-01-01T10:00:00Z",
    start_display: Optional[str] = "10:00 AM",
    end_display: Optional[str] = "10:30 AM",
) -> dict[str, Any]:
    """Helper to create a slot in the automation's ``{"slot": {...}}`` layout."""
    slot: dict[str, Any] = {}
    if start is not None:
        slot["start"] = start
    if start_display is not None:
        slot["startTimeDisplay"] = start_display
    if end_display is not None:
        slot["endTimeDisplay"] = end_display
    return {"slot": slot}
