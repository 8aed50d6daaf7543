"""Tests for session identifier storage and the session manager."""

import json
import uuid
from unittest.mock import patch

import pytest

from chatbridge.session.manager import SessionManager, generate_session_id
from chatbridge.session.store import FileSessionStore, InMemorySessionStore

KEY = "aisyncso:chat:session_id"


class TestGenerateSessionId:
    def test_uuid_by_default(self):
        assert uuid.UUID(generate_session_id()).version == 4

    def test_ids_differ(self):
        assert generate_session_id() != generate_session_id()

    def test_fallback_without_random_source(self):
        with patch("chatbridge.session.manager.uuid.uuid4", side_effect=NotImplementedError):
            session_id = generate_session_id()
        prefix, millis, suffix = session_id.split("_")
        assert prefix == "session"
        assert millis.isdigit()
        assert len(suffix) == 9


class TestEnsure:
    def test_creates_and_persists(self, session_manager, store):
        session_id = session_manager.ensure()
        assert session_id
        assert store.read() == session_id
        assert store.writes == 1

    def test_second_call_returns_same_id_without_storage(self, session_manager, store):
        first = session_manager.ensure()
        reads = store.reads
        assert session_manager.ensure() == first
        assert store.reads == reads
        assert store.writes == 1

    def test_resumes_persisted_id(self, store):
        store.write("persisted-id")
        manager = SessionManager(store)
        assert manager.ensure() == "persisted-id"
        assert store.writes == 1

    def test_no_create_returns_none_without_writing(self, session_manager, store):
        assert session_manager.ensure(create_if_missing=False) is None
        assert store.writes == 0
        assert session_manager.current is None

    def test_no_create_returns_existing(self, session_manager):
        created = session_manager.ensure()
        assert session_manager.ensure(create_if_missing=False) == created

    def test_clear_forgets_id(self, session_manager, store):
        first = session_manager.ensure()
        session_manager.clear()
        assert store.read() is None
        assert session_manager.ensure(create_if_missing=False) is None
        assert session_manager.ensure() != first


class TestInMemoryStore:
    def test_round_trip(self):
        store = InMemorySessionStore()
        assert store.read() is None
        store.write("abc")
        assert store.read() == "abc"
        store.clear()
        assert store.read() is None


class TestFileStore:
    def test_missing_file_reads_none(self, tmp_path):
        assert FileSessionStore(tmp_path / "none.json", KEY).read() is None

    def test_write_then_read_across_instances(self, tmp_path):
        path = tmp_path / "storage.json"
        FileSessionStore(path, KEY).write("abc")
        assert FileSessionStore(path, KEY).read() == "abc"

    def test_other_keys_preserved(self, tmp_path):
        path = tmp_path / "storage.json"
        path.write_text(json.dumps({"theme": "dark"}))
        store = FileSessionStore(path, KEY)
        store.write("abc")
        store.clear()
        assert json.loads(path.read_text()) == {"theme": "dark"}

    def test_corrupt_file_is_fail_soft(self, tmp_path, caplog):
        path = tmp_path / "storage.json"
        path.write_text("{not json")
        store = FileSessionStore(path, KEY)
        assert store.read() is None
        store.clear()
        assert "Unable to read chat session" in caplog.text

    def test_write_replaces_corrupt_file(self, tmp_path):
        path = tmp_path / "storage.json"
        path.write_text("[1, 2]")
        store = FileSessionStore(path, KEY)
        store.write("abc")
        assert store.read() == "abc"

    def test_unwritable_location_is_fail_soft(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory")
        store = FileSessionStore(blocker / "storage.json", KEY)
        store.write("abc")
        assert store.read() is None
        store.clear()

    def test_non_string_value_reads_none(self, tmp_path):
        path = tmp_path / "storage.json"
        path.write_text(json.dumps({KEY: 123}))
        assert FileSessionStore(path, KEY).read() is None

    def test_manager_on_unavailable_storage_still_works(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("x")
        manager = SessionManager(FileSessionStore(blocker / "s.json", KEY))
        first = manager.ensure()
        assert first
        assert manager.ensure() == first


@pytest.mark.parametrize("flag", [True, False])
def test_ensure_is_idempotent_after_creation(session_manager, flag):
    created = session_manager.ensure()
    assert session_manager.ensure(create_if_missing=flag) == created
