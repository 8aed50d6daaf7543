"""Tests for import chains and module integrity.

Ensures all public modules can be imported without errors and
that re-exports from __init__.py files work correctly.
"""

import logging


class TestPackageImports:
    def test_import_schemas(self):
        from chatbridge.schemas.chat_schema import FormState, Sender
        assert Sender.BOT == "bot"
        assert not FormState.hidden().visible

    def test_conversation_reexports(self):
        from chatbridge.conversation import (
            ConversationEngine, EngineState, ResponseKind, ResponseNormalizer,
        )
        assert EngineState.FORM_OPEN == "form_open"
        assert ResponseKind.MESSAGE == "message"
        assert ConversationEngine is not None
        assert ResponseNormalizer is not None

    def test_session_reexports(self):
        from chatbridge.session import FileSessionStore, InMemorySessionStore, SessionManager
        assert SessionManager(InMemorySessionStore()).current is None
        assert FileSessionStore is not None

    def test_import_proxy_app(self):
        from chatbridge.proxy import app
        assert any(getattr(r, "path", None) == "/api/chatbot" for r in app.routes)


class TestFormStateInvariant:
    def test_hidden_form_rejects_slots(self):
        import pytest
        from chatbridge.schemas.chat_schema import FormState

        with pytest.raises(ValueError):
            FormState(visible=False, slots=[{"value": "a", "label": "A"}])
        with pytest.raises(ValueError):
            FormState(visible=False, initial_message="hi")


class TestSessionLogging:
    def test_session_id_injected_inside_scope(self, caplog):
        from chatbridge.logging_context import get_session_logger, session_scope

        logger = get_session_logger("chatbridge.test")
        with caplog.at_level(logging.INFO, logger="chatbridge.test"):
            with session_scope("sess-xyz"):
                logger.info("hello")
            logger.info("bye")
        assert caplog.records[-2].session_id == "sess-xyz"
        assert caplog.records[-1].session_id == "-"

    def test_scope_restored_on_error(self):
        import pytest
        from chatbridge.logging_context import NO_SESSION, SessionIdFilter, session_scope

        with pytest.raises(RuntimeError):
            with session_scope("sess-err"):
                raise RuntimeError("turn failed")
        record = logging.LogRecord("x", logging.INFO, __file__, 0, "msg", None, None)
        SessionIdFilter().filter(record)
        assert record.session_id == NO_SESSION

    def test_filter_added_once(self):
        from chatbridge.logging_context import SessionIdFilter, get_session_logger

        get_session_logger("chatbridge.once")
        logger = get_session_logger("chatbridge.once")
        assert sum(isinstance(f, SessionIdFilter) for f in logger.filters) == 1

    def test_handler_filter_formats_foreign_records(self):
        from chatbridge.config import LOG_FORMAT
        from chatbridge.logging_context import install_session_filter

        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        install_session_filter([handler])
        install_session_filter([handler])
        assert len(handler.filters) == 1

        record = logging.LogRecord("httpx", logging.INFO, __file__, 0, "request", None, None)
        assert handler.filter(record)
        assert "[-] INFO: request" in handler.format(record)
