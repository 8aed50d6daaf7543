from chatbridge.session.manager import SessionManager, generate_session_id
from chatbridge.session.store import FileSessionStore, InMemorySessionStore, SessionStore

__all__ = [
    "SessionManager",
    "SessionStore",
    "FileSessionStore",
    "InMemorySessionStore",
    "generate_session_id",
]
