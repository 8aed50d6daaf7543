"""
Chat widget facade: the surface a front end talks to.

Usage:
    widget = create_widget()
    widget.ensure_session()                 # pre-warm on open
    reply = await widget.send("Hi there")
    if widget.form_state.visible:
        await widget.submit_form({"name": "Ada", "email": "ada@example.com",
                                  "preferred_time": widget.form_state.slots[0]["value"]})
"""

from typing import Any, Mapping, Optional, Union

from chatbridge.config import AppConfig, settings
from chatbridge.conversation.engine import ConversationEngine, EngineState, Transport, UserInput
from chatbridge.conversation.normalizer import ResponseNormalizer
from chatbridge.forms import FormSubmissionAdapter
from chatbridge.schemas.chat_schema import ConversationMessage, FormFields, FormState
from chatbridge.session.manager import SessionManager
from chatbridge.session.store import FileSessionStore, SessionStore
from chatbridge.transport import ProxyTransport


class ChatWidget:
    """One visitor's conversation: session, message log and scheduling form."""

    def __init__(self, session: SessionManager, transport: Transport) -> None:
        self._session = session
        self._engine = ConversationEngine(session, transport, ResponseNormalizer())
        self._forms = FormSubmissionAdapter(self._engine)

    @property
    def messages(self) -> list[ConversationMessage]:
        return self._engine.messages

    @property
    def is_loading(self) -> bool:
        return self._engine.is_loading

    @property
    def form_state(self) -> FormState:
        return self._engine.form_state

    @property
    def state(self) -> EngineState:
        return self._engine.state

    async def send(self, user_input: UserInput) -> str:
        return await self._engine.send(user_input)

    async def submit_form(self, fields: Union[FormFields, Mapping[str, Any]]) -> str:
        return await self._forms.submit(fields)

    def clear_messages(self) -> None:
        self._engine.clear_messages()

    def ensure_session(self, create_if_missing: bool = True) -> Optional[str]:
        return self._session.ensure(create_if_missing=create_if_missing)

    def reset_session(self) -> None:
        self._session.clear()


def create_widget(
    config: Optional[AppConfig] = None,
    store: Optional[SessionStore] = None,
    transport: Optional[Transport] = None,
) -> ChatWidget:
    """Wire a ChatWidget from configuration, with optional overrides for tests."""
    config = config or settings
    if store is None:
        store = FileSessionStore(config.session.storage_path, config.session.storage_key)
    if transport is None:
        transport = ProxyTransport(config.proxy.endpoint_url, config.proxy.timeout_sec)
    return ChatWidget(SessionManager(store), transport)
