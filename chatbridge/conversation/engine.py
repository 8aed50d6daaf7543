"""
Conversation engine for the chat widget.

Owns the message log, the loading flag and the scheduling form state.
Each turn builds an outbound payload, posts it through the transport,
normalizes the reply and applies it:

    plain text  -> user message appended before the request
    reply       -> bot message appended when non-empty
    form intent -> form opened with normalized slots
    conversation_end -> form closed, reply (if any) appended
    failure     -> one apology bot message

Overlapping sends are serialized so replies land in the order the
visitor asked.
"""

import asyncio
from contextlib import contextmanager
from enum import Enum
from typing import Any, Iterator, Mapping, Optional, Protocol, Union

from chatbridge.config import settings
from chatbridge.conversation.normalizer import (
    NormalizedResponse,
    ResponseKind,
    ResponseNormalizer,
)
from chatbridge.logging_context import get_session_logger, session_scope
from chatbridge.schemas.chat_schema import (
    ConversationMessage,
    FormState,
    OutboundPayload,
    Sender,
)
from chatbridge.session.manager import SessionManager
from chatbridge.transport import TransportResult

logger = get_session_logger(__name__)

UserInput = Union[str, Mapping[str, Any]]


class Transport(Protocol):
    async def post(self, payload: OutboundPayload) -> TransportResult: ...


class EngineState(str, Enum):
    """Observable conversation states."""

    IDLE = "idle"
    AWAITING_RESPONSE = "awaiting_response"
    FORM_OPEN = "form_open"


def _structured_text(payload: Mapping[str, Any]) -> str:
    return payload.get("chatInput") or payload.get("message") or payload.get("userMessage") or ""


def build_outbound_payload(user_input: UserInput, session_id: str) -> OutboundPayload:
    """Merge session identity and defaults into a chat or structured payload."""
    if isinstance(user_input, str):
        return {
            "type": "chat",
            "chatInput": user_input,
            "session_id": session_id,
            "sessionId": session_id,
        }

    payload: dict[str, Any] = {
        "session_id": user_input.get("session_id") or session_id,
        "sessionId": user_input.get("sessionId") or session_id,
        "type": user_input.get("type") or "chat",
        "chatInput": _structured_text(user_input),
        "formData": user_input.get("formData") or None,
    }
    payload.update(user_input)
    return payload  # type: ignore[return-value]


class ConversationEngine:
    """Runs chat turns against the automation relay."""

    def __init__(
        self,
        session: SessionManager,
        transport: Transport,
        normalizer: Optional[ResponseNormalizer] = None,
    ) -> None:
        self._session = session
        self._transport = transport
        self._normalizer = normalizer or ResponseNormalizer()
        self._messages: list[ConversationMessage] = []
        self._form_state = FormState.hidden()
        self._loading = False
        self._turn_lock = asyncio.Lock()

    @property
    def messages(self) -> list[ConversationMessage]:
        return list(self._messages)

    @property
    def is_loading(self) -> bool:
        return self._loading

    @property
    def form_state(self) -> FormState:
        return self._form_state

    @property
    def state(self) -> EngineState:
        if self._loading:
            return EngineState.AWAITING_RESPONSE
        if self._form_state.visible:
            return EngineState.FORM_OPEN
        return EngineState.IDLE

    def ensure_session(self, create_if_missing: bool = True) -> Optional[str]:
        return self._session.ensure(create_if_missing=create_if_missing)

    def clear_messages(self) -> None:
        """Empty the message log. The session identifier is untouched."""
        self._messages.clear()

    def _add_message(self, sender: Sender, text: str) -> ConversationMessage:
        message = ConversationMessage(sender=sender, text=text)
        self._messages.append(message)
        return message

    @contextmanager
    def _awaiting_response(self) -> Iterator[None]:
        self._loading = True
        try:
            yield
        finally:
            self._loading = False

    async def send(self, user_input: UserInput) -> str:
        """
        Send one turn and apply the reply.

        Args:
            user_input: Chat text, or an already-assembled payload such as
                a form submission. Payloads do not add a user message.

        Returns:
            The reply text shown to the visitor ('' when there is none).
        """
        is_payload = not isinstance(user_input, str)
        if not is_payload and not user_input:
            return ""
        if not is_payload:
            self._add_message(Sender.USER, user_input)

        async with self._turn_lock:
            with self._awaiting_response():
                # Storage may be a file, keep it off the event loop.
                session_id = await asyncio.to_thread(self._session.ensure, True)
                with session_scope(session_id):
                    return await self._run_turn(user_input, session_id)

    async def _run_turn(self, user_input: UserInput, session_id: str) -> str:
        payload = build_outbound_payload(user_input, session_id)
        logger.debug("Sending %s turn", payload.get("type"))

        try:
            result = await self._transport.post(payload)
        except Exception as exc:
            logger.exception("Transport raised while sending chat turn")
            result = TransportResult.failure(str(exc) or exc.__class__.__name__)

        if not result.ok:
            logger.error(
                "Chat turn failed: status=%s error=%s",
                result.status_code, result.error,
            )
            return self._apologize()

        try:
            return self._apply(self._normalizer.normalize(result.data))
        except Exception:
            logger.exception("Unable to apply chat reply")
            return self._apologize()

    def _apologize(self) -> str:
        message = settings.messages.connection_error
        self._add_message(Sender.BOT, message)
        return message

    def _apply(self, response: NormalizedResponse) -> str:
        reply = response.reply_text

        if response.kind == ResponseKind.ERROR:
            logger.warning("Relay reported an upstream error: %s", reply)
            self._add_message(Sender.BOT, reply)
            return reply

        if response.kind == ResponseKind.CONVERSATION_END:
            self._form_state = FormState.hidden()
            if reply:
                self._add_message(Sender.BOT, reply)
            logger.info("Conversation ended by automation")
            return reply

        if reply:
            self._add_message(Sender.BOT, reply)

        if response.kind == ResponseKind.FORM:
            self._form_state = FormState(
                visible=True,
                slots=list(response.slots),
                initial_message=reply or settings.messages.form_ready,
            )
            logger.info("Scheduling form opened with %d slot(s)", len(response.slots))

        return reply
