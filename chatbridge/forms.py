"""Scheduling form submission: turns validated fields into a conversation turn."""

import asyncio
import logging
from typing import Any, Mapping, Union

from chatbridge.conversation.engine import ConversationEngine
from chatbridge.schemas.chat_schema import FormFields, OutboundPayload

logger = logging.getLogger(__name__)


def build_form_payload(fields: FormFields, session_id: str) -> OutboundPayload:
    """Tag the fields as a form submission with a readable summary message."""
    form_data = fields.model_dump(exclude_none=True)
    return {
        "type": "form_submit",
        "message": f"Form submission for {fields.name}.",
        "formData": form_data,
        **form_data,
        "session_id": session_id,
    }  # type: ignore[typeddict-unknown-key]


class FormSubmissionAdapter:
    """Submits scheduling form fields through a ConversationEngine."""

    def __init__(self, engine: ConversationEngine) -> None:
        self._engine = engine

    async def submit(self, fields: Union[FormFields, Mapping[str, Any]]) -> str:
        """
        Validate (when given a mapping) and send the form as a structured turn.

        Raises:
            pydantic.ValidationError: If a required field is missing or blank.
        """
        if not isinstance(fields, FormFields):
            fields = FormFields.model_validate(fields)
        session_id = await asyncio.to_thread(self._engine.ensure_session, True)
        payload = build_form_payload(fields, session_id)
        logger.info("Submitting scheduling form for slot %s", fields.preferred_time)
        return await self._engine.send(payload)
