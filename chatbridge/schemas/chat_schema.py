"""Chat message, scheduling form and outbound payload models."""

import re
import secrets
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, TypedDict

from pydantic import BaseModel, ConfigDict, Field, field_validator



class Sender(str, Enum):
    USER = "user"
    BOT = "bot"


def _new_message_id() -> str:
    return f"{int(time.time() * 1000)}{secrets.token_hex(3)}"


class ConversationMessage(BaseModel):
    """A single entry in the widget's message log."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_message_id)
    sender: Sender
    text: str


class TimeSlot(TypedDict):
    """A bookable option shown in the scheduling form."""

    value: str
    label: str


@dataclass(frozen=True)
class FormState:
    """
    Visibility and contents of the scheduling form.

    A hidden form never carries slots or a message; both are reset
    together with the visibility flag.
    """

    visible: bool = False
    slots: list[TimeSlot] = field(default_factory=list)
    initial_message: str = ""

    def __post_init__(self) -> None:
        if not self.visible and (self.slots or self.initial_message):
            raise ValueError("A hidden form cannot carry slots or an initial message")

    @classmethod
    def hidden(cls) -> "FormState":
        return cls()


class OutboundPayload(TypedDict, total=False):
    """Request body posted to the chat proxy. Extra keys pass through."""

    type: str
    chatInput: str
    session_id: str
    sessionId: str
    formData: Optional[dict[str, Any]]


class FormFields(BaseModel):
    """Scheduling form fields, validated before they reach the conversation."""

    name: str
    email: str
    phone: Optional[str] = None
    preferred_time: str

    @field_validator("name", "email", "preferred_time")
    @classmethod
    def _required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("field is required")
        return value

    @field_validator("phone")
    @classmethod
    def _phone(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        value = value.strip()
        digits = re.sub(r"\D", "", value)
        if not digits:
            raise ValueError("phone number must contain digits")
        # Keep a leading + for international numbers, drop separators.
        return "+" + digits if value.startswith("+") else digits
