"""
Response normalization for loosely-typed automation replies.

The upstream workflow answers with JSON of no fixed shape. This module
turns any JSON value into one ``NormalizedResponse``:

    reply_text  first non-empty of output / reply / response / message / text
    action      render_form | show_form | conversation_end | None
    slots       time slots for the scheduling form (only when a form is shown)
    kind        ERROR | CONVERSATION_END | FORM | MESSAGE

Slots arrive in several shapes (see ``SlotShape``). Classification and
unwrapping are total: any unrecognized value degrades to the default
morning / afternoon / evening choice instead of raising.

Usage:
    normalizer = ResponseNormalizer()
    result = normalizer.normalize({"reply": "Use the form below."})
    assert result.kind == ResponseKind.FORM
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from chatbridge.config import settings
from chatbridge.schemas.chat_schema import TimeSlot

logger = logging.getLogger(__name__)

REPLY_FIELDS = ("output", "reply", "response", "message", "text")

FORM_INTENT_PHRASES = ("use the form below", "fill out the form")

DEFAULT_SLOTS: tuple[TimeSlot, ...] = (
    {"value": "morning", "label": "Morning"},
    {"value": "afternoon", "label": "Afternoon"},
    {"value": "evening", "label": "Evening"},
)


class ResponseAction(str, Enum):
    """Action tokens the automation may set on a reply."""

    RENDER_FORM = "render_form"
    SHOW_FORM = "show_form"
    CONVERSATION_END = "conversation_end"


FORM_ACTIONS = frozenset({ResponseAction.RENDER_FORM, ResponseAction.SHOW_FORM})


class ResponseKind(str, Enum):
    """What the conversation should do with a normalized reply."""

    ERROR = "error"
    CONVERSATION_END = "conversation_end"
    FORM = "form"
    MESSAGE = "message"


class SlotShape(str, Enum):
    """Recognized layouts of the ``slots`` field."""

    WRAPPED_LIST = "wrapped_list"        # [{"slot": {...}}, ...]
    PLAIN_LIST = "plain_list"            # [{"value", "label"}, ...]
    SLOTS_WRAPPER = "slots_wrapper"      # {"slots": [...]}
    SINGLE_SLOT = "single_slot"          # {"value", "label"}
    SINGLE_WRAPPED = "single_wrapped"    # {"slot": {...}}
    SLOT_MAP = "slot_map"                # {"0": {...}, "1": {...}}
    UNRECOGNIZED = "unrecognized"


@dataclass(frozen=True)
class NormalizedResponse:
    """Canonical form of one upstream reply."""

    kind: ResponseKind
    reply_text: str = ""
    action: Optional[ResponseAction] = None
    slots: list[TimeSlot] = field(default_factory=list)

    @property
    def shows_form(self) -> bool:
        return self.kind == ResponseKind.FORM


def extract_reply_text(data: Any) -> str:
    """Return the first non-empty reply field, the value itself if it is a string, or ''."""
    if isinstance(data, dict):
        for name in REPLY_FIELDS:
            value = data.get(name)
            if isinstance(value, str) and value:
                return value
        return ""
    if isinstance(data, str):
        return data
    return ""


def extract_action(data: Any) -> Optional[ResponseAction]:
    if not isinstance(data, dict):
        return None
    raw = data.get("action")
    if not isinstance(raw, str):
        return None
    try:
        return ResponseAction(raw)
    except ValueError:
        return None


def infers_form_intent(reply_text: str) -> bool:
    """The automation does not always set ``action``; some replies point at the form in prose."""
    lower = reply_text.lower()
    return any(phrase in lower for phrase in FORM_INTENT_PHRASES)


def _has_slot_start(slot: Any) -> bool:
    return isinstance(slot, dict) and bool(slot.get("start") or slot.get("startTimeDisplay"))


def _wraps_slot(entry: Any) -> bool:
    return isinstance(entry, dict) and isinstance(entry.get("slot"), dict)


def unwrap_slot(entry: Any) -> Any:
    """
    Convert ``{"slot": {start, startTimeDisplay, endTimeDisplay}}`` to a TimeSlot.

    Entries whose inner slot has neither ``start`` nor ``startTimeDisplay``
    are returned unchanged.
    """
    if not isinstance(entry, dict):
        return entry
    slot = entry.get("slot")
    if not _has_slot_start(slot):
        return entry
    start = slot.get("start")
    start_display = slot.get("startTimeDisplay")
    end_display = slot.get("endTimeDisplay")
    return {
        "value": start or start_display,
        "label": f"{start_display or start} - {end_display or ''}",
    }


def _parse_slots(raw: Any) -> Any:
    if not isinstance(raw, str):
        return raw
    try:
        return json.loads(raw)
    except (ValueError, RecursionError) as exc:
        logger.warning("Failed to parse slots string: %s", exc)
        return None


def classify_slots(parsed: Any) -> SlotShape:
    """Decide which layout a parsed ``slots`` value uses."""
    if isinstance(parsed, list):
        if parsed and isinstance(parsed[0], dict) and "slot" in parsed[0]:
            return SlotShape.WRAPPED_LIST
        return SlotShape.PLAIN_LIST
    if not isinstance(parsed, dict):
        return SlotShape.UNRECOGNIZED
    if isinstance(parsed.get("slots"), list):
        return SlotShape.SLOTS_WRAPPER
    if "value" in parsed and "label" in parsed:
        return SlotShape.SINGLE_SLOT
    if isinstance(parsed.get("slot"), dict):
        return SlotShape.SINGLE_WRAPPED
    return SlotShape.SLOT_MAP


def normalize_slots(raw: Any) -> list[TimeSlot]:
    """Normalize any ``slots`` value to a non-empty slot list."""
    parsed = _parse_slots(raw)
    shape = classify_slots(parsed)

    if shape == SlotShape.WRAPPED_LIST:
        slots = [unwrap_slot(item) for item in parsed]
    elif shape == SlotShape.PLAIN_LIST:
        slots = list(parsed)
    elif shape == SlotShape.SLOTS_WRAPPER:
        slots = list(parsed["slots"])
    elif shape == SlotShape.SINGLE_SLOT:
        slots = [parsed]
    elif shape == SlotShape.SINGLE_WRAPPED:
        slots = [unwrap_slot(parsed)] if _has_slot_start(parsed["slot"]) else []
    elif shape == SlotShape.SLOT_MAP:
        slots = [
            unwrap_slot(entry) if _wraps_slot(entry) else entry
            for entry in parsed.values()
            if isinstance(entry, dict)
            and (("value" in entry and "label" in entry) or _wraps_slot(entry))
        ]
    else:
        slots = []

    logger.debug("Slots shape %s produced %d slot(s)", shape.value, len(slots))
    if not slots:
        return [TimeSlot(value=slot["value"], label=slot["label"]) for slot in DEFAULT_SLOTS]
    return slots


class ResponseNormalizer:
    """Pure decoder from an upstream JSON value to a NormalizedResponse."""

    def __init__(self, error_fallback: Optional[str] = None) -> None:
        self.error_fallback = error_fallback or settings.messages.upstream_error

    def normalize(self, data: Any) -> NormalizedResponse:
        if isinstance(data, dict) and data.get("error"):
            message = data.get("message")
            reply = message if isinstance(message, str) and message else self.error_fallback
            return NormalizedResponse(kind=ResponseKind.ERROR, reply_text=reply)

        reply_text = extract_reply_text(data)
        action = extract_action(data)

        if action == ResponseAction.CONVERSATION_END:
            return NormalizedResponse(
                kind=ResponseKind.CONVERSATION_END, reply_text=reply_text, action=action
            )

        if action in FORM_ACTIONS or infers_form_intent(reply_text):
            raw_slots = data.get("slots") if isinstance(data, dict) else None
            return NormalizedResponse(
                kind=ResponseKind.FORM,
                reply_text=reply_text,
                action=action,
                slots=normalize_slots(raw_slots),
            )

        return NormalizedResponse(kind=ResponseKind.MESSAGE, reply_text=reply_text, action=action)
