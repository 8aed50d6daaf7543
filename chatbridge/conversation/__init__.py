from chatbridge.conversation.engine import ConversationEngine, EngineState
from chatbridge.conversation.normalizer import (
    NormalizedResponse,
    ResponseAction,
    ResponseKind,
    ResponseNormalizer,
    SlotShape,
)

__all__ = [
    "ConversationEngine",
    "EngineState",
    "ResponseNormalizer",
    "NormalizedResponse",
    "ResponseAction",
    "ResponseKind",
    "SlotShape",
]
