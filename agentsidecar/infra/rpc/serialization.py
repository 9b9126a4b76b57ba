"""SDK object <-> JSON conversion for RPC transport."""

from __future__ import annotations

import dataclasses
from typing import Any

# SDK message class name -> wire ``type`` tag
_MESSAGE_TYPES = {
    "AssistantMessage": "assistant",
    "UserMessage": "user",
    "SystemMessage": "system",
    "ResultMessage": "result",
    "StreamEvent": "stream_event",
}


def serialize_sdk_message(message: Any) -> Any:
    """Convert a Claude Agent SDK message into a JSON-safe dict tagged by kind."""
    if isinstance(message, dict):
        return message
    kind = _MESSAGE_TYPES.get(type(message).__name__, type(message).__name__)
    if dataclasses.is_dataclass(message) and not isinstance(message, type):
        return {"type": kind, **dataclasses.asdict(message)}
    return {"type": kind, "value": str(message)}
