"""Typed view of the messages streamed by the Claude Agent SDK."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from claude_agent_sdk import AssistantMessage, ResultMessage, SystemMessage, TextBlock
from claude_agent_sdk.types import StreamEvent


@dataclass(frozen=True)
class StreamTextDelta:
    """Incremental text from a partial-message stream event."""

    text: str
    session_id: str | None = None


@dataclass(frozen=True)
class MessageStart:
    """A new assistant message began streaming."""

    session_id: str | None = None


@dataclass(frozen=True)
class AssistantText:
    """Full text of a completed assistant message."""

    text: str
    session_id: str | None = None


@dataclass(frozen=True)
class TurnResult:
    session_id: str | None = None
    is_error: bool = False


@dataclass(frozen=True)
class OtherMessage:
    session_id: str | None = None


ClaudeEvent = Union[StreamTextDelta, MessageStart, AssistantText, TurnResult, OtherMessage]


def _session_id_of(message: Any) -> str | None:
    if isinstance(message, SystemMessage):
        data = message.data if isinstance(message.data, dict) else {}
        value = data.get("session_id")
    else:
        value = getattr(message, "session_id", None)
    return value if isinstance(value, str) and value else None


def _stream_event(event: dict, session_id: str | None) -> ClaudeEvent:
    kind = event.get("type")
    if kind == "message_start":
        return MessageStart(session_id=session_id)
    if kind == "content_block_delta":
        delta = event.get("delta") or {}
        text = delta.get("text")
        if isinstance(text, str) and text:
            return StreamTextDelta(text=text, session_id=session_id)
    elif kind == "content_block_start":
        block = event.get("content_block") or {}
        text = block.get("text")
        if isinstance(text, str) and text:
            return StreamTextDelta(text=text, session_id=session_id)
    return OtherMessage(session_id=session_id)


def classify_message(message: Any) -> ClaudeEvent:
    """Reduce an SDK message to the variant the session orchestrator acts on."""
    session_id = _session_id_of(message)

    if isinstance(message, StreamEvent):
        event = message.event if isinstance(message.event, dict) else {}
        return _stream_event(event, session_id)

    if isinstance(message, AssistantMessage):
        text = "".join(
            block.text for block in message.content if isinstance(block, TextBlock)
        )
        if text:
            return AssistantText(text=text, session_id=session_id)
        return OtherMessage(session_id=session_id)

    if isinstance(message, ResultMessage):
        return TurnResult(session_id=session_id, is_error=bool(message.is_error))

    return OtherMessage(session_id=session_id)
