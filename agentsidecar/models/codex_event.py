"""Typed view of the JSON Lines events emitted by ``codex exec --json``."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union


class ItemPhase(str, Enum):
    STARTED = "started"
    UPDATED = "updated"
    COMPLETED = "completed"


# Item kinds counted in the per-turn tool summary
TOOL_ITEM_TYPES = frozenset({
    "command_execution",
    "file_change",
    "mcp_tool_call",
    "web_search",
})


@dataclass(frozen=True)
class CodexItem:
    id: str
    type: str
    text: str | None = None

    @property
    def is_agent_message(self) -> bool:
        return self.type == "agent_message"

    @property
    def is_tool(self) -> bool:
        return self.type in TOOL_ITEM_TYPES

    @classmethod
    def from_dict(cls, data: dict) -> CodexItem:
        text = data.get("text")
        return cls(
            id=str(data.get("id", "")),
            type=str(data.get("type") or data.get("item_type") or ""),
            text=text if isinstance(text, str) else None,
        )


@dataclass(frozen=True)
class ThreadStarted:
    thread_id: str
    raw: dict = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class TurnStarted:
    raw: dict = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class ItemEvent:
    phase: ItemPhase
    item: CodexItem
    raw: dict = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class TurnCompleted:
    usage: dict = field(default_factory=dict)
    raw: dict = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class TurnFailed:
    message: str
    raw: dict = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class StreamError:
    message: str
    raw: dict = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class OtherEvent:
    type: str
    raw: dict = field(default_factory=dict, compare=False)


CodexEvent = Union[
    ThreadStarted, TurnStarted, ItemEvent, TurnCompleted, TurnFailed, StreamError, OtherEvent
]

TERMINAL_EVENTS = (TurnCompleted, TurnFailed, StreamError)


def _error_message(data: Any) -> str:
    if isinstance(data, dict):
        return str(data.get("message", ""))
    return str(data or "")


def parse_codex_event(raw: dict) -> CodexEvent:
    """Classify one decoded JSONL event. Unknown types become OtherEvent."""
    kind = raw.get("type", "")

    if kind == "thread.started":
        return ThreadStarted(thread_id=str(raw.get("thread_id", "")), raw=raw)
    if kind == "turn.started":
        return TurnStarted(raw=raw)
    if kind.startswith("item.") and isinstance(raw.get("item"), dict):
        try:
            phase = ItemPhase(kind.split(".", 1)[1])
        except ValueError:
            return OtherEvent(type=kind, raw=raw)
        return ItemEvent(phase=phase, item=CodexItem.from_dict(raw["item"]), raw=raw)
    if kind == "turn.completed":
        usage = raw.get("usage")
        return TurnCompleted(usage=usage if isinstance(usage, dict) else {}, raw=raw)
    if kind == "turn.failed":
        return TurnFailed(message=_error_message(raw.get("error")), raw=raw)
    if kind == "error":
        return StreamError(message=_error_message(raw.get("message", raw)), raw=raw)
    return OtherEvent(type=str(kind), raw=raw)
