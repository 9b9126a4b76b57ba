"""Events emitted to the frontend collaborator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from agentsidecar.models.agent import AgentType

ABORTED_BY_USER = "aborted by user"


@dataclass(frozen=True)
class TextUpdate:
    """Text extracted from one backend event.

    ``delta`` is the portion not yet seen by the frontend; ``text`` is the
    full text observed so far when the event carried it.
    """

    delta: str = ""
    text: str | None = None
    is_final: bool = False


@dataclass(frozen=True)
class MessageEvent:
    """A forwarded backend event plus the text deltas derived from it."""

    session_id: str
    agent_type: AgentType
    data: Any
    text_delta: str = ""
    text: str | None = None
    is_final: bool = False
    agent_session_id: str | None = None
    thread_id: str | None = None
    tool_summary: dict[str, int] | None = None

    def to_dict(self) -> dict:
        d: dict = {
            "id": self.session_id,
            "type": "message",
            "agentType": self.agent_type.value,
            "data": self.data,
        }
        if self.text_delta:
            d["textDelta"] = self.text_delta
        if self.text is not None:
            d["text"] = self.text
        if self.is_final:
            d["isFinal"] = True
        if self.agent_session_id:
            d["agentSessionId"] = self.agent_session_id
        if self.thread_id:
            d["threadId"] = self.thread_id
        if self.tool_summary is not None:
            d["toolSummary"] = dict(self.tool_summary)
        return d


@dataclass(frozen=True)
class ErrorEvent:
    session_id: str
    agent_type: AgentType
    error: str

    def to_dict(self) -> dict:
        return {
            "id": self.session_id,
            "type": "error",
            "agentType": self.agent_type.value,
            "error": self.error,
        }


@dataclass(frozen=True)
class PlanModeEvent:
    session_id: str
    agent_type: AgentType = AgentType.CLAUDE

    def to_dict(self) -> dict:
        return {
            "id": self.session_id,
            "type": "enter_plan_mode_notification",
            "agentType": self.agent_type.value,
        }


@dataclass(frozen=True)
class UserQuestion:
    question: str
    options: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {"question": self.question, "options": list(self.options)}


@dataclass(frozen=True)
class PlanDecision:
    approved: bool


@dataclass(frozen=True)
class DiffResult:
    diff: str = ""
    error: str = ""


@dataclass(frozen=True)
class CallResult:
    """Result of a host call, tagged with the backend kind that produced it."""

    session_id: str
    type: str
    agent_type: AgentType
    payload: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "id": self.session_id,
            "type": self.type,
            "agentType": self.agent_type.value,
            **self.payload,
        }
