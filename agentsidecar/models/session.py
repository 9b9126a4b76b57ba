"""Per-session state kept by the two orchestrators."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from agentsidecar.models.agent import QueryOptions

if TYPE_CHECKING:
    from agentsidecar.services.prompt_channel import PromptChannel


@dataclass(frozen=True)
class SessionSettings:
    """Settings fingerprint of a live push-based session.

    A query whose fingerprint differs from the live one forces a restart of
    the underlying backend session. Directory order is significant.
    """

    env_vars: str = ""
    additional_directories: tuple[str, ...] = ()
    gh_token: str = ""

    @classmethod
    def from_options(cls, options: QueryOptions) -> SessionSettings:
        return cls(
            env_vars=options.claude_env_vars,
            additional_directories=tuple(options.additional_directories),
            gh_token=options.gh_token,
        )


@dataclass
class ClaudeSessionState:
    """Push-based session: one long-lived client fed by a prompt channel."""

    settings: SessionSettings
    model: str = ""
    permission_mode: str = ""
    claude_session_id: str | None = None
    channel: PromptChannel | None = None
    client: Any = None
    stream_task: asyncio.Task | None = None
    last_text: str = ""

    @property
    def is_live(self) -> bool:
        return self.channel is not None and not self.channel.terminated

    def terminate(self) -> None:
        """Close the prompt channel and drop the live handles.

        The entry itself, with its resumable backend session id, survives.
        """
        if self.channel is not None:
            self.channel.terminate()
        self.channel = None
        self.client = None


@dataclass
class CodexSessionState:
    """Turn-based session: a fresh execution per turn against one thread."""

    thread_id: str | None = None
    abort: asyncio.Event | None = None
    task: asyncio.Task | None = None
    item_text: dict[str, str] = field(default_factory=dict)
    tool_summary: dict[str, int] = field(default_factory=dict)

    @property
    def is_live(self) -> bool:
        return self.abort is not None

    def start_turn(self) -> asyncio.Event:
        """Reset per-turn buffers and install a fresh abort signal."""
        self.item_text.clear()
        self.tool_summary = {}
        self.abort = asyncio.Event()
        return self.abort
