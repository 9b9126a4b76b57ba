"""Agent domain models: backend kinds, query options, subprocess specs."""

from __future__ import annotations

import shlex
from dataclasses import dataclass, field
from enum import Enum


class AgentType(str, Enum):
    CLAUDE = "claude"
    CODEX = "codex"
    UNKNOWN = "unknown"


class PermissionMode(str, Enum):
    DEFAULT = "default"
    ACCEPT_EDITS = "acceptEdits"
    BYPASS_PERMISSIONS = "bypassPermissions"
    PLAN = "plan"
    DELEGATE = "delegate"
    DONT_ASK = "dontAsk"

    @classmethod
    def normalize(cls, value: str | None) -> PermissionMode:
        """Map a host-supplied mode onto a known one, falling back to default."""
        try:
            return cls(value)
        except ValueError:
            return cls.DEFAULT


@dataclass(frozen=True)
class QueryOptions:
    """Per-turn options supplied by the host with each query."""

    cwd: str
    model: str = ""
    permission_mode: str = ""
    turn_id: int | None = None
    resume: str = ""
    resume_session_at: str = ""
    should_reset_generator: bool = False
    claude_env_vars: str = ""
    additional_directories: tuple[str, ...] = ()
    gh_token: str = ""
    conductor_env: dict[str, str] = field(default_factory=dict)
    codex_api_key: str = ""
    codex_base_url: str = ""
    codex_model_reasoning_effort: str = ""


@dataclass(frozen=True)
class CommandSpec:
    """Specification for launching an agent subprocess."""

    program: str
    args: tuple[str, ...] = ()
    env: dict[str, str] | None = None
    cwd: str | None = None

    @property
    def full_command(self) -> str:
        """Return the full command string for shell execution."""
        parts = [self.program, *self.args]
        return " ".join(shlex.quote(p) for p in parts)
