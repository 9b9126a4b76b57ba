"""Claude Agent SDK backend: client options and environment."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from claude_agent_sdk import ClaudeAgentOptions

from agentsidecar.infra.env import parse_env_string
from agentsidecar.models.agent import PermissionMode, QueryOptions

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = {"type": "preset", "preset": "claude_code"}
DEFAULT_SETTING_SOURCES = ("user", "project", "local")


class ClaudeCodeBackend:
    """Builds ``ClaudeAgentOptions`` for streaming sessions and probes.

    Sessions run with the ``claude_code`` preset system prompt, user,
    project and local settings, and partial message streaming.
    """

    def __init__(
        self,
        cli_path: str = "",
        setting_sources: Sequence[str] = DEFAULT_SETTING_SOURCES,
        include_partial_messages: bool = True,
    ) -> None:
        self._cli_path = cli_path
        self._setting_sources = list(setting_sources)
        self._include_partial_messages = include_partial_messages

    @staticmethod
    def build_env(env_vars: str = "", gh_token: str = "") -> dict[str, str]:
        """Environment overrides for the CLI process.

        The SDK layers these over the inherited environment, so a key given
        an empty value ends up blank in the child.
        """
        env = parse_env_string(env_vars) if env_vars else {}
        if gh_token:
            env["GH_TOKEN"] = gh_token
        return env

    def _base_kwargs(self, cwd: str) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "cwd": cwd,
            "system_prompt": dict(DEFAULT_SYSTEM_PROMPT),
        }
        if self._cli_path:
            kwargs["cli_path"] = self._cli_path
        return kwargs

    def session_options(
        self,
        options: QueryOptions,
        *,
        resume: str | None = None,
        can_use_tool: Any = None,
        hooks: dict | None = None,
        mcp_servers: dict | None = None,
    ) -> ClaudeAgentOptions:
        """Options for a long-lived streaming session."""
        kwargs = self._base_kwargs(options.cwd)
        kwargs.update(
            permission_mode=PermissionMode.normalize(options.permission_mode).value,
            setting_sources=list(self._setting_sources),
            include_partial_messages=self._include_partial_messages,
            add_dirs=list(options.additional_directories),
            env=self.build_env(options.claude_env_vars, options.gh_token),
        )
        if options.model:
            kwargs["model"] = options.model
        if resume:
            kwargs["resume"] = resume
        if options.resume_session_at:
            kwargs["extra_args"] = {"resume-session-at": options.resume_session_at}
        if can_use_tool is not None:
            kwargs["can_use_tool"] = can_use_tool
        if hooks:
            kwargs["hooks"] = hooks
        if mcp_servers:
            kwargs["mcp_servers"] = mcp_servers
        return ClaudeAgentOptions(**kwargs)

    def probe_options(
        self,
        cwd: str,
        *,
        resume: str | None = None,
        env: dict[str, str] | None = None,
        with_settings: bool = True,
    ) -> ClaudeAgentOptions:
        """Options for a short-lived introspection client."""
        kwargs = self._base_kwargs(cwd)
        if with_settings:
            kwargs["setting_sources"] = list(self._setting_sources)
        if resume:
            kwargs["resume"] = resume
        if env:
            kwargs["env"] = env
        return ClaudeAgentOptions(**kwargs)
