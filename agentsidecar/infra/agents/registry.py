"""Agent backend factory/registry."""

from __future__ import annotations

from agentsidecar.config import SidecarConfig
from agentsidecar.infra.agents.claude_code import ClaudeCodeBackend
from agentsidecar.infra.agents.codex import CodexBackend
from agentsidecar.models.agent import AgentType


def _claude_backend(config: SidecarConfig) -> ClaudeCodeBackend:
    return ClaudeCodeBackend(
        cli_path=config.claude.cli_path,
        setting_sources=config.claude.setting_sources,
        include_partial_messages=config.claude.include_partial_messages,
    )


def _codex_backend(config: SidecarConfig) -> CodexBackend:
    return CodexBackend(
        command=config.codex.command,
        sandbox_mode=config.codex.sandbox_mode,
        approval_policy=config.codex.approval_policy,
        network_access=config.codex.network_access,
        web_search=config.codex.web_search,
    )


_BACKENDS = {
    AgentType.CLAUDE: _claude_backend,
    AgentType.CODEX: _codex_backend,
}


def get_backend(agent_type: AgentType | str, config: SidecarConfig) -> ClaudeCodeBackend | CodexBackend:
    """Get a configured agent backend instance by type."""
    if isinstance(agent_type, str):
        agent_type = AgentType(agent_type)

    factory = _BACKENDS.get(agent_type)
    if factory is None:
        raise ValueError(f"Unsupported agent type: {agent_type.value}")
    return factory(config)
