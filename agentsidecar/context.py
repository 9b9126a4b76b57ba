"""SidecarContext: wires config, the peer and the orchestrators together."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from agentsidecar.config import SidecarConfig, load_config
from agentsidecar.models.agent import AgentType

if TYPE_CHECKING:
    from agentsidecar.infra.agents.base import AgentOrchestrator
    from agentsidecar.infra.rpc.peer import JsonRpcPeer
    from agentsidecar.services.claude_session_service import ClaudeSessionService
    from agentsidecar.services.codex_session_service import CodexSessionService
    from agentsidecar.services.frontend import FrontendBridge

logger = logging.getLogger(__name__)


class SidecarContext:
    """Per-connection wiring for all sidecar dependencies.

    Each host connection gets its own peer, frontend bridge and session
    orchestrators. Services are created lazily on first access.
    """

    def __init__(self, peer: JsonRpcPeer, config: SidecarConfig | None = None) -> None:
        self.config = config or load_config()
        self.peer = peer
        self._frontend: FrontendBridge | None = None
        self._claude_service: ClaudeSessionService | None = None
        self._codex_service: CodexSessionService | None = None

    async def close(self) -> None:
        """Stop live sessions, then the peer."""
        for service in (self._claude_service, self._codex_service):
            if service is not None:
                try:
                    await service.close()
                except Exception:
                    logger.exception("Error closing %s", type(service).__name__)
        self.peer.shutdown()
        logger.info("SidecarContext closed")

    @property
    def frontend(self) -> FrontendBridge:
        if self._frontend is None:
            from agentsidecar.services.frontend import FrontendBridge

            self._frontend = FrontendBridge(
                self.peer, request_timeout=self.config.server.request_timeout
            )
        return self._frontend

    @property
    def claude_service(self) -> ClaudeSessionService:
        if self._claude_service is None:
            from agentsidecar.infra.agents.registry import get_backend
            from agentsidecar.services.claude_session_service import ClaudeSessionService

            self._claude_service = ClaudeSessionService(
                get_backend(AgentType.CLAUDE, self.config), self.frontend
            )
        return self._claude_service

    @property
    def codex_service(self) -> CodexSessionService:
        if self._codex_service is None:
            from agentsidecar.infra.agents.registry import get_backend
            from agentsidecar.services.codex_session_service import CodexSessionService

            self._codex_service = CodexSessionService(
                get_backend(AgentType.CODEX, self.config), self.frontend
            )
        return self._codex_service

    def service_for(self, agent_type: AgentType) -> AgentOrchestrator:
        """Route a request to the orchestrator for its backend kind."""
        if agent_type is AgentType.CLAUDE:
            return self.claude_service
        if agent_type is AgentType.CODEX:
            return self.codex_service
        raise ValueError(f"Unsupported agent type: {agent_type.value}")
