"""RPC method registry: maps host-facing method names to orchestrator calls."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from agentsidecar.models.agent import AgentType
from agentsidecar.models.events import CallResult
from agentsidecar.models.requests import (
    CancelRequest,
    ProbeRequest,
    QueryRequest,
    UpdatePermissionModeRequest,
)

if TYPE_CHECKING:
    from agentsidecar.context import SidecarContext
    from agentsidecar.infra.rpc.peer import JsonRpcPeer

logger = logging.getLogger(__name__)


class MethodRegistry:
    """Dispatch table mapping RPC method names to orchestrator calls."""

    def __init__(self, ctx: SidecarContext) -> None:
        self._ctx = ctx
        self._methods: dict[str, Any] = {}
        self._register_all()

    def _register_all(self) -> None:
        """Register all RPC methods."""
        # Server
        self._methods["server.ping"] = self._server_ping

        # Turns (query and updatePermissionMode normally arrive as notifications)
        self._methods["query"] = self._query
        self._methods["cancel"] = self._cancel
        self._methods["updatePermissionMode"] = self._update_permission_mode

        # Claude introspection
        self._methods["claudeAuth"] = self._claude_auth
        self._methods["workspaceInit"] = self._workspace_init
        self._methods["contextUsage"] = self._context_usage

    def install(self, peer: JsonRpcPeer) -> None:
        """Register every method as a handler on the peer."""
        for name, handler in self._methods.items():
            peer.register(name, handler)

    # --- Server ---

    async def _server_ping(self, params: Any) -> str:
        return "pong"

    # --- Turns ---

    async def _query(self, params: Any) -> dict:
        request = QueryRequest.from_params(params)
        service = self._ctx.service_for(request.agent_type)
        logger.debug("Query for %s session %s", request.agent_type.value, request.id)
        await service.run_turn(request.id, request.prompt, request.options)
        return CallResult(request.id, "query_accepted", request.agent_type).to_dict()

    async def _cancel(self, params: Any) -> dict:
        request = CancelRequest.from_params(params)
        service = self._ctx.service_for(request.agent_type)
        cancelled = await service.cancel_turn(request.id)
        return CallResult(
            request.id, "cancel_output", request.agent_type, {"cancelled": cancelled}
        ).to_dict()

    async def _update_permission_mode(self, params: Any) -> dict:
        request = UpdatePermissionModeRequest.from_params(params)
        updated = await self._ctx.claude_service.update_permission_mode(
            request.id, request.permission_mode
        )
        return CallResult(
            request.id, "permission_mode_updated", AgentType.CLAUDE, {"updated": updated}
        ).to_dict()

    # --- Claude introspection ---

    async def _claude_auth(self, params: Any) -> dict:
        result = await self._ctx.claude_service.claude_auth(ProbeRequest.from_params(params))
        return result.to_dict()

    async def _workspace_init(self, params: Any) -> dict:
        result = await self._ctx.claude_service.workspace_init(ProbeRequest.from_params(params))
        return result.to_dict()

    async def _context_usage(self, params: Any) -> dict:
        request = ProbeRequest.from_params(params, require_session=True)
        result = await self._ctx.claude_service.context_usage(request)
        return result.to_dict()
