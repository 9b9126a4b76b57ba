"""Agent session orchestrator protocol definition."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from agentsidecar.models.agent import QueryOptions


@runtime_checkable
class AgentOrchestrator(Protocol):
    """Protocol for per-backend session orchestrators.

    Each orchestrator owns the session state for its backend kind and
    turns host queries into backend activity and frontend events.
    """

    async def run_turn(self, session_id: str, prompt: str, options: QueryOptions) -> Any:
        """Accept a prompt for the session; events follow asynchronously."""
        ...

    async def cancel_turn(self, session_id: str) -> bool:
        """Stop the session's in-flight turn. Returns False when there was none."""
        ...

    async def close(self) -> None:
        """Stop every live session."""
        ...
