"""FrontendBridge: the sidecar's view of its frontend collaborator."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from agentsidecar.models.events import (
    DiffResult,
    ErrorEvent,
    MessageEvent,
    PlanDecision,
    PlanModeEvent,
    UserQuestion,
)

if TYPE_CHECKING:
    from agentsidecar.infra.rpc.peer import JsonRpcPeer

logger = logging.getLogger(__name__)

# Notifications
MESSAGE = "message"
QUERY_ERROR = "queryError"
ENTER_PLAN_MODE = "enterPlanModeNotification"

# Calls
EXIT_PLAN_MODE = "exitPlanMode"
ASK_USER_QUESTION = "askUserQuestion"
GET_DIFF = "getDiff"


class FrontendBridge:
    """Typed wrapper over the peer for frontend-bound traffic.

    Events are fire-and-forget notifications. Approval, question and diff
    requests are calls whose failures propagate to the caller.
    """

    def __init__(self, peer: JsonRpcPeer, request_timeout: float | None = None) -> None:
        self._peer = peer
        self._request_timeout = request_timeout

    def send_message(self, event: MessageEvent) -> bool:
        return self._peer.notify(MESSAGE, event.to_dict())

    def send_error(self, event: ErrorEvent) -> bool:
        logger.info("Session %s error: %s", event.session_id, event.error)
        return self._peer.notify(QUERY_ERROR, event.to_dict())

    def send_enter_plan_mode(self, event: PlanModeEvent) -> bool:
        return self._peer.notify(ENTER_PLAN_MODE, event.to_dict())

    async def _call(self, method: str, params: dict) -> dict:
        result = await self._peer.call(method, params, timeout=self._request_timeout)
        if not isinstance(result, dict):
            raise ValueError(f"{method} returned {type(result).__name__}, expected object")
        return result

    async def request_exit_plan_mode(self, session_id: str, tool_input: Any) -> PlanDecision:
        result = await self._call(
            EXIT_PLAN_MODE, {"sessionId": session_id, "toolInput": tool_input}
        )
        return PlanDecision(approved=bool(result.get("approved")))

    async def ask_user_question(self, session_id: str, questions: list[UserQuestion]) -> list[str]:
        result = await self._call(
            ASK_USER_QUESTION,
            {"sessionId": session_id, "questions": [q.to_dict() for q in questions]},
        )
        answers = result.get("answers") or []
        return [str(a) for a in answers]

    async def get_diff(
        self, session_id: str, file: str | None = None, stat: bool | None = None
    ) -> DiffResult:
        params: dict[str, Any] = {"sessionId": session_id}
        if file is not None:
            params["file"] = file
        if stat is not None:
            params["stat"] = stat
        result = await self._call(GET_DIFF, params)
        return DiffResult(diff=result.get("diff") or "", error=result.get("error") or "")
