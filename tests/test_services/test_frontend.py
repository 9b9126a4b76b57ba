"""Tests for the frontend bridge."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from agentsidecar.models.agent import AgentType
from agentsidecar.models.events import (
    ErrorEvent,
    MessageEvent,
    PlanDecision,
    PlanModeEvent,
    UserQuestion,
)
from agentsidecar.services.frontend import FrontendBridge


@pytest.fixture
def peer():
    peer = MagicMock()
    peer.notify.return_value = True
    peer.call = AsyncMock()
    return peer


class TestNotifications:
    def test_send_message(self, peer):
        bridge = FrontendBridge(peer)
        event = MessageEvent(
            session_id="s1", agent_type=AgentType.CODEX, data={"type": "turn.started"},
            text_delta="lo", text="Hello", thread_id="t-1", tool_summary={},
        )
        assert bridge.send_message(event)
        peer.notify.assert_called_once_with("message", {
            "id": "s1",
            "type": "message",
            "agentType": "codex",
            "data": {"type": "turn.started"},
            "textDelta": "lo",
            "text": "Hello",
            "threadId": "t-1",
            "toolSummary": {},
        })

    def test_send_error(self, peer):
        FrontendBridge(peer).send_error(ErrorEvent("s1", AgentType.CLAUDE, "boom"))
        peer.notify.assert_called_once_with("queryError", {
            "id": "s1", "type": "error", "agentType": "claude", "error": "boom",
        })

    def test_send_enter_plan_mode(self, peer):
        FrontendBridge(peer).send_enter_plan_mode(PlanModeEvent("s1"))
        method, params = peer.notify.call_args.args
        assert method == "enterPlanModeNotification"
        assert params["type"] == "enter_plan_mode_notification"


class TestCalls:
    @pytest.mark.asyncio
    async def test_exit_plan_mode(self, peer):
        peer.call.return_value = {"approved": True, "turnId": 7}
        bridge = FrontendBridge(peer, request_timeout=12.0)
        decision = await bridge.request_exit_plan_mode("s1", {"plan": "do it"})
        assert decision == PlanDecision(approved=True)
        peer.call.assert_awaited_once_with(
            "exitPlanMode", {"sessionId": "s1", "toolInput": {"plan": "do it"}}, timeout=12.0
        )

    @pytest.mark.asyncio
    async def test_ask_user_question(self, peer):
        peer.call.return_value = {"answers": ["Yes"]}
        answers = await FrontendBridge(peer).ask_user_question(
            "s1", [UserQuestion("Proceed?", ("Yes", "No"))]
        )
        assert answers == ["Yes"]
        params = peer.call.call_args.args[1]
        assert params["questions"] == [{"question": "Proceed?", "options": ["Yes", "No"]}]

    @pytest.mark.asyncio
    async def test_get_diff_omits_unset_params(self, peer):
        peer.call.return_value = {"diff": "+x"}
        result = await FrontendBridge(peer).get_diff("s1")
        assert result.diff == "+x"
        assert result.error == ""
        assert peer.call.call_args.args[1] == {"sessionId": "s1"}

    @pytest.mark.asyncio
    async def test_non_object_result_rejected(self, peer):
        peer.call.return_value = "nope"
        with pytest.raises(ValueError, match="expected object"):
            await FrontendBridge(peer).get_diff("s1", file="a.py", stat=True)

    @pytest.mark.asyncio
    async def test_call_failure_propagates(self, peer):
        peer.call.side_effect = TimeoutError("no answer")
        with pytest.raises(TimeoutError):
            await FrontendBridge(peer).request_exit_plan_mode("s1", {})
