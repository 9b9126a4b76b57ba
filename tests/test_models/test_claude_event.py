"""Tests for Claude SDK message classification."""

from claude_agent_sdk import AssistantMessage, ResultMessage, SystemMessage, TextBlock, UserMessage
from claude_agent_sdk.types import StreamEvent

from agentsidecar.models.claude_event import (
    AssistantText,
    MessageStart,
    OtherMessage,
    StreamTextDelta,
    TurnResult,
    classify_message,
)


def stream(event: dict) -> StreamEvent:
    return StreamEvent(uuid="u1", session_id="cs-1", event=event, parent_tool_use_id=None)


class TestClassifyMessage:
    def test_content_block_delta(self):
        event = classify_message(stream({
            "type": "content_block_delta", "index": 0, "delta": {"type": "text_delta", "text": "Hel"},
        }))
        assert event == StreamTextDelta(text="Hel", session_id="cs-1")

    def test_content_block_start_with_text(self):
        event = classify_message(stream({
            "type": "content_block_start", "index": 0, "content_block": {"type": "text", "text": "Hi"},
        }))
        assert event == StreamTextDelta(text="Hi", session_id="cs-1")

    def test_non_text_delta(self):
        event = classify_message(stream({
            "type": "content_block_delta", "delta": {"type": "input_json_delta", "partial_json": "{"},
        }))
        assert event == OtherMessage(session_id="cs-1")

    def test_message_start(self):
        assert classify_message(stream({"type": "message_start", "message": {}})) == MessageStart(session_id="cs-1")

    def test_assistant_text_joins_blocks(self):
        message = AssistantMessage(content=[TextBlock(text="Hel"), TextBlock(text="lo")], model="claude-sonnet")
        assert classify_message(message) == AssistantText(text="Hello")

    def test_result(self):
        message = ResultMessage(
            subtype="success", duration_ms=1, duration_api_ms=1,
            is_error=False, num_turns=1, session_id="cs-9",
        )
        assert classify_message(message) == TurnResult(session_id="cs-9")

    def test_system_message_carries_session_id(self):
        message = SystemMessage(subtype="init", data={"session_id": "cs-2"})
        assert classify_message(message) == OtherMessage(session_id="cs-2")

    def test_user_message(self):
        assert classify_message(UserMessage(content="hi")) == OtherMessage()
