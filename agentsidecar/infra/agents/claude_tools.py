"""Frontend-backed tools and approval gates for Claude sessions.

Everything here closes over a session id and a frontend bridge: the
``conductor`` in-process MCP server, the plan-exit permission gate and the
plan-entry hook.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from claude_agent_sdk import HookMatcher, create_sdk_mcp_server, tool
from claude_agent_sdk.types import PermissionResultAllow, PermissionResultDeny, PermissionUpdate

from agentsidecar.models.events import PlanModeEvent, UserQuestion

if TYPE_CHECKING:
    from agentsidecar.services.frontend import FrontendBridge

logger = logging.getLogger(__name__)

CONDUCTOR_SERVER = "conductor"
CANCELLED_ANSWER = "USER_CANCELLED"
MAX_QUESTIONS = 4
MAX_OPTIONS = 4
PLAN_EXIT_TOOL = "ExitPlanMode"
PLAN_ENTER_TOOL = "EnterPlanMode"
PLAN_DENIED_MESSAGE = "Plan denied by user. Please await further guidance."

ASK_USER_QUESTION_SCHEMA = {
    "type": "object",
    "properties": {
        "questions": {
            "type": "array",
            "maxItems": MAX_QUESTIONS,
            "items": {
                "type": "object",
                "properties": {
                    "question": {"type": "string", "description": "The question to ask the user"},
                    "options": {
                        "type": "array",
                        "items": {"type": "string"},
                        "maxItems": MAX_OPTIONS,
                        "description": "Available options for the user",
                    },
                },
                "required": ["question", "options"],
            },
        },
    },
    "required": ["questions"],
}

GET_WORKSPACE_DIFF_SCHEMA = {
    "type": "object",
    "properties": {
        "file": {"type": "string", "description": "Absolute path to a file to diff"},
        "stat": {"type": "boolean", "description": "Return git diff --stat instead of full diff"},
    },
}


def _text_result(text: str, is_error: bool = False) -> dict[str, Any]:
    result: dict[str, Any] = {"content": [{"type": "text", "text": text}]}
    if is_error:
        result["is_error"] = True
    return result


def parse_questions(args: dict[str, Any]) -> list[UserQuestion]:
    """Validate tool arguments into at most four questions of at most four options."""
    raw = args.get("questions")
    if not isinstance(raw, list) or not raw:
        raise ValueError("questions must be a non-empty list")
    if len(raw) > MAX_QUESTIONS:
        raise ValueError(f"At most {MAX_QUESTIONS} questions may be asked at once")

    questions: list[UserQuestion] = []
    for entry in raw:
        if not isinstance(entry, dict) or not isinstance(entry.get("question"), str):
            raise ValueError("Each question needs a 'question' string")
        options = entry.get("options") or []
        if len(options) > MAX_OPTIONS:
            raise ValueError(f"At most {MAX_OPTIONS} options per question")
        questions.append(
            UserQuestion(question=entry["question"], options=tuple(str(o) for o in options))
        )
    return questions


def format_answers(answers: list[str]) -> str:
    if answers == [CANCELLED_ANSWER]:
        return "User cancelled the question. Please continue without this information."
    lines = [f"{i}. {answer}" for i, answer in enumerate(answers, start=1)]
    return "User responses:\n" + "\n".join(lines)


async def ask_user_question(
    frontend: FrontendBridge, session_id: str, args: dict[str, Any]
) -> dict[str, Any]:
    try:
        questions = parse_questions(args)
    except ValueError as e:
        return _text_result(str(e), is_error=True)
    answers = await frontend.ask_user_question(session_id, questions)
    return _text_result(format_answers(answers))


async def get_workspace_diff(
    frontend: FrontendBridge, session_id: str, args: dict[str, Any]
) -> dict[str, Any]:
    result = await frontend.get_diff(session_id, file=args.get("file"), stat=args.get("stat"))
    if result.error:
        return _text_result(f"Error getting diff: {result.error}")
    return _text_result(result.diff or "No changes found.")


def build_conductor_server(frontend: FrontendBridge, session_id: str) -> Any:
    """In-process MCP server exposing the frontend-backed tools."""

    @tool(
        "AskUserQuestion",
        'Use this tool to ask the user questions. Do not include an "Other" option; '
        "it is provided automatically.",
        ASK_USER_QUESTION_SCHEMA,
    )
    async def _ask_user_question(args: dict[str, Any]) -> dict[str, Any]:
        return await ask_user_question(frontend, session_id, args)

    @tool(
        "GetWorkspaceDiff",
        "Returns the current workspace diff. Use this when you need a unified diff or diff stats.",
        GET_WORKSPACE_DIFF_SCHEMA,
    )
    async def _get_workspace_diff(args: dict[str, Any]) -> dict[str, Any]:
        return await get_workspace_diff(frontend, session_id, args)

    return create_sdk_mcp_server(
        name=CONDUCTOR_SERVER,
        version="1.0.0",
        tools=[_ask_user_question, _get_workspace_diff],
    )


def make_permission_gate(frontend: FrontendBridge, session_id: str):
    """``can_use_tool`` callback: plan exit needs frontend approval, all else passes."""

    async def can_use_tool(tool_name: str, tool_input: dict[str, Any], context: Any):
        if tool_name != PLAN_EXIT_TOOL:
            return PermissionResultAllow(updated_input=tool_input)

        decision = await frontend.request_exit_plan_mode(session_id, tool_input)
        if decision.approved:
            logger.info("Plan approved for %s", session_id)
            return PermissionResultAllow(
                updated_input=tool_input,
                updated_permissions=[
                    PermissionUpdate(type="setMode", mode="default", destination="session")
                ],
            )
        logger.info("Plan denied for %s", session_id)
        return PermissionResultDeny(message=PLAN_DENIED_MESSAGE, interrupt=True)

    return can_use_tool


def make_plan_mode_hooks(frontend: FrontendBridge, session_id: str) -> dict[str, list]:
    """PostToolUse hook announcing that the agent entered plan mode."""

    async def on_enter_plan_mode(input_data: Any, tool_use_id: str | None, context: Any) -> dict:
        frontend.send_enter_plan_mode(PlanModeEvent(session_id=session_id))
        return {}

    return {"PostToolUse": [HookMatcher(matcher=PLAN_ENTER_TOOL, hooks=[on_enter_plan_mode])]}
