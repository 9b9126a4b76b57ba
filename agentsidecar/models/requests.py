"""Host request payloads and their validation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from agentsidecar.models.agent import AgentType, QueryOptions


def _require_dict(value: Any, name: str) -> dict:
    if not isinstance(value, dict):
        raise ValueError(f"{name} must be an object")
    return value


def _require_str(params: dict, key: str) -> str:
    value = params.get(key)
    if not isinstance(value, str) or not value:
        raise ValueError(f"Missing or empty required parameter: {key}")
    return value


def _optional_str(params: dict, key: str) -> str:
    value = params.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a string")
    return value


def _agent_type(params: dict) -> AgentType:
    raw = params.get("agentType")
    try:
        return AgentType(raw)
    except ValueError:
        raise ValueError(f"Invalid agentType: {raw!r}") from None


def parse_query_options(raw: Any) -> QueryOptions:
    options = _require_dict(raw, "options")

    dirs = options.get("additionalDirectories") or []
    if not isinstance(dirs, list) or not all(isinstance(d, str) for d in dirs):
        raise ValueError("additionalDirectories must be a list of strings")

    conductor_env = options.get("conductorEnv") or {}
    if not isinstance(conductor_env, dict):
        raise ValueError("conductorEnv must be an object")

    turn_id = options.get("turnId")
    if turn_id is not None and (not isinstance(turn_id, int) or isinstance(turn_id, bool)):
        raise ValueError("turnId must be an integer")

    return QueryOptions(
        cwd=_require_str(options, "cwd"),
        model=_optional_str(options, "model"),
        permission_mode=_optional_str(options, "permissionMode"),
        turn_id=turn_id,
        resume=_optional_str(options, "resume"),
        resume_session_at=_optional_str(options, "resumeSessionAt"),
        should_reset_generator=bool(options.get("shouldResetGenerator", False)),
        claude_env_vars=_optional_str(options, "claudeEnvVars"),
        additional_directories=tuple(dirs),
        gh_token=_optional_str(options, "ghToken"),
        conductor_env={str(k): "" if v is None else str(v) for k, v in conductor_env.items()},
        codex_api_key=_optional_str(options, "codexApiKey"),
        codex_base_url=_optional_str(options, "codexBaseUrl"),
        codex_model_reasoning_effort=_optional_str(options, "codexModelReasoningEffort"),
    )


@dataclass(frozen=True)
class QueryRequest:
    id: str
    agent_type: AgentType
    prompt: str
    options: QueryOptions

    @classmethod
    def from_params(cls, params: Any) -> QueryRequest:
        params = _require_dict(params, "params")
        prompt = params.get("prompt")
        if not isinstance(prompt, str):
            raise ValueError("prompt must be a string")
        return cls(
            id=_require_str(params, "id"),
            agent_type=_agent_type(params),
            prompt=prompt,
            options=parse_query_options(params.get("options")),
        )


@dataclass(frozen=True)
class CancelRequest:
    id: str
    agent_type: AgentType

    @classmethod
    def from_params(cls, params: Any) -> CancelRequest:
        params = _require_dict(params, "params")
        return cls(id=_require_str(params, "id"), agent_type=_agent_type(params))


@dataclass(frozen=True)
class UpdatePermissionModeRequest:
    id: str
    permission_mode: str

    @classmethod
    def from_params(cls, params: Any) -> UpdatePermissionModeRequest:
        params = _require_dict(params, "params")
        if params.get("agentType", AgentType.CLAUDE.value) != AgentType.CLAUDE.value:
            raise ValueError("updatePermissionMode is only supported for claude")
        return cls(
            id=_require_str(params, "id"),
            permission_mode=_require_str(params, "permissionMode"),
        )


@dataclass(frozen=True)
class ProbeRequest:
    """Backend introspection request (auth, workspace init, context usage)."""

    id: str
    cwd: str
    gh_token: str = ""
    claude_env_vars: str = ""
    claude_session_id: str = ""

    @classmethod
    def from_params(cls, params: Any, require_session: bool = False) -> ProbeRequest:
        params = _require_dict(params, "params")
        options = _require_dict(params.get("options"), "options")
        return cls(
            id=_require_str(params, "id"),
            cwd=_require_str(options, "cwd"),
            gh_token=_optional_str(options, "ghToken"),
            claude_env_vars=_optional_str(options, "claudeEnvVars"),
            claude_session_id=(
                _require_str(options, "claudeSessionId")
                if require_session
                else _optional_str(options, "claudeSessionId")
            ),
        )
