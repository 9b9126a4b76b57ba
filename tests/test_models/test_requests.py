"""Tests for host request parsing."""

import pytest

from agentsidecar.models.agent import AgentType
from agentsidecar.models.requests import (
    CancelRequest,
    ProbeRequest,
    QueryRequest,
    UpdatePermissionModeRequest,
    parse_query_options,
)


class TestQueryRequest:
    def test_full_payload(self):
        request = QueryRequest.from_params({
            "type": "query",
            "id": "s1",
            "agentType": "claude",
            "prompt": "hello",
            "options": {
                "cwd": "/w",
                "model": "opus",
                "permissionMode": "plan",
                "turnId": 4,
                "resume": "cs-1",
                "resumeSessionAt": "m-2",
                "shouldResetGenerator": True,
                "claudeEnvVars": "A=1",
                "additionalDirectories": ["/x", "/y"],
                "ghToken": "ghp",
                "conductorEnv": {"K": "v"},
                "codexApiKey": "sk",
                "codexBaseUrl": "http://b",
                "codexModelReasoningEffort": "low",
            },
        })
        assert request.id == "s1"
        assert request.agent_type is AgentType.CLAUDE
        options = request.options
        assert options.turn_id == 4
        assert options.additional_directories == ("/x", "/y")
        assert options.should_reset_generator is True
        assert options.conductor_env == {"K": "v"}
        assert options.codex_model_reasoning_effort == "low"

    def test_empty_prompt_allowed(self):
        request = QueryRequest.from_params({
            "id": "s1", "agentType": "codex", "prompt": "", "options": {"cwd": "/w"},
        })
        assert request.prompt == ""

    @pytest.mark.parametrize("params", [
        None,
        {"agentType": "claude", "prompt": "p", "options": {"cwd": "/w"}},
        {"id": "s1", "agentType": "claude", "options": {"cwd": "/w"}},
        {"id": "s1", "agentType": "claude", "prompt": "p"},
        {"id": "s1", "agentType": "other", "prompt": "p", "options": {"cwd": "/w"}},
    ])
    def test_invalid_payloads(self, params):
        with pytest.raises(ValueError):
            QueryRequest.from_params(params)

    def test_option_types_checked(self):
        with pytest.raises(ValueError, match="additionalDirectories"):
            parse_query_options({"cwd": "/w", "additionalDirectories": "/x"})
        with pytest.raises(ValueError, match="turnId"):
            parse_query_options({"cwd": "/w", "turnId": "3"})
        with pytest.raises(ValueError, match="model"):
            parse_query_options({"cwd": "/w", "model": 5})


class TestOtherRequests:
    def test_cancel(self):
        request = CancelRequest.from_params({"id": "s1", "agentType": "unknown"})
        assert request.agent_type is AgentType.UNKNOWN

    def test_update_permission_mode(self):
        request = UpdatePermissionModeRequest.from_params({"id": "s1", "permissionMode": "plan"})
        assert request.permission_mode == "plan"

    def test_probe(self):
        request = ProbeRequest.from_params({
            "id": "s1", "options": {"cwd": "/w", "ghToken": "g", "claudeEnvVars": "A=1"},
        })
        assert (request.cwd, request.gh_token, request.claude_env_vars) == ("/w", "g", "A=1")
        with pytest.raises(ValueError):
            ProbeRequest.from_params({"id": "s1", "options": {}})
