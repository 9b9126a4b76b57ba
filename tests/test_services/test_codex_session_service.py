"""Tests for CodexSessionService with a fake backend."""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock

import pytest

from agentsidecar.infra.agents.base import AgentOrchestrator
from agentsidecar.infra.agents.codex import CodexAbortedError
from agentsidecar.models.agent import AgentType, CommandSpec, QueryOptions
from agentsidecar.models.events import ErrorEvent
from agentsidecar.services.codex_session_service import CodexSessionService


class FakeCodexBackend:
    """Replays canned JSONL events; ``hold`` keeps the turn open until aborted."""

    def __init__(
        self, events=(), error: Exception | None = None, hold: bool = False, exit_delay: float = 0.0
    ):
        self.events = list(events)
        self.error = error
        self.hold = hold
        self.thread_ids: list[str | None] = []
        self.prompts: list[str] = []
        self.exit_delay = exit_delay
        self.active = 0
        self.max_active = 0

    def turn_command(self, options, thread_id=None):
        self.thread_ids.append(thread_id)
        return CommandSpec(program="codex", args=("exec", "--json"), cwd=options.cwd)

    async def run_turn(self, spec, prompt, abort):
        self.prompts.append(prompt)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            for event in self.events:
                yield event
            if self.error is not None:
                raise self.error
            if self.hold:
                await abort.wait()
                raise CodexAbortedError("aborted")
        finally:
            # Process termination takes a while
            await asyncio.sleep(self.exit_delay)
            self.active -= 1


def agent_message(item_id: str, text: str, phase: str = "updated") -> dict:
    return {"type": f"item.{phase}", "item": {"id": item_id, "type": "agent_message", "text": text}}


def tool_item(item_id: str, kind: str) -> dict:
    return {"type": "item.completed", "item": {"id": item_id, "type": kind}}


@pytest.fixture
def frontend():
    return MagicMock()


async def run(service, session_id, prompt, options) -> None:
    task = await service.run_turn(session_id, prompt, options)
    await asyncio.wait_for(task, timeout=1)


def sent_messages(frontend) -> list:
    return [c.args[0] for c in frontend.send_message.call_args_list]


class TestRunTurn:
    @pytest.mark.asyncio
    async def test_events_forwarded_with_deltas(self, frontend):
        backend = FakeCodexBackend(events=[
            {"type": "thread.started", "thread_id": "t-1"},
            {"type": "turn.started"},
            agent_message("i1", "Hel", "started"),
            agent_message("i1", "Hello"),
            agent_message("i1", "Hi", "completed"),
            {"type": "turn.completed", "usage": {}},
        ])
        service = CodexSessionService(backend, frontend)
        await run(service, "s1", "go", QueryOptions(cwd="/w"))

        events = sent_messages(frontend)
        assert [e.text_delta for e in events] == ["", "", "Hel", "lo", "Hi", ""]
        assert [e.is_final for e in events] == [False] * 5 + [True]
        assert all(e.thread_id == "t-1" for e in events)
        assert all(e.agent_type is AgentType.CODEX for e in events)
        assert events[0].data == {"type": "thread.started", "thread_id": "t-1"}
        assert backend.prompts == ["go"]
        frontend.send_error.assert_not_called()

    @pytest.mark.asyncio
    async def test_items_tracked_separately(self, frontend):
        backend = FakeCodexBackend(events=[
            agent_message("i1", "first"),
            agent_message("i2", "second"),
            agent_message("i1", "first!"),
        ])
        service = CodexSessionService(backend, frontend)
        await run(service, "s1", "go", QueryOptions(cwd="/w"))
        assert [e.text_delta for e in sent_messages(frontend)] == ["first", "second", "!"]

    @pytest.mark.asyncio
    async def test_tool_summary_accumulates(self, frontend):
        backend = FakeCodexBackend(events=[
            {"type": "item.started", "item": {"id": "c1", "type": "command_execution"}},
            tool_item("c1", "command_execution"),
            tool_item("f1", "file_change"),
            tool_item("c2", "command_execution"),
            agent_message("i1", "done", "completed"),
        ])
        service = CodexSessionService(backend, frontend)
        await run(service, "s1", "go", QueryOptions(cwd="/w"))

        summaries = [e.tool_summary for e in sent_messages(frontend)]
        assert summaries[0] == {}
        assert summaries[1] == {"command_execution": 1}
        assert summaries[-1] == {"command_execution": 2, "file_change": 1}

    @pytest.mark.asyncio
    async def test_tool_summary_resets_each_turn(self, frontend):
        backend = FakeCodexBackend(events=[tool_item("c1", "command_execution")])
        service = CodexSessionService(backend, frontend)
        await run(service, "s1", "one", QueryOptions(cwd="/w"))
        await run(service, "s1", "two", QueryOptions(cwd="/w"))
        assert [e.tool_summary for e in sent_messages(frontend)] == [
            {"command_execution": 1},
            {"command_execution": 1},
        ]

    @pytest.mark.asyncio
    async def test_thread_resumed_on_next_turn(self, frontend):
        backend = FakeCodexBackend(events=[{"type": "thread.started", "thread_id": "t-1"}])
        service = CodexSessionService(backend, frontend)
        await run(service, "s1", "one", QueryOptions(cwd="/w"))
        backend.events = []
        await run(service, "s1", "two", QueryOptions(cwd="/w"))
        assert backend.thread_ids == [None, "t-1"]

    @pytest.mark.asyncio
    async def test_explicit_resume(self, frontend):
        backend = FakeCodexBackend()
        service = CodexSessionService(backend, frontend)
        await run(service, "s1", "go", QueryOptions(cwd="/w", resume="t-9"))
        assert backend.thread_ids == ["t-9"]

    @pytest.mark.asyncio
    async def test_turn_failure_reported(self, frontend):
        backend = FakeCodexBackend(error=RuntimeError("Codex exited with code 1: boom"))
        service = CodexSessionService(backend, frontend)
        await run(service, "s1", "go", QueryOptions(cwd="/w"))
        frontend.send_error.assert_called_once_with(
            ErrorEvent("s1", AgentType.CODEX, "Codex exited with code 1: boom")
        )
        assert not service.sessions.get("s1").is_live

    @pytest.mark.asyncio
    async def test_terminal_failure_events_are_final(self, frontend):
        backend = FakeCodexBackend(events=[
            {"type": "turn.failed", "error": {"message": "quota"}},
            {"type": "error", "message": "stream lost"},
        ])
        service = CodexSessionService(backend, frontend)
        await run(service, "s1", "go", QueryOptions(cwd="/w"))
        assert [e.is_final for e in sent_messages(frontend)] == [True, True]

    @pytest.mark.asyncio
    async def test_new_turn_discards_previous_silently(self, frontend):
        backend = FakeCodexBackend(hold=True)
        service = CodexSessionService(backend, frontend)
        first = await service.run_turn("s1", "one", QueryOptions(cwd="/w"))
        await asyncio.sleep(0)

        backend.hold = False
        await run(service, "s1", "two", QueryOptions(cwd="/w"))
        await asyncio.wait_for(first, timeout=1)
        frontend.send_error.assert_not_called()
        assert not service.sessions.get("s1").is_live


class TestOverlappingTurns:
    @pytest.mark.asyncio
    async def test_new_turn_waits_for_previous_process(self, frontend):
        backend = FakeCodexBackend(hold=True, exit_delay=0.05)
        service = CodexSessionService(backend, frontend)
        first = await service.run_turn("s1", "one", QueryOptions(cwd="/w"))
        await asyncio.sleep(0)

        backend.hold = False
        await run(service, "s1", "two", QueryOptions(cwd="/w"))
        assert first.done()
        assert backend.max_active == 1
        assert backend.prompts == ["one", "two"]

    @pytest.mark.asyncio
    async def test_late_events_stay_out_of_next_turn(self, frontend):
        backend = FakeCodexBackend(events=[tool_item("c1", "command_execution")], hold=True, exit_delay=0.02)
        service = CodexSessionService(backend, frontend)
        await service.run_turn("s1", "one", QueryOptions(cwd="/w"))
        await asyncio.sleep(0.01)

        backend.hold = False
        backend.events = [tool_item("f1", "file_change")]
        await run(service, "s1", "two", QueryOptions(cwd="/w"))
        assert sent_messages(frontend)[-1].tool_summary == {"file_change": 1}

    @pytest.mark.asyncio
    async def test_query_after_cancel_waits_for_previous_process(self, frontend):
        backend = FakeCodexBackend(hold=True, exit_delay=0.05)
        service = CodexSessionService(backend, frontend)
        await service.run_turn("s1", "one", QueryOptions(cwd="/w"))
        await asyncio.sleep(0)

        backend.hold = False
        cancelled, task = await asyncio.gather(
            service.cancel_turn("s1"),
            service.run_turn("s1", "two", QueryOptions(cwd="/w")),
        )
        await asyncio.wait_for(task, timeout=1)
        assert cancelled is True
        assert backend.max_active == 1
        frontend.send_error.assert_called_once_with(
            ErrorEvent("s1", AgentType.CODEX, "aborted by user")
        )


class TestCancelTurn:
    @pytest.mark.asyncio
    async def test_cancel_aborts_and_removes_entry(self, frontend):
        backend = FakeCodexBackend(events=[{"type": "turn.started"}], hold=True)
        service = CodexSessionService(backend, frontend)
        task = await service.run_turn("s1", "go", QueryOptions(cwd="/w"))
        await asyncio.sleep(0.01)

        assert await service.cancel_turn("s1") is True
        await asyncio.wait_for(task, timeout=1)

        assert "s1" not in service.sessions
        frontend.send_error.assert_called_once_with(
            ErrorEvent("s1", AgentType.CODEX, "aborted by user")
        )

    @pytest.mark.asyncio
    async def test_cancel_when_idle_is_noop(self, frontend):
        backend = FakeCodexBackend()
        service = CodexSessionService(backend, frontend)
        await run(service, "s1", "go", QueryOptions(cwd="/w"))

        assert await service.cancel_turn("s1") is False
        assert await service.cancel_turn("unknown") is False
        frontend.send_error.assert_not_called()
        assert "s1" in service.sessions

    @pytest.mark.asyncio
    async def test_close_aborts_everything(self, frontend):
        backend = FakeCodexBackend(hold=True)
        service = CodexSessionService(backend, frontend)
        tasks = [
            await service.run_turn("a", "go", QueryOptions(cwd="/w")),
            await service.run_turn("b", "go", QueryOptions(cwd="/w")),
        ]
        await asyncio.sleep(0)
        await service.close()
        assert all(t.done() for t in tasks)
        assert len(service.sessions) == 0
        frontend.send_error.assert_not_called()


def test_satisfies_orchestrator_protocol(frontend):
    assert isinstance(CodexSessionService(FakeCodexBackend(), frontend), AgentOrchestrator)
