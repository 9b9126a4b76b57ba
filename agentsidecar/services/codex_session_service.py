"""CodexSessionService: turn-based orchestration over the Codex CLI."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from agentsidecar.infra.agents.codex import CodexAbortedError
from agentsidecar.models.agent import AgentType, QueryOptions
from agentsidecar.models.codex_event import (
    CodexEvent,
    ItemEvent,
    ItemPhase,
    TERMINAL_EVENTS,
    ThreadStarted,
    parse_codex_event,
)
from agentsidecar.models.events import ABORTED_BY_USER, ErrorEvent, MessageEvent, TextUpdate
from agentsidecar.models.session import CodexSessionState
from agentsidecar.services.session_registry import SessionRegistry
from agentsidecar.services.text_delta import observe

if TYPE_CHECKING:
    from agentsidecar.infra.agents.codex import CodexBackend
    from agentsidecar.models.agent import CommandSpec
    from agentsidecar.services.frontend import FrontendBridge

logger = logging.getLogger(__name__)


class CodexSessionService:
    """Runs one Codex execution per turn, resuming the session's thread."""

    def __init__(self, backend: CodexBackend, frontend: FrontendBridge) -> None:
        self._backend = backend
        self._frontend = frontend
        self._sessions: SessionRegistry[CodexSessionState] = SessionRegistry("codex")

    @property
    def sessions(self) -> SessionRegistry[CodexSessionState]:
        return self._sessions

    async def run_turn(self, session_id: str, prompt: str, options: QueryOptions) -> asyncio.Task:
        """Start a turn in the background and return its task.

        A turn still in flight for the session is aborted, and its process
        is gone before the new one starts.
        """
        async with self._sessions.lock(session_id):
            state = self._sessions.get_or_create(session_id, CodexSessionState)

            if state.abort is not None:
                logger.info("Discarding in-flight codex turn for %s", session_id)
                state.abort.set()
            await self._wait_turn(state)

            if options.resume and options.resume != state.thread_id:
                state.thread_id = options.resume

            abort = state.start_turn()
            spec = self._backend.turn_command(options, thread_id=state.thread_id)
            state.task = asyncio.create_task(self._drive(session_id, state, spec, prompt, abort))
            return state.task

    async def cancel_turn(self, session_id: str) -> bool:
        """Abort the live turn and forget the session. No-op when idle."""
        async with self._sessions.lock(session_id):
            state = self._sessions.get(session_id)
            if state is None or state.abort is None:
                return False

            state.abort.set()
            self._frontend.send_error(
                ErrorEvent(session_id=session_id, agent_type=AgentType.CODEX, error=ABORTED_BY_USER)
            )
            self._sessions.remove(session_id)
            await self._wait_turn(state)
            return True

    async def close(self) -> None:
        tasks = []
        for session_id, state in self._sessions.items():
            if state.abort is not None:
                state.abort.set()
            if state.task is not None and not state.task.done():
                tasks.append(state.task)
            self._sessions.remove(session_id)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    @staticmethod
    async def _wait_turn(state: CodexSessionState) -> None:
        if state.task is not None and not state.task.done():
            await asyncio.gather(state.task, return_exceptions=True)

    async def _drive(
        self,
        session_id: str,
        state: CodexSessionState,
        spec: CommandSpec,
        prompt: str,
        abort: asyncio.Event,
    ) -> None:
        try:
            async for raw in self._backend.run_turn(spec, prompt, abort):
                event = parse_codex_event(raw)
                if isinstance(event, ThreadStarted) and event.thread_id:
                    state.thread_id = event.thread_id
                update = self._text_update(state, event)
                self._frontend.send_message(
                    MessageEvent(
                        session_id=session_id,
                        agent_type=AgentType.CODEX,
                        data=raw,
                        text_delta=update.delta,
                        is_final=update.is_final,
                        thread_id=state.thread_id,
                        tool_summary=dict(state.tool_summary),
                    )
                )
        except CodexAbortedError:
            logger.info("Codex turn for %s aborted", session_id)
        except Exception as e:
            logger.exception("Codex turn for %s failed", session_id)
            self._frontend.send_error(
                ErrorEvent(
                    session_id=session_id,
                    agent_type=AgentType.CODEX,
                    error=str(e) or type(e).__name__,
                )
            )
        finally:
            if state.abort is abort:
                state.abort = None

    @staticmethod
    def _text_update(state: CodexSessionState, event: CodexEvent) -> TextUpdate:
        if isinstance(event, ItemEvent):
            item = event.item
            if item.is_agent_message:
                return TextUpdate(delta=observe(state.item_text, item.id, item.text or ""))
            if event.phase is ItemPhase.COMPLETED and item.is_tool:
                state.tool_summary[item.type] = state.tool_summary.get(item.type, 0) + 1
            return TextUpdate()
        if isinstance(event, TERMINAL_EVENTS):
            return TextUpdate(is_final=True)
        return TextUpdate()
