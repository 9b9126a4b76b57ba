"""ClaudeSessionService: push-based orchestration over the Claude Agent SDK."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from claude_agent_sdk import ClaudeSDKClient, UserMessage

from agentsidecar.infra.agents.claude_tools import (
    CONDUCTOR_SERVER,
    build_conductor_server,
    make_permission_gate,
    make_plan_mode_hooks,
)
from agentsidecar.infra.rpc.serialization import serialize_sdk_message
from agentsidecar.models.agent import AgentType, PermissionMode, QueryOptions
from agentsidecar.models.claude_event import (
    AssistantText,
    ClaudeEvent,
    MessageStart,
    StreamTextDelta,
    TurnResult,
    classify_message,
)
from agentsidecar.models.events import (
    ABORTED_BY_USER,
    ErrorEvent,
    MessageEvent,
    CallResult,
    TextUpdate,
)
from agentsidecar.models.requests import ProbeRequest
from agentsidecar.models.session import ClaudeSessionState, SessionSettings
from agentsidecar.services.prompt_channel import PromptChannel
from agentsidecar.services.session_registry import SessionRegistry
from agentsidecar.services.text_delta import reconcile

if TYPE_CHECKING:
    from agentsidecar.infra.agents.claude_code import ClaudeCodeBackend
    from agentsidecar.services.frontend import FrontendBridge

logger = logging.getLogger(__name__)

# Seconds a stopped stream gets to disconnect its client
STOP_GRACE = 10.0

ClientFactory = Callable[[Any], Any]


class ClaudeSessionService:
    """Keeps one long-lived SDK client per session and pushes prompts into it.

    A session is reused while its settings fingerprint is unchanged. A
    changed fingerprint, or an explicit reset request, restarts the client
    and resumes the backend conversation by its recorded session id.
    """

    def __init__(
        self,
        backend: ClaudeCodeBackend,
        frontend: FrontendBridge,
        client_factory: ClientFactory = ClaudeSDKClient,
    ) -> None:
        self._backend = backend
        self._frontend = frontend
        self._client_factory = client_factory
        self._sessions: SessionRegistry[ClaudeSessionState] = SessionRegistry("claude")

    @property
    def sessions(self) -> SessionRegistry[ClaudeSessionState]:
        return self._sessions

    async def run_turn(self, session_id: str, prompt: str, options: QueryOptions) -> None:
        """Queue a prompt, starting or restarting the session as needed.

        Calls for one session are serialized, so prompts reach the channel
        in the order they were accepted.
        """
        async with self._sessions.lock(session_id):
            await self._run_turn(session_id, prompt, options)

    async def _run_turn(self, session_id: str, prompt: str, options: QueryOptions) -> None:
        settings = SessionSettings.from_options(options)
        state = self._sessions.get(session_id)

        if options.should_reset_generator or state is None or state.settings != settings:
            carried_id = state.claude_session_id if state is not None else None
            if state is not None:
                logger.info("Restarting claude session %s", session_id)
                task = state.stream_task
                self._stop(state)
                await self._wait_stream(session_id, task)
            state = ClaudeSessionState(settings=settings, claude_session_id=carried_id)
            self._sessions.set(session_id, state)
        elif options.permission_mode and state.client is not None:
            await self._apply_permission_mode(session_id, state, options.permission_mode)

        if not state.is_live:
            await self._wait_stream(session_id, state.stream_task)
            try:
                self._start_streaming(session_id, state, options)
            except Exception as e:
                logger.exception("Failed to start claude session %s", session_id)
                state.terminate()
                self._send_error(session_id, str(e) or type(e).__name__)
                return

        assert state.channel is not None
        state.channel.send(prompt)

    async def cancel_turn(self, session_id: str) -> bool:
        """Interrupt the live client. The idle entry stays for later resumption."""
        async with self._sessions.lock(session_id):
            state = self._sessions.get(session_id)
            if state is None or state.client is None:
                return False

            try:
                await state.client.interrupt()
            except Exception:
                logger.exception("Interrupt failed for claude session %s", session_id)
            state.terminate()
            self._send_error(session_id, ABORTED_BY_USER)
            await self._wait_stream(session_id, state.stream_task)
            return True

    async def update_permission_mode(self, session_id: str, permission_mode: str) -> bool:
        state = self._sessions.get(session_id)
        if state is None or state.client is None:
            return False
        return await self._apply_permission_mode(session_id, state, permission_mode)

    async def close(self) -> None:
        """Stop every live session."""
        tasks = []
        for _, state in self._sessions.items():
            if state.stream_task is not None and not state.stream_task.done():
                state.stream_task.cancel()
                tasks.append(state.stream_task)
            state.terminate()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # --- Streaming ---

    def _start_streaming(self, session_id: str, state: ClaudeSessionState, options: QueryOptions) -> None:
        mode = PermissionMode.normalize(options.permission_mode).value
        sdk_options = self._backend.session_options(
            options,
            resume=options.resume or state.claude_session_id,
            can_use_tool=make_permission_gate(self._frontend, session_id),
            hooks=make_plan_mode_hooks(self._frontend, session_id),
            mcp_servers={CONDUCTOR_SERVER: build_conductor_server(self._frontend, session_id)},
        )
        client = self._client_factory(sdk_options)
        channel = PromptChannel(session_id)

        state.model = options.model
        state.permission_mode = mode
        state.last_text = ""
        state.client = client
        state.channel = channel
        state.stream_task = asyncio.create_task(self._stream(session_id, state, client, channel))
        logger.debug("Started claude session %s (model=%s mode=%s)", session_id, options.model, mode)

    async def _stream(
        self, session_id: str, state: ClaudeSessionState, client: Any, channel: PromptChannel
    ) -> None:
        try:
            await client.connect(channel)
            async for message in client.receive_messages():
                self._forward(session_id, state, message)
        except Exception as e:
            if channel.terminated:
                logger.debug("Claude stream for %s ended after stop: %s", session_id, e)
            else:
                logger.exception("Claude stream for %s failed", session_id)
                self._send_error(session_id, str(e) or type(e).__name__)
        finally:
            if state.channel is channel:
                state.terminate()
            try:
                await client.disconnect()
            except Exception:
                logger.debug("Disconnect failed for claude session %s", session_id, exc_info=True)

    def _forward(self, session_id: str, state: ClaudeSessionState, message: Any) -> None:
        event = classify_message(message)
        if event.session_id:
            state.claude_session_id = event.session_id
        update = self._text_update(state, event)
        self._frontend.send_message(
            MessageEvent(
                session_id=session_id,
                agent_type=AgentType.CLAUDE,
                data=serialize_sdk_message(message),
                text_delta=update.delta,
                text=update.text,
                is_final=update.is_final,
                agent_session_id=state.claude_session_id,
            )
        )

    @staticmethod
    def _text_update(state: ClaudeSessionState, event: ClaudeEvent) -> TextUpdate:
        if isinstance(event, MessageStart):
            state.last_text = ""
        elif isinstance(event, StreamTextDelta):
            state.last_text += event.text
            return TextUpdate(delta=event.text)
        elif isinstance(event, AssistantText):
            delta = reconcile(state.last_text, event.text)
            state.last_text = event.text
            return TextUpdate(delta=delta, text=event.text)
        elif isinstance(event, TurnResult):
            state.last_text = ""
            return TextUpdate(is_final=True)
        return TextUpdate()

    async def _apply_permission_mode(
        self, session_id: str, state: ClaudeSessionState, permission_mode: str
    ) -> bool:
        mode = PermissionMode.normalize(permission_mode).value
        try:
            await state.client.set_permission_mode(mode)
        except Exception:
            logger.exception("Permission mode update failed for %s", session_id)
            return False
        state.permission_mode = mode
        return True

    def _stop(self, state: ClaudeSessionState) -> None:
        task = state.stream_task
        state.terminate()
        if task is not None and not task.done():
            task.cancel()

    async def _wait_stream(self, session_id: str, task: asyncio.Task | None) -> None:
        """Wait for a stopped session's stream to wind down its client.

        A stream that does not finish within STOP_GRACE is cancelled.
        """
        if task is None or task.done():
            return
        done, _ = await asyncio.wait({task}, timeout=STOP_GRACE)
        if not done:
            logger.warning("Claude stream for %s did not stop in %gs, cancelling", session_id, STOP_GRACE)
            task.cancel()
        await asyncio.gather(task, return_exceptions=True)

    def _send_error(self, session_id: str, error: str) -> None:
        self._frontend.send_error(ErrorEvent(session_id=session_id, agent_type=AgentType.CLAUDE, error=error))

    # --- Probes ---

    async def _probe(self, options: Any, action: Callable[[Any], Awaitable[Any]]) -> Any:
        client = self._client_factory(options)
        try:
            await client.connect()
            return await action(client)
        finally:
            try:
                await client.disconnect()
            except Exception:
                logger.debug("Probe disconnect failed", exc_info=True)

    async def claude_auth(self, request: ProbeRequest) -> CallResult:
        async def action(client: Any) -> Any:
            return await client.get_server_info()

        info = await self._probe(self._backend.probe_options(request.cwd, with_settings=False), action)
        info = info or {}
        return CallResult(
            session_id=request.id,
            type="claude_auth_output",
            agent_type=AgentType.CLAUDE,
            payload={"accountInfo": info.get("account"), "serverInfo": info},
        )

    async def workspace_init(self, request: ProbeRequest) -> CallResult:
        async def action(client: Any) -> Any:
            return await client.get_server_info()

        env = self._backend.build_env(request.claude_env_vars, request.gh_token)
        info = await self._probe(self._backend.probe_options(request.cwd, env=env), action)
        info = info or {}
        return CallResult(
            session_id=request.id,
            type="workspace_init_output",
            agent_type=AgentType.CLAUDE,
            payload={
                "slashCommands": info.get("commands", []),
                "mcpServers": info.get("mcp_servers", []),
            },
        )

    async def context_usage(self, request: ProbeRequest) -> CallResult:
        async def action(client: Any) -> Any:
            await client.query("/context")
            async for message in client.receive_response():
                if isinstance(message, UserMessage):
                    return message
            raise RuntimeError("No context usage response")

        options = self._backend.probe_options(request.cwd, resume=request.claude_session_id)
        message = await self._probe(options, action)
        return CallResult(
            session_id=request.id,
            type="context_usage",
            agent_type=AgentType.CLAUDE,
            payload={"contextUsageData": serialize_sdk_message(message)},
        )
