"""Codex CLI subprocess backend (``codex exec --json``)."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import os
from collections.abc import AsyncIterator, Mapping

from agentsidecar.infra.env import apply_overrides
from agentsidecar.models.agent import CommandSpec, QueryOptions

logger = logging.getLogger(__name__)

# Bytes of stderr kept for error reports
STDERR_TAIL = 4000
# Seconds to wait for the process to exit after SIGTERM before SIGKILL
TERMINATE_GRACE = 5.0
STREAM_LIMIT = 16 * 1024 * 1024


class CodexAbortedError(Exception):
    """The turn was stopped through its abort signal."""


class CodexBackend:
    """Backend for the Codex CLI agent.

    Generates commands like:
        codex exec --json --cd DIR --skip-git-repo-check ... [resume THREAD_ID]

    The prompt is written to stdin; events are read as JSON Lines.
    """

    def __init__(
        self,
        command: str = "codex",
        sandbox_mode: str = "danger-full-access",
        approval_policy: str = "never",
        network_access: bool = True,
        web_search: bool = True,
    ) -> None:
        self._command = command
        self._sandbox_mode = sandbox_mode
        self._approval_policy = approval_policy
        self._network_access = network_access
        self._web_search = web_search

    def build_env(
        self, options: QueryOptions, base: Mapping[str, str] | None = None
    ) -> dict[str, str]:
        """Environment for one turn: process env plus per-query overrides."""
        env = apply_overrides(os.environ if base is None else base, options.conductor_env)
        if options.gh_token:
            env["GH_TOKEN"] = options.gh_token
        if options.codex_api_key:
            env["CODEX_API_KEY"] = options.codex_api_key
        if options.codex_base_url:
            env["OPENAI_BASE_URL"] = options.codex_base_url
        return env

    def turn_command(self, options: QueryOptions, thread_id: str | None = None) -> CommandSpec:
        """Generate the command for one turn, resuming ``thread_id`` if given."""
        args: list[str] = ["exec", "--json"]

        if options.model:
            args.extend(["--model", options.model])
        if self._sandbox_mode:
            args.extend(["--sandbox", self._sandbox_mode])
        args.extend(["--cd", options.cwd, "--skip-git-repo-check"])

        if options.codex_model_reasoning_effort:
            args.extend(["-c", f'model_reasoning_effort="{options.codex_model_reasoning_effort}"'])
        if self._network_access:
            args.extend(["-c", "sandbox_workspace_write.network_access=true"])
        if self._web_search:
            args.extend(["-c", "features.web_search_request=true"])
        if self._approval_policy:
            args.extend(["-c", f'approval_policy="{self._approval_policy}"'])

        if thread_id:
            args.extend(["resume", thread_id])

        return CommandSpec(
            program=self._command,
            args=tuple(args),
            env=self.build_env(options),
            cwd=options.cwd or None,
        )

    async def run_turn(
        self, spec: CommandSpec, prompt: str, abort: asyncio.Event
    ) -> AsyncIterator[dict]:
        """Run one turn and yield its decoded JSONL events.

        Setting ``abort`` terminates the process and raises CodexAbortedError.
        A non-zero exit raises RuntimeError with the stderr tail.
        """
        if abort.is_set():
            raise CodexAbortedError("Codex turn aborted")
        try:
            proc = await asyncio.create_subprocess_exec(
                spec.program,
                *spec.args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=spec.env,
                cwd=spec.cwd,
                limit=STREAM_LIMIT,
            )
        except FileNotFoundError:
            raise RuntimeError(
                f"'{spec.program}' CLI not found. Install Codex CLI first."
            ) from None

        logger.debug("Started codex pid=%s: %s", proc.pid, spec.full_command)
        stderr_task = asyncio.ensure_future(proc.stderr.read())
        abort_wait = asyncio.ensure_future(abort.wait())
        try:
            if proc.stdin is not None:
                proc.stdin.write(prompt.encode("utf-8"))
                with contextlib.suppress(ConnectionError):
                    await proc.stdin.drain()
                proc.stdin.close()

            while True:
                read = asyncio.ensure_future(proc.stdout.readline())
                await asyncio.wait({read, abort_wait}, return_when=asyncio.FIRST_COMPLETED)
                if abort_wait.done():
                    read.cancel()
                    raise CodexAbortedError("Codex turn aborted")

                line = read.result()
                if not line:
                    break
                text = line.decode("utf-8", errors="replace").strip()
                if not text:
                    continue
                try:
                    event = json.loads(text)
                except json.JSONDecodeError:
                    logger.debug("Skipping non-JSON codex output: %s", text[:200])
                    continue
                if isinstance(event, dict):
                    yield event

            returncode = await proc.wait()
            if returncode != 0:
                stderr = (await stderr_task).decode("utf-8", errors="replace")
                raise RuntimeError(
                    f"Codex exited with code {returncode}: {stderr[-STDERR_TAIL:].strip()}"
                )
        finally:
            abort_wait.cancel()
            if proc.returncode is None:
                await _terminate(proc)
            if not stderr_task.done():
                stderr_task.cancel()


async def _terminate(proc: asyncio.subprocess.Process) -> None:
    with contextlib.suppress(ProcessLookupError):
        proc.terminate()
    try:
        await asyncio.wait_for(proc.wait(), timeout=TERMINATE_GRACE)
    except asyncio.TimeoutError:
        logger.warning("Codex pid=%s ignored SIGTERM, killing", proc.pid)
        with contextlib.suppress(ProcessLookupError):
            proc.kill()
        await proc.wait()
