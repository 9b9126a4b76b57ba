"""Bidirectional JSON-RPC 2.0 peer over a newline-delimited byte stream."""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from agentsidecar.infra.rpc.errors import PeerStoppedError, RemoteError, RpcTimeoutError
from agentsidecar.infra.rpc.protocol import (
    HANDLER_ERROR,
    METHOD_NOT_FOUND,
    JsonRpcMessage,
    JsonRpcNotification,
    JsonRpcRequest,
    JsonRpcResponse,
    decode,
    encode,
    make_error,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

Handler = Callable[[Any], Awaitable[Any]]
Writer = Callable[[bytes], Any]


@dataclass
class _PendingCall:
    method: str
    future: asyncio.Future
    timer: asyncio.TimerHandle


class JsonRpcPeer:
    """Symmetric JSON-RPC endpoint: issues calls and serves registered methods.

    Both sides of the stream may originate requests. Outbound calls are
    correlated with responses by id; inbound calls and notifications are
    dispatched to handlers as independent tasks so that a handler which
    itself calls back over this peer never stalls the reader delivering
    its response.
    """

    def __init__(self, write: Writer, default_timeout: float = DEFAULT_TIMEOUT) -> None:
        self._write = write
        self._default_timeout = default_timeout
        self._handlers: dict[str, Handler] = {}
        self._pending: dict[int | str, _PendingCall] = {}
        self._id_counter = itertools.count(1)
        self._tasks: set[asyncio.Task] = set()
        self._stopped = False

    @property
    def stopped(self) -> bool:
        return self._stopped

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def register(self, method: str, handler: Handler) -> None:
        """Register the handler for an inbound method. Replaces any previous one."""
        self._handlers[method] = handler

    # --- Outbound ---

    async def call(self, method: str, params: Any = None, timeout: float | None = None) -> Any:
        """Send a request and wait for its result.

        Raises RemoteError on an error response, RpcTimeoutError when the
        deadline passes, PeerStoppedError on shutdown, and ConnectionError
        when the request could not be written.
        """
        if self._stopped:
            raise PeerStoppedError()

        loop = asyncio.get_running_loop()
        req_id = next(self._id_counter)
        timeout = self._default_timeout if timeout is None else timeout

        future: asyncio.Future = loop.create_future()
        timer = loop.call_later(timeout, self._expire, req_id, method, timeout)
        self._pending[req_id] = _PendingCall(method=method, future=future, timer=timer)

        if not self._send(JsonRpcRequest(method=method, params=params, id=req_id)):
            self._discard(req_id)
            raise ConnectionError(f"Failed to send request {method}")

        try:
            return await future
        finally:
            self._discard(req_id)

    def notify(self, method: str, params: Any = None) -> bool:
        """Send a notification. Write failures are logged, never raised."""
        if self._stopped:
            logger.warning("Dropping notification %s: peer stopped", method)
            return False
        return self._send(JsonRpcNotification(method=method, params=params))

    def _send(self, msg: JsonRpcMessage) -> bool:
        try:
            self._write(encode(msg))
        except Exception:
            logger.exception("Failed to write JSON-RPC message")
            return False
        return True

    def _expire(self, req_id: int | str, method: str, timeout: float) -> None:
        pending = self._pending.pop(req_id, None)
        if pending is None or pending.future.done():
            return
        logger.warning("Request %s (id=%s) timed out after %gs", method, req_id, timeout)
        pending.future.set_exception(RpcTimeoutError(method, timeout))

    def _discard(self, req_id: int | str) -> None:
        pending = self._pending.pop(req_id, None)
        if pending is not None:
            pending.timer.cancel()

    # --- Inbound ---

    async def run(self, reader: asyncio.StreamReader) -> None:
        """Feed lines from the reader until end of stream."""
        while True:
            try:
                line = await reader.readline()
            except ValueError:
                logger.warning("Dropping oversized JSON-RPC line")
                continue
            if not line:
                break
            self.handle_line(line)

    def handle_line(self, line: bytes | str) -> None:
        """Process one received line: settle responses, dispatch requests."""
        if not line.strip():
            return
        try:
            messages = decode(line)
        except ValueError:
            logger.warning("Dropping unparseable line: %r", line[:200])
            return

        for msg in messages:
            if isinstance(msg, JsonRpcResponse):
                self._settle(msg)
            elif self._stopped:
                logger.debug("Ignoring %s: peer stopped", msg.method)
            else:
                task = asyncio.get_running_loop().create_task(self._dispatch(msg))
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)

    def _settle(self, response: JsonRpcResponse) -> None:
        pending = self._pending.pop(response.id, None) if response.id is not None else None
        if pending is None:
            logger.warning("Ignoring response for unknown request id %r", response.id)
            return
        pending.timer.cancel()
        if pending.future.done():
            return
        if response.is_error:
            error = response.error or {}
            pending.future.set_exception(
                RemoteError(
                    error.get("code", HANDLER_ERROR),
                    error.get("message", "Unknown error"),
                    error.get("data"),
                )
            )
        else:
            pending.future.set_result(response.result)

    async def _dispatch(self, msg: JsonRpcRequest | JsonRpcNotification) -> None:
        is_call = isinstance(msg, JsonRpcRequest)
        handler = self._handlers.get(msg.method)

        if handler is None:
            if is_call:
                self._send(make_error(msg.id, METHOD_NOT_FOUND, f"Method not found: {msg.method}"))
            else:
                logger.warning("No handler for notification %s", msg.method)
            return

        try:
            result = await handler(msg.params)
        except Exception as e:
            logger.exception("Error dispatching %s", msg.method)
            if is_call:
                self._send(make_error(msg.id, HANDLER_ERROR, str(e) or type(e).__name__))
            return

        if is_call:
            self._send(JsonRpcResponse(id=msg.id, result=result))

    # --- Lifecycle ---

    def shutdown(self) -> None:
        """Fail every pending call and stop handler tasks. Idempotent."""
        if self._stopped:
            return
        self._stopped = True

        pending = list(self._pending.values())
        self._pending.clear()
        for call in pending:
            call.timer.cancel()
            if not call.future.done():
                call.future.set_exception(PeerStoppedError())

        for task in list(self._tasks):
            task.cancel()
        logger.debug("Peer stopped (%d pending calls failed)", len(pending))
