"""Asyncio Unix socket JSON-RPC client."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from agentsidecar.infra.rpc.peer import DEFAULT_TIMEOUT, Handler, JsonRpcPeer

logger = logging.getLogger(__name__)


class RpcClient:
    """Host-side connection to the sidecar's Unix domain socket.

    Wraps a JsonRpcPeer, so handlers registered with ``on`` serve the
    sidecar's frontend-bound calls and notifications.
    """

    def __init__(self, socket_path: str, timeout: float = DEFAULT_TIMEOUT) -> None:
        self._socket_path = socket_path
        self._timeout = timeout
        self._handlers: dict[str, Handler] = {}
        self._peer: JsonRpcPeer | None = None
        self._writer: asyncio.StreamWriter | None = None
        self._reader_task: asyncio.Task | None = None

    def on(self, method: str, handler: Handler) -> None:
        """Serve an inbound method from the sidecar."""
        self._handlers[method] = handler
        if self._peer is not None:
            self._peer.register(method, handler)

    async def connect(self) -> None:
        """Connect to the server's Unix socket."""
        from agentsidecar.infra.rpc.server import STREAM_LIMIT

        reader, self._writer = await asyncio.open_unix_connection(
            self._socket_path, limit=STREAM_LIMIT
        )
        self._peer = JsonRpcPeer(self._writer.write, default_timeout=self._timeout)
        for method, handler in self._handlers.items():
            self._peer.register(method, handler)
        self._reader_task = asyncio.create_task(self._peer.run(reader))
        logger.debug("Connected to RPC server at %s", self._socket_path)

    async def close(self) -> None:
        """Close the connection, failing any pending calls."""
        if self._peer is not None:
            self._peer.shutdown()
        if self._reader_task is not None:
            self._reader_task.cancel()
            try:
                await self._reader_task
            except (asyncio.CancelledError, Exception):
                pass
            self._reader_task = None
        if self._writer:
            try:
                self._writer.close()
                await self._writer.wait_closed()
            except Exception:
                pass
            self._writer = None
        self._peer = None
        logger.debug("RPC client disconnected")

    async def call(self, method: str, **params: Any) -> Any:
        """Send a JSON-RPC request and return the result.

        Raises RemoteError on RPC errors.
        """
        if self._peer is None:
            raise ConnectionError("Not connected")
        return await self._peer.call(method, params or None)

    def notify(self, method: str, **params: Any) -> bool:
        if self._peer is None:
            raise ConnectionError("Not connected")
        return self._peer.notify(method, params or None)
