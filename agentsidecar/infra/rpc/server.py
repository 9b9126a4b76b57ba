"""Asyncio Unix socket JSON-RPC server."""

from __future__ import annotations

import asyncio
import logging
import os

from agentsidecar.config import SidecarConfig
from agentsidecar.context import SidecarContext
from agentsidecar.infra.rpc.methods import MethodRegistry
from agentsidecar.infra.rpc.peer import JsonRpcPeer

logger = logging.getLogger(__name__)

# Large enough for diffs and context-usage payloads on one line
STREAM_LIMIT = 64 * 1024 * 1024


class RpcServer:
    """Asyncio Unix domain socket server; one JSON-RPC peer per connection."""

    def __init__(self, config: SidecarConfig, socket_path: str) -> None:
        self._config = config
        self._socket_path = socket_path
        self._server: asyncio.Server | None = None
        self._contexts: set[SidecarContext] = set()

    @property
    def socket_path(self) -> str:
        return self._socket_path

    async def start(self) -> None:
        """Start listening on the Unix socket."""
        # Remove stale socket file
        try:
            os.unlink(self._socket_path)
        except FileNotFoundError:
            pass

        self._server = await asyncio.start_unix_server(
            self._handle_client,
            path=self._socket_path,
            limit=STREAM_LIMIT,
        )
        # Make socket accessible to the user only
        os.chmod(self._socket_path, 0o600)
        logger.info("RPC server listening on %s", self._socket_path)

    async def stop(self) -> None:
        """Stop the server, close live connections and remove the socket file."""
        if self._server:
            self._server.close()
            self._server = None

        for ctx in list(self._contexts):
            await ctx.close()

        try:
            os.unlink(self._socket_path)
        except FileNotFoundError:
            pass
        logger.info("RPC server stopped")

    async def _handle_client(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        """Serve one host connection until it closes."""
        peer_name = writer.get_extra_info("peername") or "unix"
        logger.debug("Client connected: %s", peer_name)

        peer = JsonRpcPeer(writer.write, default_timeout=self._config.server.request_timeout)
        ctx = SidecarContext(peer, self._config)
        MethodRegistry(ctx).install(peer)
        self._contexts.add(ctx)

        try:
            await peer.run(reader)
        except asyncio.CancelledError:
            pass
        except ConnectionResetError:
            logger.debug("Client reset connection: %s", peer_name)
        except Exception:
            logger.exception("Error handling client %s", peer_name)
        finally:
            self._contexts.discard(ctx)
            await ctx.close()
            try:
                writer.close()
                await writer.wait_closed()
            except Exception:
                pass
            logger.debug("Client disconnected: %s", peer_name)
