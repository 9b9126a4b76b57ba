"""CLI handlers for server commands: start, status."""

from __future__ import annotations

import asyncio
import os
import signal
import sys

import click

from agentsidecar.commands._helpers import _run, get_socket_path

# Line the host reads from stdout to learn where to connect
SOCKET_ANNOUNCEMENT = "SOCKET_PATH={path}"


@click.group("server")
def server_group():
    """Run the sidecar server."""
    pass


@server_group.command("start")
@click.option("--socket", "socket_path", default=None, help="Unix socket path to listen on")
def server_start(socket_path: str | None):
    """Start the sidecar in the foreground.

    Prints SOCKET_PATH=<path> on stdout once listening. Logs go to stderr.
    """

    async def _start():
        from agentsidecar.config import load_config
        from agentsidecar.infra.rpc.server import RpcServer

        config = load_config()
        path = socket_path or config.server.resolved_socket_path
        rpc_server = RpcServer(config, path)
        await rpc_server.start()

        click.echo(SOCKET_ANNOUNCEMENT.format(path=rpc_server.socket_path))
        sys.stdout.flush()

        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(signum, stop_event.set)

        try:
            await stop_event.wait()
        finally:
            click.echo(f"Shutting down (pid={os.getpid()})...", err=True)
            await rpc_server.stop()

    _run(_start())


@server_group.command("status")
@click.option("--socket", "socket_path", default=None, help="Unix socket path of the sidecar")
def server_status(socket_path: str | None):
    """Check whether a sidecar is answering on the socket."""

    async def _status():
        from agentsidecar.infra.rpc.client import RpcClient

        path = get_socket_path(socket_path)
        client = RpcClient(path, timeout=5.0)
        try:
            await client.connect()
            result = await client.call("server.ping")
            click.echo(f"Server: running ({result})")
            click.echo(f"  socket: {path}")
        except (ConnectionRefusedError, FileNotFoundError, OSError):
            click.echo("Server: not running")
            click.echo(f"  socket: {path}")
        finally:
            await client.close()

    _run(_status())
