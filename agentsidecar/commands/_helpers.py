"""CLI helpers shared by command groups."""

from __future__ import annotations

import asyncio

from agentsidecar.config import load_config


def _run(coro):
    """Run an async function from sync context."""
    return asyncio.run(coro)


def get_socket_path(override: str | None = None) -> str:
    """Return the socket path from the option, config or default."""
    if override:
        return override
    config = load_config()
    return config.server.resolved_socket_path
