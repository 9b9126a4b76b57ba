"""Errors raised to callers of the JSON-RPC peer."""

from __future__ import annotations

from typing import Any


class RpcError(Exception):
    """Base class for peer-level call failures."""


class RemoteError(RpcError):
    """The remote side answered a call with an error response."""

    def __init__(self, code: int, message: str, data: Any = None) -> None:
        super().__init__(f"RPC error {code}: {message}")
        self.code = code
        self.message = message
        self.data = data


class RpcTimeoutError(RpcError, TimeoutError):
    """No response arrived before the call deadline."""

    def __init__(self, method: str, timeout: float) -> None:
        super().__init__(f"Request {method} timed out after {timeout:g}s")
        self.method = method
        self.timeout = timeout


class PeerStoppedError(RpcError):
    """The peer was shut down while the call was pending."""

    def __init__(self) -> None:
        super().__init__("peer stopped")
