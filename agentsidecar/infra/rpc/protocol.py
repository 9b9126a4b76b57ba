"""JSON-RPC 2.0 message framing over newline-delimited JSON."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JsonRpcRequest:
    """JSON-RPC 2.0 request (expects a response carrying the same id)."""

    method: str
    params: Any = None
    id: int | str = 0

    def to_dict(self) -> dict:
        d: dict = {"jsonrpc": "2.0", "id": self.id, "method": self.method}
        if self.params is not None:
            d["params"] = self.params
        return d


@dataclass(frozen=True)
class JsonRpcResponse:
    """JSON-RPC 2.0 response (success or error)."""

    id: int | str | None = None
    result: Any = None
    error: dict | None = None

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def to_dict(self) -> dict:
        d: dict = {"jsonrpc": "2.0", "id": self.id}
        if self.error is not None:
            d["error"] = self.error
        else:
            d["result"] = self.result
        return d


@dataclass(frozen=True)
class JsonRpcNotification:
    """JSON-RPC 2.0 notification (no id, no response expected)."""

    method: str
    params: Any = None

    def to_dict(self) -> dict:
        d: dict = {"jsonrpc": "2.0", "method": self.method}
        if self.params is not None:
            d["params"] = self.params
        return d


JsonRpcMessage = Union[JsonRpcRequest, JsonRpcResponse, JsonRpcNotification]


def _json_default(value: Any) -> Any:
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    return str(value)


def encode(msg: JsonRpcMessage) -> bytes:
    """Encode a JSON-RPC message as a newline-delimited JSON bytes line."""
    return json.dumps(msg.to_dict(), default=_json_default).encode() + b"\n"


def _is_valid_id(value: Any) -> bool:
    # bool is an int subclass but never a valid id
    return isinstance(value, (str, int)) and not isinstance(value, bool)


def message_from_dict(data: Any) -> JsonRpcMessage | None:
    """Classify one decoded JSON value. Returns None for malformed entries."""
    if not isinstance(data, dict):
        return None

    if "method" in data:
        method = data["method"]
        if not isinstance(method, str):
            return None
        if "id" in data and data["id"] is not None:
            if not _is_valid_id(data["id"]):
                return None
            return JsonRpcRequest(method=method, params=data.get("params"), id=data["id"])
        return JsonRpcNotification(method=method, params=data.get("params"))

    if "id" in data and ("result" in data or "error" in data):
        msg_id = data["id"]
        if msg_id is not None and not _is_valid_id(msg_id):
            return None
        error = data.get("error")
        if error is not None and not isinstance(error, dict):
            return None
        return JsonRpcResponse(id=msg_id, result=data.get("result"), error=error)

    return None


def decode(line: bytes | str) -> list[JsonRpcMessage]:
    """Decode one line into its JSON-RPC messages.

    A line holds a single message object or a batch array. Malformed batch
    elements are logged and skipped without affecting their siblings.
    Raises ValueError when the line is not valid JSON.
    """
    data = json.loads(line)
    entries = data if isinstance(data, list) else [data]

    messages: list[JsonRpcMessage] = []
    for entry in entries:
        msg = message_from_dict(entry)
        if msg is None:
            logger.warning("Dropping malformed JSON-RPC entry: %r", entry)
            continue
        messages.append(msg)
    return messages


def make_error(id: int | str | None, code: int, message: str, data: Any = None) -> JsonRpcResponse:
    """Create a JSON-RPC error response."""
    error: dict = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return JsonRpcResponse(id=id, error=error)


# Reserved JSON-RPC error code
METHOD_NOT_FOUND = -32601
# Implementation-defined: a registered handler raised
HANDLER_ERROR = -32000
