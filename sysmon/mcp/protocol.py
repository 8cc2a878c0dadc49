"""JSON-RPC 2.0 envelopes and the codec shared by every transport.

Both transports turn bytes into an :class:`MCPRequest` with
:func:`decode_request` and turn the router's :class:`MCPResponse` back
into bytes with :func:`encode_response`.  Notification suppression lives
in ``encode_response`` and nowhere else: a request without an id gets
``None`` back, and the transport writes nothing.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Union

logger = logging.getLogger(__name__)

JSONRPC_VERSION = "2.0"

# A request id keeps its JSON kind: "7" and 7 are different ids.
RequestId = Union[str, int]


class ErrorCode(IntEnum):
    """JSON-RPC protocol codes plus sysmon domain codes."""
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603
    # Domain codes
    PROCESS_NOT_FOUND = -32001
    MONITORING_ALREADY_STARTED = -32002   # reserved
    MONITORING_NOT_STARTED = -32003       # reserved
    SYSTEM_COMMAND_FAILED = -32004
    PERMISSION_DENIED = -32005


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MCPError:
    """JSON-RPC error object."""
    code: int
    message: str
    data: Any = None

    def to_dict(self) -> dict[str, Any]:
        error: dict[str, Any] = {"code": int(self.code), "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return error


@dataclass(frozen=True)
class MCPRequest:
    method: str
    params: Any = field(default_factory=dict)
    id: RequestId | None = None
    jsonrpc: str = JSONRPC_VERSION

    @property
    def is_notification(self) -> bool:
        return self.id is None


@dataclass(frozen=True)
class MCPResponse:
    """Carries exactly one of ``result`` / ``error``."""
    id: RequestId | None
    result: Any = None
    error: MCPError | None = None
    jsonrpc: str = JSONRPC_VERSION

    @classmethod
    def success(cls, id: RequestId | None, result: Any) -> "MCPResponse":
        return cls(id=id, result=result)

    @classmethod
    def failure(
        cls,
        id: RequestId | None,
        code: int,
        message: str,
        data: Any = None,
    ) -> "MCPResponse":
        return cls(id=id, error=MCPError(code=int(code), message=message, data=data))

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        msg: dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            msg["error"] = self.error.to_dict()
        else:
            msg["result"] = self.result
        return msg


# ---------------------------------------------------------------------------
# Codec
# ---------------------------------------------------------------------------


class RequestDecodeError(Exception):
    """Raised when bytes cannot be turned into a request.

    ``code`` is PARSE_ERROR for bad UTF-8 / JSON and INVALID_REQUEST for
    valid JSON that is not a request; ``id`` is set when one was readable.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        id: RequestId | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.id = id


def _valid_id(value: Any) -> bool:
    # bool is an int subclass but never a valid id
    return isinstance(value, str) or (isinstance(value, int) and not isinstance(value, bool))


def request_from_dict(data: Any) -> MCPRequest:
    """Validate a decoded JSON value as a request."""
    if not isinstance(data, dict):
        raise RequestDecodeError(ErrorCode.INVALID_REQUEST, "Request must be a JSON object")

    raw_id = data.get("id")
    if raw_id is not None and not _valid_id(raw_id):
        raise RequestDecodeError(
            ErrorCode.INVALID_REQUEST, "Request id must be a string or an integer"
        )

    version = data.get("jsonrpc", JSONRPC_VERSION)
    if version != JSONRPC_VERSION:
        raise RequestDecodeError(
            ErrorCode.INVALID_REQUEST, f"Unsupported jsonrpc version: {version!r}", raw_id
        )

    method = data.get("method")
    if not isinstance(method, str) or not method:
        raise RequestDecodeError(
            ErrorCode.INVALID_REQUEST, "Request method must be a non-empty string", raw_id
        )

    params = data.get("params")
    if params is None:
        params = {}

    return MCPRequest(method=method, params=params, id=raw_id, jsonrpc=version)


def decode_request(raw: bytes | str) -> MCPRequest:
    """Parse one request from a message body."""
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise RequestDecodeError(ErrorCode.PARSE_ERROR, f"Invalid UTF-8: {exc}") from exc
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise RequestDecodeError(ErrorCode.PARSE_ERROR, str(exc)) from exc
    return request_from_dict(data)


def encode_message(message: dict[str, Any]) -> bytes:
    return json.dumps(message, separators=(",", ":"), default=str).encode("utf-8")


def encode_response(request: MCPRequest, response: MCPResponse) -> bytes | None:
    """Serialize ``response``, or return None if ``request`` was a notification."""
    if request.is_notification:
        logger.debug("Suppressing response to notification %s", request.method)
        return None
    return encode_message(response.to_dict())


def frame(body: bytes) -> bytes:
    """Prefix ``body`` with a Content-Length header block."""
    return b"Content-Length: %d\r\n\r\n" % len(body) + body
