"""Line-delimited JSON-RPC messages exchanged with the relay worker."""

import json
from dataclasses import dataclass

from shot_assessment.domain.errors import (
    AssessmentError,
    InvalidRequestError,
    TransportError,
    error_from_kind,
)

JSONRPC_VERSION = "2.0"
METHOD_TOOLS_CALL = "tools/call"
METHOD_CANCELLED = "notifications/cancelled"

TOOL_ASSESS = "assess_photo"
TOOL_GET_SESSION = "get_session"
TOOL_CLEAR_SHOOT = "clear_shoot"
TOOLS = frozenset({TOOL_ASSESS, TOOL_GET_SESSION, TOOL_CLEAR_SHOOT})

PARSE_ERROR_CODE = -32700
METHOD_NOT_FOUND_CODE = -32601


@dataclass(frozen=True)
class RelayCall:
    """A tool invocation sent to the worker."""

    id: int
    name: str
    arguments: dict[str, object]


@dataclass(frozen=True)
class RelayCancel:
    """Notification that the caller gave up on an in-flight call."""

    request_id: int


class UnknownToolError(InvalidRequestError):
    """A well-formed request named a method or tool the worker doesn't serve."""

    rpc_code = METHOD_NOT_FOUND_CODE

    def __init__(self, request_id: int, name: str) -> None:
        super().__init__(f"Unknown relay tool: {name}")
        self.request_id = request_id


@dataclass(frozen=True)
class RelayReply:
    """A worker reply; exactly one of ``result`` or ``error`` is meaningful."""

    id: int | None
    result: object = None
    error: AssessmentError | None = None


def encode_call(call: RelayCall) -> str:
    """Serialize a tool call as one line."""
    return _dump(
        {
            "jsonrpc": JSONRPC_VERSION,
            "id": call.id,
            "method": METHOD_TOOLS_CALL,
            "params": {"name": call.name, "arguments": call.arguments},
        }
    )


def encode_cancel(request_id: int) -> str:
    """Serialize a cancellation notice for an in-flight call."""
    return _dump(
        {
            "jsonrpc": JSONRPC_VERSION,
            "method": METHOD_CANCELLED,
            "params": {"requestId": request_id},
        }
    )


def encode_result(request_id: int | None, result: object) -> str:
    """Serialize a successful tool result as one line."""
    return _dump(
        {
            "jsonrpc": JSONRPC_VERSION,
            "id": request_id,
            "result": {"content": [{"type": "text", "text": json.dumps(result)}]},
        }
    )


def encode_error(
    request_id: int | None, error: AssessmentError, code: int | None = None
) -> str:
    """Serialize an assessment error as one line."""
    data: dict[str, object] = {"kind": error.kind, "details": error.detail}
    if isinstance(error, InvalidRequestError):
        data["fields"] = error.fields
    return _dump(
        {
            "jsonrpc": JSONRPC_VERSION,
            "id": request_id,
            "error": {
                "code": code if code is not None else error.rpc_code,
                "message": error.message,
                "data": data,
            },
        }
    )


def parse_call(line: str) -> RelayCall | RelayCancel:
    """Parse a request line.

    Raises UnknownToolError when the request carries an id but names an
    unsupported method or tool, and InvalidRequestError for anything else
    that can't be read.
    """
    try:
        message = json.loads(line)
        method = message.get("method")
        params = message.get("params") or {}
        if method == METHOD_CANCELLED:
            return RelayCancel(request_id=_request_id(params["requestId"]))
        request_id = _request_id(message["id"])
        name = params.get("name") if method == METHOD_TOOLS_CALL else method
        arguments = params.get("arguments") or {}
    except (ValueError, KeyError, TypeError, AttributeError) as exc:
        raise InvalidRequestError("Malformed relay request") from exc
    if not isinstance(name, str) or name not in TOOLS:
        raise UnknownToolError(request_id, str(name))
    return RelayCall(id=request_id, name=name, arguments=arguments)


def _request_id(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"request id must be an integer, got {value!r}")
    return value


def parse_reply(line: str) -> RelayReply:
    """Parse a worker reply line, raising TransportError when unreadable."""
    try:
        message = json.loads(line)
        request_id = message.get("id")
        if "error" in message:
            error = message["error"]
            data = error.get("data") or {}
            return RelayReply(
                id=request_id,
                error=error_from_kind(
                    data.get("kind", "internal"),
                    data.get("details") or error.get("message"),
                    fields=data.get("fields"),
                ),
            )
        text = message["result"]["content"][0]["text"]
        return RelayReply(id=request_id, result=json.loads(text))
    except (ValueError, KeyError, IndexError, TypeError, AttributeError) as exc:
        raise TransportError(f"Unparseable relay output: {line[:200]!r}") from exc


def _dump(message: dict[str, object]) -> str:
    return json.dumps(message, separators=(",", ":")) + "\n"
