"""
JSON-RPC response framing for the stateful transport.

The server answers a tools/call either as a single JSON document or as a
server-sent-event stream, and a successful tool result may or may not be
wrapped in a list of typed content blocks. Each framing is handled by one
small function here so it can be tested against fixture payloads without
any network I/O.
"""

import json
from enum import Enum
from typing import Any

from graphiti_memory.utils.exceptions import ProtocolError

EVENT_STREAM = "text/event-stream"


class ResponseFraming(str, Enum):
    """How a JSON-RPC response body is framed on the wire."""

    JSON = "json"
    EVENT_STREAM = "event-stream"


def detect_framing(content_type: str | None) -> ResponseFraming:
    """Pick the framing from the response content-type header."""
    if content_type and EVENT_STREAM in content_type.lower():
        return ResponseFraming.EVENT_STREAM
    return ResponseFraming.JSON


def parse_json_body(text: str) -> dict[str, Any]:
    """Decode a single-document JSON-RPC response."""
    try:
        frame = json.loads(text)
    except json.JSONDecodeError as e:
        raise ProtocolError(f"Invalid JSON response: {e}") from e
    if not isinstance(frame, dict):
        raise ProtocolError("JSON-RPC response is not an object")
    return frame


def parse_event_stream(text: str) -> dict[str, Any]:
    """
    Scan an event stream for the first JSON-RPC response frame.

    Data lines that do not parse, or parse to something that is not a
    response (notifications, progress events), are skipped.

    Raises:
        ProtocolError: If no response frame is found
    """
    for line in text.splitlines():
        if not line.startswith("data:"):
            continue
        payload = line[len("data:") :].strip()
        if not payload:
            continue
        try:
            frame = json.loads(payload)
        except json.JSONDecodeError:
            continue
        if isinstance(frame, dict) and ("result" in frame or "error" in frame):
            return frame
    raise ProtocolError("Failed to parse SSE response")


def decode_response(content_type: str | None, text: str) -> dict[str, Any]:
    """Decode a JSON-RPC response frame using the framing its content-type announces."""
    if detect_framing(content_type) is ResponseFraming.EVENT_STREAM:
        return parse_event_stream(text)
    return parse_json_body(text)


def unwrap_tool_result(result: Any) -> Any:
    """
    Strip the content-block wrapper from a tool result.

    {"content": [{"type": "text", "text": "<json>"}]} becomes the decoded
    JSON, or the raw text when it is not JSON. Anything else is returned
    unchanged.
    """
    if not isinstance(result, dict):
        return result

    content = result.get("content")
    if not isinstance(content, list) or not content:
        return result

    for block in content:
        if isinstance(block, dict) and block.get("type") == "text" and block.get("text"):
            text = block["text"]
            try:
                return json.loads(text)
            except json.JSONDecodeError:
                return text

    return result


def extract_result(frame: dict[str, Any]) -> Any:
    """
    Return the unwrapped result of a JSON-RPC response frame.

    Raises:
        ProtocolError: If the frame carries a JSON-RPC error
    """
    error = frame.get("error")
    if error:
        message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
        raise ProtocolError(f"MCP Error: {message}", context={"error": error})
    return unwrap_tool_result(frame.get("result"))
