"""
JSON-RPC framing for the time server.

- ``LineDecoder``: incremental newline-delimited decoder over raw bytes
- ``encode_message``: one compact JSON line per response
- ``JsonRpcProtocol``: ``handle(message) -> response`` for decoded messages
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
import json
import logging
from typing import Any

from mcp.types import LATEST_PROTOCOL_VERSION, CallToolResult, ErrorData

from time_mcp.dispatcher import Dispatcher, ToolCall
from time_mcp.errors import ParseFailure, invalid_params, method_not_found, parse_error
from time_mcp.tools.time_tools import format_seconds

logger = logging.getLogger(__name__)

JSONRPC_VERSION = "2.0"
DEFAULT_MAX_LINE_BYTES = 1048576

Decoded = Any | ParseFailure


class LineDecoder:
    """
    Newline-delimited JSON decoder.

    Bytes are buffered until a ``\\n`` arrives; every complete line decodes
    to one message (or a ParseFailure). The unterminated tail stays in the
    buffer for the next ``feed()``. ``feed()`` buffers its chunk immediately;
    decoding is lazy, and lines not yet pulled from an iterator stay buffered
    and come out of the next one in arrival order.
    """

    def __init__(self, max_line_bytes: int = DEFAULT_MAX_LINE_BYTES):
        self.max_line_bytes = max_line_bytes
        self._buffer = bytearray()
        self._discarding = False

    @property
    def pending(self) -> bytes:
        return bytes(self._buffer)

    def feed(self, chunk: bytes) -> Iterator[Decoded]:
        """Buffer ``chunk`` now; return a lazy iterator over complete lines."""
        self._buffer.extend(chunk)
        return self._drain()

    def _drain(self) -> Iterator[Decoded]:
        while True:
            newline = self._buffer.find(b"\n")
            if newline < 0:
                if not self._discarding and len(self._buffer) > self.max_line_bytes:
                    # Oversized line: report once, drop bytes until its newline
                    self._discarding = True
                    self._buffer.clear()
                    yield ParseFailure("Request too large")
                elif self._discarding:
                    self._buffer.clear()
                return

            line = bytes(self._buffer[:newline])
            del self._buffer[: newline + 1]

            if self._discarding:
                self._discarding = False
                continue

            decoded = self._decode(line)
            if decoded is not None:
                yield decoded

    def close(self) -> Iterator[Decoded]:
        """Flush the unterminated tail at end of stream."""
        line = bytes(self._buffer)
        self._buffer.clear()
        discarding, self._discarding = self._discarding, False
        decoded = None if discarding else self._decode(line)
        return iter(() if decoded is None else (decoded,))

    def _decode(self, line: bytes) -> Decoded | None:
        if line.endswith(b"\r"):
            line = line[:-1]
        if not line.strip():
            return None
        if len(line) > self.max_line_bytes:
            return ParseFailure("Request too large")
        try:
            return json.loads(line.decode("utf-8"))
        except (ValueError, RecursionError) as e:
            # ValueError covers bad UTF-8, bad JSON and oversized integer literals
            return ParseFailure(str(e))


def encode_message(message: Mapping[str, Any]) -> bytes:
    return (json.dumps(message, separators=(",", ":"), ensure_ascii=False) + "\n").encode("utf-8")


def success_response(request_id: Any, result: Any) -> dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}


def error_response(request_id: Any, error: ErrorData) -> dict[str, Any]:
    return {
        "jsonrpc": JSONRPC_VERSION,
        "id": request_id,
        "error": error.model_dump(mode="json", exclude_none=True),
    }


def tool_result_payload(result: CallToolResult) -> dict[str, Any]:
    return {
        "content": [
            item.model_dump(mode="json", by_alias=True, exclude_none=True)
            for item in result.content
        ]
    }


class JsonRpcProtocol:
    """
    Maps decoded JSON-RPC requests onto the dispatcher.

    Stateless across messages; every request yields exactly one response,
    except ``notifications/*`` which yield none.
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        server_name: str = "time-server",
        server_version: str = "0.1.0",
    ):
        self.dispatcher = dispatcher
        self.server_name = server_name
        self.server_version = server_version
        self._methods = {
            "initialize": self._initialize,
            "ping": self._ping,
            "tools/list": self._list_tools,
            "tools/call": self._call_tool,
            "getCurrentTime": self._legacy_current_time,
        }

    async def handle_decoded(self, item: Decoded) -> dict[str, Any] | None:
        if isinstance(item, ParseFailure):
            logger.warning(f"Parse error: {item.detail}")
            return error_response(None, parse_error(item.detail))
        return await self.handle(item)

    async def handle(self, message: Any) -> dict[str, Any] | None:
        if not isinstance(message, dict):
            return error_response(None, parse_error("Expected a JSON object"))

        request_id = message.get("id")
        method = message.get("method")

        if isinstance(method, str) and method.startswith("notifications/"):
            logger.debug(f"notification: {method}")
            return None

        logger.debug(f"request: {method}", extra={"request_id": request_id, "method": method})
        handler = self._methods.get(method) if isinstance(method, str) else None
        if handler is None:
            return error_response(request_id, method_not_found())

        params = message.get("params")
        if params is None:
            params = {}
        if not isinstance(params, dict):
            return error_response(request_id, invalid_params("params: Input should be an object"))

        outcome = await handler(params, request_id)
        if isinstance(outcome, ErrorData):
            return error_response(request_id, outcome)
        return success_response(request_id, outcome)

    def list_tools(self) -> list[dict[str, Any]]:
        return [
            tool.model_dump(mode="json", by_alias=True, exclude_none=True)
            for tool in self.dispatcher.registry.list_tools()
        ]

    async def _initialize(self, params: dict[str, Any], request_id: Any) -> dict[str, Any]:
        requested = params.get("protocolVersion")
        return {
            "protocolVersion": requested if isinstance(requested, str) else LATEST_PROTOCOL_VERSION,
            "serverInfo": {"name": self.server_name, "version": self.server_version},
            "capabilities": {"tools": {}},
        }

    async def _ping(self, params: dict[str, Any], request_id: Any) -> dict[str, Any]:
        return {}

    async def _list_tools(self, params: dict[str, Any], request_id: Any) -> dict[str, Any]:
        return {"tools": self.list_tools()}

    async def _call_tool(
        self, params: dict[str, Any], request_id: Any
    ) -> dict[str, Any] | ErrorData:
        name = params.get("name")
        if not isinstance(name, str):
            return invalid_params("name: Input should be a string")

        call = ToolCall(tool_name=name, raw_arguments=params.get("arguments"), call_id=request_id)
        outcome = await self.dispatcher.dispatch(call)
        if isinstance(outcome, ErrorData):
            return outcome
        return tool_result_payload(outcome)

    async def _legacy_current_time(self, params: dict[str, Any], request_id: Any) -> dict[str, Any]:
        """Direct ``getCurrentTime`` method from the first line-server protocol."""
        return {"time": format_seconds(self.dispatcher.clock.now()), "success": True}
