"""Tests for the server wiring: SDK handlers, clock selection, entry points."""

import json
import sys

from mcp import types
from mcp.shared.exceptions import McpError
import pytest

from time_mcp.clock import FixedClock, SystemClock
from time_mcp.config import McpConfig
from time_mcp.errors import INVALID_PARAMS, METHOD_NOT_FOUND
from time_mcp.server import TimeMcpServer, build_clock, main, run_server
from time_mcp.transport import MemoryTransport


def _call_request(name: str, arguments: dict | None = None) -> types.CallToolRequest:
    return types.CallToolRequest(
        method="tools/call",
        params=types.CallToolRequestParams(name=name, arguments=arguments),
    )


@pytest.fixture
def server(clock):
    return TimeMcpServer(clock=clock)


def test_exposes_both_tools(server):
    assert [t.name for t in server.tools] == ["getCurrentTime", "getTimeDifference"]


def test_build_clock_defaults_to_system_clock():
    assert isinstance(build_clock(McpConfig()), SystemClock)


def test_build_clock_honours_fixed_time():
    config = McpConfig()
    config.clock.fixed_time = "2025-02-08T18:30:00Z"
    clock = build_clock(config)
    assert isinstance(clock, FixedClock)
    assert clock.now().isoformat() == "2025-02-08T18:30:00+00:00"


@pytest.mark.asyncio
async def test_handle_line_message(server):
    response = await server.handle(
        {"jsonrpc": "2.0", "id": 1, "method": "tools/call",
         "params": {"name": "getCurrentTime", "arguments": {}}}
    )
    assert response["result"]["content"][0]["text"] == "2025-01-01T12:00:00.000Z"


@pytest.mark.asyncio
async def test_serve_memory_transport(server):
    transport = MemoryTransport([b'{"jsonrpc":"2.0","id":1,"method":"tools/list"}\n'])
    transport.feed_eof()

    await server.serve(transport)

    response = json.loads(transport.output)
    assert [t["name"] for t in response["result"]["tools"]] == [
        "getCurrentTime",
        "getTimeDifference",
    ]


class TestSdkHandlers:
    @pytest.mark.asyncio
    async def test_list_tools_handler(self, server):
        handler = server.server.request_handlers[types.ListToolsRequest]
        result = await handler(types.ListToolsRequest(method="tools/list"))
        assert [t.name for t in result.root.tools] == ["getCurrentTime", "getTimeDifference"]

    @pytest.mark.asyncio
    async def test_call_tool_success(self, server):
        result = await server._handle_call_tool(_call_request("getCurrentTime", {}))
        assert isinstance(result.root, types.CallToolResult)
        assert result.root.content[0].text == "2025-01-01T12:00:00.000Z"
        assert not result.root.isError

    @pytest.mark.asyncio
    async def test_call_tool_is_registered(self, server):
        handler = server.server.request_handlers[types.CallToolRequest]
        result = await handler(
            _call_request("getTimeDifference", {"timestamp": "2025-01-01 11:00:00"})
        )
        assert json.loads(result.root.content[0].text)["difference"] == -60

    @pytest.mark.asyncio
    async def test_unknown_tool_raises_protocol_error(self, server):
        with pytest.raises(McpError) as exc_info:
            await server._handle_call_tool(_call_request("unknownTool", {}))
        assert exc_info.value.error.code == METHOD_NOT_FOUND
        assert exc_info.value.error.message == "Unknown tool: unknownTool"

    @pytest.mark.asyncio
    async def test_invalid_timestamp_raises_invalid_params(self, server):
        with pytest.raises(McpError) as exc_info:
            await server._handle_call_tool(
                _call_request("getTimeDifference", {"timestamp": "invalid-timestamp"})
            )
        assert exc_info.value.error.code == INVALID_PARAMS
        assert exc_info.value.error.message == "Invalid timestamp format"


@pytest.mark.asyncio
async def test_metrics_visible_through_server(clock):
    config = McpConfig()
    config.observability.enabled = True
    server = TimeMcpServer(config=config, clock=clock)

    await server.handle(
        {"jsonrpc": "2.0", "id": 1, "method": "tools/call",
         "params": {"name": "getCurrentTime", "arguments": {}}}
    )
    assert server.get_stats()["tools"]["getCurrentTime"]["calls"] == 1


def test_run_server_disabled_exits_zero():
    config = McpConfig(enabled=False)
    assert run_server(config) == 0


def test_main_rejects_invalid_config(hermetic_env, monkeypatch, capsys):
    (hermetic_env / "time_mcp.toml").write_text('[mcp.server]\ntransport = "carrier-pigeon"\n')
    monkeypatch.setattr(sys, "argv", ["time-mcp-server"])

    with pytest.raises(SystemExit) as exc_info:
        main()

    assert exc_info.value.code == 2
    assert "Invalid configuration" in capsys.readouterr().err


def test_main_rejects_sdk_over_tcp(monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", ["time-mcp-server", "--framing", "sdk", "--transport", "tcp"])

    with pytest.raises(SystemExit) as exc_info:
        main()

    assert exc_info.value.code == 2
    assert "sdk framing" in capsys.readouterr().err
