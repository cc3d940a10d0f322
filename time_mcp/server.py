#!/usr/bin/env python3
"""
Time MCP Server - current time and time differences over JSON-RPC.

Supports stdio (default) and TCP transports.
Run with: python -m time_mcp

Tools:
- getCurrentTime: current instant as ISO-8601 UTC
- getTimeDifference: signed difference between a UTC timestamp and now

Framing:
- line: built-in newline-delimited JSON-RPC engine (stdio or tcp)
- sdk: the mcp SDK's stdio server drives the same dispatcher
"""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import Any

from mcp import types
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.shared.exceptions import McpError

from time_mcp.clock import Clock, FixedClock, SystemClock
from time_mcp.config import McpConfig, load_config
from time_mcp.dispatcher import Dispatcher, ToolCall
from time_mcp.observability import ObservabilityContext, setup_logging
from time_mcp.protocol import JsonRpcProtocol
from time_mcp.registry import ToolRegistry, default_registry
from time_mcp.transport import StdioTransport, Transport, serve_lines, serve_tcp

# Configure logging to stderr (stdout carries protocol frames)
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger("time_mcp")


def build_clock(config: McpConfig) -> Clock:
    if config.clock.fixed_time:
        logger.warning(f"Using fixed clock: {config.clock.fixed_time}")
        return FixedClock.from_iso(config.clock.fixed_time)
    return SystemClock()


class TimeMcpServer:
    """Time MCP Server implementation."""

    def __init__(
        self,
        config: McpConfig | None = None,
        clock: Clock | None = None,
        registry: ToolRegistry | None = None,
    ):
        self.config = config or McpConfig()
        self.obs = ObservabilityContext(self.config.observability)
        self.registry = registry or default_registry()
        self.clock = clock or build_clock(self.config)
        self.dispatcher = Dispatcher(registry=self.registry, clock=self.clock, obs=self.obs)
        self.protocol = JsonRpcProtocol(
            self.dispatcher,
            server_name=self.config.server.name,
            server_version=self.config.server.version,
        )

        self.server = Server(self.config.server.name, version=self.config.server.version)
        self._register_handlers()
        logger.info(
            f"Time MCP Server initialized (tools: {', '.join(self.registry.names())}, "
            f"framing={self.config.server.framing}, transport={self.config.server.transport})"
        )

    @property
    def tools(self) -> list[types.Tool]:
        return self.registry.list_tools()

    def _register_handlers(self):
        """Register MCP protocol handlers on the SDK server."""

        @self.server.list_tools()
        async def list_tools() -> list[types.Tool]:
            """Return available tools."""
            logger.debug("list_tools called")
            return self.registry.list_tools()

        # Set directly: @call_tool() reports failures as isError results, not JSON-RPC errors
        self.server.request_handlers[types.CallToolRequest] = self._handle_call_tool

    async def _handle_call_tool(self, req: types.CallToolRequest) -> types.ServerResult:
        call = ToolCall(tool_name=req.params.name, raw_arguments=req.params.arguments)
        outcome = await self.dispatcher.dispatch(call)
        if isinstance(outcome, types.ErrorData):
            raise McpError(outcome)
        return types.ServerResult(outcome)

    async def handle(self, message: Any) -> dict[str, Any] | None:
        """Handle one decoded JSON-RPC message (line framing)."""
        return await self.protocol.handle(message)

    def get_stats(self) -> dict[str, Any]:
        return self.obs.get_stats()

    async def serve(self, transport: Transport) -> None:
        """Serve the line protocol over an arbitrary transport until EOF."""
        await serve_lines(transport, self.protocol, self.config.limits.max_request_bytes)

    async def run_sdk(self):
        """Run with the mcp SDK's stdio transport."""
        logger.info("Starting time MCP server (stdio transport, sdk framing)")
        async with stdio_server() as (read_stream, write_stream):
            await self.server.run(
                read_stream,
                write_stream,
                self.server.create_initialization_options(),
            )

    async def run_tcp(self):
        server = await serve_tcp(
            self.protocol,
            self.config.server.host,
            self.config.server.port,
            self.config.limits.max_request_bytes,
        )
        async with server:
            await server.serve_forever()

    async def run(self):
        """Run until the input stream ends."""
        if self.config.server.framing == "sdk":
            await self.run_sdk()
        elif self.config.server.transport == "tcp":
            await self.run_tcp()
        else:
            logger.info("Starting time MCP server (stdio transport, line framing)")
            await self.serve(StdioTransport())

        if self.obs.enabled:
            logger.info(f"Final metrics: {self.get_stats()}")


def configure_logging(config: McpConfig) -> logging.Logger:
    """Apply log settings; structured logging when observability is enabled."""
    global logger  # noqa: PLW0603
    if config.observability.enabled:
        logger = setup_logging(config.observability, "time_mcp")
    else:
        log_level = getattr(logging, config.server.log_level.upper(), logging.INFO)
        logging.getLogger().setLevel(log_level)
        logger.setLevel(log_level)
    return logger


def run_server(config: McpConfig) -> int:
    """Run a configured server to completion. Returns the process exit code."""
    configure_logging(config)

    logger.info(
        f"Config loaded: enabled={config.enabled}, transport={config.server.transport}, "
        f"framing={config.server.framing}"
    )
    logger.info(
        f"Observability: enabled={config.observability.enabled}, "
        f"log_format={config.observability.log_format}"
    )

    if not config.enabled:
        logger.warning("Time MCP server disabled in config, exiting")
        return 0

    try:
        server = TimeMcpServer(config)
        asyncio.run(server.run())
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    except Exception as e:
        logger.exception(f"Fatal error running server: {e}")
        return 1
    return 0


def main():
    """Entry point for the time MCP server."""
    import argparse

    parser = argparse.ArgumentParser(description="Time MCP Server")
    parser.add_argument(
        "--config",
        "-c",
        help="Path to time_mcp.toml config file",
        default=None,
    )
    parser.add_argument(
        "--log-level",
        "-l",
        choices=["debug", "info", "warning", "error"],
        default=None,
        help="Override log level",
    )
    parser.add_argument(
        "--framing",
        choices=["line", "sdk"],
        default=None,
        help="Override message framing",
    )
    parser.add_argument(
        "--transport",
        choices=["stdio", "tcp"],
        default=None,
        help="Override transport",
    )
    args = parser.parse_args()

    try:
        config = load_config(args.config)
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        sys.exit(2)

    # Apply CLI overrides
    if args.log_level:
        config.server.log_level = args.log_level
        config.observability.log_level = args.log_level
    if args.framing:
        config.server.framing = args.framing
    if args.transport:
        config.server.transport = args.transport

    try:
        config.validate()
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        sys.exit(2)

    sys.exit(run_server(config))


if __name__ == "__main__":
    main()
