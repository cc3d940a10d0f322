"""Time MCP - current time and time differences for agents over JSON-RPC."""

__version__ = "0.1.0"
