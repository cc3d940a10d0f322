"""CLI for running and poking at the time MCP server."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.table import Table
import typer

app = typer.Typer(
    name="time-mcp",
    help="Time MCP Server CLI",
    add_completion=False,
)
console = Console()


def _parse_arg(pair: str) -> tuple[str, str]:
    key, sep, value = pair.partition("=")
    if not sep or not key:
        raise typer.BadParameter(f"Expected key=value, got '{pair}'")
    return key, value


@app.command()
def serve(
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to time_mcp.toml"
    ),
    framing: Optional[str] = typer.Option(None, "--framing", help="line | sdk"),
    transport: Optional[str] = typer.Option(None, "--transport", help="stdio | tcp"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="TCP port"),
    host: Optional[str] = typer.Option(None, "--host", "-H", help="TCP bind address"),
    log_level: Optional[str] = typer.Option(None, "--log-level", "-l", help="Override log level"),
) -> None:
    """Run the server until the input stream ends."""
    from time_mcp.config import load_config
    from time_mcp.server import run_server

    try:
        config = load_config(config_path)
        if framing:
            config.server.framing = framing
        if transport:
            config.server.transport = transport
        if port is not None:
            config.server.port = port
        if host:
            config.server.host = host
        if log_level:
            config.server.log_level = log_level
            config.observability.log_level = log_level
        config.validate()
    except ValueError as e:
        # stdout may be a protocol channel; report on stderr
        Console(stderr=True).print(f"[red]✗[/] Invalid configuration: {e}")
        raise typer.Exit(2) from e

    raise typer.Exit(run_server(config))


@app.command()
def tools() -> None:
    """List the tools the server exposes."""
    from time_mcp.registry import default_registry

    table = Table(title="Tools")
    table.add_column("Name", style="bold")
    table.add_column("Description")
    table.add_column("Required")

    for tool in default_registry().list_tools():
        required = ", ".join(tool.inputSchema.get("required", [])) or "-"
        table.add_row(tool.name, tool.description or "", required)

    console.print(table)


@app.command()
def call(
    name: str = typer.Argument(..., help="Tool name, e.g. getTimeDifference"),
    arg: list[str] = typer.Option(
        [], "--arg", "-a", help="Tool argument as key=value (repeatable)"
    ),
    now: Optional[str] = typer.Option(
        None, "--now", help="Pin the clock to this ISO-8601 instant"
    ),
) -> None:
    """Invoke one tool locally and print its result."""
    from mcp.types import ErrorData

    from time_mcp.clock import FixedClock, SystemClock
    from time_mcp.dispatcher import Dispatcher, ToolCall

    arguments = dict(_parse_arg(pair) for pair in arg)

    try:
        clock = FixedClock.from_iso(now) if now else SystemClock()
    except ValueError as e:
        raise typer.BadParameter(f"Invalid --now value: {now}") from e

    dispatcher = Dispatcher(clock=clock)
    outcome = asyncio.run(dispatcher.dispatch(ToolCall(tool_name=name, raw_arguments=arguments)))

    if isinstance(outcome, ErrorData):
        console.print(f"[red]✗[/] {outcome.message} (code {outcome.code})")
        if outcome.data is not None:
            console.print(f"  {outcome.data}")
        raise typer.Exit(1)

    for item in outcome.content:
        console.print(item.text, markup=False, highlight=False)


@app.command("config")
def show_config(
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to time_mcp.toml"
    ),
) -> None:
    """Show the effective configuration."""
    from time_mcp.config import load_config

    try:
        config = load_config(config_path)
    except ValueError as e:
        console.print(f"[red]✗[/] Invalid configuration: {e}")
        raise typer.Exit(2) from e

    console.print_json(json.dumps(config.to_dict()))


if __name__ == "__main__":
    app()
