"""Time MCP configuration loader - reads time_mcp.toml with ENV overrides."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
import os
from pathlib import Path
import tomllib
from typing import Any, cast

from time_mcp.clock import parse_instant

TRUTHY = ("1", "true", "yes")


@dataclass
class McpServerConfig:
    """Server transport settings."""

    transport: str = "stdio"  # "stdio" | "tcp"
    framing: str = "line"  # "line" | "sdk"
    host: str = "127.0.0.1"
    port: int = 8765
    log_level: str = "info"
    name: str = "time-server"
    version: str = "0.1.0"

    def validate(self) -> None:
        if self.transport not in ("stdio", "tcp"):
            raise ValueError(f"Invalid transport: {self.transport}")
        if self.framing not in ("line", "sdk"):
            raise ValueError(f"Invalid framing: {self.framing}")
        if self.framing == "sdk" and self.transport != "stdio":
            raise ValueError("sdk framing only supports the stdio transport")
        if not (1 <= self.port <= 65535):
            raise ValueError(f"Invalid port: {self.port}")


@dataclass
class McpClockConfig:
    """Clock override. Unset means wall-clock time."""

    fixed_time: str | None = None

    def validate(self) -> None:
        if self.fixed_time is None:
            return
        try:
            parse_instant(self.fixed_time)
        except ValueError as e:
            raise ValueError(f"Invalid fixed_time: {self.fixed_time}") from e


@dataclass
class McpLimitsConfig:
    """Request limits."""

    max_request_bytes: int = 1048576

    def validate(self) -> None:
        if self.max_request_bytes <= 0:
            raise ValueError("max_request_bytes must be positive")


@dataclass
class McpObservabilityConfig:
    """Observability settings."""

    enabled: bool = False
    log_format: str = "json"  # "json" | "text"
    log_level: str = "info"
    include_correlation_id: bool = True
    metrics_enabled: bool = True

    def validate(self) -> None:
        if self.log_format not in ("json", "text"):
            raise ValueError(f"Invalid log_format: {self.log_format}")


@dataclass
class McpConfig:
    """Root configuration."""

    enabled: bool = True
    server: McpServerConfig = field(default_factory=McpServerConfig)
    clock: McpClockConfig = field(default_factory=McpClockConfig)
    limits: McpLimitsConfig = field(default_factory=McpLimitsConfig)
    observability: McpObservabilityConfig = field(default_factory=McpObservabilityConfig)

    def validate(self) -> None:
        self.server.validate()
        self.clock.validate()
        self.limits.validate()
        self.observability.validate()

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _apply_section(section: Any, data: dict[str, Any]) -> None:
    """Copy known keys from a TOML table onto a config dataclass."""
    for key, value in data.items():
        if hasattr(section, key):
            setattr(section, key, value)


def _apply_env_overrides(cfg: McpConfig) -> McpConfig:
    """Apply environment variable overrides. ENV beats TOML."""
    if os.getenv("TIME_MCP_ENABLED"):
        cfg.enabled = os.getenv("TIME_MCP_ENABLED", "").lower() in TRUTHY

    if os.getenv("TIME_MCP_LOG_LEVEL"):
        cfg.server.log_level = os.getenv("TIME_MCP_LOG_LEVEL", cfg.server.log_level)

    if os.getenv("TIME_MCP_TRANSPORT"):
        cfg.server.transport = os.getenv("TIME_MCP_TRANSPORT", cfg.server.transport)

    if os.getenv("TIME_MCP_FRAMING"):
        cfg.server.framing = os.getenv("TIME_MCP_FRAMING", cfg.server.framing)

    # Deterministic clock for test harnesses
    if os.getenv("TIME_MCP_FIXED_TIME"):
        cfg.clock.fixed_time = os.getenv("TIME_MCP_FIXED_TIME")

    if os.getenv("TIME_MCP_OBS_ENABLED"):
        cfg.observability.enabled = os.getenv("TIME_MCP_OBS_ENABLED", "").lower() in TRUTHY
    if os.getenv("TIME_MCP_OBS_LOG_FORMAT"):
        cfg.observability.log_format = os.getenv(
            "TIME_MCP_OBS_LOG_FORMAT", cfg.observability.log_format
        )

    return cfg


def load_config(config_path: str | Path | None = None) -> McpConfig:
    """
    Load config from time_mcp.toml with ENV overrides.

    Precedence: ENV → TOML → defaults

    Args:
        config_path: Path to time_mcp.toml. If None, searches:
            1. TIME_MCP_CONFIG env var
            2. ./time_mcp.toml

    Returns:
        McpConfig dataclass with merged settings.

    Raises:
        ValueError: If the merged settings are invalid.
    """
    if config_path is None:
        if os.getenv("TIME_MCP_CONFIG"):
            config_path = Path(cast(str, os.getenv("TIME_MCP_CONFIG")))
        else:
            config_path = Path("time_mcp.toml")
    else:
        config_path = Path(config_path)

    cfg = McpConfig()

    if config_path.exists():
        with open(config_path, "rb") as f:
            data = tomllib.load(f)

        mcp_data = data.get("mcp", {})
        cfg.enabled = mcp_data.get("enabled", cfg.enabled)
        _apply_section(cfg.server, mcp_data.get("server", {}))
        _apply_section(cfg.clock, mcp_data.get("clock", {}))
        _apply_section(cfg.limits, mcp_data.get("limits", {}))
        _apply_section(cfg.observability, mcp_data.get("observability", {}))

    cfg = _apply_env_overrides(cfg)
    cfg.validate()

    return cfg
