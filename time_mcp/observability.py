"""Observability for the time MCP server.

Provides:
- Correlation ID generation
- JSON structured logging
- In-memory per-tool metrics
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import UTC, datetime
import json
import logging
from threading import Lock
import time
from typing import Any
import uuid

from time_mcp.config import McpObservabilityConfig

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_EXTRA_FIELDS = ("request_id", "tool", "method", "latency_ms", "status", "error")


def generate_correlation_id() -> str:
    """Generate a short unique ID for request tracing."""
    return str(uuid.uuid4())[:8]


class JsonLogFormatter(logging.Formatter):
    """JSON structured log formatter with correlation ID support."""

    def __init__(self, include_correlation_id: bool = True):
        super().__init__()
        self.include_correlation_id = include_correlation_id

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "ts": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname.lower(),
            "logger": record.name,
            "msg": record.getMessage(),
        }

        if self.include_correlation_id and hasattr(record, "correlation_id"):
            log_data["cid"] = record.correlation_id

        for name in _EXTRA_FIELDS:
            if hasattr(record, name):
                log_data[name] = getattr(record, name)

        if record.exc_info:
            log_data["exc"] = self.formatException(record.exc_info)

        return json.dumps(log_data, separators=(",", ":"), default=str)


@dataclass
class ToolMetrics:
    """Metrics for a single tool."""

    call_count: int = 0
    error_count: int = 0
    total_latency_ms: float = 0.0
    min_latency_ms: float = float("inf")
    max_latency_ms: float = 0.0

    @property
    def avg_latency_ms(self) -> float:
        if self.call_count == 0:
            return 0.0
        return self.total_latency_ms / self.call_count


class MetricsCollector:
    """Thread-safe in-memory counters for tool calls."""

    def __init__(self):
        self._lock = Lock()
        self._tools: dict[str, ToolMetrics] = defaultdict(ToolMetrics)
        self._total_requests = 0
        self._total_errors = 0
        self._start_time = time.time()

    def record_call(self, tool: str, latency_ms: float, success: bool) -> None:
        with self._lock:
            self._total_requests += 1
            metrics = self._tools[tool]
            metrics.call_count += 1
            if not success:
                self._total_errors += 1
                metrics.error_count += 1
            metrics.total_latency_ms += latency_ms
            metrics.min_latency_ms = min(metrics.min_latency_ms, latency_ms)
            metrics.max_latency_ms = max(metrics.max_latency_ms, latency_ms)

    def get_stats(self) -> dict[str, Any]:
        """Get current metrics snapshot."""
        with self._lock:
            tool_stats = {}
            for name, m in self._tools.items():
                tool_stats[name] = {
                    "calls": m.call_count,
                    "errors": m.error_count,
                    "avg_ms": round(m.avg_latency_ms, 2),
                    "min_ms": round(m.min_latency_ms, 2) if m.call_count else 0,
                    "max_ms": round(m.max_latency_ms, 2),
                }

            return {
                "uptime_s": round(time.time() - self._start_time, 1),
                "total_requests": self._total_requests,
                "total_errors": self._total_errors,
                "error_rate": round(self._total_errors / max(1, self._total_requests), 4),
                "tools": tool_stats,
            }

    def reset(self) -> None:
        """Reset all metrics (for testing)."""
        with self._lock:
            self._tools.clear()
            self._total_requests = 0
            self._total_errors = 0
            self._start_time = time.time()


class ObservabilityContext:
    """Correlation IDs plus metrics, gated by config.

    Usage:
        obs = ObservabilityContext(config.observability)
        cid = obs.correlation_id()
        # ... dispatch ...
        obs.record(cid, "getCurrentTime", latency_ms=..., success=True)
    """

    def __init__(self, config: McpObservabilityConfig | None = None):
        self.config = config or McpObservabilityConfig()
        self.enabled = self.config.enabled and self.config.metrics_enabled
        self.metrics = MetricsCollector()

    def correlation_id(self) -> str:
        return generate_correlation_id()

    def record(self, correlation_id: str, tool: str, latency_ms: float, success: bool) -> None:
        """Record a tool call; no-op unless metrics are enabled."""
        if not self.enabled:
            return
        self.metrics.record_call(tool=tool, latency_ms=latency_ms, success=success)

    def get_stats(self) -> dict[str, Any]:
        return self.metrics.get_stats()


def setup_logging(config: McpObservabilityConfig, logger_name: str = "time_mcp") -> logging.Logger:
    """Configure the package logger on stderr.

    Args:
        config: Observability configuration
        logger_name: Name of logger to configure

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(logger_name)
    logger.handlers.clear()

    level = getattr(logging, config.log_level.upper(), logging.INFO)
    logger.setLevel(level)

    # stdout carries protocol frames; logs go to stderr only
    handler = logging.StreamHandler()
    handler.setLevel(level)
    if config.log_format == "json":
        handler.setFormatter(JsonLogFormatter(include_correlation_id=config.include_correlation_id))
    else:
        handler.setFormatter(logging.Formatter(LOG_FORMAT))

    logger.addHandler(handler)
    logger.propagate = False
    return logger
