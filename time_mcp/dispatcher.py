"""Routes tool calls: lookup -> validate -> handler -> result or ErrorData."""

from __future__ import annotations

from dataclasses import dataclass, field
import inspect
import logging
import time
from typing import Any

from mcp.types import CallToolResult, ErrorData

from time_mcp.clock import Clock, SystemClock
from time_mcp.errors import (
    DomainError,
    ValidationFailure,
    internal_error,
    invalid_params,
    method_not_found,
)
from time_mcp.observability import ObservabilityContext
from time_mcp.registry import ToolRegistry, default_registry
from time_mcp.validation import validate

logger = logging.getLogger(__name__)

RequestId = int | str | None


@dataclass
class ToolCall:
    """One tool invocation, consumed by a single dispatch."""

    tool_name: str
    raw_arguments: Any = field(default_factory=dict)
    call_id: RequestId = None


class Dispatcher:
    """Runs tool calls against an injected clock. Each call is attempted once."""

    def __init__(
        self,
        registry: ToolRegistry | None = None,
        clock: Clock | None = None,
        obs: ObservabilityContext | None = None,
    ):
        self.registry = registry or default_registry()
        self.clock = clock or SystemClock()
        self.obs = obs or ObservabilityContext()

    async def dispatch(self, call: ToolCall) -> CallToolResult | ErrorData:
        cid = self.obs.correlation_id()
        start_time = time.time()
        name = call.tool_name

        logger.info(
            f"call_tool: {name}",
            extra={"correlation_id": cid, "request_id": call.call_id, "tool": name},
        )

        outcome = await self._run(call)

        latency_ms = (time.time() - start_time) * 1000
        success = isinstance(outcome, CallToolResult)
        self.obs.record(correlation_id=cid, tool=name, latency_ms=latency_ms, success=success)
        logger.info(
            f"call_tool done: {name}",
            extra={
                "correlation_id": cid,
                "request_id": call.call_id,
                "tool": name,
                "latency_ms": latency_ms,
                "status": "ok" if success else "error",
                "error": None if success else outcome.message,
            },
        )
        return outcome

    async def _run(self, call: ToolCall) -> CallToolResult | ErrorData:
        spec = self.registry.get(call.tool_name)
        if spec is None:
            return method_not_found(f"Unknown tool: {call.tool_name}")

        args = validate(spec, call.raw_arguments)
        if isinstance(args, ValidationFailure):
            return invalid_params(str(args))

        try:
            result = spec.handler(args, self.clock)
            # Handlers may be coroutines; the time tools are plain functions
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            logger.exception(f"Tool {call.tool_name} failed: {e}")
            return internal_error(str(e))

        if isinstance(result, DomainError):
            return invalid_params(result.message)
        return result
