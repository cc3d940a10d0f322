"""Tool registry: name -> descriptor, argument model and handler."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from mcp.types import CallToolResult, Tool
from pydantic import BaseModel

from time_mcp.clock import Clock
from time_mcp.errors import DomainError
from time_mcp.schemas import GetCurrentTimeArgs, GetTimeDifferenceArgs, input_schema
from time_mcp.tools.time_tools import get_current_time, get_time_difference

Handler = Callable[[Any, Clock], CallToolResult | DomainError]

GET_CURRENT_TIME = "getCurrentTime"
GET_TIME_DIFFERENCE = "getTimeDifference"


@dataclass(frozen=True)
class ToolSpec:
    """A tool's wire descriptor plus what it takes to run it."""

    name: str
    description: str
    args_model: type[BaseModel]
    handler: Handler

    @property
    def descriptor(self) -> Tool:
        return Tool(
            name=self.name,
            description=self.description,
            inputSchema=input_schema(self.args_model),
        )


class ToolRegistry:
    """Immutable, ordered set of tools."""

    def __init__(self, specs: Iterable[ToolSpec]):
        self._specs: dict[str, ToolSpec] = {}
        for spec in specs:
            if spec.name in self._specs:
                raise ValueError(f"Duplicate tool name: {spec.name}")
            self._specs[spec.name] = spec
        self._tools = tuple(spec.descriptor for spec in self._specs.values())

    def list_tools(self) -> list[Tool]:
        return list(self._tools)

    def get(self, name: str) -> ToolSpec | None:
        return self._specs.get(name)

    def names(self) -> list[str]:
        return list(self._specs)

    def __contains__(self, name: object) -> bool:
        return name in self._specs

    def __len__(self) -> int:
        return len(self._specs)


TOOL_SPECS: tuple[ToolSpec, ...] = (
    ToolSpec(
        name=GET_CURRENT_TIME,
        description="Get current time in UTC",
        args_model=GetCurrentTimeArgs,
        handler=get_current_time,
    ),
    ToolSpec(
        name=GET_TIME_DIFFERENCE,
        description="Calculate time difference between now and a given timestamp",
        args_model=GetTimeDifferenceArgs,
        handler=get_time_difference,
    ),
)


def default_registry() -> ToolRegistry:
    return ToolRegistry(TOOL_SPECS)
