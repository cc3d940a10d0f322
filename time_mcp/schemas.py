"""Argument models for the time tools and their wire-level JSON schemas."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

Interval = Literal["minutes", "seconds"]


class GetCurrentTimeArgs(BaseModel):
    """No arguments needed"""

    model_config = ConfigDict(extra="ignore")


class GetTimeDifferenceArgs(BaseModel):
    model_config = ConfigDict(extra="ignore")

    timestamp: str = Field(description="ISO format timestamp (YYYY-MM-DD HH:mm:ss)")
    interval: Interval = Field(
        default="minutes",
        description="Time interval to return (minutes or seconds)",
    )


def input_schema(model: type[BaseModel]) -> dict[str, Any]:
    """Generate the discovery schema for an argument model (titles dropped)."""
    return _strip_titles(model.model_json_schema())


def _strip_titles(node: Any) -> Any:
    if isinstance(node, dict):
        return {
            key: _strip_titles(value)
            for key, value in node.items()
            if not (key == "title" and isinstance(value, str))
        }
    if isinstance(node, list):
        return [_strip_titles(item) for item in node]
    return node
