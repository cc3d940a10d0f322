"""Argument validation against a tool's pydantic model."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ValidationError

from time_mcp.errors import ValidationFailure
from time_mcp.registry import ToolSpec


def validate(spec: ToolSpec, raw_arguments: Any) -> BaseModel | ValidationFailure:
    """
    Validate raw call arguments for ``spec``.

    Missing arguments count as an empty object. Defaults are applied on
    success. Never raises for bad input; returns a ValidationFailure naming
    the first offending field instead.
    """
    if raw_arguments is None:
        raw_arguments = {}
    if not isinstance(raw_arguments, Mapping):
        return ValidationFailure("arguments", "Input should be an object")

    try:
        return spec.args_model.model_validate(dict(raw_arguments))
    except ValidationError as e:
        return _first_failure(e)


def _first_failure(error: ValidationError) -> ValidationFailure:
    first = error.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ())) or "arguments"
    return ValidationFailure(field, first.get("msg", "Invalid value"))
