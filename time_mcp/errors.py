"""
Failure types for the time server.

Validation and domain failures travel as values, not exceptions. Each
layer maps them onto JSON-RPC ``ErrorData`` with the codes below.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from mcp.types import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    ErrorData,
)

__all__ = [
    "INTERNAL_ERROR",
    "INVALID_PARAMS",
    "INVALID_TIMESTAMP_FORMAT",
    "METHOD_NOT_FOUND",
    "PARSE_ERROR",
    "DomainError",
    "ParseFailure",
    "ValidationFailure",
    "internal_error",
    "invalid_params",
    "method_not_found",
    "parse_error",
]

INVALID_TIMESTAMP_FORMAT = "Invalid timestamp format"


@dataclass(frozen=True)
class ValidationFailure:
    """Arguments did not match the tool's schema."""

    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


@dataclass(frozen=True)
class DomainError:
    """Arguments matched the schema but are semantically invalid."""

    message: str


@dataclass(frozen=True)
class ParseFailure:
    """A framed message could not be decoded."""

    detail: str


def parse_error(detail: str | None = None) -> ErrorData:
    return ErrorData(code=PARSE_ERROR, message="Parse error", data=detail)


def method_not_found(message: str = "Method not found") -> ErrorData:
    return ErrorData(code=METHOD_NOT_FOUND, message=message)


def invalid_params(message: str) -> ErrorData:
    return ErrorData(code=INVALID_PARAMS, message=message)


def internal_error(data: Any = None) -> ErrorData:
    return ErrorData(code=INTERNAL_ERROR, message="Internal error", data=data)
