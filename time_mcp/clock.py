"""Clock capability injected into the dispatcher and tool handlers."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    """Anything that can report the current instant (timezone-aware, UTC)."""

    def now(self) -> datetime: ...


class SystemClock:
    """Wall-clock time."""

    def now(self) -> datetime:
        return datetime.now(UTC)


class FixedClock:
    """
    Clock pinned to one instant.

    Used by tests and by the ``clock.fixed_time`` config setting.
    ``advance()`` turns it into a stepped clock.
    """

    def __init__(self, instant: datetime):
        self._instant = _as_utc(instant)

    @classmethod
    def from_iso(cls, value: str) -> FixedClock:
        """Build from an ISO-8601 string; a trailing ``Z`` means UTC."""
        return cls(parse_instant(value))

    def now(self) -> datetime:
        return self._instant

    def set(self, instant: datetime) -> None:
        self._instant = _as_utc(instant)

    def advance(self, delta: timedelta) -> datetime:
        self._instant = self._instant + delta
        return self._instant


def parse_instant(value: str) -> datetime:
    """
    Parse an ISO-8601 instant. Naive values are taken as UTC.

    Raises:
        ValueError: If the string is not ISO-8601.
    """
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return _as_utc(datetime.fromisoformat(text))


def _as_utc(instant: datetime) -> datetime:
    if instant.tzinfo is None:
        return instant.replace(tzinfo=UTC)
    return instant.astimezone(UTC)
