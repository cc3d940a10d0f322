"""
Time tools: current time and time difference from now.

Handlers are pure functions of (validated arguments, clock). They return a
``CallToolResult`` with a single text item, or a ``DomainError``.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
import json

from mcp.types import CallToolResult, TextContent

from time_mcp.clock import Clock
from time_mcp.errors import INVALID_TIMESTAMP_FORMAT, DomainError
from time_mcp.schemas import GetCurrentTimeArgs, GetTimeDifferenceArgs

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
ONE_MS = timedelta(milliseconds=1)

MS_PER_UNIT = {
    "seconds": 1000,
    "minutes": 60 * 1000,
}


def format_iso_utc(instant: datetime) -> str:
    """Render as ``YYYY-MM-DDTHH:mm:ss.sssZ`` (milliseconds, truncated)."""
    utc = instant.astimezone(UTC)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def format_seconds(instant: datetime) -> str:
    """Render as ``YYYY-MM-DD HH:mm:ss`` in UTC, truncated to whole seconds."""
    utc = instant.astimezone(UTC).replace(tzinfo=None)
    return utc.isoformat(sep=" ", timespec="seconds")


def epoch_millis(instant: datetime) -> int:
    """Whole milliseconds since the Unix epoch, floored."""
    return (instant.astimezone(UTC) - EPOCH) // ONE_MS


def parse_utc_timestamp(value: str) -> datetime | None:
    """
    Parse ``YYYY-MM-DD HH:mm:ss`` as a UTC instant.

    The first space becomes the date/time separator and the result is pinned
    to UTC. Strings that already carry an offset are rejected, since the
    input format has no zone designator. Returns None when unparsable.
    """
    try:
        parsed = datetime.fromisoformat(value.replace(" ", "T", 1))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        return None
    return parsed.replace(tzinfo=UTC)


def text_result(text: str) -> CallToolResult:
    return CallToolResult(content=[TextContent(type="text", text=text)])


def get_current_time(args: GetCurrentTimeArgs, clock: Clock) -> CallToolResult:
    return text_result(format_iso_utc(clock.now()))


def get_time_difference(
    args: GetTimeDifferenceArgs, clock: Clock
) -> CallToolResult | DomainError:
    """
    Difference between ``args.timestamp`` and now, in whole ``args.interval`` units.

    Polarity is input minus now: a future timestamp yields a positive
    difference. Conversion floors toward negative infinity, so -1500ms is
    -1 minute.
    """
    target = parse_utc_timestamp(args.timestamp)
    if target is None:
        return DomainError(INVALID_TIMESTAMP_FORMAT)

    now = clock.now()
    diff_ms = epoch_millis(target) - epoch_millis(now)
    difference = diff_ms // MS_PER_UNIT[args.interval]

    payload = {
        "difference": difference,
        "interval": args.interval,
        "inputTimestamp": args.timestamp,
        "currentTime": format_seconds(now),
    }
    return text_result(json.dumps(payload, indent=2))
