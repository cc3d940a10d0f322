"""Time tool handlers."""

from time_mcp.tools.time_tools import (  # noqa: F401
    format_iso_utc,
    format_seconds,
    get_current_time,
    get_time_difference,
    parse_utc_timestamp,
)
