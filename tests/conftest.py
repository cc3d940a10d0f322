from datetime import UTC, datetime
from pathlib import Path

import pytest

from time_mcp.clock import FixedClock
from time_mcp.dispatcher import Dispatcher
from time_mcp.protocol import JsonRpcProtocol

ENV_VARS = (
    "TIME_MCP_CONFIG",
    "TIME_MCP_ENABLED",
    "TIME_MCP_LOG_LEVEL",
    "TIME_MCP_TRANSPORT",
    "TIME_MCP_FRAMING",
    "TIME_MCP_FIXED_TIME",
    "TIME_MCP_OBS_ENABLED",
    "TIME_MCP_OBS_LOG_FORMAT",
)


@pytest.fixture(autouse=True)
def hermetic_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """
    Autouse: each test runs in its own tmp cwd with no TIME_MCP_* overrides,
    so a stray time_mcp.toml or env var never leaks into a test.
    """
    monkeypatch.chdir(tmp_path)
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return tmp_path


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2025, 1, 1, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def clock(fixed_now: datetime) -> FixedClock:
    return FixedClock(fixed_now)


@pytest.fixture
def dispatcher(clock: FixedClock) -> Dispatcher:
    return Dispatcher(clock=clock)


@pytest.fixture
def protocol(dispatcher: Dispatcher) -> JsonRpcProtocol:
    return JsonRpcProtocol(dispatcher)
