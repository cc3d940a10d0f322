from pathlib import Path

import pytest

from time_mcp.config import McpConfig, load_config


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def test_defaults_without_file():
    cfg = load_config()
    assert cfg.enabled is True
    assert cfg.server.transport == "stdio"
    assert cfg.server.framing == "line"
    assert cfg.clock.fixed_time is None
    assert cfg.limits.max_request_bytes == 1048576
    assert cfg.observability.enabled is False


def test_loads_mcp_table(tmp_path):
    path = _write(
        tmp_path / "custom.toml",
        """
[mcp]
enabled = true

[mcp.server]
transport = "tcp"
port = 9900
log_level = "debug"

[mcp.clock]
fixed_time = "2025-02-08T18:30:00Z"

[mcp.limits]
max_request_bytes = 4096

[mcp.observability]
enabled = true
log_format = "text"
""",
    )
    cfg = load_config(path)

    assert cfg.server.transport == "tcp"
    assert cfg.server.port == 9900
    assert cfg.server.log_level == "debug"
    assert cfg.clock.fixed_time == "2025-02-08T18:30:00Z"
    assert cfg.limits.max_request_bytes == 4096
    assert cfg.observability.log_format == "text"


def test_finds_file_in_working_directory(hermetic_env):
    _write(hermetic_env / "time_mcp.toml", "[mcp.server]\nframing = \"sdk\"\n")
    assert load_config().server.framing == "sdk"


def test_config_path_from_env(tmp_path, monkeypatch):
    path = _write(tmp_path / "elsewhere.toml", "[mcp]\nenabled = false\n")
    monkeypatch.setenv("TIME_MCP_CONFIG", str(path))
    assert load_config().enabled is False


def test_unknown_keys_are_ignored(tmp_path):
    path = _write(tmp_path / "c.toml", "[mcp.server]\nbogus = 1\n[other]\nx = 2\n")
    cfg = load_config(path)
    assert not hasattr(cfg.server, "bogus")


def test_env_beats_toml(tmp_path, monkeypatch):
    path = _write(tmp_path / "c.toml", "[mcp.server]\ntransport = \"tcp\"\n")
    monkeypatch.setenv("TIME_MCP_TRANSPORT", "stdio")
    monkeypatch.setenv("TIME_MCP_LOG_LEVEL", "warning")
    monkeypatch.setenv("TIME_MCP_FIXED_TIME", "2025-01-01T00:00:00Z")
    monkeypatch.setenv("TIME_MCP_OBS_ENABLED", "yes")
    monkeypatch.setenv("TIME_MCP_OBS_LOG_FORMAT", "text")

    cfg = load_config(path)
    assert cfg.server.transport == "stdio"
    assert cfg.server.log_level == "warning"
    assert cfg.clock.fixed_time == "2025-01-01T00:00:00Z"
    assert cfg.observability.enabled is True
    assert cfg.observability.log_format == "text"


@pytest.mark.parametrize("value,expected", [("1", True), ("true", True), ("0", False), ("no", False)])
def test_enabled_env_flag(monkeypatch, value, expected):
    monkeypatch.setenv("TIME_MCP_ENABLED", value)
    assert load_config().enabled is expected


@pytest.mark.parametrize(
    "toml,message",
    [
        ('[mcp.server]\ntransport = "http"\n', "Invalid transport"),
        ('[mcp.server]\nframing = "lsp"\n', "Invalid framing"),
        ('[mcp.server]\nframing = "sdk"\ntransport = "tcp"\n', "sdk framing"),
        ("[mcp.server]\nport = 0\n", "Invalid port"),
        ('[mcp.clock]\nfixed_time = "yesterday"\n', "Invalid fixed_time"),
        ("[mcp.limits]\nmax_request_bytes = 0\n", "max_request_bytes"),
        ('[mcp.observability]\nlog_format = "xml"\n', "Invalid log_format"),
    ],
)
def test_invalid_settings_raise(tmp_path, toml, message):
    path = _write(tmp_path / "bad.toml", toml)
    with pytest.raises(ValueError, match=message):
        load_config(path)


def test_to_dict_is_nested():
    data = McpConfig().to_dict()
    assert data["server"]["name"] == "time-server"
    assert data["clock"] == {"fixed_time": None}
