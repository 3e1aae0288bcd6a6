"""Tests for server configuration."""

import pytest
from pydantic import ValidationError

from gemini_cli_mcp.config import DEFAULT_FALLBACK_PATHS, Settings, load_settings


def test_settings_default():
    """Test default settings."""
    settings = Settings(_env_file=None)
    assert settings.cli_path is None
    assert settings.command == "gemini"
    assert settings.fallback_paths == DEFAULT_FALLBACK_PATHS
    assert settings.execution_timeout == 300
    assert settings.max_output_bytes == 50 * 1024 * 1024
    assert settings.server_name == "gemini-cli-mcp"
    assert settings.verbose is False


def test_cli_path_from_override_variable(monkeypatch):
    """Test that GEMINI_CLI_PATH sets the executable override."""
    monkeypatch.setenv("GEMINI_CLI_PATH", "/opt/gemini/bin/gemini")
    assert Settings(_env_file=None).cli_path == "/opt/gemini/bin/gemini"


def test_prefixed_settings_from_env(monkeypatch):
    """Test loading prefixed settings from the environment."""
    monkeypatch.setenv("GEMINI_MCP_EXECUTION_TIMEOUT", "42.5")
    monkeypatch.setenv("GEMINI_MCP_MAX_OUTPUT_BYTES", "1024")
    monkeypatch.setenv("GEMINI_MCP_FALLBACK_PATHS", '["/a/gemini", "/b/gemini"]')
    settings = Settings(_env_file=None)
    assert settings.execution_timeout == 42.5
    assert settings.max_output_bytes == 1024
    assert settings.fallback_paths == ["/a/gemini", "/b/gemini"]


def test_settings_from_env_file(tmp_path):
    """Test loading settings from a .env file."""
    env_file = tmp_path / ".env"
    env_file.write_text("GEMINI_CLI_PATH=/from/dotenv/gemini\nGEMINI_MCP_KILL_GRACE=1.5\n")
    settings = Settings(_env_file=str(env_file))
    assert settings.cli_path == "/from/dotenv/gemini"
    assert settings.kill_grace == 1.5


@pytest.mark.parametrize("field", ["execution_timeout", "kill_grace", "probe_timeout", "health_timeout"])
def test_timeouts_must_be_positive(field):
    """Test that zero or negative timeouts are rejected."""
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **{field: 0})


def test_load_settings_ignores_none_overrides(monkeypatch):
    """Test that unset CLI options do not mask the environment."""
    monkeypatch.setenv("GEMINI_CLI_PATH", "/env/gemini")
    settings = load_settings(cli_path=None, execution_timeout=None)
    assert settings.cli_path == "/env/gemini"
    assert settings.execution_timeout == 300


def test_load_settings_overrides_environment(monkeypatch):
    """Test that explicit overrides win over the environment."""
    monkeypatch.setenv("GEMINI_CLI_PATH", "/env/gemini")
    settings = load_settings(cli_path="/flag/gemini", execution_timeout=10)
    assert settings.cli_path == "/flag/gemini"
    assert settings.execution_timeout == 10
