"""Configuration management for the Gemini CLI MCP server."""

import logging
from typing import Any, List, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_PATHS = [
    "/usr/local/bin/gemini",
    "/opt/homebrew/bin/gemini",
    "~/.local/bin/gemini",
    "~/.npm-global/bin/gemini",
]

EXECUTION_TIMEOUT_SECONDS = 5 * 60
MAX_OUTPUT_BYTES = 50 * 1024 * 1024


class Settings(BaseSettings):
    """Server settings loaded from environment variables and an optional ``.env`` file."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_MCP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Executable discovery
    cli_path: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("GEMINI_CLI_PATH", "GEMINI_MCP_CLI_PATH"),
        description="Explicit path to the gemini executable; skips discovery",
    )
    command: str = Field(default="gemini", description="Command name looked up on PATH")
    fallback_paths: List[str] = Field(
        default_factory=lambda: list(DEFAULT_FALLBACK_PATHS),
        description="Conventional install locations probed when PATH lookup fails",
    )

    # Execution limits
    execution_timeout: float = Field(default=EXECUTION_TIMEOUT_SECONDS, gt=0, description="Per-call ceiling in seconds")
    max_output_bytes: int = Field(default=MAX_OUTPUT_BYTES, gt=0, description="Capture limit for model listings")
    kill_grace: float = Field(default=5.0, gt=0, description="Seconds between SIGTERM and SIGKILL")

    # Startup checks
    probe_timeout: float = Field(default=5.0, gt=0, description="Timeout for probing fallback paths")
    health_timeout: float = Field(default=10.0, gt=0, description="Timeout for the startup health check")

    # Server
    server_name: str = Field(default="gemini-cli-mcp")
    verbose: bool = Field(default=False)


def load_settings(**overrides: Any) -> Settings:
    """Load settings from the environment, applying explicit overrides on top.

    Args:
        **overrides: Field values that take precedence over the environment.
            ``None`` values are ignored so CLI options can be passed through as-is.

    Returns:
        The resolved settings.
    """
    settings = Settings(**{key: value for key, value in overrides.items() if value is not None})

    logger.debug(f"Loaded CLI path override: {settings.cli_path or 'NOT SET'}")
    logger.debug(f"Loaded execution timeout: {settings.execution_timeout}s")
    logger.debug(f"Loaded fallback paths: {settings.fallback_paths}")

    return settings
