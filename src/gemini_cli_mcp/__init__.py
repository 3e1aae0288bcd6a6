"""Gemini CLI MCP server.

This package exposes the locally installed and authenticated Gemini CLI to MCP
clients as a small set of tools, running one supervised child process per call.
"""

from gemini_cli_mcp.config import Settings, load_settings
from gemini_cli_mcp.exceptions import ExecutableNotFoundError, GeminiMCPError, HealthCheckError
from gemini_cli_mcp.supervisor import ExecutionResult, ModelListing, ProcessRegistry, ProcessSupervisor

__all__ = [
    "ExecutableNotFoundError",
    "ExecutionResult",
    "GeminiMCPError",
    "HealthCheckError",
    "ModelListing",
    "ProcessRegistry",
    "ProcessSupervisor",
    "Settings",
    "load_settings",
]
__version__ = "1.0.0"
