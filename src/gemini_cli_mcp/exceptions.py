"""Custom exceptions for the gemini_cli_mcp package."""


class GeminiMCPError(Exception):
    """Base class for errors that stop the server from starting."""


class ExecutableNotFoundError(GeminiMCPError):
    """Raised when no runnable Gemini CLI executable can be located.

    None of the override variable, the PATH lookup, or the conventional install
    locations produced an executable. The message carries the remediation steps
    shown to the user before the process exits.
    """

    def __init__(self, message: str = "Gemini CLI not found.") -> None:
        super().__init__(message)
        self.remediation = [
            "Install: npm install -g @google/gemini-cli",
            "Or set GEMINI_CLI_PATH=/path/to/gemini",
        ]

    def __str__(self) -> str:
        return "\n".join([self.args[0], *self.remediation])


class HealthCheckError(GeminiMCPError):
    """Raised when the located executable fails its ``--version`` check."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Gemini CLI health check failed: {reason}")
        self.path = path
        self.reason = reason
