"""Allow running the server with ``python -m gemini_cli_mcp``."""

from gemini_cli_mcp.cli import app

if __name__ == "__main__":
    app()
