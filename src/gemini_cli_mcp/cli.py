"""Command-line interface for the Gemini CLI MCP server."""

import asyncio
import logging
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from gemini_cli_mcp import __version__ as GEMINI_CLI_MCP_VERSION
from gemini_cli_mcp.config import Settings, load_settings
from gemini_cli_mcp.exceptions import GeminiMCPError

app = typer.Typer(
    name="gemini-cli-mcp",
    help="MCP server exposing the locally installed Gemini CLI as tools",
    invoke_without_command=True,
)
# stdout carries MCP frames while serving, so diagnostics go to stderr
console = Console()
err_console = Console(stderr=True)


def setup_logging(verbose: bool = False):
    """Setup logging configuration.

    Args:
        verbose: Enable verbose logging
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, rich_tracebacks=True)],
    )


def _load(**overrides) -> Settings:
    try:
        return load_settings(**overrides)
    except ValidationError as e:
        err_console.print(f"[red]Invalid configuration: {escape(str(e))}[/red]")
        raise typer.Exit(1)


def _report_fatal(error: GeminiMCPError) -> None:
    first, *rest = str(error).splitlines()
    err_console.print(f"[red]FATAL: {escape(first)}[/red]")
    for line in rest:
        err_console.print(escape(line))


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    cli_path: Optional[str] = typer.Option(
        None,
        "--cli-path",
        help="Path to the gemini executable (default: GEMINI_CLI_PATH or discovery)",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Per-call execution timeout in seconds (default: 300)",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging",
    ),
):
    """Gemini CLI MCP server.

    Running 'gemini-cli-mcp' with no command serves MCP over stdio. The Gemini
    CLI is located and health-checked first; the server refuses to start if
    either step fails.

    Examples:
        # Serve with discovery
        gemini-cli-mcp

        # Use a specific executable
        gemini-cli-mcp --cli-path /opt/tools/gemini

        # Check the installation without serving
        gemini-cli-mcp doctor
    """
    # If a subcommand is invoked, let it handle execution
    if ctx.invoked_subcommand is not None:
        ctx.obj = {"verbose": verbose}
        return

    from gemini_cli_mcp.server import serve

    settings = _load(cli_path=cli_path, execution_timeout=timeout, verbose=verbose or None)
    setup_logging(settings.verbose)

    try:
        asyncio.run(serve(settings))
    except GeminiMCPError as e:
        _report_fatal(e)
        raise typer.Exit(1)
    except KeyboardInterrupt:
        raise typer.Exit(0)


@app.command()
def doctor(
    ctx: typer.Context,
    cli_path: Optional[str] = typer.Option(
        None,
        "--cli-path",
        help="Path to the gemini executable (default: GEMINI_CLI_PATH or discovery)",
    ),
):
    """Locate and health-check the Gemini CLI without serving."""
    from gemini_cli_mcp.locator import resolve_executable

    verbose = bool(ctx.obj and ctx.obj.get("verbose"))
    settings = _load(cli_path=cli_path, verbose=verbose or None)
    setup_logging(settings.verbose)

    try:
        location = asyncio.run(resolve_executable(settings))
    except GeminiMCPError as e:
        _report_fatal(e)
        raise typer.Exit(1)

    console.print(f"[green]✓ Gemini CLI: {location.path}[/green]")
    console.print(f"[dim]Version: {location.version}[/dim]")


@app.command()
def version():
    """Show version information."""
    console.print(f"Gemini CLI MCP v{GEMINI_CLI_MCP_VERSION}")


if __name__ == "__main__":
    app()
