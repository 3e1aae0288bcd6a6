"""MCP server exposing the Gemini CLI as tools.

The server speaks MCP over stdio through the ``mcp`` SDK. It advertises three
tools and answers each ``tools/call`` by running the CLI under a
`ProcessSupervisor`. Every call produces a `CallToolResult`: bad arguments,
CLI failures and unexpected faults are all returned as error-flagged results
instead of propagating, so a single bad call never takes the server down.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import os
import signal
from collections.abc import Callable, Mapping
from typing import Any, cast

import mcp.types as types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server
from pydantic import ValidationError

from gemini_cli_mcp import __version__
from gemini_cli_mcp.config import Settings
from gemini_cli_mcp.locator import ExecutableLocation, resolve_executable
from gemini_cli_mcp.operations import (
    MODELS_TOOL,
    OPERATIONS,
    PROMPT_TOOL,
    RAW_TOOL,
    PromptArgs,
    RawArgs,
    describe_validation_error,
    get_operation,
)
from gemini_cli_mcp.supervisor import ExecutionResult, ProcessSupervisor

logger = logging.getLogger(__name__)


def _text_result(text: str, *, is_error: bool, structured: dict[str, Any] | None = None) -> types.CallToolResult:
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text)],
        structuredContent=structured,
        isError=is_error,
    )


def _failure_text(result: ExecutionResult) -> str:
    return f"Error: {result.reason}\n{result.stderr or ''}"


def format_raw_output(result: ExecutionResult) -> str:
    """Summarize a raw invocation as labelled stdout/stderr/exit code sections."""
    parts = []
    if result.stdout:
        parts.append(f"stdout:\n{result.stdout}")
    if result.stderr:
        parts.append(f"stderr:\n{result.stderr}")
    if result.exit_code is not None:
        parts.append(f"exit code: {result.exit_code}")
    elif result.reason:
        parts.append(f"error: {result.reason}")
    return "\n\n".join(parts) or "(no output)"


class GeminiToolHandler:
    """Validates and dispatches tool calls to the supervisor."""

    def __init__(self, supervisor: ProcessSupervisor) -> None:
        self.supervisor = supervisor

    def list_tools(self) -> list[types.Tool]:
        """Return the advertised tools."""
        return [
            types.Tool(
                name=op.name,
                description=op.description,
                inputSchema=copy.deepcopy(dict(op.input_schema)),
            )
            for op in OPERATIONS
        ]

    async def call_tool(self, name: str, arguments: Mapping[str, Any] | None) -> types.CallToolResult:
        """Run a tool call and map the outcome to an MCP result. Never raises."""
        try:
            operation = get_operation(name)
            if operation is None:
                return _text_result(f"Unknown tool: {name}", is_error=True)

            try:
                args = operation.parse(arguments)
            except ValidationError as e:
                return _text_result(f"Error: {describe_validation_error(e)}", is_error=True)

            if name == PROMPT_TOOL:
                return await self._prompt(cast(PromptArgs, args))
            if name == MODELS_TOOL:
                return await self._models()
            if name == RAW_TOOL:
                return await self._raw(cast(RawArgs, args))
            return _text_result(f"Unknown tool: {name}", is_error=True)
        except Exception as e:
            logger.exception(f"Unexpected error while handling {name}")
            return _text_result(f"Unexpected error: {e}", is_error=True)

    async def _prompt(self, args: PromptArgs) -> types.CallToolResult:
        result = await self.supervisor.prompt(args.prompt, args.model)
        if result.succeeded:
            return _text_result(result.stdout, is_error=False)
        return _text_result(_failure_text(result), is_error=True)

    async def _models(self) -> types.CallToolResult:
        listing = await self.supervisor.list_models()
        if listing.succeeded:
            structured = {"models": [{"name": model.name} for model in listing.models]}
            return _text_result(listing.raw, is_error=False, structured=structured)
        return _text_result(_failure_text(listing.result), is_error=True)

    async def _raw(self, args: RawArgs) -> types.CallToolResult:
        result = await self.supervisor.raw(args.args)
        return _text_result(format_raw_output(result), is_error=not result.succeeded)


def build_server(handler: GeminiToolHandler, settings: Settings) -> Server:
    """Create the MCP server and bind the tool handlers to it."""
    server: Server = Server(settings.server_name, version=__version__)

    @server.list_tools()
    async def handle_list_tools() -> list[types.Tool]:
        return handler.list_tools()

    # Arguments are validated by the handler so its error messages reach the client
    @server.call_tool(validate_input=False)
    async def handle_call_tool(name: str, arguments: dict[str, Any]) -> types.CallToolResult:
        return await handler.call_tool(name, arguments)

    return server


class ShutdownHandler:
    """Signal callback that terminates running children and exits.

    Children are signalled but not awaited. The process exits immediately
    afterwards because the stdio reader may be blocked in a worker thread that
    cancellation cannot interrupt.
    """

    def __init__(self, supervisor: ProcessSupervisor, exit_func: Callable[[int], Any] = os._exit) -> None:
        self.supervisor = supervisor
        self._exit = exit_func

    def __call__(self, signame: str = "SIGTERM") -> None:
        logger.info(f"Received {signame}, shutting down...")
        self.supervisor.terminate_all()
        self._exit(0)


def install_signal_handlers(loop: asyncio.AbstractEventLoop, shutdown: ShutdownHandler) -> None:
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, shutdown, sig.name)


async def serve(settings: Settings, location: ExecutableLocation | None = None) -> None:
    """Resolve the CLI, then serve MCP over stdio until the client disconnects.

    Args:
        settings: Server settings.
        location: Pre-resolved executable. Resolved from settings when omitted.

    Raises:
        ExecutableNotFoundError: If the CLI cannot be located.
        HealthCheckError: If the CLI fails its version check.
    """
    if location is None:
        location = await resolve_executable(settings)
    logger.info(f"Gemini CLI: {location.path} ({location.version})")

    supervisor = ProcessSupervisor(
        location.path,
        timeout=settings.execution_timeout,
        max_output_bytes=settings.max_output_bytes,
        kill_grace=settings.kill_grace,
    )
    handler = GeminiToolHandler(supervisor)
    server = build_server(handler, settings)

    install_signal_handlers(asyncio.get_running_loop(), ShutdownHandler(supervisor))

    try:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())
    finally:
        supervisor.terminate_all()
        logger.info("Server stopped")
