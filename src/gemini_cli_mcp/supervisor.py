"""Supervision of Gemini CLI child processes.

Every tool call runs the CLI as its own child process. The supervisor spawns
it with an argument array (never through a shell), enforces a wall-clock
ceiling, captures stdout and stderr, and tracks the child in a
`ProcessRegistry` until it exits so that shutdown can terminate anything still
running.

Failures of the child (spawn errors, non-zero exits, timeouts, oversized
output) are reported as `ExecutionResult` values rather than raised.
"""

from __future__ import annotations

import asyncio
import contextlib
import itertools
import logging
import os
import signal
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import cast

from gemini_cli_mcp.config import EXECUTION_TIMEOUT_SECONDS, MAX_OUTPUT_BYTES

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024

MODELS_LIST_ARGS = ("models", "list")


@dataclass(frozen=True)
class ManagedProcess:
    """One in-flight child process owned by a registry."""

    id: int
    process: asyncio.subprocess.Process
    deadline: float
    args: tuple[str, ...] = ()

    @property
    def pid(self) -> int:
        return self.process.pid


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of a single supervised invocation."""

    succeeded: bool
    stdout: str = ""
    stderr: str = ""
    exit_code: int | None = None
    reason: str | None = None
    timed_out: bool = False
    overflowed: bool = False


@dataclass(frozen=True)
class ModelInfo:
    """A single entry of the model listing."""

    name: str


@dataclass(frozen=True)
class ModelListing:
    """Parsed output of ``gemini models list`` alongside the raw result."""

    result: ExecutionResult
    models: tuple[ModelInfo, ...] = field(default_factory=tuple)

    @property
    def succeeded(self) -> bool:
        return self.result.succeeded

    @property
    def raw(self) -> str:
        return self.result.stdout


class ProcessRegistry:
    """Ownership table of in-flight child processes keyed by integer id.

    Ids increase monotonically and are never reused. Removal is idempotent, so
    the exit path of a call and a shutdown sweep can both remove the same entry.
    All mutation happens on the event loop thread.
    """

    def __init__(self) -> None:
        self._entries: dict[int, ManagedProcess] = {}
        self._ids = itertools.count(1)

    def register(
        self,
        process: asyncio.subprocess.Process,
        *,
        deadline: float,
        args: Sequence[str] = (),
    ) -> ManagedProcess:
        """Track a freshly spawned process under a new id."""
        entry = ManagedProcess(id=next(self._ids), process=process, deadline=deadline, args=tuple(args))
        self._entries[entry.id] = entry
        return entry

    def remove(self, process_id: int) -> ManagedProcess | None:
        """Stop tracking a process. Returns None if it was already removed."""
        return self._entries.pop(process_id, None)

    def get(self, process_id: int) -> ManagedProcess | None:
        return self._entries.get(process_id)

    def terminate_all(self) -> int:
        """Send SIGTERM to every tracked process and forget them.

        Best-effort: processes that already exited are skipped, and nothing is
        awaited. Calling this again only affects entries registered since.

        Returns:
            Number of processes that were signalled.
        """
        signalled = 0
        for process_id in list(self._entries):
            entry = self.remove(process_id)
            if entry is None:
                continue
            if entry.process.returncode is not None:
                continue
            try:
                entry.process.terminate()
                signalled += 1
            except ProcessLookupError:
                # Exited between the returncode check and the signal
                pass
        return signalled

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, process_id: object) -> bool:
        return process_id in self._entries

    def __iter__(self) -> Iterator[ManagedProcess]:
        return iter(list(self._entries.values()))


def _describe_timeout(seconds: float) -> str:
    if seconds >= 60 and seconds % 60 == 0:
        minutes = int(seconds // 60)
        return f"{minutes} minute" if minutes == 1 else f"{minutes} minutes"
    return f"{seconds:g} seconds"


def _signal_name(signum: int) -> str:
    try:
        return signal.Signals(signum).name
    except ValueError:
        return str(signum)


class _Capture:
    """Accumulates output of both streams against a shared byte limit."""

    def __init__(self, limit: int | None) -> None:
        self.limit = limit
        self.total = 0
        self.overflowed = False
        self.stdout: list[bytes] = []
        self.stderr: list[bytes] = []

    def add(self, sink: list[bytes], chunk: bytes) -> bool:
        """Store a chunk. Returns False when it pushes capture over the limit."""
        if self.overflowed:
            return True
        if self.limit is not None and self.total + len(chunk) > self.limit:
            self.overflowed = True
            return False
        self.total += len(chunk)
        sink.append(chunk)
        return True


class ProcessSupervisor:
    """Spawns and supervises Gemini CLI invocations.

    Args:
        executable: Resolved path of the CLI.
        registry: Table tracking in-flight processes. A private one is created
            when omitted.
        timeout: Wall-clock ceiling per invocation, in seconds.
        max_output_bytes: Capture limit applied to the model listing.
        kill_grace: Seconds to wait after SIGTERM before sending SIGKILL.
        env: Environment for children. Defaults to the current process
            environment, read at spawn time.
    """

    def __init__(
        self,
        executable: str,
        *,
        registry: ProcessRegistry | None = None,
        timeout: float = EXECUTION_TIMEOUT_SECONDS,
        max_output_bytes: int = MAX_OUTPUT_BYTES,
        kill_grace: float = 5.0,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self.executable = executable
        self.registry = registry if registry is not None else ProcessRegistry()
        self.timeout = timeout
        self.max_output_bytes = max_output_bytes
        self.kill_grace = kill_grace
        self._env = env

    async def prompt(self, text: str, model: str | None = None) -> ExecutionResult:
        """Send a prompt in non-interactive mode (``-p``), optionally pinning a model (``-m``)."""
        args = ["-p", text]
        if model:
            args.extend(["-m", model])
        return await self.run(args)

    async def list_models(self) -> ModelListing:
        """List available models, one per non-blank output line."""
        result = await self.run(list(MODELS_LIST_ARGS), max_output_bytes=self.max_output_bytes)
        if not result.succeeded:
            return ModelListing(result=result)
        models = tuple(ModelInfo(name=line.strip()) for line in result.stdout.split("\n") if line.strip())
        return ModelListing(result=result, models=models)

    async def raw(self, args: Sequence[str]) -> ExecutionResult:
        """Run the CLI with caller-supplied arguments, passed through untouched."""
        return await self.run(list(args))

    def terminate_all(self) -> int:
        """Terminate every child that is still running."""
        count = self.registry.terminate_all()
        if count:
            logger.info(f"Sent SIGTERM to {count} running process(es)")
        return count

    async def run(self, args: Sequence[str], *, max_output_bytes: int | None = None) -> ExecutionResult:
        """Spawn the CLI with ``args`` and wait for it to finish.

        Args:
            args: Command-line arguments, excluding the executable itself.
            max_output_bytes: Combined stdout/stderr limit. Exceeding it
                terminates the child and fails the call. No limit when None.

        Returns:
            The execution result. Child-level failures never raise.
        """
        argv = [str(arg) for arg in args]
        loop = asyncio.get_running_loop()

        try:
            proc = await asyncio.create_subprocess_exec(
                self.executable,
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=dict(self._env) if self._env is not None else os.environ.copy(),
            )
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to spawn {self.executable}: {e}")
            return ExecutionResult(succeeded=False, reason=str(e))

        entry = self.registry.register(proc, deadline=loop.time() + self.timeout, args=argv)
        logger.debug(f"Spawned process #{entry.id} (pid {proc.pid}) with {len(argv)} argument(s)")

        timed_out = False
        kill_handle: asyncio.TimerHandle | None = None

        def terminate() -> None:
            nonlocal kill_handle
            if proc.returncode is not None or kill_handle is not None:
                return
            with contextlib.suppress(ProcessLookupError):
                proc.terminate()
            kill_handle = loop.call_later(self.kill_grace, kill)

        def kill() -> None:
            if proc.returncode is None:
                logger.warning(f"Process #{entry.id} ignored SIGTERM, sending SIGKILL")
                with contextlib.suppress(ProcessLookupError):
                    proc.kill()

        def on_deadline() -> None:
            nonlocal timed_out
            if proc.returncode is not None or capture.overflowed:
                return
            timed_out = True
            logger.warning(f"Process #{entry.id} exceeded {_describe_timeout(self.timeout)}, terminating")
            terminate()

        capture = _Capture(max_output_bytes)

        async def drain(stream: asyncio.StreamReader, sink: list[bytes]) -> None:
            while True:
                chunk = await stream.read(_CHUNK_SIZE)
                if not chunk:
                    return
                if not capture.add(sink, chunk):
                    logger.warning(f"Process #{entry.id} exceeded {capture.limit} bytes of output, terminating")
                    terminate()

        deadline_handle = loop.call_later(self.timeout, on_deadline)
        try:
            stdout_reader = cast(asyncio.StreamReader, proc.stdout)
            stderr_reader = cast(asyncio.StreamReader, proc.stderr)
            await asyncio.gather(drain(stdout_reader, capture.stdout), drain(stderr_reader, capture.stderr))
            returncode = await proc.wait()
        finally:
            deadline_handle.cancel()
            if kill_handle is not None:
                kill_handle.cancel()
            if proc.returncode is None:
                # Caller was cancelled before the child exited
                with contextlib.suppress(ProcessLookupError):
                    proc.terminate()
            self.registry.remove(entry.id)

        stdout = b"".join(capture.stdout).decode("utf-8", errors="replace")
        stderr = b"".join(capture.stderr).decode("utf-8", errors="replace")

        if timed_out:
            return ExecutionResult(
                succeeded=False,
                stdout=stdout,
                stderr=stderr,
                reason=f"Execution timeout ({_describe_timeout(self.timeout)})",
                timed_out=True,
            )
        if capture.overflowed:
            return ExecutionResult(
                succeeded=False,
                stdout=stdout,
                stderr=stderr,
                reason=f"Output exceeded {capture.limit} bytes",
                overflowed=True,
            )
        if returncode < 0:
            return ExecutionResult(
                succeeded=False,
                stdout=stdout,
                stderr=stderr,
                reason=f"Terminated by signal {_signal_name(-returncode)}",
            )
        if returncode != 0:
            return ExecutionResult(
                succeeded=False,
                stdout=stdout,
                stderr=stderr,
                exit_code=returncode,
                reason=f"Exit code {returncode}",
            )
        return ExecutionResult(succeeded=True, stdout=stdout, stderr=stderr, exit_code=0)
