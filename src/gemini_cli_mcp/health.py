"""Health check for the Gemini CLI executable.

The server verifies once at startup that the located executable answers a
version query. The same check is used while probing fallback install
locations, with a shorter timeout.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass

logger = logging.getLogger(__name__)

VERSION_FLAG = "--version"


@dataclass(frozen=True)
class HealthStatus:
    """Outcome of a version query against an executable."""

    ok: bool
    version: str | None = None
    reason: str | None = None


async def probe(
    path: str,
    *,
    timeout: float = 10.0,
    env: Mapping[str, str] | None = None,
) -> HealthStatus:
    """Run ``<path> --version`` and report whether it succeeded.

    Args:
        path: Executable to check.
        timeout: Seconds to wait before killing the child.
        env: Environment for the child. Defaults to the current process environment.

    Returns:
        ``HealthStatus(ok=True, version=...)`` when the executable exits zero in
        time, otherwise ``HealthStatus(ok=False, reason=...)``. Never raises.
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            path,
            VERSION_FLAG,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=dict(env) if env is not None else os.environ.copy(),
        )
    except (OSError, ValueError) as e:
        return HealthStatus(ok=False, reason=str(e))

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        with contextlib.suppress(ProcessLookupError):
            proc.kill()
        await proc.wait()
        return HealthStatus(ok=False, reason=f"Timed out after {timeout:g} seconds")

    if proc.returncode != 0:
        reason = f"Exit code {proc.returncode}"
        err = stderr.decode("utf-8", errors="replace").strip()
        if err:
            reason = f"{reason}: {err}"
        return HealthStatus(ok=False, reason=reason)

    version = stdout.decode("utf-8", errors="replace").strip()
    logger.debug(f"{path} {VERSION_FLAG} -> {version}")
    return HealthStatus(ok=True, version=version)
