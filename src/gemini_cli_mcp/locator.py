"""Discovery of the Gemini CLI executable.

Resolution is an ordered list of strategies; the first one that yields a path
wins. The default chain is:

1. An explicit path from ``GEMINI_CLI_PATH`` (accepted without checking it).
2. A ``PATH`` lookup of the bare command name.
3. A list of conventional install locations, each probed with ``--version``.
"""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from gemini_cli_mcp.exceptions import ExecutableNotFoundError, HealthCheckError
from gemini_cli_mcp.health import probe

if TYPE_CHECKING:
    from gemini_cli_mcp.config import Settings

logger = logging.getLogger(__name__)


@runtime_checkable
class ResolutionStrategy(Protocol):
    """A single way of finding the executable."""

    async def resolve(self) -> str | None:
        """Return a path to the executable, or None if this strategy found nothing."""
        ...


class ExplicitPathStrategy:
    """Use a configured path as-is."""

    def __init__(self, path: str | None) -> None:
        self.path = path

    async def resolve(self) -> str | None:
        return self.path or None

    def __repr__(self) -> str:
        return f"ExplicitPathStrategy({self.path!r})"


class SearchPathStrategy:
    """Look the command up on ``PATH``."""

    def __init__(self, command: str = "gemini", search_path: str | None = None) -> None:
        self.command = command
        self.search_path = search_path

    async def resolve(self) -> str | None:
        found = shutil.which(self.command, path=self.search_path)
        return found.strip() if found and found.strip() else None

    def __repr__(self) -> str:
        return f"SearchPathStrategy({self.command!r})"


class CandidatePathStrategy:
    """Probe a fixed list of install locations in order.

    A candidate is accepted only if running it with ``--version`` exits zero
    within ``timeout`` seconds.
    """

    def __init__(self, paths: Iterable[str], *, timeout: float = 5.0) -> None:
        self.paths = [os.path.expanduser(p) for p in paths]
        self.timeout = timeout

    async def resolve(self) -> str | None:
        for path in self.paths:
            status = await probe(path, timeout=self.timeout)
            if status.ok:
                return path
            logger.debug(f"Candidate {path} rejected: {status.reason}")
        return None

    def __repr__(self) -> str:
        return f"CandidatePathStrategy({self.paths!r})"


class ExecutableLocator:
    """Runs resolution strategies in order until one yields a path."""

    def __init__(self, strategies: Sequence[ResolutionStrategy]) -> None:
        self.strategies = list(strategies)

    async def locate(self) -> str | None:
        """Find the executable.

        Returns:
            The first path produced by a strategy, or None if none resolved.
        """
        for strategy in self.strategies:
            path = await strategy.resolve()
            if path:
                logger.debug(f"Resolved executable via {strategy!r}: {path}")
                return path
        return None


def build_locator(settings: Settings) -> ExecutableLocator:
    """Create the default locator chain from settings."""
    return ExecutableLocator(
        [
            ExplicitPathStrategy(settings.cli_path),
            SearchPathStrategy(settings.command),
            CandidatePathStrategy(settings.fallback_paths, timeout=settings.probe_timeout),
        ]
    )


@dataclass(frozen=True)
class ExecutableLocation:
    """Resolved and health-checked executable, fixed for the server's lifetime."""

    path: str
    version: str | None = None


async def resolve_executable(settings: Settings, locator: ExecutableLocator | None = None) -> ExecutableLocation:
    """Locate the executable and verify it answers ``--version``.

    Args:
        settings: Server settings.
        locator: Strategy chain to use. Defaults to `build_locator(settings)`.

    Returns:
        The resolved location with the reported version.

    Raises:
        ExecutableNotFoundError: If no strategy produced a path.
        HealthCheckError: If the located executable fails the version check.
    """
    locator = locator or build_locator(settings)
    path = await locator.locate()
    if not path:
        raise ExecutableNotFoundError()

    status = await probe(path, timeout=settings.health_timeout)
    if not status.ok:
        raise HealthCheckError(path, status.reason or "unknown error")

    return ExecutableLocation(path=path, version=status.version)
