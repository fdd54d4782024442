"""
Abstract base class for command sessions.

The engine only depends on this interface, so a container- or
namespace-backed session can replace the local shell.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

    from prodshell._types import ExecutionResult


class Sandbox(ABC):
    """
    Abstract base for all session implementations.

    Provides a consistent interface for running commands against a
    long-lived process rooted in a sandbox directory.
    """

    @property
    @abstractmethod
    def root(self) -> Path:
        """Directory the session's working directory is pinned to."""
        ...

    @abstractmethod
    async def start(self) -> None:
        """
        Start the underlying process.

        Raises:
            SpawnError: If the process cannot be started.
        """
        ...

    @abstractmethod
    async def execute(self, command: str, *, timeout: float | None = None) -> ExecutionResult:
        """
        Run a command and return its result.

        Args:
            command: The shell command to run.
            timeout: Maximum seconds to wait for completion.

        Returns:
            ExecutionResult. Failures are reported in the result, not raised.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """
        Destroy the session and its process.

        Idempotent - safe to call multiple times.
        """
        ...

    async def __aenter__(self) -> Sandbox:
        """Start the session on entering the async context."""
        await self.start()
        return self

    async def __aexit__(self, *args: object) -> None:
        """Exit async context manager, cleaning up resources."""
        await self.close()
