"""
Exception hierarchy for prodshell.
"""

from __future__ import annotations


class ProdShellError(Exception):
    """Base class for all prodshell errors."""

    pass


class ConfigurationError(ProdShellError):
    """Raised when engine configuration is invalid."""

    pass


class LevelError(ProdShellError):
    """Raised when a level switch request cannot be honoured."""

    def __init__(self, level: int, message: str) -> None:
        self.level = level
        super().__init__(message)


class UnknownLevelError(LevelError):
    """Raised when switching to a level that does not exist."""

    def __init__(self, level: int) -> None:
        super().__init__(level, f"Level {level} does not exist.")


class SpawnError(ProdShellError):
    """Raised when the shell process cannot be started."""

    pass


class SessionClosedError(ProdShellError):
    """Raised when a closed session is asked to start again."""

    pass
