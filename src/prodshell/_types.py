"""
Core type definitions for prodshell.

Uses frozen dataclasses so results and policy snapshots can be shared freely.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping

WORKSPACE_SCOPE = "workspace"


class Strictness(Enum):
    """Validation posture derived from the active level."""

    BASIC = "basic"  # Denylist and path confinement
    HARDENED = "hardened"  # Also blocks expansion tricks that rebuild blocked text


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Outcome of validating a command. Never carries side effects."""

    valid: bool
    reason: str | None = None

    @classmethod
    def ok(cls) -> ValidationResult:
        return cls(valid=True)

    @classmethod
    def reject(cls, reason: str) -> ValidationResult:
        return cls(valid=False, reason=reason)

    def __bool__(self) -> bool:
        return self.valid


@dataclass(frozen=True, slots=True)
class ExecutionResult:
    """Immutable result produced once per submitted command."""

    success: bool
    output: str | None = None
    error: str | None = None
    exit_code: int | None = None
    timed_out: bool = False
    truncated: bool = False

    @classmethod
    def failure(cls, error: str, *, output: str | None = None, **kwargs: object) -> ExecutionResult:
        return cls(success=False, output=output, error=error, **kwargs)  # type: ignore[arg-type]

    def as_text(self) -> str:
        """Render the result the way an agent tool reports it."""
        if self.success:
            return self.output or ""
        text = f"Error: {self.error}"
        if self.exit_code is not None:
            text = f"Error (Exit Code {self.exit_code}): {self.error}"
        return text

    def raise_for_status(self) -> None:
        """Raise CommandError if the command did not succeed."""
        if not self.success:
            raise CommandError(self.error or "Command failed")


class CommandError(Exception):
    """Raised by ExecutionResult.raise_for_status() for failed commands."""

    pass


@dataclass(frozen=True)
class PolicyContext:
    """
    Snapshot of the policy a command is validated against.

    Attributes:
        level: Active level, starting at 1.
        overrides: Active scope overrides (name -> value). Read-only.
    """

    level: int = 1
    overrides: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.level < 1:
            raise ValueError(f"level must be >= 1, got {self.level}")
        object.__setattr__(self, "overrides", MappingProxyType(dict(self.overrides)))

    @property
    def allows_traversal(self) -> bool:
        """True when a workspace scope override relaxes the '..' check."""
        if self.overrides.get("scope") == WORKSPACE_SCOPE:
            return True
        return ".." in self.overrides.get("elevated_paths", "").split(",")

    def __hash__(self) -> int:
        return hash((self.level, tuple(sorted(self.overrides.items()))))
