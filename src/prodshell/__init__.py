"""
Top-level facade for prodshell.
"""

from prodshell._types import (
    CommandError,
    ExecutionResult,
    PolicyContext,
    Strictness,
    ValidationResult,
)
from prodshell.api import create_engine
from prodshell.audit import AuditLog
from prodshell.config import EngineConfig
from prodshell.controller import PolicyController
from prodshell.engine import EngineState, ExecutionEngine
from prodshell.errors import (
    ConfigurationError,
    LevelError,
    ProdShellError,
    SessionClosedError,
    SpawnError,
    UnknownLevelError,
)
from prodshell.levels import DEFAULT_LEVELS, LevelSpec
from prodshell.sandbox import PersistentShell, Sandbox, SessionState
from prodshell.security import CommandValidator, SecurityViolation, validate_command

# Exports
__all__ = [
    "create_engine",
    "ExecutionEngine",
    "EngineState",
    "EngineConfig",
    "PolicyController",
    "PolicyContext",
    "LevelSpec",
    "DEFAULT_LEVELS",
    "CommandValidator",
    "validate_command",
    "ValidationResult",
    "ExecutionResult",
    "Strictness",
    "Sandbox",
    "PersistentShell",
    "SessionState",
    "AuditLog",
    "CommandError",
    "SecurityViolation",
    "ProdShellError",
    "ConfigurationError",
    "LevelError",
    "UnknownLevelError",
    "SpawnError",
    "SessionClosedError",
]
