"""Command validation for prodshell."""

from prodshell.security.policy import (
    DANGEROUS_PATTERNS,
    EVASION_PATTERNS,
    BlockedPattern,
    CommandValidator,
    SecurityViolation,
    validate_command,
)

__all__ = [
    "DANGEROUS_PATTERNS",
    "EVASION_PATTERNS",
    "BlockedPattern",
    "CommandValidator",
    "SecurityViolation",
    "validate_command",
]
