"""
Command validation with pattern-based blocking.

This is the first security layer the engine trusts: a denylist over the
static command text plus path confinement checks. Shell expansion happens
after validation, so it blocks every pattern it enumerates and nothing more.
Real isolation needs an OS-level layer (namespaces, containers) on top.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import NamedTuple

from prodshell._types import PolicyContext, Strictness, ValidationResult

REASON_EMPTY = "Empty command"
REASON_HOME = "Home directory references are not allowed"
REASON_BARE_CD = "cd without a target directory is not allowed"
REASON_ABSOLUTE_PATH = "Absolute paths are not allowed"
REASON_TRAVERSAL = "Path traversal (..) is not allowed"


class SecurityViolation(Exception):
    """
    Raised when a command violates the security policy.

    Attributes:
        command: The command that was blocked.
        reason: Why the command was blocked.
    """

    def __init__(self, reason: str, command: str = "") -> None:
        self.command = command
        self.reason = reason
        super().__init__(f"Security violation: {reason}")


class BlockedPattern(NamedTuple):
    """A denylist entry and the strictness from which it applies."""

    pattern: re.Pattern[str]
    reason: str
    strictness: Strictness = Strictness.BASIC


# Dangerous command fragments - compiled regex with human-readable descriptions
DANGEROUS_PATTERNS: list[BlockedPattern] = [
    # Privilege escalation
    BlockedPattern(re.compile(r"\bsudo\b"), "Privilege escalation via sudo"),
    BlockedPattern(re.compile(r"(?:^|[;&|(\n]\s*)su(?:\s|$)"), "Privilege escalation via su"),
    # Filesystem destruction
    BlockedPattern(
        re.compile(r"\brm\s+(?:-\S*\s+)*/\*?(?:\s|$)"), "Deletion of the root directory"
    ),
    BlockedPattern(
        re.compile(
            r"\brm\b"
            r"(?=[^;&|\n]*\s(?:-\w*[rR]\w*|--recursive)\b)"
            r"(?=[^;&|\n]*\s(?:-\w*f\w*|--force)\b)"
        ),
        "Recursive forced deletion",
    ),
    # Permission and ownership changes
    BlockedPattern(re.compile(r"\bchmod\b"), "Permission change via chmod"),
    BlockedPattern(re.compile(r"\bch(?:own|grp)\b"), "Ownership change via chown"),
    # Direct disk access
    BlockedPattern(re.compile(r"\bmkfs\b"), "Filesystem formatting via mkfs"),
    BlockedPattern(re.compile(r"\bdd\b"), "Raw block device write via dd"),
    BlockedPattern(re.compile(r">\s*/dev/(?:sd[a-z]|hd[a-z]|nvme|disk)"), "Direct disk write"),
    # Remote code execution
    BlockedPattern(
        re.compile(r"\b(?:curl|wget)\b[^\n]*\|\s*(?:ba|z|da)?sh\b"),
        "Remote script execution via curl|wget piped to a shell",
    ),
    # Resource exhaustion
    BlockedPattern(re.compile(r":\s*\(\s*\)\s*\{.*\}"), "Fork bomb pattern"),
    # Replacing the session's shell
    BlockedPattern(
        re.compile(r"\bexec\b"), "Shell process replacement via exec", Strictness.HARDENED
    ),
]

# Constructs that rebuild a blocked primitive at expansion time, after the
# denylist has already looked at the text. Only checked at hardened levels.
EVASION_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (
        re.compile(r"\b[A-Za-z_]\w*=[^\s;&|]*\.[\\'\"]*\."),
        "Variable assignments containing .. are not allowed",
    ),
    (re.compile(r"`"), "Backtick command substitution is not allowed"),
    (re.compile(r"\$\("), "$() command substitution is not allowed"),
    (
        re.compile(r"\bbase64\b[^;&|\n]*\s-(?:-decode\b|[A-Za-z]*[dD])"),
        "base64 decoding is not allowed",
    ),
    (
        re.compile(r"\bprintf\b[^;&|\n]*\\(?:x[0-9a-fA-F]|[0-7])"),
        "printf escape sequences are not allowed",
    ),
    (re.compile(r"\$'[^']*\\(?:x[0-9a-fA-F]|[0-7])"), "ANSI-C escape sequences are not allowed"),
    (re.compile(r"\beval\b"), "eval is not allowed"),
]

_HOME_PATTERN = re.compile(r"(?:^|[\s'\"=:<>|;&(])~|\$\{?HOME\b")
_BARE_CD_PATTERN = re.compile(r"(?:^|[;&|(\n]\s*)cd[ \t]*(?=$|[;&|)\n])")
_ABSOLUTE_PATH_PATTERN = re.compile(r"(?:^|[\s'\"=<>|;&(`,])/")
_TRAVERSAL_PATTERN = re.compile(r"(?:^|[\s/'\"=<>|;&(:])\.\.(?=$|[\s/'\"<>|;&)])")


@dataclass
class CommandValidator:
    """
    Stateless validator for shell commands.

    Checks run in a fixed order and the first failing check wins:
    empty command, denylist, home directory, bare ``cd``, absolute paths,
    path traversal (relaxed by a workspace scope override), and, at
    hardened levels, expansion-based evasion techniques.

    The validator holds configuration only. ``validate`` never mutates it,
    so a single instance can be shared across calls and tasks.
    """

    blocked_patterns: list[BlockedPattern] = field(
        default_factory=lambda: list(DANGEROUS_PATTERNS)
    )
    evasion_patterns: list[tuple[re.Pattern[str], str]] = field(
        default_factory=lambda: list(EVASION_PATTERNS)
    )
    hardened_level: int = 2

    def strictness(self, level: int) -> Strictness:
        """Return the strictness that applies at ``level``."""
        if level >= self.hardened_level:
            return Strictness.HARDENED
        return Strictness.BASIC

    def validate(self, command: str, context: PolicyContext | None = None) -> ValidationResult:
        """
        Validate a command against the policy context.

        Args:
            command: The command string to validate.
            context: Active policy snapshot. Defaults to level 1, no overrides.

        Returns:
            ValidationResult; ``reason`` is set when the command is rejected.
        """
        ctx = context or PolicyContext()
        strictness = self.strictness(ctx.level)
        cmd = command.strip()

        if not cmd:
            return ValidationResult.reject(REASON_EMPTY)

        for pattern, reason, min_strictness in self.blocked_patterns:
            if min_strictness is Strictness.HARDENED and strictness is not Strictness.HARDENED:
                continue
            if pattern.search(cmd):
                return ValidationResult.reject(f"Blocked: {reason}")

        if _HOME_PATTERN.search(cmd):
            return ValidationResult.reject(REASON_HOME)

        if _BARE_CD_PATTERN.search(cmd):
            return ValidationResult.reject(REASON_BARE_CD)

        if _ABSOLUTE_PATH_PATTERN.search(cmd):
            return ValidationResult.reject(REASON_ABSOLUTE_PATH)

        if not ctx.allows_traversal and _TRAVERSAL_PATTERN.search(cmd):
            return ValidationResult.reject(REASON_TRAVERSAL)

        if strictness is Strictness.HARDENED:
            for pattern, reason in self.evasion_patterns:
                if pattern.search(cmd):
                    return ValidationResult.reject(reason)

        return ValidationResult.ok()

    def check(self, command: str, context: PolicyContext | None = None) -> str:
        """
        Validate and return the command, raising on rejection.

        Raises:
            SecurityViolation: If the command is blocked.
        """
        result = self.validate(command, context)
        if not result.valid:
            raise SecurityViolation(result.reason or "", command)
        return command

    def add_blocked_pattern(
        self, pattern: str, reason: str, *, strictness: Strictness = Strictness.BASIC
    ) -> None:
        """
        Add a custom blocked pattern.

        Args:
            pattern: Regex pattern string.
            reason: Human-readable reason for blocking.
            strictness: Lowest strictness at which the pattern applies.
        """
        self.blocked_patterns.append(BlockedPattern(re.compile(pattern), reason, strictness))


def validate_command(command: str, context: PolicyContext | None = None) -> ValidationResult:
    """Validate ``command`` with the default denylist and level thresholds."""
    return CommandValidator().validate(command, context)
