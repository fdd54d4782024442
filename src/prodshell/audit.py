"""
Append-only audit trail for engine decisions.

Every rejection, execution, level switch and override write becomes one
JSON object per line, so relaxations of the policy can be reviewed later.
"""

from __future__ import annotations

import json
import re
import time
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from prodshell._types import ExecutionResult, PolicyContext

_SECRET_PATTERNS = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"(--?(?:password|token|secret|api[-_]?key)\s+)([^\s]+)",
        r"((?:password|token|secret|api[-_]?key)\s*=\s*)([^\s]+)",
    )
]


def mask_secrets(command: str) -> str:
    """Replace values that look like credentials with ``***``."""
    sanitized = command
    for pattern in _SECRET_PATTERNS:
        sanitized = pattern.sub(r"\1***", sanitized)
    return sanitized


class AuditLog:
    """JSONL writer. Opens the file per event so nothing stays locked."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._seq = 0

    def _write(self, event: str, data: dict[str, object]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._seq += 1
        row = {"seq": self._seq, "ts": round(time.time(), 3), "event": event, **data}
        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(row, sort_keys=True) + "\n")

    def rejected(self, command: str, context: PolicyContext, reason: str) -> None:
        self._write(
            "command_rejected",
            {
                "level": context.level,
                "overrides": dict(context.overrides),
                "command": mask_secrets(command),
                "reason": reason,
            },
        )

    def executed(
        self, command: str, context: PolicyContext, result: ExecutionResult, duration_ms: int
    ) -> None:
        self._write(
            "command_executed",
            {
                "level": context.level,
                "overrides": dict(context.overrides),
                "command": mask_secrets(command),
                "success": result.success,
                "exit_code": result.exit_code,
                "timed_out": result.timed_out,
                "duration_ms": duration_ms,
            },
        )

    def level_switched(self, previous: int, level: int) -> None:
        self._write("level_switched", {"from_level": previous, "level": level})

    def override_set(self, name: str, value: str, ttl: int) -> None:
        self._write("override_set", {"override": name, "value": value, "ttl": ttl})

    def read(self) -> list[dict[str, object]]:
        """Load every recorded event."""
        if not self.path.exists():
            return []
        with self.path.open("r", encoding="utf-8") as f:
            return [json.loads(line) for line in f if line.strip()]
