"""Environment-backed engine configuration."""

from __future__ import annotations

import json
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from prodshell.errors import ConfigurationError

DEFAULT_CONFIG_FILE = "prodshell.config.json"


@dataclass(slots=True)
class EngineConfig:
    """
    Runtime settings for an ExecutionEngine.

    Attributes:
        base_dir: Directory the per-level sandbox directories live under.
        shell: Shell executable. None picks bash, falling back to sh.
        timeout: Seconds a command may run before the session is respawned.
        max_output_bytes: Maximum characters kept per output stream.
        hardened_level: First level at which evasion checks apply.
        audit_log: JSONL audit file. None disables auditing.
    """

    base_dir: Path = field(default_factory=Path.cwd)
    shell: str | None = None
    timeout: float = 10.0
    max_output_bytes: int = 30_000
    hardened_level: int = 2
    audit_log: Path | None = None

    def __post_init__(self) -> None:
        self.base_dir = Path(self.base_dir)
        if self.audit_log is not None:
            self.audit_log = Path(self.audit_log)
        if self.shell is not None and shutil.which(self.shell) is None:
            raise ConfigurationError(f"Shell executable not found: {self.shell}")
        if self.timeout <= 0:
            raise ConfigurationError(f"timeout must be positive, got {self.timeout}")
        if self.hardened_level < 1:
            raise ConfigurationError(f"hardened_level must be >= 1, got {self.hardened_level}")

    @classmethod
    def from_env(cls) -> EngineConfig:
        """Load settings from ``PRODSHELL_*`` variables over the JSON config file."""
        file_config = _load_preferred_file_config()
        defaults = cls.__dataclass_fields__

        audit_log = os.getenv("PRODSHELL_AUDIT_LOG") or _to_optional_string(
            file_config.get("audit_log")
        )
        return cls(
            base_dir=Path(
                os.getenv("PRODSHELL_BASE_DIR")
                or _to_optional_string(file_config.get("base_dir"))
                or Path.cwd()
            ),
            shell=(
                os.getenv("PRODSHELL_SHELL") or _to_optional_string(file_config.get("shell"))
            ),
            timeout=_to_positive_float(
                os.getenv("PRODSHELL_TIMEOUT") or file_config.get("timeout"),
                default=defaults["timeout"].default,
            ),
            max_output_bytes=_to_positive_int(
                os.getenv("PRODSHELL_MAX_OUTPUT_BYTES") or file_config.get("max_output_bytes"),
                default=defaults["max_output_bytes"].default,
            ),
            hardened_level=_to_positive_int(
                os.getenv("PRODSHELL_HARDENED_LEVEL") or file_config.get("hardened_level"),
                default=defaults["hardened_level"].default,
            ),
            audit_log=Path(audit_log) if audit_log else None,
        )


def _to_optional_string(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _load_file_config(path_value: str) -> dict[str, object]:
    path = Path(path_value)
    if not path.exists() or not path.is_file():
        return {}
    try:
        with path.open("r", encoding="utf-8") as fh:
            parsed = json.load(fh)
    except (OSError, json.JSONDecodeError):
        return {}
    if isinstance(parsed, dict):
        return parsed
    return {}


def _load_preferred_file_config() -> dict[str, object]:
    explicit_path = os.getenv("PRODSHELL_CONFIG_FILE")
    if explicit_path:
        return _load_file_config(explicit_path)
    return _load_file_config(DEFAULT_CONFIG_FILE)


def _to_positive_int(value: object, *, default: int) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value if value > 0 else default
    if isinstance(value, str):
        try:
            parsed = int(value.strip())
        except ValueError:
            return default
        return parsed if parsed > 0 else default
    return default


def _to_positive_float(value: object, *, default: float) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value) if value > 0 else default
    if isinstance(value, str):
        try:
            parsed = float(value.strip())
        except ValueError:
            return default
        return parsed if parsed > 0 else default
    return default
