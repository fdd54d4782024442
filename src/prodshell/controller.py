"""
Policy controller: the active level and its transient scope overrides.

Overrides are the only way to relax validation. Their lifetime is counted
in executed commands, never in wall-clock time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from prodshell._types import PolicyContext
from prodshell.errors import UnknownLevelError
from prodshell.levels import DEFAULT_LEVELS, LevelSpec, index_levels

logger = logging.getLogger(__name__)


@dataclass
class _Override:
    value: str
    remaining: int  # 0 = until cleared


class PolicyController:
    """
    Tracks the current level and any active overrides.

    Starts at level 1 with no overrides. Mutated only through
    ``switch_level``, ``set_override``/``clear_override`` and
    ``consume_one_command``.
    """

    def __init__(
        self,
        base_dir: Path | str,
        levels: tuple[LevelSpec, ...] | list[LevelSpec] = DEFAULT_LEVELS,
    ) -> None:
        self._base_dir = Path(base_dir)
        self._levels = index_levels(levels)
        self._level = 1
        self._overrides: dict[str, _Override] = {}

    @property
    def levels(self) -> list[int]:
        return sorted(self._levels)

    def current_level(self) -> int:
        return self._level

    def level_spec(self, level: int | None = None) -> LevelSpec:
        number = self._level if level is None else level
        try:
            return self._levels[number]
        except KeyError:
            raise UnknownLevelError(number) from None

    def sandbox_root(self, level: int | None = None) -> Path:
        """Sandbox directory for ``level`` (default: the current level)."""
        return self.level_spec(level).sandbox_root(self._base_dir)

    def switch_level(self, level: int) -> bool:
        """
        Make ``level`` the active level.

        Active overrides are dropped on a successful switch.

        Returns:
            True if the level changed, False if it was already active.

        Raises:
            UnknownLevelError: If ``level`` is not defined.
        """
        if level not in self._levels:
            raise UnknownLevelError(level)
        if level == self._level:
            return False

        previous = self._level
        self._level = level
        self._overrides.clear()
        logger.info(f"Switched from level {previous} to level {level}")
        return True

    def set_override(self, name: str, value: str, ttl: int = 0) -> None:
        """
        Set a scope override.

        Args:
            name: Override name (e.g. ``"scope"``).
            value: Override value (e.g. ``"workspace"``).
            ttl: Commands the override survives; 0 keeps it until cleared.
        """
        if ttl < 0:
            raise ValueError(f"ttl must be >= 0, got {ttl}")
        self._overrides[name] = _Override(value=value, remaining=ttl)
        logger.info(f"Override {name}={value!r} set (ttl={ttl})")

    def clear_override(self, name: str) -> bool:
        """Remove an override. Returns False if it was not set."""
        return self._overrides.pop(name, None) is not None

    def overrides(self) -> dict[str, str]:
        return {name: o.value for name, o in self._overrides.items()}

    def remaining(self, name: str) -> int | None:
        """Commands left for an override; 0 means persistent, None means unset."""
        override = self._overrides.get(name)
        return override.remaining if override else None

    def consume_one_command(self) -> list[str]:
        """
        Count one executed command against every TTL-bound override.

        Returns:
            Names of the overrides that expired.
        """
        expired: list[str] = []
        for name, override in list(self._overrides.items()):
            if override.remaining == 0:
                continue
            override.remaining -= 1
            if override.remaining == 0:
                del self._overrides[name]
                expired.append(name)
        if expired:
            logger.info(f"Overrides expired: {', '.join(expired)}")
        return expired

    def context(self) -> PolicyContext:
        """Immutable snapshot for the validator."""
        return PolicyContext(level=self._level, overrides=self.overrides())
