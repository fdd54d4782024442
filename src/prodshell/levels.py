"""
Level table: which sandbox directory each confinement level runs in.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class LevelSpec:
    """Static description of a confinement level."""

    number: int
    name: str
    directory: str
    description: str = ""

    def sandbox_root(self, base_dir: Path | str) -> Path:
        """Resolve this level's sandbox directory under ``base_dir``."""
        return (Path(base_dir) / self.directory).resolve()


DEFAULT_LEVELS: tuple[LevelSpec, ...] = (
    LevelSpec(1, "Level 1", "Level-1/prodbot-activities", "Denylist and path confinement"),
    LevelSpec(2, "Level 2", "Level-2/prodbot-activities", "Hardened against expansion tricks"),
    LevelSpec(3, "Level 3", "Level-3/prodbot-activities", "Hardened, tool plugins enabled"),
    LevelSpec(4, "Level 4", "Level-4/prodbot-activities", "Hardened, skills may write overrides"),
)


def index_levels(levels: tuple[LevelSpec, ...] | list[LevelSpec]) -> dict[int, LevelSpec]:
    """Build a number -> spec table, rejecting duplicates and levels below 1."""
    table: dict[int, LevelSpec] = {}
    for spec in levels:
        if spec.number < 1:
            raise ValueError(f"Level numbers start at 1, got {spec.number}")
        if spec.number in table:
            raise ValueError(f"Duplicate level {spec.number}")
        table[spec.number] = spec
    if 1 not in table:
        raise ValueError("Level 1 must be defined")
    return table
