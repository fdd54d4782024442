"""
Main entry point: create_engine factory function.

This is the primary API for wiring the execution engine into a
conversational front end.
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Sequence

from prodshell.config import EngineConfig
from prodshell.engine import ExecutionEngine
from prodshell.levels import DEFAULT_LEVELS, LevelSpec


async def create_engine(
    *,
    base_dir: Path | str | None = None,
    config: EngineConfig | None = None,
    levels: Sequence[LevelSpec] = DEFAULT_LEVELS,
    level: int = 1,
    files: dict[str, str] | None = None,
) -> ExecutionEngine:
    """
    Create an execution engine with a running session.

    Args:
        base_dir: Directory holding the per-level sandboxes. Overrides
                  ``config.base_dir``.
        config: Engine settings. Defaults to ``EngineConfig.from_env()``.
        levels: Level table. Must define level 1.
        level: Level to start on.
        files: Inline files to seed into the starting sandbox (path -> content).

    Returns:
        An opened ExecutionEngine. Close it, or use it as an async context manager.

    Raises:
        UnknownLevelError: If ``level`` is not in ``levels``.

    Example:
        >>> engine = await create_engine(base_dir="./game")
        >>> result = await engine.submit("ls")
        >>> await engine.close()
    """
    cfg = config or EngineConfig.from_env()
    if base_dir is not None:
        cfg = replace(cfg, base_dir=Path(base_dir))

    engine = ExecutionEngine(cfg, levels=levels)
    # Before open(), so only the starting level's session is spawned.
    engine.controller.switch_level(level)

    root = engine.sandbox_root
    for path, content in (files or {}).items():
        relative = Path(path)
        if relative.is_absolute() or ".." in relative.parts:
            raise ValueError(f"Seed file must stay inside the sandbox: {path}")
        file_path = root / relative
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(content, encoding="utf-8")

    await engine.open()
    return engine
