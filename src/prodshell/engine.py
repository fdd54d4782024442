"""
Execution facade: validator gate, then the level's persistent session.

All mutable state lives in an explicit EngineState owned by the engine
instance, so independent engines never share a level, session or override.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Sequence

from prodshell._types import ExecutionResult, PolicyContext, ValidationResult
from prodshell.audit import AuditLog, mask_secrets
from prodshell.config import EngineConfig
from prodshell.controller import PolicyController
from prodshell.errors import SessionClosedError, SpawnError
from prodshell.levels import DEFAULT_LEVELS, LevelSpec
from prodshell.sandbox._base import Sandbox
from prodshell.sandbox.persistent import PersistentShell
from prodshell.security.policy import CommandValidator

logger = logging.getLogger(__name__)

SessionFactory = Callable[[Path], Sandbox]


@dataclass
class EngineState:
    """Level, overrides and the live session of one engine."""

    controller: PolicyController
    session: Sandbox | None = None
    closed: bool = False


class ExecutionEngine:
    """
    Validates and runs commands for a single confirm-then-execute stream.

    Example:
        >>> async with ExecutionEngine(EngineConfig(base_dir="./game")) as engine:
        ...     result = await engine.submit("echo hello")
        >>> result.output
        'hello\\n'
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        *,
        levels: Sequence[LevelSpec] = DEFAULT_LEVELS,
        validator: CommandValidator | None = None,
        audit: AuditLog | None = None,
        session_factory: SessionFactory | None = None,
    ) -> None:
        """
        Initialize an engine at level 1. No process starts until ``open()``
        or the first submitted command.

        Args:
            config: Engine settings. Defaults to ``EngineConfig()``.
            levels: Level table. Must define level 1.
            validator: Validator to gate commands with.
            audit: Audit trail. Defaults to ``config.audit_log`` when set.
            session_factory: Builds a session for a sandbox root.
        """
        self.config = config or EngineConfig()
        self.validator = validator or CommandValidator(hardened_level=self.config.hardened_level)
        if audit is None and self.config.audit_log is not None:
            audit = AuditLog(self.config.audit_log)
        self.audit = audit
        self.state = EngineState(controller=PolicyController(self.config.base_dir, tuple(levels)))
        self._session_factory = session_factory or self._default_session

    def _default_session(self, root: Path) -> Sandbox:
        return PersistentShell(
            root,
            executable=self.config.shell,
            timeout=self.config.timeout,
            max_output_bytes=self.config.max_output_bytes,
        )

    @property
    def controller(self) -> PolicyController:
        return self.state.controller

    @property
    def level(self) -> int:
        return self.state.controller.current_level()

    @property
    def sandbox_root(self) -> Path:
        return self.state.controller.sandbox_root()

    @property
    def session(self) -> Sandbox | None:
        return self.state.session

    def context(self) -> PolicyContext:
        return self.state.controller.context()

    async def open(self) -> None:
        """Create the sandbox directory and session for the current level."""
        if self.state.closed:
            raise SessionClosedError("Engine has been closed")
        if self.state.session is None:
            await self._enter_level()

    async def _enter_level(self) -> None:
        root = self.sandbox_root
        try:
            root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning(f"Could not create sandbox {root}: {e}")

        session = self._session_factory(root)
        self.state.session = session
        try:
            await session.start()
        except SpawnError as e:
            # Retried by the session on the next execute.
            logger.warning(f"Shell for {root} did not start, retrying on next command: {e}")

    async def _close_session(self) -> None:
        session, self.state.session = self.state.session, None
        if session is not None:
            await session.close()

    def validate(self, command: str) -> ValidationResult:
        """Validate against the current policy without running anything."""
        return self.validator.validate(command, self.context())

    async def submit(self, command: str) -> ExecutionResult:
        """
        Validate ``command`` and, if accepted, run it in the level's session.

        Rejected commands never reach the session and do not count against
        override TTLs. Executed commands count whether or not they succeed.
        """
        if self.state.closed:
            return ExecutionResult.failure("Engine is closed")

        context = self.context()
        verdict = self.validator.validate(command, context)
        if not verdict.valid:
            reason = verdict.reason or "Command rejected"
            logger.info(f"Level {context.level} rejected {mask_secrets(command)!r}: {reason}")
            if self.audit:
                self.audit.rejected(command, context, reason)
            return ExecutionResult.failure(reason)

        if self.state.session is None:
            await self._enter_level()
        assert self.state.session is not None

        started = time.monotonic()
        result = await self.state.session.execute(command, timeout=self.config.timeout)
        duration_ms = int((time.monotonic() - started) * 1000)
        self.state.controller.consume_one_command()

        logger.info(
            f"Level {context.level} ran {mask_secrets(command)!r}: "
            f"success={result.success} exit_code={result.exit_code} "
            f"timed_out={result.timed_out} duration_ms={duration_ms}"
        )
        if self.audit:
            self.audit.executed(command, context, result, duration_ms)
        return result

    async def switch_level(self, level: int) -> bool:
        """
        Switch to ``level`` and give it a fresh session in its own sandbox.

        Returns:
            True if the level changed, False if it was already active.

        Raises:
            UnknownLevelError: If the level does not exist. The current
                session is left untouched.
            SessionClosedError: If the engine has been closed.
        """
        if self.state.closed:
            raise SessionClosedError("Engine has been closed")
        previous = self.level
        if not self.state.controller.switch_level(level):
            return False

        await self._close_session()
        await self._enter_level()
        if self.audit:
            self.audit.level_switched(previous, level)
        return True

    def set_override(self, name: str, value: str, ttl: int = 0) -> None:
        """Set a scope override; ``ttl`` counts executed commands, 0 = until cleared."""
        self.state.controller.set_override(name, value, ttl)
        if self.audit:
            self.audit.override_set(name, value, ttl)

    def clear_override(self, name: str) -> bool:
        return self.state.controller.clear_override(name)

    async def close(self) -> None:
        """Destroy the session. Safe to call multiple times."""
        self.state.closed = True
        await self._close_session()

    async def __aenter__(self) -> ExecutionEngine:
        await self.open()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
