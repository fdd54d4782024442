"""Pytest configuration and fixtures for prodshell tests."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import AsyncGenerator, Generator

import pytest
import pytest_asyncio

from prodshell import (
    CommandValidator,
    EngineConfig,
    ExecutionEngine,
    PersistentShell,
    PolicyContext,
    PolicyController,
)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory(prefix="prodshell_test_") as tmp:
        yield Path(tmp).resolve()


@pytest_asyncio.fixture
async def shell(temp_dir: Path) -> AsyncGenerator[PersistentShell, None]:
    """Create a started PersistentShell for testing."""
    (temp_dir / "test.txt").write_text("hello world")

    shell = PersistentShell(temp_dir, timeout=10.0)
    await shell.start()
    try:
        yield shell
    finally:
        await shell.close()


@pytest_asyncio.fixture
async def engine(temp_dir: Path) -> AsyncGenerator[ExecutionEngine, None]:
    """Create an opened ExecutionEngine rooted in a temp directory."""
    engine = ExecutionEngine(EngineConfig(base_dir=temp_dir, timeout=10.0))
    await engine.open()
    try:
        yield engine
    finally:
        await engine.close()


@pytest.fixture
def validator() -> CommandValidator:
    """Create a validator with the default denylist."""
    return CommandValidator()


@pytest.fixture
def controller(temp_dir: Path) -> PolicyController:
    """Create a policy controller with the default levels."""
    return PolicyController(temp_dir)


@pytest.fixture
def level1() -> PolicyContext:
    return PolicyContext(level=1)


@pytest.fixture
def level2() -> PolicyContext:
    return PolicyContext(level=2)
