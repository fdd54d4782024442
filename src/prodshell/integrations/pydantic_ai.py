"""
PydanticAI integration for prodshell.

Provides helpers to create PydanticAI-compatible tools.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable

try:
    from pydantic_ai import RunContext
except ImportError:
    raise ImportError(
        "PydanticAI integration requires 'pydantic-ai'. "
        "Install with `pip install prodshell[pydantic-ai]`"
    )

if TYPE_CHECKING:
    from prodshell.engine import ExecutionEngine


def create_shell_tool(engine: ExecutionEngine) -> Callable:
    """
    Create a PydanticAI tool function for sandboxed shell execution.

    Example:
        >>> from pydantic_ai import Agent
        >>> engine = await create_engine(base_dir="./game")
        >>> agent = Agent("openai:gpt-4o", tools=[create_shell_tool(engine)])
    """

    async def shell_tool(
        ctx: RunContext[Any],
        command: str,
    ) -> str:
        """
        Execute a shell command in the sandbox.
        Commands that violate the sandbox policy are refused.
        """
        result = await engine.submit(command)
        return result.as_text()

    return shell_tool
