"""LangChain integration for prodshell."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from prodshell.engine import ExecutionEngine

HAS_LANGCHAIN = False
_StructuredTool: Any = None

try:
    import langchain_core.tools

    _StructuredTool = langchain_core.tools.StructuredTool
    HAS_LANGCHAIN = True
except ImportError:
    pass


def create_langchain_tools(engine: ExecutionEngine) -> dict[str, Any]:
    """
    Create LangChain tools backed by an ExecutionEngine.

    Every command goes through the engine's validator before it reaches the
    level's shell session, so blocked commands come back as error text.

    Args:
        engine: The engine to wrap.

    Returns:
        Dictionary of LangChain StructuredTool instances.

    Raises:
        ImportError: If langchain-core is not installed.

    Example:
        >>> engine = await create_engine(base_dir="./game")
        >>> tools = create_langchain_tools(engine)
        >>> agent = create_react_agent(llm, list(tools.values()))
    """
    if not HAS_LANGCHAIN:
        raise ImportError(
            "LangChain integration requires langchain-core. "
            "Install with: pip install prodshell[langchain]"
        )

    async def run_bash(command: str) -> str:
        """Execute a bash command in the sandbox."""
        result = await engine.submit(command)
        return result.as_text()

    bash_tool = _StructuredTool.from_function(
        coroutine=run_bash,
        name="bash",
        description=(
            "Execute a bash command inside the sandbox directory. "
            "Absolute paths, '..', '~' and privileged commands are blocked. "
            "Shell state (cwd, variables) persists between calls."
        ),
    )

    return {"bash": bash_tool}
