"""Framework integrations for prodshell.

The PydanticAI helper lives in ``prodshell.integrations.pydantic_ai`` and
is imported on demand because it requires the optional dependency.
"""

from prodshell.integrations.langchain import create_langchain_tools

__all__ = ["create_langchain_tools"]
