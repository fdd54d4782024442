"""
Session backends.
"""

from prodshell.sandbox._base import Sandbox
from prodshell.sandbox.persistent import PersistentShell, SessionState

__all__ = [
    "Sandbox",
    "PersistentShell",
    "SessionState",
]
