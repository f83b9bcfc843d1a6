"""
Runtime for parsed Yarn dialogue
"""

from .commands import CommandCallback, CommandHandler
from .runner import DialogueRunner, DialogueState
from .system import DialogueSystem
from .variables import VariableStorage

__all__ = [
    "CommandCallback",
    "CommandHandler",
    "DialogueRunner",
    "DialogueState",
    "DialogueSystem",
    "VariableStorage",
]
