"""
Yarn Forge - Yarn dialogue parser, runtime and tooling
"""

__version__ = "0.1.0"

from .export import DialogueExporter
from .parser import YarnNode, YarnParser, YarnProject
from .runtime import CommandHandler, DialogueRunner, DialogueState, DialogueSystem, VariableStorage

__all__ = [
    "YarnParser",
    "YarnProject",
    "YarnNode",
    "DialogueRunner",
    "DialogueState",
    "DialogueSystem",
    "VariableStorage",
    "CommandHandler",
    "DialogueExporter",
]
