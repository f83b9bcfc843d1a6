"""
Parser module for Yarn dialogue scripts
"""

from .lines import (
    Choice,
    ChoiceSet,
    CommandLine,
    ConditionalBlock,
    DialogueLine,
    JumpLine,
    YarnLine,
    iter_lines,
)
from .node import YarnNode
from .parser import ParseWarning, YarnParser
from .project import YarnProject

__all__ = [
    "YarnParser",
    "YarnProject",
    "YarnNode",
    "ParseWarning",
    # Line classes
    "YarnLine",
    "DialogueLine",
    "ChoiceSet",
    "Choice",
    "CommandLine",
    "ConditionalBlock",
    "JumpLine",
    "iter_lines",
]
