"""
Line classes for parsed Yarn nodes
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, Optional, Tuple


@dataclass(frozen=True)
class YarnLine:
    """Base class for every line that can appear in a node body"""

    def to_dict(self) -> Dict[str, Any]:
        raise NotImplementedError


@dataclass(frozen=True)
class DialogueLine(YarnLine):
    """A line of dialogue, optionally spoken by a character.

    Example: ``Sara: Hello there! #happy #line:greet01``
    """

    text: str
    character: Optional[str] = None
    tags: Tuple[str, ...] = ()
    line_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            "type": "dialogue",
            "character": self.character,
            "text": self.text,
            "tags": list(self.tags),
            "line_id": self.line_id,
        }

    def __str__(self) -> str:
        if self.character is not None:
            return f"{self.character}: {self.text}"
        return self.text


@dataclass(frozen=True)
class Choice:
    """A single option inside a ChoiceSet.

    Choices are shared parse data. Whether a choice is currently available
    is tracked by the runner that presents it, not here.
    """

    text: str
    condition: Optional[str] = None
    body: Tuple[YarnLine, ...] = ()
    tags: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            "text": self.text,
            "condition": self.condition,
            "tags": list(self.tags),
            "body": [line.to_dict() for line in self.body],
        }

    def __str__(self) -> str:
        return f"-> {self.text}"


@dataclass(frozen=True)
class ChoiceSet(YarnLine):
    """A run of sibling choices presented to the player together"""

    choices: Tuple[Choice, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            "type": "choices",
            "choices": [choice.to_dict() for choice in self.choices],
        }


@dataclass(frozen=True)
class CommandLine(YarnLine):
    """A command for the game, e.g. ``<<set $gold += 5>>`` or ``<<give_item sword>>``"""

    command: str
    arguments: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            "type": "command",
            "command": self.command,
            "arguments": list(self.arguments),
        }

    def __str__(self) -> str:
        if self.arguments:
            return f"<<{self.command} {' '.join(self.arguments)}>>"
        return f"<<{self.command}>>"


@dataclass(frozen=True)
class ConditionalBlock(YarnLine):
    """An if/else block. Elseif chains nest in ``else_branch``."""

    condition: str
    then_branch: Tuple[YarnLine, ...] = ()
    else_branch: Tuple[YarnLine, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            "type": "conditional",
            "condition": self.condition,
            "then": [line.to_dict() for line in self.then_branch],
            "else": [line.to_dict() for line in self.else_branch],
        }


@dataclass(frozen=True)
class JumpLine(YarnLine):
    """A jump to another node. The target is only looked up at runtime."""

    target_node: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {"type": "jump", "target": self.target_node}

    def __str__(self) -> str:
        return f"<<jump {self.target_node}>>"


def iter_lines(lines: Iterable[YarnLine]) -> Iterator[YarnLine]:
    """Walk a line tree depth first, including choice bodies and both branches"""
    for line in lines:
        yield line
        if isinstance(line, ChoiceSet):
            for choice in line.choices:
                yield from iter_lines(choice.body)
        elif isinstance(line, ConditionalBlock):
            yield from iter_lines(line.then_branch)
            yield from iter_lines(line.else_branch)
