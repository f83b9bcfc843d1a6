"""
Yarn node class
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .lines import YarnLine


@dataclass
class YarnNode:
    """A named block of dialogue.

    Example::

        title: greeting
        tags: start important
        ---
        Sara: Hello there!
        ===
    """

    title: str
    tags: List[str] = field(default_factory=list)
    headers: Dict[str, str] = field(default_factory=dict)
    lines: List[YarnLine] = field(default_factory=list)
    line_number: int = 0

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags

    def get_header(self, key: str) -> Optional[str]:
        return self.headers.get(key)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            "title": self.title,
            "tags": list(self.tags),
            "headers": dict(self.headers),
            "line_number": self.line_number,
            "lines": [line.to_dict() for line in self.lines],
        }

    def __str__(self) -> str:
        return f"YarnNode({self.title}, {len(self.lines)} lines)"
