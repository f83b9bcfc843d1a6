"""
Project: a registry of parsed nodes keyed by title
"""

from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from .lines import ChoiceSet, CommandLine, ConditionalBlock, DialogueLine, JumpLine, iter_lines
from .node import YarnNode
from .parser import ParseWarning, YarnParser


class YarnProject:
    """A collection of parsed Yarn nodes.

    Content can come from several scripts; call ``parse`` once per script.
    A node whose title already exists replaces the previous one. Jump
    targets are not checked here (see ``ProjectValidator``).

    Example::

        project = YarnProject()
        project.parse(Path("sara.yarn").read_text())
        project.parse(Path("npcs.yarn").read_text())

        node = project.get_node("sara_greeting")
    """

    def __init__(self):
        self._nodes: Dict[str, YarnNode] = {}
        self.warnings: List[ParseWarning] = []

    @property
    def node_names(self) -> List[str]:
        return list(self._nodes.keys())

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    def parse(self, content: str) -> List[str]:
        """Parse Yarn content and add its nodes.

        Returns:
            The titles that were added or replaced, in script order
        """
        parser = YarnParser()
        nodes = parser.parse(content)
        self.warnings.extend(parser.warnings)

        titles = []
        for node in nodes:
            self._nodes[node.title] = node
            titles.append(node.title)

        return titles

    def parse_file(self, file_path: Path) -> List[str]:
        """Parse a .yarn file and add its nodes"""
        file_path = Path(file_path)
        if not file_path.exists():
            raise FileNotFoundError(f"Dialogue file not found: {file_path}")

        with open(file_path, "r", encoding="utf-8") as f:
            return self.parse(f.read())

    def get_node(self, title: str) -> Optional[YarnNode]:
        return self._nodes.get(title)

    def has_node(self, title: str) -> bool:
        return title in self._nodes

    def remove_node(self, title: str) -> Optional[YarnNode]:
        """Remove a node, returning it (or None if it didn't exist)"""
        return self._nodes.pop(title, None)

    def clear(self):
        """Remove all nodes and accumulated parse warnings"""
        self._nodes.clear()
        self.warnings = []

    def get_nodes_with_tag(self, tag: str) -> List[YarnNode]:
        return [node for node in self._nodes.values() if node.has_tag(tag)]

    def get_stats(self) -> Dict[str, Any]:
        """Get statistics about the parsed project"""
        counts = {"dialogue_lines": 0, "choices": 0, "commands": 0, "conditionals": 0, "jumps": 0}
        speakers = set()

        for node in self._nodes.values():
            for line in iter_lines(node.lines):
                if isinstance(line, DialogueLine):
                    counts["dialogue_lines"] += 1
                    if line.character:
                        speakers.add(line.character)
                elif isinstance(line, ChoiceSet):
                    counts["choices"] += len(line.choices)
                elif isinstance(line, CommandLine):
                    counts["commands"] += 1
                elif isinstance(line, ConditionalBlock):
                    counts["conditionals"] += 1
                elif isinstance(line, JumpLine):
                    counts["jumps"] += 1

        return {
            "nodes": len(self._nodes),
            **counts,
            "speakers": sorted(speakers),
            "warnings": len(self.warnings),
        }

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, title: str) -> bool:
        return title in self._nodes

    def __iter__(self) -> Iterator[YarnNode]:
        return iter(list(self._nodes.values()))
