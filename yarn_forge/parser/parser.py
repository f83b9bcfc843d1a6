"""
Core parser for Yarn dialogue scripts
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from .lines import (
    Choice,
    ChoiceSet,
    CommandLine,
    ConditionalBlock,
    DialogueLine,
    JumpLine,
    YarnLine,
)
from .node import YarnNode

logger = logging.getLogger(__name__)


@dataclass
class ParseWarning:
    """A non-fatal problem found while parsing"""

    line_number: int
    message: str
    node_title: Optional[str] = None

    def __str__(self) -> str:
        where = f" (node '{self.node_title}')" if self.node_title else ""
        return f"Line {self.line_number}{where}: {self.message}"


class YarnParser:
    """Parser for Yarn dialogue scripts.

    Supports the core Yarn syntax:

    - Nodes with headers (``title:``, ``tags:``, custom headers)
    - Dialogue lines (``Character: text`` or just ``text``)
    - Choices (``-> choice text``) with indented bodies
    - Commands (``<<command args>>``)
    - Conditionals (``<<if>>``, ``<<elseif>>``, ``<<else>>``, ``<<endif>>``)
    - Jumps (``<<jump node>>``)
    - Line tags (``#tag``) and line ids (``#line:id``)
    - Comments (``//``)

    Malformed content never raises. It is dropped or closed implicitly and
    recorded in ``warnings``.
    """

    NODE_HEADER_PATTERN = re.compile(r"^(\w+):\s*(.*)$")
    DIALOGUE_PATTERN = re.compile(r"^(\w+):\s+(.+)$")
    CHOICE_PATTERN = re.compile(r"^(\s*)->\s+(.+)$")
    COMMAND_PATTERN = re.compile(r"<<\s*(\w+)(?:\s+(.+?))?\s*>>")
    CONDITION_PATTERN = re.compile(r"<<\s*if\s+(.+?)>>", re.IGNORECASE)
    ELSEIF_PATTERN = re.compile(r"^<<\s*elseif\s+(.+?)>>", re.IGNORECASE)
    ELSE_PATTERN = re.compile(r"^<<\s*else\s*>>", re.IGNORECASE)
    ENDIF_PATTERN = re.compile(r"^<<\s*endif\s*>>", re.IGNORECASE)
    TAG_PATTERN = re.compile(r"#(\w+)")
    LINE_ID_PATTERN = re.compile(r"#line:(\w+)")

    TAB_WIDTH = 4
    BODY_INDENT = 4

    def __init__(self):
        self.warnings: List[ParseWarning] = []
        self._current_title: Optional[str] = None

    def parse_file(self, file_path: Path) -> List[YarnNode]:
        """Parse a .yarn file and return its nodes"""
        if not file_path.exists():
            raise FileNotFoundError(f"Dialogue file not found: {file_path}")

        with open(file_path, "r", encoding="utf-8") as f:
            content = f.read()

        return self.parse(content)

    def parse(self, text: str) -> List[YarnNode]:
        """Parse Yarn content into a list of nodes"""
        text = text.replace("\r\n", "\n").replace("\r", "\n")
        return self.parse_lines(text.split("\n"))

    def parse_lines(self, lines: Sequence[str]) -> List[YarnNode]:
        """Parse lines of Yarn text"""
        self.warnings = []
        self._current_title = None
        lines = [line.rstrip("\r\n") for line in lines]
        nodes: List[YarnNode] = []

        i = 0
        while i < len(lines):
            stripped = lines[i].strip()

            # Anything outside a node is ignored
            if stripped.startswith("title:"):
                node, i = self._parse_node(lines, i)
                nodes.append(node)
                continue

            i += 1

        return nodes

    def _warn(self, line_number: int, message: str):
        warning = ParseWarning(line_number=line_number, message=message, node_title=self._current_title)
        self.warnings.append(warning)
        logger.debug("Parse warning: %s", warning)

    @staticmethod
    def _is_skippable(stripped: str) -> bool:
        return not stripped or stripped.startswith("//")

    def _get_indent(self, line: str) -> int:
        """Indentation width, tabs count as TAB_WIDTH"""
        indent = 0
        for char in line:
            if char == " ":
                indent += 1
            elif char == "\t":
                indent += self.TAB_WIDTH
            else:
                break
        return indent

    def _parse_node(self, lines: List[str], start_index: int) -> Tuple[YarnNode, int]:
        """Parse one node starting at its ``title:`` line"""
        headers = {}
        tags: List[str] = []
        i = start_index
        has_body = False

        # Headers until ---
        while i < len(lines):
            stripped = lines[i].strip()

            if stripped == "---":
                i += 1
                has_body = True
                break

            if self._is_skippable(stripped):
                i += 1
                continue

            match = self.NODE_HEADER_PATTERN.match(stripped)
            if match:
                key, value = match.group(1), match.group(2).strip()
                if key == "tags":
                    tags = value.split()
                else:
                    headers[key] = value
                    if key == "title":
                        self._current_title = value
            else:
                self._warn(i + 1, f"Malformed header line ignored: '{stripped}'")

            i += 1

        title = headers.pop("title", "") or "untitled"
        self._current_title = title
        node = YarnNode(title=title, tags=tags, headers=headers, line_number=start_index + 1)

        if not has_body:
            self._warn(start_index + 1, "Node header is missing its '---' separator")
            return node, i

        # Body until ===
        closed = False
        while i < len(lines):
            stripped = lines[i].strip()

            if stripped == "===":
                i += 1
                closed = True
                break

            if self._is_skippable(stripped):
                i += 1
                continue

            line, i = self._parse_line(lines, i)
            if line is not None:
                node.lines.append(line)

        if not closed:
            self._warn(start_index + 1, "Node is missing its closing '==='")

        self._current_title = None
        return node, i

    def _parse_line(self, lines: List[str], index: int) -> Tuple[Optional[YarnLine], int]:
        """Dispatch a single non-blank body line, returns (line, next index)"""
        raw = lines[index]
        stripped = raw.strip()

        if self.CHOICE_PATTERN.match(raw):
            return self._parse_choice_set(lines, index)

        if stripped.startswith("<<"):
            return self._parse_command(lines, index)

        return self._parse_dialogue_line(stripped), index + 1

    def _parse_block(self, lines: List[str], start_index: int, min_indent: int) -> Tuple[List[YarnLine], int]:
        """Parse lines indented at least ``min_indent`` (a choice body)"""
        body: List[YarnLine] = []
        i = start_index

        while i < len(lines):
            raw = lines[i]
            stripped = raw.strip()

            if stripped == "===":
                break

            if self._is_skippable(stripped):
                i += 1
                continue

            if self._get_indent(raw) < min_indent:
                break

            line, i = self._parse_line(lines, i)
            if line is not None:
                body.append(line)

        return body, i

    def _parse_dialogue_line(self, text: str) -> DialogueLine:
        line_id = None
        match = self.LINE_ID_PATTERN.search(text)
        if match:
            line_id = match.group(1)
            text = text.replace(match.group(0), "", 1).strip()

        tags = tuple(self.TAG_PATTERN.findall(text))
        text = self.TAG_PATTERN.sub("", text).strip()

        match = self.DIALOGUE_PATTERN.match(text)
        if match:
            return DialogueLine(
                text=match.group(2).strip(),
                character=match.group(1),
                tags=tags,
                line_id=line_id,
            )

        return DialogueLine(text=text, tags=tags, line_id=line_id)

    def _is_sibling_choice(self, line: str, indent: int) -> bool:
        return bool(self.CHOICE_PATTERN.match(line)) and self._get_indent(line) == indent

    def _parse_choice_set(self, lines: List[str], start_index: int) -> Tuple[ChoiceSet, int]:
        """Parse a run of sibling choices, returns the next line index to process"""
        choices: List[Choice] = []
        base_indent = self._get_indent(lines[start_index])
        i = start_index

        while i < len(lines):
            raw = lines[i]
            stripped = raw.strip()

            if stripped == "===":
                break

            if self._is_skippable(stripped):
                # Blank lines only continue the run if a sibling choice follows
                j = i + 1
                while j < len(lines) and self._is_skippable(lines[j].strip()):
                    j += 1
                if j >= len(lines) or not self._is_sibling_choice(lines[j], base_indent):
                    break
                i = j
                continue

            match = self.CHOICE_PATTERN.match(raw)
            if not match or self._get_indent(raw) != base_indent:
                break

            text = match.group(2)

            condition = None
            cond_match = self.CONDITION_PATTERN.search(text)
            if cond_match:
                condition = cond_match.group(1).strip()
                text = text.replace(cond_match.group(0), "", 1).strip()

            tags = tuple(self.TAG_PATTERN.findall(text))
            text = self.TAG_PATTERN.sub("", text).strip()

            body, i = self._parse_block(lines, i + 1, base_indent + self.BODY_INDENT)
            choices.append(Choice(text=text, condition=condition, body=tuple(body), tags=tags))

        return ChoiceSet(choices=tuple(choices)), i

    def _parse_command(self, lines: List[str], index: int) -> Tuple[Optional[YarnLine], int]:
        stripped = lines[index].strip()
        match = self.COMMAND_PATTERN.search(stripped)

        if not match:
            self._warn(index + 1, f"Unrecognized command syntax ignored: '{stripped}'")
            return None, index + 1

        command = match.group(1).lower()
        args = self._parse_arguments(match.group(2) or "")

        if command == "jump":
            return JumpLine(target_node=args[0] if args else ""), index + 1

        if command == "if":
            return self._parse_conditional(lines, index)

        if command in ("elseif", "else", "endif"):
            self._warn(index + 1, f"'<<{command}>>' outside of an <<if>> block")

        return CommandLine(command=command, arguments=tuple(args)), index + 1

    def _parse_conditional(self, lines: List[str], start_index: int) -> Tuple[Optional[ConditionalBlock], int]:
        """Parse an if/elseif/else/endif chain starting at its ``<<if>>`` line"""
        stripped = lines[start_index].strip()
        match = self.CONDITION_PATTERN.search(stripped)
        if not match:
            self._warn(start_index + 1, f"<<if>> without a condition ignored: '{stripped}'")
            return None, start_index + 1

        # (condition, branch) for the if and each elseif, in order
        clauses: List[Tuple[str, List[YarnLine]]] = [(match.group(1).strip(), [])]
        else_branch: Optional[List[YarnLine]] = None
        branch = clauses[0][1]
        terminated = False

        i = start_index + 1
        while i < len(lines):
            stripped = lines[i].strip()

            if stripped == "===":
                break

            if self._is_skippable(stripped):
                i += 1
                continue

            if self.ENDIF_PATTERN.match(stripped):
                i += 1
                terminated = True
                break

            if else_branch is None:
                elseif_match = self.ELSEIF_PATTERN.match(stripped)
                if elseif_match:
                    branch = []
                    clauses.append((elseif_match.group(1).strip(), branch))
                    i += 1
                    continue

                if self.ELSE_PATTERN.match(stripped):
                    else_branch = []
                    branch = else_branch
                    i += 1
                    continue

            line, i = self._parse_line(lines, i)
            if line is not None:
                branch.append(line)

        if not terminated:
            self._warn(start_index + 1, "<<if>> block is missing <<endif>>, closed at end of node")

        # Fold elseif clauses right: each one is the sole else line of the clause before it
        folded_else: Tuple[YarnLine, ...] = tuple(else_branch or ())
        for condition, clause_lines in reversed(clauses[1:]):
            folded_else = (
                ConditionalBlock(condition=condition, then_branch=tuple(clause_lines), else_branch=folded_else),
            )

        condition, clause_lines = clauses[0]
        block = ConditionalBlock(condition=condition, then_branch=tuple(clause_lines), else_branch=folded_else)
        return block, i

    def _parse_arguments(self, args_str: str) -> List[str]:
        """Split command arguments on unquoted whitespace, quoted spans stay whole"""
        args: List[str] = []
        buffer = []
        quote_char = None

        for char in args_str:
            if quote_char is None and char in ("'", '"'):
                quote_char = char
            elif quote_char is not None and char == quote_char:
                quote_char = None
            elif quote_char is None and char.isspace():
                if buffer:
                    args.append("".join(buffer))
                    buffer = []
            else:
                buffer.append(char)

        if buffer:
            args.append("".join(buffer))

        return args
