"""
Validation for parsed Yarn projects with readable error reporting.

Parsing never fails on bad content, so this is where authoring problems
surface: unknown jump targets, unset variables, unreachable nodes and every
parse warning.
"""

import re
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Set

from yarn_forge.parser.lines import ChoiceSet, CommandLine, ConditionalBlock, JumpLine, iter_lines
from yarn_forge.parser.project import YarnProject


# ANSI color codes for terminal output
class Colors:
    RED = "\033[91m"
    YELLOW = "\033[93m"
    GREEN = "\033[92m"
    BLUE = "\033[94m"
    CYAN = "\033[96m"
    BOLD = "\033[1m"
    RESET = "\033[0m"


VARIABLE_PATTERN = re.compile(r"\$(\w+)")


@dataclass
class ValidationIssue:
    """A validation problem with location info"""

    severity: str  # 'error' or 'warning'
    message: str
    node_title: Optional[str] = None
    line_number: int = 0

    def __str__(self) -> str:
        where = f"Line {self.line_number}: " if self.line_number else ""
        node = f"[{self.node_title}] " if self.node_title else ""
        return f"{where}{node}{self.message}"


class ProjectValidator:
    """Semantic validator for a parsed YarnProject.

    Args:
        project: The parsed project
        start_node: Node the conversation starts at, enables reachability checks
        known_variables: Variables the game sets before dialogue starts
    """

    def __init__(
        self,
        project: YarnProject,
        start_node: Optional[str] = None,
        known_variables: Iterable[str] = (),
    ):
        self.project = project
        self.start_node = start_node
        self.errors: List[ValidationIssue] = []
        self.warnings: List[ValidationIssue] = []

        # Tracking for semantic validation
        self.variables_set: Set[str] = {name.lstrip("$") for name in known_variables}
        self.variables_used: Set[str] = set()

    def validate(self) -> bool:
        """Run all checks, returns True if there are no errors"""
        self.errors = []
        self.warnings = []

        for warning in self.project.warnings:
            self._add_warning(warning.message, warning.node_title, warning.line_number)

        self._validate_nodes()
        self._check_undefined_variables()
        self._validate_flow()

        return len(self.errors) == 0

    def _validate_nodes(self):
        # Parsed lines carry no source position, so line-level issues only name their node
        for node in self.project:
            for line in iter_lines(node.lines):
                if isinstance(line, JumpLine):
                    if not line.target_node:
                        self._add_error("<<jump>> without a target node", node.title)
                    elif line.target_node not in self.project:
                        self._add_error(f"Jump to undefined node '{line.target_node}'", node.title)

                elif isinstance(line, CommandLine) and line.command == "set":
                    self._process_set(line, node.title)

                elif isinstance(line, ConditionalBlock):
                    self._process_condition(line.condition)

                elif isinstance(line, ChoiceSet):
                    if line.choices and not any(choice.text for choice in line.choices):
                        self._add_warning("Choice set has no choice text", node.title)
                    for choice in line.choices:
                        if choice.condition:
                            self._process_condition(choice.condition)

    def _process_set(self, line: CommandLine, node_title: str):
        """Track the variable a set command assigns and the ones it reads"""
        expression = " ".join(line.arguments)
        if "=" not in expression:
            self._add_warning(f"Malformed set command: {line}", node_title)
            return

        target, _, value = expression.partition("=")
        target = target.rstrip("+-*/").strip()
        if target.startswith("$"):
            self.variables_set.add(target[1:])
        else:
            self._add_warning(f"Set target '{target}' should be a $variable", node_title)

        self._process_condition(value)

    def _process_condition(self, condition: str):
        for match in VARIABLE_PATTERN.finditer(condition):
            self.variables_used.add(match.group(1))

    def _check_undefined_variables(self):
        """Check for variables used but never set"""
        for var in sorted(self.variables_used - self.variables_set):
            self._add_warning(f"Variable '${var}' used but never set")

    def _validate_flow(self):
        """Check that the start node exists and every node can be reached from it"""
        if not self.start_node:
            return

        if self.start_node not in self.project:
            self._add_error(f"Start node '{self.start_node}' does not exist")
            return

        reachable = self._find_reachable_nodes(self.start_node)
        for node in self.project:
            if node.title not in reachable:
                self._add_warning(f"Node '{node.title}' is unreachable from '{self.start_node}'", node.title, node.line_number)

    def _find_reachable_nodes(self, start: str) -> Set[str]:
        """Find all nodes reachable from start through jumps"""
        visited = set()
        to_visit = [start]

        while to_visit:
            current = to_visit.pop()
            if current in visited:
                continue
            visited.add(current)

            node = self.project.get_node(current)
            if node is None:
                continue

            for line in iter_lines(node.lines):
                if isinstance(line, JumpLine) and line.target_node not in visited:
                    to_visit.append(line.target_node)

        return visited

    def _add_error(self, message: str, node_title: Optional[str] = None, line_number: int = 0):
        self.errors.append(ValidationIssue("error", message, node_title, line_number))

    def _add_warning(self, message: str, node_title: Optional[str] = None, line_number: int = 0):
        self.warnings.append(ValidationIssue("warning", message, node_title, line_number))

    def report(self, name: str = "project"):
        """Print validation results"""
        print(f"\n{Colors.BOLD}{'=' * 80}{Colors.RESET}")
        print(f"{Colors.BOLD}VALIDATION REPORT: {Colors.CYAN}{name}{Colors.RESET}")
        print(f"{Colors.BOLD}{'=' * 80}{Colors.RESET}")

        if not self.errors and not self.warnings:
            print(f"\n{Colors.GREEN}{Colors.BOLD}✅ VALIDATION PASSED - No issues found!{Colors.RESET}")
            self._print_statistics()
            return

        if self.errors:
            print(f"\n{Colors.RED}{Colors.BOLD}❌ ERRORS ({len(self.errors)}):{Colors.RESET}")
            for error in sorted(self.errors, key=lambda e: e.line_number):
                print(f"  {Colors.RED}•{Colors.RESET} {error}")

        if self.warnings:
            print(f"\n{Colors.YELLOW}{Colors.BOLD}⚠️  WARNINGS ({len(self.warnings)}):{Colors.RESET}")
            for warning in sorted(self.warnings, key=lambda w: w.line_number):
                print(f"  {Colors.YELLOW}•{Colors.RESET} {warning}")

        print(f"\n{Colors.BOLD}{'=' * 80}{Colors.RESET}")
        error_text = f"{Colors.RED}{len(self.errors)} error(s){Colors.RESET}"
        warning_text = f"{Colors.YELLOW}{len(self.warnings)} warning(s){Colors.RESET}"
        print(f"{Colors.BOLD}Summary:{Colors.RESET} {error_text}, {warning_text}")

        if self.errors:
            print(f"{Colors.RED}{Colors.BOLD}❌ VALIDATION FAILED{Colors.RESET}")
        else:
            print(f"{Colors.GREEN}{Colors.BOLD}✅ VALIDATION PASSED WITH WARNINGS{Colors.RESET}")

        self._print_statistics()

    def _print_statistics(self):
        stats = self.project.get_stats()
        print(f"\n{Colors.BOLD}{Colors.BLUE}📊 STATISTICS:{Colors.RESET}")
        print(f"{Colors.BLUE}{'─' * 40}{Colors.RESET}")
        print(f"  • Nodes: {Colors.CYAN}{stats['nodes']}{Colors.RESET}")
        print(f"  • Dialogue lines: {Colors.CYAN}{stats['dialogue_lines']}{Colors.RESET}")
        print(f"  • Choices: {Colors.CYAN}{stats['choices']}{Colors.RESET}")
        print(f"  • Variables set: {Colors.CYAN}{len(self.variables_set)}{Colors.RESET}")
        print(f"  • Variables used: {Colors.CYAN}{len(self.variables_used)}{Colors.RESET}")


def validate_file(file_path: Path, start_node: Optional[str] = None) -> ProjectValidator:
    """Parse and validate a .yarn file"""
    project = YarnProject()
    project.parse_file(file_path)
    validator = ProjectValidator(project, start_node=start_node)
    validator.validate()
    return validator


def main():
    """Main entry point"""
    if len(sys.argv) < 2:
        print("Usage: yarn-validate <dialogue_file.yarn> [start_node]")
        sys.exit(1)

    file_path = Path(sys.argv[1])
    if not file_path.exists():
        print(f"❌ File not found: {file_path}")
        sys.exit(1)

    start_node = sys.argv[2] if len(sys.argv) >= 3 else None
    validator = validate_file(file_path, start_node)
    validator.report(file_path.name)

    sys.exit(0 if not validator.errors else 1)


if __name__ == "__main__":
    main()
