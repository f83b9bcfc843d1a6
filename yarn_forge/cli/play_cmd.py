"""
Interactive Dialogue Player - Walk through Yarn dialogue and make choices in real-time!
"""

import json
import shutil
import sys
import textwrap
from pathlib import Path
from typing import Callable, List, Mapping, Optional

from yarn_forge.parser.lines import Choice, DialogueLine
from yarn_forge.parser.project import YarnProject
from yarn_forge.runtime.commands import CommandHandler
from yarn_forge.runtime.runner import DialogueRunner, DialogueState
from yarn_forge.runtime.variables import Value, VariableStorage


# ANSI color codes for terminal output
class Colors:
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"
    ITALIC = "\033[3m"

    RED = "\033[31m"
    YELLOW = "\033[33m"
    CYAN = "\033[36m"

    BRIGHT_BLACK = "\033[90m"
    BRIGHT_GREEN = "\033[92m"
    BRIGHT_YELLOW = "\033[93m"
    BRIGHT_BLUE = "\033[94m"
    BRIGHT_MAGENTA = "\033[95m"
    BRIGHT_CYAN = "\033[96m"
    BRIGHT_WHITE = "\033[97m"


class DialoguePlayer:
    """Interactive terminal player driven by a DialogueRunner"""

    def __init__(
        self,
        project: YarnProject,
        variables: Optional[Mapping[str, Value]] = None,
        verbose: bool = False,
        save_path: Optional[Path] = None,
        input_func: Callable[[str], str] = input,
    ):
        self.project = project
        self.variables = VariableStorage(variables)
        self.commands = CommandHandler()
        self.verbose = verbose
        self.save_path = save_path or Path("yarn_save.json")
        self.input_func = input_func
        self.quit_requested = False

        self.runner = DialogueRunner(
            project=project,
            variable_storage=self.variables,
            command_handler=self.commands,
            on_line=self.show_line,
            on_choices=self.show_choices,
            on_command=self.show_command,
            on_node_start=self.show_node_start,
        )

        try:
            self.term_width = shutil.get_terminal_size().columns
        except OSError:
            self.term_width = 80

        # Show parse-time warnings
        if project.warnings:
            print(f"{Colors.YELLOW}⚠️  Parse warnings:{Colors.RESET}")
            for warning in project.warnings:
                print(f"  {Colors.YELLOW}• {warning}{Colors.RESET}")
            print()

    def format_dialogue_box(self, text: str, speaker: str, color: str, max_width: int = 60) -> str:
        """Format dialogue text in a box"""
        actual_max = max(20, min(max_width, self.term_width - 8))
        lines = textwrap.wrap(text, width=actual_max) or [""]

        box_width = max(max(len(line) for line in lines), len(speaker) + 2)

        result = [f"\n  {color}╭─ {speaker} {'─' * (box_width - len(speaker) - 1)}╮{Colors.RESET}"]
        for line in lines:
            result.append(f"  {color}│{Colors.RESET} {line.ljust(box_width)} {color}│{Colors.RESET}")
        result.append(f"  {color}╰{'─' * (box_width + 2)}╯{Colors.RESET}")

        return "\n".join(result)

    def show_line(self, line: DialogueLine):
        if line.character:
            print(self.format_dialogue_box(line.text, line.character, Colors.BRIGHT_CYAN))
        else:
            wrapped = textwrap.fill(line.text, width=min(70, self.term_width - 6), break_long_words=False)
            print(f"\n{Colors.ITALIC}{Colors.BRIGHT_BLACK}📖 {wrapped}{Colors.RESET}")

        if self.verbose and line.tags:
            print(f"  {Colors.DIM}[tags: {', '.join(line.tags)}]{Colors.RESET}")

    def show_choices(self, choices: List[Choice]):
        print(f"\n{Colors.DIM}{'─' * 50}{Colors.RESET}")
        for i, choice in enumerate(choices, 1):
            cond_indicator = f" {Colors.BRIGHT_YELLOW}✓{Colors.RESET}" if choice.condition else ""
            print(f"  {Colors.BRIGHT_YELLOW}[{i}]{Colors.RESET} {Colors.YELLOW}{choice.text}{Colors.RESET}{cond_indicator}")

    def show_command(self, command: str, args: List[str]):
        if self.verbose:
            print(f"  {Colors.DIM}<<{' '.join([command, *args])}>>{Colors.RESET}")
        if command == "wait":
            print(f"  {Colors.DIM}(…){Colors.RESET}")

    def show_node_start(self, title: str):
        if self.verbose:
            print(f"\n{Colors.DIM}[{title}]{Colors.RESET}")

    def play(self, start_node: str) -> bool:
        """Play from a node until the dialogue ends or the player quits"""
        print(f"\n{Colors.BRIGHT_CYAN}{'=' * 70}{Colors.RESET}")
        print(f"{Colors.BRIGHT_YELLOW}{Colors.BOLD}🎭 INTERACTIVE DIALOGUE PLAYER{Colors.RESET}")
        print(f"{Colors.BRIGHT_CYAN}{'=' * 70}{Colors.RESET}")
        print(f"\n{Colors.BRIGHT_WHITE}Controls:{Colors.RESET}")
        print(f"  {Colors.CYAN}•{Colors.RESET} Press Enter to continue, or enter a number to choose")
        print(f"  {Colors.CYAN}•{Colors.RESET} Type {Colors.YELLOW}'quit'{Colors.RESET} to stop")
        print(f"  {Colors.CYAN}•{Colors.RESET} Type {Colors.YELLOW}'state'{Colors.RESET} to see variables")
        print(f"  {Colors.CYAN}•{Colors.RESET} Type {Colors.YELLOW}'save'{Colors.RESET} / {Colors.YELLOW}'load'{Colors.RESET} to save or restore")
        print(f"\n{Colors.BRIGHT_CYAN}{'=' * 70}{Colors.RESET}\n")

        if not self.runner.start_node(start_node):
            print(f"{Colors.RED}❌ Error: Node '{start_node}' not found!{Colors.RESET}")
            return False

        while self.runner.can_continue and not self.quit_requested:
            self.handle_input()

        if self.runner.state is DialogueState.ENDED and not self.quit_requested:
            print(f"\n{Colors.BRIGHT_CYAN}{'=' * 70}{Colors.RESET}")
            print(f"{Colors.BRIGHT_YELLOW}{Colors.BOLD}🎬 THE END{Colors.RESET}")
            print(f"{Colors.BRIGHT_CYAN}{'=' * 70}{Colors.RESET}")

        for target in self.runner.unresolved_jumps:
            print(f"{Colors.YELLOW}⚠️  Jump to missing node '{target}' was skipped{Colors.RESET}")

        self.show_final_state()
        return True

    def handle_input(self):
        """Read one command from the player and apply it to the runner"""
        try:
            prompt = f"\n{Colors.BRIGHT_MAGENTA}>{Colors.RESET} "
            user_input = self.input_func(prompt).strip().lower()
        except (EOFError, KeyboardInterrupt):
            user_input = "quit"

        if user_input in ("quit", "exit", "q"):
            print("\n👋 Thanks for playing!")
            self.quit_requested = True
            self.runner.stop()
            return

        if user_input == "state":
            self.show_state()
            return

        if user_input == "save":
            self.save_game()
            return

        if user_input == "load":
            self.load_game()
            return

        if self.runner.state is DialogueState.LINE:
            self.runner.advance()
            return

        try:
            choice_num = int(user_input)
        except ValueError:
            print(f"{Colors.RED}❌ Please enter a valid number or command.{Colors.RESET}")
            return

        choices = self.runner.current_choices
        if 1 <= choice_num <= len(choices):
            print(self.format_dialogue_box(choices[choice_num - 1].text, "You", Colors.BRIGHT_GREEN))
            self.runner.select_choice(choice_num - 1)
        else:
            print(f"{Colors.RED}❌ Invalid choice. Please enter a number from the list.{Colors.RESET}")

    def show_state(self):
        """Display current variables and position"""
        print(f"\n{Colors.BRIGHT_BLUE}{'=' * 50}{Colors.RESET}")
        print(f"{Colors.BRIGHT_BLUE}📊 CURRENT STATE{Colors.RESET}")
        print(f"{Colors.BRIGHT_BLUE}{'=' * 50}{Colors.RESET}")

        print("\n📈 Variables:")
        variables = self.variables.to_json()
        if variables:
            for name, value in sorted(variables.items()):
                print(f"  • ${name}: {value}")
        else:
            print("  (none)")

        print("\n📍 Current Node: " + (self.runner.current_node_title or "None"))
        print(f"📝 Nodes Visited: {' → '.join(self.runner.node_history)}")
        print("=" * 50)

    def show_final_state(self):
        visited = set(self.runner.node_history)
        print(f"\n📝 Nodes Visited: {len(visited)}/{self.project.node_count}")

    def save_game(self):
        """Save the current node and variables"""
        save_data = {
            "node": self.runner.current_node_title,
            "history": list(self.runner.node_history),
            "variables": self.variables.to_json(),
        }

        with open(self.save_path, "w", encoding="utf-8") as f:
            json.dump(save_data, f, indent=2)

        print(f"{Colors.BRIGHT_GREEN}💾 Game saved to '{self.save_path}'!{Colors.RESET}")

    def load_game(self):
        """Restore variables and restart at the saved node"""
        if not self.save_path.exists():
            print(f"{Colors.RED}❌ No save file found at '{self.save_path}'!{Colors.RESET}")
            return

        try:
            with open(self.save_path, "r", encoding="utf-8") as f:
                save_data = json.load(f)
            node = save_data["node"]
            variables = save_data["variables"]
        except (json.JSONDecodeError, KeyError, OSError) as e:
            print(f"{Colors.RED}❌ Error loading save: {e}{Colors.RESET}")
            return

        if not self.project.has_node(node):
            print(f"{Colors.RED}❌ Saved node '{node}' no longer exists!{Colors.RESET}")
            return

        self.variables.load_from_json(variables)
        print(f"{Colors.BRIGHT_GREEN}💾 Game loaded, restarting at '{node}'!{Colors.RESET}")
        self.runner.start_node(node)


def parse_assignment(text: str):
    """Parse a NAME=VALUE option into (name, value) with the value's literal type"""
    name, sep, value = text.partition("=")
    if not sep or not name.strip():
        raise ValueError(f"Expected NAME=VALUE, got '{text}'")
    return name.strip().lstrip("$"), VariableStorage().evaluate_value(value)


def main():
    """Main entry point"""
    if len(sys.argv) < 2:
        print("Usage: yarn-play <dialogue_file.yarn> [start_node]")
        sys.exit(1)

    dialogue_path = Path(sys.argv[1])
    if not dialogue_path.exists():
        print(f"❌ File not found: {dialogue_path}")
        sys.exit(1)

    project = YarnProject()
    project.parse_file(dialogue_path)

    positional = [arg for arg in sys.argv[2:] if not arg.startswith("--")]
    start_node = positional[0] if positional else "start"
    player = DialoguePlayer(project, verbose="--verbose" in sys.argv)
    if not player.play(start_node):
        sys.exit(1)


if __name__ == "__main__":
    main()
