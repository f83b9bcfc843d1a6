"""
Dialogue runner: steps through a project's nodes one line at a time
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..parser.lines import (
    Choice,
    ChoiceSet,
    CommandLine,
    ConditionalBlock,
    DialogueLine,
    JumpLine,
    YarnLine,
)
from ..parser.node import YarnNode
from ..parser.project import YarnProject
from .commands import CommandHandler
from .variables import VariableStorage

logger = logging.getLogger(__name__)


class DialogueState(Enum):
    """The current state of a DialogueRunner"""

    INACTIVE = "inactive"  # nothing started yet, or reset()
    LINE = "line"  # showing a line, waiting for advance()
    CHOICES = "choices"  # waiting for select_choice()
    ENDED = "ended"  # end of node, <<stop>> or stop()


@dataclass
class _Frame:
    """A sequence of lines being walked and the cursor into it"""

    lines: Sequence[YarnLine]
    index: int = 0

    @property
    def exhausted(self) -> bool:
        return self.index >= len(self.lines)


class DialogueRunner:
    """Runs Yarn dialogue, pausing for the host at lines and choices.

    Commands and conditionals are resolved immediately. The runner only
    stops to wait for input after a dialogue line (resume with ``advance``)
    or a set of choices (resume with ``select_choice``).

    Conditional branches and chosen choice bodies are pushed as frames on
    top of the node's lines, so the parsed project is never modified and
    can back any number of runners.

    Example::

        runner = DialogueRunner(project, VariableStorage())
        runner.start_node("greeting")

        while runner.can_continue:
            if runner.state is DialogueState.LINE:
                print(runner.current_dialogue_line)
                runner.advance()
            else:
                for i, choice in enumerate(runner.current_choices):
                    print(i, choice.text)
                runner.select_choice(0)
    """

    DEFAULT_MAX_STEPS = 10000

    def __init__(
        self,
        project: YarnProject,
        variable_storage: VariableStorage,
        command_handler: Optional[CommandHandler] = None,
        on_line: Optional[Callable[[DialogueLine], None]] = None,
        on_choices: Optional[Callable[[List[Choice]], None]] = None,
        on_command: Optional[Callable[[str, List[str]], None]] = None,
        on_dialogue_end: Optional[Callable[[], None]] = None,
        on_node_start: Optional[Callable[[str], None]] = None,
        max_steps: int = DEFAULT_MAX_STEPS,
    ):
        self.project = project
        self.variable_storage = variable_storage
        self.command_handler = command_handler
        self.on_line = on_line
        self.on_choices = on_choices
        self.on_command = on_command
        self.on_dialogue_end = on_dialogue_end
        self.on_node_start = on_node_start
        self.max_steps = max_steps

        self._state = DialogueState.INACTIVE
        self._current_node: Optional[YarnNode] = None
        self._frames: List[_Frame] = []
        self._current_line: Optional[DialogueLine] = None
        self._current_choices: List[Choice] = []
        self._choice_availability: Dict[int, bool] = {}
        self._node_history: List[str] = []
        self._unresolved_jumps: List[str] = []

    @property
    def state(self) -> DialogueState:
        return self._state

    @property
    def can_continue(self) -> bool:
        """Whether the dialogue is waiting on the host (a line or choices)"""
        return self._state in (DialogueState.LINE, DialogueState.CHOICES)

    @property
    def is_waiting_for_choice(self) -> bool:
        return self._state is DialogueState.CHOICES

    @property
    def current_dialogue_line(self) -> Optional[DialogueLine]:
        if self._state is DialogueState.LINE:
            return self._current_line
        return None

    @property
    def current_choices(self) -> List[Choice]:
        """The available choices while waiting for a selection"""
        return list(self._current_choices)

    @property
    def choice_availability(self) -> Dict[int, bool]:
        """Availability of every choice in the presented set, by position in the set"""
        return dict(self._choice_availability)

    @property
    def current_node(self) -> Optional[YarnNode]:
        return self._current_node

    @property
    def current_node_title(self) -> Optional[str]:
        return self._current_node.title if self._current_node else None

    @property
    def node_history(self) -> Tuple[str, ...]:
        return tuple(self._node_history)

    @property
    def unresolved_jumps(self) -> List[str]:
        """Jump targets that were missing from the project when reached"""
        return list(self._unresolved_jumps)

    @property
    def pending_lines(self) -> List[YarnLine]:
        """Everything left to run, starting with the line at the cursor"""
        pending: List[YarnLine] = []
        for frame in reversed(self._frames):
            pending.extend(frame.lines[frame.index :])
        return pending

    def start_node(self, title: str) -> bool:
        """Start dialogue at a node.

        Returns:
            False if the project has no node with that title
        """
        if not self._enter_node(title):
            return False

        self._process_next()
        return True

    def advance(self):
        """Move past the current line. Does nothing unless a line is showing."""
        if self._state is not DialogueState.LINE:
            return

        self._frames[-1].index += 1
        self._process_next()

    def select_choice(self, index: int):
        """Pick one of ``current_choices``. Invalid calls are ignored."""
        if self._state is not DialogueState.CHOICES:
            return
        if not 0 <= index < len(self._current_choices):
            return

        choice = self._current_choices[index]

        # Continue after the ChoiceSet once the body is done
        self._frames[-1].index += 1
        self._clear_choices()
        if choice.body:
            self._frames.append(_Frame(choice.body))

        self._process_next()

    def stop(self):
        """End the dialogue immediately"""
        self._state = DialogueState.ENDED
        self._clear_run()
        if self.on_dialogue_end:
            self.on_dialogue_end()

    def reset(self):
        """Return to the inactive state and forget the history"""
        self._state = DialogueState.INACTIVE
        self._clear_run()
        self._node_history.clear()
        self._unresolved_jumps.clear()

    def _clear_run(self):
        self._current_node = None
        self._frames = []
        self._current_line = None
        self._clear_choices()

    def _clear_choices(self):
        self._current_choices = []
        self._choice_availability = {}

    def _enter_node(self, title: str) -> bool:
        node = self.project.get_node(title)
        if node is None:
            return False

        self._current_node = node
        self._frames = [_Frame(tuple(node.lines))]
        self._current_line = None
        self._clear_choices()
        self._node_history.append(title)

        if self.on_node_start:
            self.on_node_start(title)

        return True

    def _top_frame(self) -> Optional[_Frame]:
        while self._frames and self._frames[-1].exhausted:
            self._frames.pop()
        return self._frames[-1] if self._frames else None

    def _process_next(self):
        """Run lines until one needs the host, or the dialogue ends"""
        steps = 0

        while True:
            frame = self._top_frame()
            if frame is None:
                break

            steps += 1
            if steps > self.max_steps:
                logger.error(
                    "Dialogue ran %d lines without pausing in node '%s', stopping (jump cycle?)",
                    self.max_steps,
                    self.current_node_title,
                )
                self.stop()
                return

            line = frame.lines[frame.index]

            if isinstance(line, DialogueLine):
                self._current_line = line
                self._state = DialogueState.LINE
                if self.on_line:
                    self.on_line(line)
                return

            if isinstance(line, ChoiceSet):
                if self._present_choices(line):
                    return
                frame.index += 1

            elif isinstance(line, CommandLine):
                frame.index += 1
                self._execute_command(line)
                if not self._frames:
                    # stop() or reset() was called while handling the command
                    return

            elif isinstance(line, ConditionalBlock):
                frame.index += 1
                passed = self.variable_storage.evaluate_condition(line.condition)
                branch = line.then_branch if passed else line.else_branch
                if branch:
                    self._frames.append(_Frame(branch))

            elif isinstance(line, JumpLine):
                if not self._enter_node(line.target_node):
                    logger.warning(
                        "Jump to unknown node '%s' from '%s' ignored",
                        line.target_node,
                        self.current_node_title,
                    )
                    self._unresolved_jumps.append(line.target_node)
                    frame.index += 1

            else:
                frame.index += 1

        # Reached the end of the node
        self._state = DialogueState.ENDED
        self._current_line = None
        if self.on_dialogue_end:
            self.on_dialogue_end()

    def _present_choices(self, choice_set: ChoiceSet) -> bool:
        """Filter choices by their conditions, returns False if none are available"""
        availability = {}
        available = []

        for index, choice in enumerate(choice_set.choices):
            if choice.condition is None:
                is_available = True
            else:
                is_available = self.variable_storage.evaluate_condition(choice.condition)
            availability[index] = is_available
            if is_available:
                available.append(choice)

        if not available:
            return False

        self._current_choices = available
        self._choice_availability = availability
        self._state = DialogueState.CHOICES
        if self.on_choices:
            self.on_choices(list(available))
        return True

    def _execute_command(self, line: CommandLine):
        command = line.command
        args = list(line.arguments)

        if self.on_command:
            self.on_command(command, args)

        if command == "set":
            if args:
                self.variable_storage.execute_set(" ".join(args))
        elif command == "stop":
            self.stop()
        elif command == "wait":
            # The host decides how long to wait
            pass
        elif self.command_handler is not None:
            if not self.command_handler.execute(command, args):
                logger.debug("No handler for command '%s'", command)
