"""
DialogueSystem: a project, its variables and its commands in one place
"""

from typing import Mapping, Optional

from ..parser.project import YarnProject
from .commands import CommandHandler
from .runner import DialogueRunner
from .variables import Value, VariableStorage


class DialogueSystem:
    """Owns the shared dialogue resources for a game and creates runners.

    Example::

        system = DialogueSystem(initial_content=script, initial_variables={"gold": 10})
        system.commands.register("give_item", give_item)

        runner = system.create_runner(on_line=show_line, on_choices=show_choices)
        runner.start_node("greeting")
    """

    def __init__(
        self,
        initial_content: Optional[str] = None,
        initial_variables: Optional[Mapping[str, Value]] = None,
    ):
        self.project = YarnProject()
        self.variables = VariableStorage()
        self.commands = CommandHandler()

        if initial_content is not None:
            self.project.parse(initial_content)

        if initial_variables is not None:
            self.variables.load_from_json(initial_variables)

    def create_runner(self, **callbacks) -> DialogueRunner:
        """Create a runner over this system's project, variables and commands.

        Keyword arguments are passed to DialogueRunner (``on_line``,
        ``on_choices``, ``on_command``, ``on_dialogue_end``,
        ``on_node_start``, ``max_steps``).
        """
        return DialogueRunner(
            project=self.project,
            variable_storage=self.variables,
            command_handler=self.commands,
            **callbacks,
        )
