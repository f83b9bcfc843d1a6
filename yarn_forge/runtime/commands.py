"""
Registry for custom dialogue commands
"""

from typing import Callable, Dict, List, Optional, Sequence

# Receives the command name and its arguments, returns True if handled
CommandCallback = Callable[[str, Sequence[str]], bool]


class CommandHandler:
    """Registry for custom command handlers such as ``<<give_item sword>>``.

    Names are case-insensitive. ``register`` also works as a decorator::

        commands = CommandHandler()

        @commands.register("give_item")
        def give_item(command, args):
            inventory.add(args[0])
            return True
    """

    def __init__(self):
        self._handlers: Dict[str, CommandCallback] = {}

    @property
    def names(self) -> List[str]:
        return sorted(self._handlers.keys())

    def register(self, name: str, handler: Optional[CommandCallback] = None):
        """Register a handler for a command (without the << >> delimiters)"""
        if handler is None:

            def decorator(func: CommandCallback) -> CommandCallback:
                self._handlers[name.lower()] = func
                return func

            return decorator

        self._handlers[name.lower()] = handler
        return handler

    def unregister(self, name: str):
        self._handlers.pop(name.lower(), None)

    def has_handler(self, name: str) -> bool:
        return name.lower() in self._handlers

    def execute(self, command: str, arguments: Sequence[str]) -> bool:
        """Run the handler for a command.

        Returns:
            The handler's result, or False if no handler is registered
        """
        handler = self._handlers.get(command.lower())
        if handler is None:
            return False
        return bool(handler(command, list(arguments)))

    def clear(self):
        self._handlers.clear()
