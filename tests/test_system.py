"""Tests for DialogueSystem."""

from yarn_forge import DialogueState, DialogueSystem

SCRIPT = """
title: shop
---
<<if $gold >= 10>>
Merchant: Buying something?
<<give_item potion>>
<<set $gold -= 10>>
<<else>>
Merchant: Come back with coin.
<<endif>>
===
"""


class TestDialogueSystem:
    """Test the shared project, variables and commands."""

    def test_initial_content_and_variables(self):
        """Content is parsed and variables loaded on construction."""
        system = DialogueSystem(initial_content=SCRIPT, initial_variables={"$gold": 15})

        assert system.project.has_node("shop")
        assert system.variables.get_number("gold") == 15.0

    def test_empty_system(self):
        """A system can start empty."""
        system = DialogueSystem()

        assert system.project.node_count == 0
        assert len(system.variables) == 0
        assert system.commands.names == []

    def test_runner_uses_shared_resources(self):
        """Runners read and write the system's variables and commands."""
        inventory = []
        system = DialogueSystem(initial_content=SCRIPT, initial_variables={"gold": 15})
        system.commands.register("give_item", lambda command, args: inventory.extend(args) or True)

        lines = []
        runner = system.create_runner(on_line=lambda line: lines.append(line.text))
        runner.start_node("shop")

        assert lines == ["Buying something?"]
        runner.advance()

        assert runner.state is DialogueState.ENDED
        assert inventory == ["potion"]
        assert system.variables.get_number("gold") == 5.0

    def test_runners_are_independent(self):
        """Two runners over one system keep their own position."""
        system = DialogueSystem(initial_content=SCRIPT)
        first = system.create_runner()
        second = system.create_runner(max_steps=100)

        first.start_node("shop")
        assert first.current_dialogue_line.text == "Come back with coin."
        assert second.state is DialogueState.INACTIVE
        assert second.max_steps == 100
