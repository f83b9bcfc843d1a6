"""Tests for the click command line interface."""

import csv
import json

import pytest
from click.testing import CliRunner

from yarn_forge.cli.commands import cli
from yarn_forge.cli.play_cmd import DialoguePlayer, parse_assignment
from yarn_forge.parser import YarnProject

SCRIPT = """
title: start
tags: intro
---
Sara: Hello!
-> Yes
    Sara: Great!
-> No
    Sara: Okay.
===
"""

BROKEN = """
title: start
---
<<jump nowhere>>
===
"""


@pytest.fixture
def script_file(tmp_path):
    path = tmp_path / "sara.yarn"
    path.write_text(SCRIPT, encoding="utf-8")
    return path


@pytest.fixture
def broken_file(tmp_path):
    path = tmp_path / "broken.yarn"
    path.write_text(BROKEN, encoding="utf-8")
    return path


class TestValidateCommand:
    """Test the validate command."""

    def test_valid_file(self, script_file):
        """A valid file exits 0."""
        result = CliRunner().invoke(cli, ["validate", str(script_file)])

        assert result.exit_code == 0
        assert "Validation passed" in result.output
        assert "Nodes: 1" in result.output

    def test_invalid_file(self, broken_file):
        """Errors exit 1 and are listed."""
        result = CliRunner().invoke(cli, ["validate", str(broken_file)])

        assert result.exit_code == 1
        assert "Jump to undefined node 'nowhere'" in result.output

    def test_missing_start_node(self, script_file):
        """--start checks that the node exists."""
        result = CliRunner().invoke(cli, ["validate", str(script_file), "--start", "intro"])

        assert result.exit_code == 1
        assert "Start node 'intro' does not exist" in result.output

    def test_detailed(self, script_file):
        """--detailed lists speakers and nodes."""
        result = CliRunner().invoke(cli, ["validate", str(script_file), "--detailed"])

        assert result.exit_code == 0
        assert "• Sara" in result.output
        assert "[start] #intro" in result.output

    def test_missing_file(self, tmp_path):
        """Click rejects paths that don't exist."""
        result = CliRunner().invoke(cli, ["validate", str(tmp_path / "nope.yarn")])

        assert result.exit_code != 0


class TestStatsAndShowNode:
    """Test the stats and show-node commands."""

    def test_stats(self, script_file):
        """Counts are printed."""
        result = CliRunner().invoke(cli, ["stats", str(script_file)])

        assert result.exit_code == 0
        assert "Dialogue lines:      3" in result.output
        assert "Choices:             2" in result.output

    def test_show_node(self, script_file):
        """The node's lines are printed as a tree."""
        result = CliRunner().invoke(cli, ["show-node", str(script_file), "start"])

        assert result.exit_code == 0
        assert "Node: [start]" in result.output
        assert "Sara: Hello!" in result.output
        assert "-> Yes" in result.output
        assert "Sara: Great!" in result.output

    def test_show_missing_node(self, script_file):
        """Unknown nodes exit 1 and list what exists."""
        result = CliRunner().invoke(cli, ["show-node", str(script_file), "nowhere"])

        assert result.exit_code == 1
        assert "Node 'nowhere' not found" in result.output
        assert "• start" in result.output


class TestExportCommand:
    """Test the export command."""

    def test_export_json(self, script_file):
        """JSON export defaults to the script name with a .json suffix."""
        result = CliRunner().invoke(cli, ["export", str(script_file)])

        assert result.exit_code == 0
        data = json.loads(script_file.with_suffix(".json").read_text(encoding="utf-8"))
        assert list(data["nodes"]) == ["start"]

    def test_export_csv(self, script_file, tmp_path):
        """CSV export writes a string table to --output."""
        output = tmp_path / "strings" / "sara.csv"
        result = CliRunner().invoke(cli, ["export", str(script_file), "--format", "csv", "--output", str(output)])

        assert result.exit_code == 0
        with open(output, newline="", encoding="utf-8") as f:
            rows = list(csv.DictReader(f))
        assert [row["Text"] for row in rows] == ["Hello!", "Yes", "No", "Great!", "Okay."]

    def test_unknown_format(self, script_file):
        """Only json and csv are accepted."""
        result = CliRunner().invoke(cli, ["export", str(script_file), "--format", "xml"])

        assert result.exit_code != 0


class TestPlayCommand:
    """Test playing through the CLI."""

    def test_play_through(self, script_file, tmp_path):
        """Enter advances, numbers choose."""
        result = CliRunner().invoke(
            cli,
            ["play", str(script_file), "--save-file", str(tmp_path / "save.json")],
            input="\n1\n\n",
        )

        assert result.exit_code == 0
        assert "Hello!" in result.output
        assert "Great!" in result.output
        assert "Okay." not in result.output
        assert "THE END" in result.output

    def test_play_missing_start(self, script_file):
        """An unknown start node exits 1."""
        result = CliRunner().invoke(cli, ["play", str(script_file), "--start", "nowhere"])

        assert result.exit_code == 1
        assert "Node 'nowhere' not found" in result.output

    def test_bad_assignment(self, script_file):
        """--set needs NAME=VALUE."""
        result = CliRunner().invoke(cli, ["play", str(script_file), "--set", "gold"])

        assert result.exit_code == 2
        assert "Expected NAME=VALUE" in result.output


class TestDialoguePlayer:
    """Test the interactive player directly."""

    def make_player(self, inputs, tmp_path, content=SCRIPT, variables=None):
        project = YarnProject()
        project.parse(content)
        feed = iter(inputs)
        return DialoguePlayer(
            project,
            variables=variables,
            save_path=tmp_path / "save.json",
            input_func=lambda prompt: next(feed),
        )

    def test_quit(self, tmp_path, capsys):
        """quit stops the runner without the ending banner."""
        player = self.make_player(["quit"], tmp_path)

        assert player.play("start") is True
        assert player.quit_requested
        output = capsys.readouterr().out
        assert "Thanks for playing" in output
        assert "THE END" not in output

    def test_end_of_input_quits(self, tmp_path):
        """Running out of input counts as quit."""
        player = self.make_player([], tmp_path)

        def eof(prompt):
            raise EOFError

        player.input_func = eof
        assert player.play("start") is True
        assert player.quit_requested

    def test_invalid_choice_number(self, tmp_path, capsys):
        """Out of range and non-numeric input are rejected."""
        player = self.make_player(["", "7", "maybe", "2", "", "q"], tmp_path)

        player.play("start")
        output = capsys.readouterr().out
        assert "Invalid choice" in output
        assert "valid number" in output
        assert "Okay." in output

    def test_save_and_load(self, tmp_path):
        """Saves hold the node and variables, loading restores them."""
        player = self.make_player(["save", "q"], tmp_path, variables={"gold": 7})
        player.play("start")

        data = json.loads((tmp_path / "save.json").read_text(encoding="utf-8"))
        assert data == {"node": "start", "history": ["start"], "variables": {"gold": 7}}

        player = self.make_player(["load", "q"], tmp_path, variables={"gold": 0})
        player.play("start")
        assert player.variables.get_number("gold") == 7.0
        assert player.runner.node_history == ("start", "start")

    def test_load_without_save(self, tmp_path, capsys):
        """Loading with no save file reports it."""
        player = self.make_player(["load", "q"], tmp_path)

        player.play("start")
        assert "No save file found" in capsys.readouterr().out

    def test_parse_assignment(self):
        """Values keep their literal type."""
        assert parse_assignment("$gold=10") == ("gold", 10)
        assert parse_assignment("met = true") == ("met", True)
        assert parse_assignment("name=Sara") == ("name", "Sara")
        with pytest.raises(ValueError):
            parse_assignment("=5")
