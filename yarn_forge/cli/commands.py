"""
CLI commands for yarn forge
"""

import logging
import sys
from pathlib import Path

import click

from yarn_forge.cli.play_cmd import DialoguePlayer, parse_assignment
from yarn_forge.cli.validate_cmd import ProjectValidator
from yarn_forge.export.exporter import DialogueExporter
from yarn_forge.parser.project import YarnProject


def load_project(path: Path) -> YarnProject:
    """Parse a .yarn file into a new project, exiting with an error message on failure"""
    project = YarnProject()
    try:
        project.parse_file(path)
    except (OSError, UnicodeDecodeError) as e:
        click.echo(f"\n❌ Error: {e}", err=True)
        sys.exit(1)
    return project


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log parser and runner diagnostics")
def cli(verbose):
    """Yarn Forge - Yarn dialogue parser, validator and player"""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


@cli.command()
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--start", "-s", "start_node", default=None, help="Start node for reachability checks")
@click.option("--detailed", "-d", is_flag=True, help="Show detailed validation output")
def validate(file_path, start_node, detailed):
    """Validate a .yarn dialogue file"""
    path = Path(file_path)
    project = load_project(path)

    validator = ProjectValidator(project, start_node=start_node)
    is_valid = validator.validate()
    stats = project.get_stats()

    click.echo(f"\n📄 File: {path.name}")
    click.echo("-" * 40)
    click.echo(f"Nodes: {stats['nodes']}")
    click.echo(f"Dialogue lines: {stats['dialogue_lines']}")
    click.echo(f"Choices: {stats['choices']}")
    click.echo(f"Commands: {stats['commands']}")

    if detailed:
        click.echo("\n📊 Detailed Analysis:")
        click.echo("-" * 40)

        click.echo("\nSpeakers:")
        for speaker in stats["speakers"]:
            click.echo(f"  • {speaker}")

        click.echo("\nNodes:")
        for node in project:
            tags = f" #{' #'.join(node.tags)}" if node.tags else ""
            click.echo(f"  [{node.title}]{tags} - {len(node.lines)} lines")

    if validator.errors:
        click.echo("\n❌ Errors:")
        for error in validator.errors:
            click.echo(f"  • {error}", err=True)

    if validator.warnings:
        click.echo("\n⚠️  Warnings:")
        for warning in validator.warnings:
            click.echo(f"  • {warning}")

    if is_valid:
        click.echo("\n✅ Validation passed!")
    else:
        click.echo("\n❌ Validation failed!", err=True)
        sys.exit(1)


@cli.command()
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False))
def stats(file_path):
    """Show statistics for a .yarn dialogue file"""
    path = Path(file_path)
    project = load_project(path)
    stats = project.get_stats()

    click.echo(f"\n📊 Statistics for {path.name}")
    click.echo("=" * 50)

    click.echo("\n📝 Content:")
    click.echo(f"  Nodes:          {stats['nodes']:>6}")
    click.echo(f"  Dialogue lines: {stats['dialogue_lines']:>6}")
    click.echo(f"  Choices:        {stats['choices']:>6}")
    click.echo(f"  Commands:       {stats['commands']:>6}")
    click.echo(f"  Conditionals:   {stats['conditionals']:>6}")
    click.echo(f"  Jumps:          {stats['jumps']:>6}")
    click.echo(f"  Speakers:       {len(stats['speakers']):>6}")

    avg_lines = stats["dialogue_lines"] / stats["nodes"] if stats["nodes"] > 0 else 0
    click.echo("\n📈 Averages:")
    click.echo(f"  Lines per node:   {avg_lines:>6.1f}")

    if stats["warnings"] > 0:
        click.echo("\n⚠️  Issues:")
        click.echo(f"  Parse warnings: {stats['warnings']:>6}")

    click.echo()


@cli.command()
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False))
@click.argument("title")
def show_node(file_path, title):
    """Display a specific node from a dialogue file"""
    path = Path(file_path)
    project = load_project(path)

    node = project.get_node(title)
    if node is None:
        click.echo(f"❌ Node '{title}' not found in {path.name}", err=True)
        click.echo("\nAvailable nodes:")
        names = sorted(project.node_names)
        for name in names[:20]:
            click.echo(f"  • {name}")
        if len(names) > 20:
            click.echo(f"  ... and {len(names) - 20} more")
        sys.exit(1)

    click.echo(f"\n📍 Node: [{node.title}]")
    click.echo("=" * 50)

    if node.tags:
        click.echo(f"Tags: {' '.join(node.tags)}")
    for key, value in node.headers.items():
        click.echo(f"{key}: {value}")

    click.echo()
    _echo_lines(node.to_dict()["lines"], indent=1)
    click.echo()


def _echo_lines(lines, indent):
    pad = "  " * indent
    for line in lines:
        kind = line["type"]
        if kind == "dialogue":
            speaker = f"{line['character']}: " if line["character"] else ""
            click.echo(f"{pad}💬 {speaker}{line['text']}")
        elif kind == "choices":
            for choice in line["choices"]:
                cond_str = f" <<if {choice['condition']}>>" if choice["condition"] else ""
                click.echo(f"{pad}-> {choice['text']}{cond_str}")
                _echo_lines(choice["body"], indent + 2)
        elif kind == "command":
            click.echo(f"{pad}⚡ <<{' '.join([line['command'], *line['arguments']])}>>")
        elif kind == "conditional":
            click.echo(f"{pad}<<if {line['condition']}>>")
            _echo_lines(line["then"], indent + 1)
            if line["else"]:
                click.echo(f"{pad}<<else>>")
                _echo_lines(line["else"], indent + 1)
            click.echo(f"{pad}<<endif>>")
        elif kind == "jump":
            click.echo(f"{pad}🔀 <<jump {line['target']}>>")


@cli.command()
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--output", "-o", "output_path", type=click.Path(dir_okay=False), default=None, help="Output file")
@click.option(
    "--format",
    "-f",
    "export_format",
    type=click.Choice(["json", "csv"]),
    default="json",
    show_default=True,
    help="json: full node tree, csv: string table of lines",
)
def export(file_path, output_path, export_format):
    """Export a .yarn dialogue file to JSON or CSV"""
    path = Path(file_path)
    project = load_project(path)

    output = Path(output_path) if output_path else path.with_suffix(f".{export_format}")
    exporter = DialogueExporter()

    try:
        if export_format == "csv":
            exporter.export_to_csv(project, output)
        else:
            exporter.export_to_json(project, output)
    except OSError as e:
        click.echo(f"❌ Export failed: {e}", err=True)
        sys.exit(1)

    click.echo(f"✅ Exported to: {output}")
    click.echo(f"   • {project.node_count} nodes")


@cli.command()
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--start", "-s", "start_node", default="start", show_default=True, help="Node to start at")
@click.option("--set", "assignments", multiple=True, metavar="NAME=VALUE", help="Initial variable value")
@click.option("--save-file", type=click.Path(dir_okay=False), default="yarn_save.json", show_default=True)
@click.option("--verbose", "-v", is_flag=True, help="Show commands, tags and node changes")
def play(file_path, start_node, assignments, save_file, verbose):
    """Play through a .yarn dialogue file interactively"""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    project = load_project(Path(file_path))

    variables = {}
    for assignment in assignments:
        try:
            name, value = parse_assignment(assignment)
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="--set")
        variables[name] = value

    player = DialoguePlayer(project, variables=variables, verbose=verbose, save_path=Path(save_file))
    if not player.play(start_node):
        sys.exit(1)


if __name__ == "__main__":
    cli()
