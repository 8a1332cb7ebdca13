"""CLI entry point."""

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from collegebot_core import __version__
from collegebot_core.cli.commands.chats import chats_group
from collegebot_core.cli.commands.graph import graph_group
from collegebot_core.cli.commands.locations import locations_group
from collegebot_core.config import Settings

console = Console()


def configure_logging(level: str) -> None:
    """Route library logging through rich on stderr."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)


@click.group()
@click.version_option(version=__version__, prog_name="collegebot")
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory holding graphs and the database (overrides COLLEGEBOT_DATA_DIR).",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Log level (overrides COLLEGEBOT_LOG_LEVEL).",
)
@click.pass_context
def cli(ctx: click.Context, data_dir: Path | None, log_level: str | None) -> None:
    """CollegeBot enrichment pipeline.

    Turns a student's research chats into a knowledge graph, map pins and
    planner items.
    """
    try:
        settings = Settings.from_env()
    except RuntimeError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    if data_dir is not None:
        settings = settings.model_copy(update={"data_dir": data_dir.expanduser()})
    if log_level is not None:
        settings = settings.model_copy(update={"log_level": log_level.upper()})

    configure_logging(settings.log_level)

    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings
    ctx.obj["console"] = console


@cli.command()
@click.pass_context
def serve(ctx: click.Context) -> None:
    """Run the student data MCP tool server over stdio."""
    from collegebot_core.mcp import MCPConfig, create_server

    settings: Settings = ctx.obj["settings"]
    create_server(MCPConfig.from_settings(settings)).run()


cli.add_command(chats_group, "chats")
cli.add_command(graph_group, "graph")
cli.add_command(locations_group, "locations")
