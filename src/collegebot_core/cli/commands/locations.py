"""Map location commands."""

import click
from rich.console import Console

from collegebot_core.cli.commands import get_stores
from collegebot_core.cli.output import create_locations_table


@click.group("locations")
def locations_group() -> None:
    """Manage a student's map pins."""
    pass


@locations_group.command("list")
@click.argument("student_id")
@click.pass_context
def list_locations(ctx: click.Context, student_id: str) -> None:
    """List colleges and scholarships on the map."""
    console: Console = ctx.obj["console"]
    locations = get_stores(ctx).locations.list_locations(student_id)
    if not locations:
        console.print("[yellow]No map locations.[/yellow]")
        return
    console.print(create_locations_table(locations))


@locations_group.command()
@click.argument("student_id")
@click.argument("location_id")
@click.pass_context
def delete(ctx: click.Context, student_id: str, location_id: str) -> None:
    """Delete one map pin."""
    console: Console = ctx.obj["console"]
    if get_stores(ctx).locations.delete_location(student_id, location_id):
        console.print(f"[green]Deleted {location_id}.[/green]")
    else:
        console.print(f"[red]Location {location_id} not found.[/red]")
        ctx.exit(1)


@locations_group.command()
@click.argument("student_id")
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt.")
@click.pass_context
def clear(ctx: click.Context, student_id: str, yes: bool) -> None:
    """Delete every map pin of a student."""
    console: Console = ctx.obj["console"]
    if not yes:
        click.confirm(f"Delete all map locations for {student_id}?", abort=True)
    count = get_stores(ctx).locations.clear_locations(student_id)
    console.print(f"[green]Cleared {count} map locations.[/green]")
