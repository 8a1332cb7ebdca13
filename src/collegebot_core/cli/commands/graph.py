"""Knowledge graph commands."""

import click
from rich.console import Console

from collegebot_core.cli.commands import get_stores
from collegebot_core.cli.output import create_graph_tree


@click.group("graph")
def graph_group() -> None:
    """Inspect a student's knowledge graph."""
    pass


@graph_group.command()
@click.argument("student_id")
@click.pass_context
def stats(ctx: click.Context, student_id: str) -> None:
    """Show node, edge and type counts."""
    console: Console = ctx.obj["console"]
    try:
        graph = get_stores(ctx).graph(student_id)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="STUDENT_ID")
    result = graph.get_stats()
    console.print(
        f"[cyan]Knowledge Graph:[/cyan] {result.node_count} nodes, "
        f"{result.edge_count} edges"
    )
    if result.entity_types:
        console.print(f"  Entity types: {', '.join(result.entity_types)}")


@graph_group.command()
@click.argument("student_id")
@click.option("--search", "query", default=None, help="Only entities matching this text.")
@click.pass_context
def show(ctx: click.Context, student_id: str, query: str | None) -> None:
    """Print entities with their observations and relations."""
    console: Console = ctx.obj["console"]
    try:
        graph = get_stores(ctx).graph(student_id)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="STUDENT_ID")
    snapshot = graph.search_nodes(query) if query else graph.read_graph()
    if not snapshot.entities:
        console.print("[yellow]No entities found.[/yellow]")
        return
    console.print(create_graph_tree(student_id, snapshot))


@graph_group.command()
@click.argument("student_id")
@click.argument("names", nargs=-1, required=True)
@click.pass_context
def delete(ctx: click.Context, student_id: str, names: tuple[str, ...]) -> None:
    """Delete entities and every relation that references them."""
    console: Console = ctx.obj["console"]
    try:
        graph = get_stores(ctx).graph(student_id)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="STUDENT_ID")
    removed = graph.delete_entities(names)
    for name in sorted(set(names) - set(removed)):
        console.print(f"[yellow]Entity {name} not found.[/yellow]")
    console.print(f"[green]Deleted {len(removed)} entities.[/green]")
