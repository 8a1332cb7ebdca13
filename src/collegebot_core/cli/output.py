"""Rich output formatting helpers."""

from datetime import datetime

from rich.console import Console
from rich.table import Table
from rich.tree import Tree

from collegebot_core.chats.models import Chat
from collegebot_core.enrichment.progress import ProgressEvent, ProgressKind
from collegebot_core.locations.models import MapLocation
from collegebot_core.memory.models import KnowledgeGraph

_PROGRESS_STYLES = {
    ProgressKind.LOG: "dim",
    ProgressKind.STATUS: "cyan",
    ProgressKind.TOOL: "magenta",
    ProgressKind.CHAT_STARTED: "bold cyan",
    ProgressKind.CHAT_FINISHED: "green",
    ProgressKind.CHAT_FAILED: "red",
    ProgressKind.BATCH_FINISHED: "bold",
}


def _when(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else "-"


def create_chats_table(chats: list[Chat]) -> Table:
    """Create the chat listing table.

    Args:
        chats: Chats to list.

    Returns:
        Configured Rich Table.
    """
    table = Table(title="Chats")
    table.add_column("ID", style="cyan")
    table.add_column("Title")
    table.add_column("Messages", justify="right")
    table.add_column("Status", style="bold")
    table.add_column("Last message")
    for chat in chats:
        if chat.is_stale:
            status = "[yellow]STALE[/yellow]"
        elif chat.processed:
            status = "[green]PROCESSED[/green]"
        else:
            status = "[red]PENDING[/red]"
        table.add_row(
            chat.id,
            chat.title or "-",
            str(len(chat.messages)),
            status,
            _when(chat.last_message_at),
        )
    return table


def create_locations_table(locations: list[MapLocation]) -> Table:
    table = Table(title="Map locations")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Type", style="magenta")
    table.add_column("Position")
    table.add_column("Chats", justify="right")
    for loc in locations:
        table.add_row(
            loc.id,
            loc.name,
            loc.type.value,
            f"{loc.latitude:.4f}, {loc.longitude:.4f}",
            str(len(loc.source_chats)),
        )
    return table


def create_graph_tree(student_id: str, graph: KnowledgeGraph) -> Tree:
    """Render entities with their observations and outgoing relations."""
    tree = Tree(f"[bold]Knowledge graph for {student_id}[/bold]")
    outgoing: dict[str, list[str]] = {}
    for rel in graph.relations:
        outgoing.setdefault(rel.source, []).append(f"{rel.relation_type} -> {rel.target}")
    for entity in sorted(graph.entities, key=lambda e: e.name):
        branch = tree.add(f"[cyan]{entity.name}[/cyan] [dim]({entity.entity_type})[/dim]")
        for obs in entity.observations:
            branch.add(f"[bold]{obs.key}:[/bold] {obs.value}")
        for edge in outgoing.get(entity.name, []):
            branch.add(f"[magenta]{edge}[/magenta]")
    return tree


def print_progress(console: Console, event: ProgressEvent) -> None:
    """Print one progress event from an enrichment run."""
    if event.kind is ProgressKind.LOG and not event.message:
        return
    style = _PROGRESS_STYLES.get(event.kind, "")
    prefix = ""
    if event.total_count:
        prefix = f"[{event.processed_count or 0}/{event.total_count}] "
    console.print(f"{prefix}{event.message}", style=style, markup=False)
