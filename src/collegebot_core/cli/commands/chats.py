"""Chat commands: list, process, mark-unprocessed, refresh-stale."""

import click
from rich.console import Console

from collegebot_core.agent.client import AgentClient, AnalysisMode
from collegebot_core.cli.commands import get_stores
from collegebot_core.cli.output import create_chats_table, print_progress
from collegebot_core.config import Settings
from collegebot_core.enrichment.orchestrator import EnrichmentOrchestrator
from collegebot_core.errors import ChatNotFoundError
from collegebot_core.locations.geocoding import GeocodingClient

_MODES = {
    "graph": AnalysisMode.GRAPH_ENRICHMENT,
    "map": AnalysisMode.MAP_ENRICHMENT,
}


def _orchestrator(ctx: click.Context) -> EnrichmentOrchestrator:
    settings: Settings = ctx.obj["settings"]
    geocoder = None
    if settings.geocoding_api_key:
        geocoder = GeocodingClient(settings.geocoding_api_key, settings.geocoding_base_url)
    return EnrichmentOrchestrator(
        get_stores(ctx),
        AgentClient(settings.agent_base_url, settings.agent_timeout),
        geocoder=geocoder,
        retry_backoff_seconds=settings.retry_backoff_seconds,
    )


@click.group("chats")
def chats_group() -> None:
    """Inspect and enrich a student's chats."""
    pass


@chats_group.command("list")
@click.argument("student_id")
@click.option("--unprocessed", is_flag=True, help="Only show chats awaiting enrichment.")
@click.pass_context
def list_chats(ctx: click.Context, student_id: str, unprocessed: bool) -> None:
    """List chats and their processing state."""
    console: Console = ctx.obj["console"]
    store = get_stores(ctx).chats
    chats = store.list_unprocessed(student_id) if unprocessed else store.list_chats(student_id)
    if not chats:
        console.print("[yellow]No chats found.[/yellow]")
        return
    console.print(create_chats_table(chats))


@chats_group.command()
@click.argument("student_id")
@click.option("--chat", "chat_id", default=None, help="Process a single chat.")
@click.option(
    "--mode",
    type=click.Choice(sorted(_MODES)),
    default="graph",
    show_default=True,
    help="Which stores the agent targets.",
)
@click.pass_context
def process(ctx: click.Context, student_id: str, chat_id: str | None, mode: str) -> None:
    """Run enrichment over unprocessed chats (or one chat with --chat)."""
    console: Console = ctx.obj["console"]
    orchestrator = _orchestrator(ctx)

    def on_progress(event) -> None:
        print_progress(console, event)

    try:
        if chat_id is not None:
            result = orchestrator.process_chat(
                student_id, chat_id, _MODES[mode], on_progress
            )
            failed = 0 if result.ok else 1
        else:
            report = orchestrator.process_all(student_id, _MODES[mode], on_progress)
            failed = len(report.failed)
            console.print(f"[bold]{report.summary()}[/bold]")
    except ChatNotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        ctx.exit(1)
    finally:
        orchestrator.close()

    if failed:
        console.print(f"[red]{failed} chat(s) failed and stay unprocessed.[/red]")
        ctx.exit(1)


@chats_group.command("mark-unprocessed")
@click.argument("student_id")
@click.argument("chat_ids", nargs=-1)
@click.option("--all", "all_chats", is_flag=True, help="Reset every chat.")
@click.option("--recent", is_flag=True, help="Reset the most recently updated chat.")
@click.pass_context
def mark_unprocessed(
    ctx: click.Context,
    student_id: str,
    chat_ids: tuple[str, ...],
    all_chats: bool,
    recent: bool,
) -> None:
    """Reset chats so the next run analyses them again."""
    console: Console = ctx.obj["console"]
    if sum([bool(chat_ids), all_chats, recent]) != 1:
        raise click.UsageError("Give chat ids, --all or --recent (exactly one).")

    orchestrator = _orchestrator(ctx)
    try:
        if recent:
            chat_id = orchestrator.mark_recent_unprocessed(student_id)
            flipped = [chat_id] if chat_id else []
        else:
            flipped = orchestrator.mark_unprocessed(
                student_id, None if all_chats else list(chat_ids)
            )
    finally:
        orchestrator.close()

    missing = sorted(set(chat_ids) - set(flipped))
    for chat_id in missing:
        console.print(f"[yellow]Chat {chat_id} not found.[/yellow]")
    console.print(f"[green]Marked {len(flipped)} chat(s) unprocessed.[/green]")
    for chat_id in flipped:
        console.print(f"  - {chat_id}")


@chats_group.command("refresh-stale")
@click.argument("student_id")
@click.pass_context
def refresh_stale(ctx: click.Context, student_id: str) -> None:
    """Reset processed chats that received new messages since their last run."""
    console: Console = ctx.obj["console"]
    flipped = get_stores(ctx).chats.mark_stale_unprocessed(student_id)
    if not flipped:
        console.print("No stale chats.")
        return
    console.print(f"[green]Marked {len(flipped)} stale chat(s) unprocessed.[/green]")
    for chat_id in flipped:
        console.print(f"  - {chat_id}")
