"""Feedback CLI commands."""

import click
from rich.console import Console
from rich.table import Table

from cli.utils import get_components
from shared_types import FeedbackAction

console = Console()

ACTION_CHOICES = [a.value for a in FeedbackAction]


@click.command("feedback")
@click.argument("task_id")
@click.argument("action", type=click.Choice(ACTION_CHOICES))
@click.option("-u", "--user", default="local", help="User id")
def feedback(task_id: str, action: str, user: str):
    """Record what you did with a recommendation."""
    c = get_components()
    event = c["engine"].record_action(user, task_id, action)
    console.print(f"[green]Recorded[/] {event.action} for {task_id}")


@click.command("history")
@click.option("-n", "--limit", default=20, help="Max entries")
@click.option("-u", "--user", default=None, help="Filter by user id")
def history(limit: int, user: str | None):
    """List recent feedback events."""
    c = get_components()
    store = c["feedback_store"]
    events = store.get_recent(user_id=user, limit=limit)
    if not events:
        console.print("[yellow]No feedback recorded yet.[/]")
        return

    table = Table(title="Feedback history")
    table.add_column("When", style="dim")
    table.add_column("User")
    table.add_column("Task", style="cyan")
    table.add_column("Action")
    for e in events:
        table.add_row(e["created_at"][:16], e["user_id"] or "-", e["task_id"], e["action"])
    console.print(table)

    counts = store.counts_by_action(user_id=user)
    console.print(" ".join(f"{k}: {v}" for k, v in counts.items() if v))
