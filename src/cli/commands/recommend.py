"""Recommendation CLI commands."""

import asyncio
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from cli.utils import get_components, load_tasks
from observability import log_run_summary
from recommender import RecommendationResult, ScoredTask
from shared_types import EnergyLevel

console = Console()

ENERGY_CHOICES = [e.value for e in EnergyLevel]


def _read_tasks(tasks_file: Path) -> list[dict]:
    try:
        return load_tasks(tasks_file)
    except ValueError as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)


def _factor_line(scored: ScoredTask) -> str:
    return ", ".join(f"{f.icon} {f.label}" for f in scored.factors) or "-"


def _display_result(result: RecommendationResult | None, title: str = "Do this now"):
    if result is None:
        console.print("[yellow]Nothing to recommend: no open tasks.[/]")
        return

    primary = result.primary
    console.print(f"\n[cyan bold]{title}:[/] {primary.task.title}")
    console.print(
        f"[green]Score: {primary.final_score:.1f}[/]  "
        f"[dim]confidence {primary.confidence:.0f} | success {primary.success_probability:.0f}% "
        f"| ~{result.estimated_duration} min | {result.method}[/]"
    )
    if result.reasoning:
        console.print(f"[dim]Why: {result.reasoning}[/]")

    if result.alternatives:
        table = Table(title="Alternatives")
        table.add_column("Task", style="cyan")
        table.add_column("Score", justify="right")
        table.add_column("Factors")
        for alt in result.alternatives:
            table.add_row(alt.task.title, f"{alt.final_score:.1f}", _factor_line(alt))
        console.print(table)


async def _generate(engine, tasks, user: str):
    try:
        return await engine.generate(tasks, user)
    finally:
        await engine.aclose()


@click.command("recommend")
@click.argument("tasks_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-u", "--user", default="local", help="User id for cache and skip-list")
@click.option("--energy", type=click.Choice(ENERGY_CHOICES), help="Override detected energy level")
def recommend(tasks_file: Path, user: str, energy: str | None):
    """Recommend the single best task to work on now."""
    tasks = _read_tasks(tasks_file)
    c = get_components(energy=energy)
    engine = c["engine"]

    with console.status("Scoring tasks..."):
        result = asyncio.run(_generate(engine, tasks, user))
    _display_result(result)
    if engine.is_degraded(user):
        console.print("[yellow]Showing a fallback result: full scoring failed.[/]")
    log_run_summary(engine.metrics)


@click.command("estimate")
@click.argument("tasks_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def estimate(tasks_file: Path):
    """Fast heuristic pick without full scoring."""
    tasks = _read_tasks(tasks_file)
    c = get_components()
    _display_result(c["engine"].estimate(tasks), title="Quick pick")


@click.command("rank")
@click.argument("tasks_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-u", "--user", default="local", help="User id")
@click.option("-n", "--limit", default=20, help="Max rows")
def rank(tasks_file: Path, user: str, limit: int):
    """Show every open task ranked by score."""
    tasks = _read_tasks(tasks_file)
    c = get_components()
    payload = asyncio.run(c["engine"].analyze(tasks, user))
    if payload is None:
        console.print("[yellow]No open tasks.[/]")
        return

    snap = payload.snapshot
    table = Table(
        title=f"Ranked tasks ({snap.time_of_day}, {snap.user_energy_level} energy)"
    )
    table.add_column("#", justify="right", style="dim")
    table.add_column("Task", style="cyan")
    table.add_column("Priority")
    table.add_column("Score", justify="right")
    table.add_column("Success", justify="right")
    table.add_column("Factors")
    for i, scored in enumerate(payload.ranked[:limit], start=1):
        table.add_row(
            str(i),
            scored.task.title,
            str(scored.task.priority),
            f"{scored.final_score:.1f}",
            f"{scored.success_probability:.0f}%",
            _factor_line(scored),
        )
    console.print(table)
