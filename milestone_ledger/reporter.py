from __future__ import annotations

from typing import Iterable, List, Optional

from rich import box
from rich.console import Console
from rich.table import Table

from milestone_ledger.bench import BenchResult
from milestone_ledger.domain.models import GoalProgress, Milestone


def _status_label(milestone: Milestone) -> str:
    return milestone.status.name.replace("_", " ").title()


def print_milestones(milestones: Iterable[Milestone], console: Optional[Console] = None) -> None:
    """
    Render milestones as a rich table, one row per record.
    """
    console = console or Console()
    rows = list(milestones)
    if not rows:
        console.print("[yellow]No milestones to display.[/yellow]")
        return

    table = Table(title=f"Milestones of {rows[0].owner}", box=box.ROUNDED)
    table.add_column("ID", justify="right", style="cyan", no_wrap=True)
    table.add_column("Title", style="bold")
    table.add_column("Goal", justify="right", style="magenta")
    table.add_column("Status", style="blue")
    table.add_column("Progress %", justify="right", style="green")
    table.add_column("Target", justify="right", style="yellow")
    table.add_column("Updated", justify="right", style="dim")

    for m in rows:
        table.add_row(
            str(m.record_id),
            m.title,
            "-" if m.goal_id is None else str(m.goal_id),
            _status_label(m),
            str(m.progress_percentage),
            str(m.target_date),
            str(m.updated_at),
        )

    console.print(table)


def print_progress(progress: GoalProgress, console: Optional[Console] = None) -> None:
    console = console or Console()
    table = Table(title=f"Goal {progress.goal_id} of {progress.owner}", box=box.ROUNDED)
    table.add_column("Members", justify="right", style="magenta")
    table.add_column("Total progress", justify="right", style="green")
    table.add_column("Average %", justify="right", style="bold green")
    table.add_column("Probed / Slots", justify="right", style="dim")
    table.add_row(
        str(progress.member_count),
        str(progress.total_progress),
        str(progress.average_progress),
        f"{progress.probed} / {progress.slots}",
    )
    console.print(table)


def print_bench_results(results: List[BenchResult], console: Optional[Console] = None) -> None:
    """
    Render design benchmark results, cheapest aggregation first.
    """
    console = console or Console()

    if not results:
        console.print("[yellow]No results to display.[/yellow]")
        return

    first = results[0]
    table = Table(
        title=(
            "Goal Index Design Comparison\n"
            f"[dim]{first.get('records', 0):,} records │ {first.get('goals', 0)} goals[/dim]"
        ),
        box=box.ROUNDED,
        caption="Sorted by aggregation units (ascending)",
    )

    table.add_column("Index", style="cyan", no_wrap=True)
    table.add_column("Write units", justify="right", style="magenta")
    table.add_column("Writes", justify="right", style="magenta")
    table.add_column("Aggregate units", justify="right", style="bold green")
    table.add_column("Aggregate reads", justify="right", style="green")
    table.add_column("Duration (ms)", justify="right", style="yellow")
    table.add_column("Peak Traced (KB)", justify="right", style="red")

    for res in sorted(results, key=lambda r: r.get("aggregate_units", 0)):
        peak = res.get("peak_traced_bytes")
        table.add_row(
            res.get("index", "Unknown"),
            f"{res.get('write_units', 0):,}",
            f"{res.get('write_writes', 0):,}",
            f"{res.get('aggregate_units', 0):,}",
            f"{res.get('aggregate_reads', 0):,}",
            f"{res.get('duration_seconds', 0.0) * 1000:.2f}",
            "N/A" if peak is None else f"{peak / 1024:.1f}",
        )

    console.print(table)
