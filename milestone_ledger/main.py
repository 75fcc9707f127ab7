from __future__ import annotations

import json
import sys
import time
from typing import List, Optional

import typer

from milestone_ledger.bench import BenchConfig, run_benchmark
from milestone_ledger.config import get_settings
from milestone_ledger.contract import MilestoneContract
from milestone_ledger.domain.models import UNSET, CallContext
from milestone_ledger.errors import MilestoneError
from milestone_ledger.index.registry import available_indexes
from milestone_ledger.reporter import print_bench_results, print_milestones, print_progress
from milestone_ledger.utils.logging import configure_logging

app = typer.Typer(help="Milestone Ledger CLI.")


def _open_contract() -> MilestoneContract:
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    return MilestoneContract.from_settings(settings)


def _context(caller: str, now: Optional[int]) -> CallContext:
    return CallContext(caller=caller, now=int(time.time()) if now is None else now)


def _fail(exc: MilestoneError) -> None:
    typer.secho(f"Error [{exc.code}]: {exc.message}", err=True, fg=typer.colors.RED)
    raise typer.Exit(code=1)


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    location = (
        f"{settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name}"
        if settings.backend == "postgres"
        else settings.state_path
    )
    typer.echo(
        f"backend={settings.backend} ({location}) | index={settings.goal_index} "
        f"max_records={settings.max_records_per_owner} budget={settings.meter_budget}"
    )


@app.command()
def create(
    caller: str = typer.Option(..., "--caller", "-c", help="Identity creating the milestone."),
    title: str = typer.Option(..., "--title", "-t"),
    description: str = typer.Option(..., "--description", "-d"),
    target_date: int = typer.Option(..., "--target-date", help="Ledger clock value to reach."),
    goal: Optional[int] = typer.Option(None, "--goal", "-g", help="Goal to associate."),
    now: Optional[int] = typer.Option(None, "--now", help="Ledger clock override (default: unix time)."),
) -> None:
    """
    Create a milestone owned by the caller.
    """
    contract = _open_contract()
    try:
        record_id = contract.create_milestone(
            _context(caller, now), title, description, target_date=target_date, goal_id=goal
        )
    except MilestoneError as exc:
        _fail(exc)
    finally:
        contract.close()
    typer.echo(f"Created milestone {record_id} for {caller}")


@app.command()
def update(
    record_id: int = typer.Argument(..., help="Milestone id within the caller's namespace."),
    caller: str = typer.Option(..., "--caller", "-c"),
    title: Optional[str] = typer.Option(None, "--title", "-t"),
    description: Optional[str] = typer.Option(None, "--description", "-d"),
    goal: Optional[int] = typer.Option(None, "--goal", "-g"),
    clear_goal: bool = typer.Option(False, "--clear-goal", help="Remove the goal association."),
    status: Optional[str] = typer.Option(
        None, "--status", "-s", help="pending, in_progress, completed, verified or an ordinal."
    ),
    progress: Optional[int] = typer.Option(None, "--progress", "-p"),
    target_date: Optional[int] = typer.Option(None, "--target-date"),
    now: Optional[int] = typer.Option(None, "--now"),
) -> None:
    """
    Partially update one of the caller's milestones.
    """
    if clear_goal and goal is not None:
        typer.secho("--goal and --clear-goal are mutually exclusive", err=True, fg=typer.colors.RED)
        raise typer.Exit(code=2)

    fields = {
        "title": UNSET if title is None else title,
        "description": UNSET if description is None else description,
        "goal_id": None if clear_goal else (UNSET if goal is None else goal),
        "status": UNSET if status is None else status,
        "progress_percentage": UNSET if progress is None else progress,
        "target_date": UNSET if target_date is None else target_date,
    }
    contract = _open_contract()
    try:
        updated = contract.update_milestone(_context(caller, now), record_id, **fields)
    except MilestoneError as exc:
        _fail(exc)
    finally:
        contract.close()
    typer.echo(f"Updated milestone {updated.record_id} for {caller} at {updated.updated_at}")


@app.command()
def show(
    owner: str = typer.Argument(..., help="Owner whose milestones to show."),
    record_id: Optional[int] = typer.Argument(None, help="Single milestone id; all when omitted."),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON instead of a table."),
) -> None:
    """
    Show one milestone or all of an owner's milestones.
    """
    contract = _open_contract()
    try:
        if record_id is None:
            milestones = contract.list_milestones(owner)
        else:
            found = contract.get_milestone(owner, record_id)
            if found is None:
                typer.secho(f"Milestone {record_id} not found for {owner}", err=True, fg=typer.colors.RED)
                raise typer.Exit(code=1)
            milestones = [found]
    except MilestoneError as exc:
        _fail(exc)
    finally:
        contract.close()

    if as_json:
        typer.echo(json.dumps([m.model_dump(mode="json") for m in milestones], indent=2))
    else:
        print_milestones(milestones)


@app.command()
def count(owner: str = typer.Argument(...)) -> None:
    """
    Show how many milestones an owner has created.
    """
    contract = _open_contract()
    try:
        total = contract.get_milestone_count(owner)
    except MilestoneError as exc:
        _fail(exc)
    finally:
        contract.close()
    typer.echo(str(total))


@app.command()
def progress(
    owner: str = typer.Argument(...),
    goal: int = typer.Argument(..., help="Goal id to aggregate."),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON instead of a table."),
) -> None:
    """
    Aggregate the average progress of an owner's milestones in a goal.
    """
    contract = _open_contract()
    try:
        summary = contract.goal_summary(owner, goal)
    except MilestoneError as exc:
        _fail(exc)
    finally:
        contract.close()

    if as_json:
        typer.echo(summary.model_dump_json(indent=2))
    else:
        print_progress(summary)


@app.command()
def bench(
    index: List[str] = typer.Option(
        ["all"], "--index", "-i", help=f"Index design(s) to compare: {', '.join(available_indexes())}, all."
    ),
    records: int = typer.Option(100, "--records", "-r"),
    goals: int = typer.Option(5, "--goals", "-g"),
    seed: int = typer.Option(42, "--seed"),
    persist: bool = typer.Option(False, "--persist", help="Write results/latest.json."),
    results_dir: str = typer.Option("results", "--results-dir"),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON instead of a table."),
) -> None:
    """
    Compare the metered cost of the goal index designs on a synthetic workload.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    try:
        config = BenchConfig(
            index_names=index,
            records=records,
            goals=goals,
            seed=seed,
            persist=persist,
            results_dir=results_dir,
        )
        results = run_benchmark(config)
    except ValueError as exc:
        typer.secho(str(exc), err=True, fg=typer.colors.RED)
        raise typer.Exit(code=2)

    if as_json:
        typer.echo(json.dumps(results, indent=2))
    else:
        print_bench_results(results)


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
