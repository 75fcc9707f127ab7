"""
Design benchmark comparing goal index implementations.

For each index design a fresh in-memory ledger is seeded with the same
deterministic workload (creates plus progress/goal updates), then every goal
is aggregated. Metered work units are recorded separately for the write phase
and the aggregation phase, together with profiler stats, so the write-time vs
read-time trade-off of the designs is visible side by side.

Usage (example from CLI):
    from milestone_ledger.bench import BenchConfig, run_benchmark

    results = run_benchmark(BenchConfig(index_names=["all"], records=100, goals=5))

Outputs are optionally saved to `results/`:
- `results/latest.json` (last run)
- `results/run-<timestamp>.json` (timestamped archive)
"""

from __future__ import annotations

import json
import random
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, TypedDict

from milestone_ledger.config import get_settings
from milestone_ledger.contract import MilestoneContract
from milestone_ledger.domain.models import CallContext, MilestoneStatus
from milestone_ledger.index.registry import available_indexes, resolve_index
from milestone_ledger.ledger.memory import InMemoryLedgerState
from milestone_ledger.utils.logging import get_logger
from milestone_ledger.utils.profiler import profile_block

log = get_logger(__name__)

BENCH_OWNER = "bench"


class BenchResult(TypedDict, total=False):
    """
    Per-design metrics produced by one benchmark run.
    """

    index: str
    records: int
    goals: int
    write_units: int
    write_reads: int
    write_writes: int
    aggregate_units: int
    aggregate_reads: int
    duration_seconds: float
    peak_traced_bytes: Optional[int]
    averages: Dict[str, int]


@dataclass
class BenchConfig:
    """
    Benchmark parameters.

    `index_names` of None or ["all"] runs every registered design.
    """

    index_names: Optional[List[str]] = None
    records: int = 100
    goals: int = 5
    seed: int = 42
    results_dir: Path | str = "results"
    persist: bool = False
    names: List[str] = field(init=False, default_factory=list)

    def __post_init__(self) -> None:
        if self.records < 1:
            raise ValueError("records must be at least 1")
        if self.goals < 1:
            raise ValueError("goals must be at least 1")
        requested = list(self.index_names) if self.index_names else ["all"]
        self.names = available_indexes() if requested == ["all"] else requested


def _seed(contract: MilestoneContract, config: BenchConfig) -> Dict[str, int]:
    """Replay the deterministic workload; return summed meter usage."""
    rng = random.Random(config.seed)
    totals = {"units": 0, "reads": 0, "writes": 0}
    clock = 1

    def _account() -> None:
        usage = contract.last_usage
        if usage is not None:
            totals["units"] += usage.units
            totals["reads"] += usage.reads
            totals["writes"] += usage.writes

    for i in range(config.records):
        clock += 1
        goal = rng.randrange(config.goals + 1)
        record_id = contract.create_milestone(
            CallContext(caller=BENCH_OWNER, now=clock),
            title=f"Milestone {i + 1}",
            description="Synthetic benchmark milestone.",
            target_date=clock + 10_000,
            goal_id=goal if goal < config.goals else None,
        )
        _account()

        clock += 1
        contract.update_milestone(
            CallContext(caller=BENCH_OWNER, now=clock),
            record_id,
            progress_percentage=rng.randint(0, 100),
            status=rng.choice(list(MilestoneStatus)),
            goal_id=rng.randrange(config.goals),
        )
        _account()

    return totals


def _run_design(name: str, config: BenchConfig) -> BenchResult:
    settings = get_settings().model_copy(
        update={
            "max_records_per_owner": max(config.records, get_settings().max_records_per_owner),
            "meter_budget": max(get_settings().meter_budget, config.records * 10),
        }
    )
    index = resolve_index(name, settings.max_records_per_owner)
    contract = MilestoneContract(InMemoryLedgerState(), index=index, settings=settings)

    write_totals = _seed(contract, config)

    averages: Dict[str, int] = {}
    aggregate_units = 0
    aggregate_reads = 0
    with profile_block(name) as stats:
        for goal in range(config.goals):
            summary = contract.goal_summary(BENCH_OWNER, goal)
            averages[str(goal)] = summary.average_progress
            if contract.last_usage is not None:
                aggregate_units += contract.last_usage.units
                aggregate_reads += contract.last_usage.reads

    return BenchResult(
        index=name,
        records=config.records,
        goals=config.goals,
        write_units=write_totals["units"],
        write_reads=write_totals["reads"],
        write_writes=write_totals["writes"],
        aggregate_units=aggregate_units,
        aggregate_reads=aggregate_reads,
        duration_seconds=round(stats.duration_seconds, 6),
        peak_traced_bytes=stats.peak_traced_bytes,
        averages=averages,
    )


def _persist_results(payload: dict, results_dir: Path) -> None:
    results_dir.mkdir(parents=True, exist_ok=True)
    latest_path = results_dir / "latest.json"
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    archive_path = results_dir / f"run-{timestamp}.json"

    for path in (latest_path, archive_path):
        with path.open("w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, sort_keys=True)

    log.info("Results persisted", extra={"latest": str(latest_path), "archive": str(archive_path)})


def run_benchmark(config: Optional[BenchConfig] = None) -> List[BenchResult]:
    """
    Run the workload once per index design and optionally persist the results.

    Raises
    ------
    ValueError
        For unknown design names.
    RuntimeError
        If two designs disagree on any goal average.
    """
    config = config or BenchConfig()
    for name in config.names:
        resolve_index(name, 1)

    results: List[BenchResult] = []
    for name in config.names:
        log.info(f"[DESIGN START] {name}", extra={"index": name, "records": config.records})
        result = _run_design(name, config)
        results.append(result)
        log.info(
            f"[DESIGN COMPLETE] {name}",
            extra={
                "index": name,
                "write_units": result["write_units"],
                "aggregate_units": result["aggregate_units"],
            },
        )

    distinct = {json.dumps(r["averages"], sort_keys=True) for r in results}
    if len(distinct) > 1:
        raise RuntimeError("Goal index designs disagree on aggregate results")

    if config.persist:
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "records": config.records,
            "goals": config.goals,
            "seed": config.seed,
            "results": results,
        }
        _persist_results(payload, Path(config.results_dir))

    return results


__all__ = ["BenchConfig", "BenchResult", "run_benchmark"]
