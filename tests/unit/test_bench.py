from __future__ import annotations

import json
from pathlib import Path

import pytest

from milestone_ledger.bench import BenchConfig, run_benchmark

RECORDS = 20
GOALS = 3


def test_benchmark_runs_every_design_with_matching_results() -> None:
    results = run_benchmark(BenchConfig(records=RECORDS, goals=GOALS, seed=7))

    by_name = {r["index"]: r for r in results}
    assert sorted(by_name) == ["derived", "membership"]
    assert by_name["derived"]["averages"] == by_name["membership"]["averages"]
    assert len(by_name["derived"]["averages"]) == GOALS
    for result in results:
        assert result["records"] == RECORDS
        assert result["aggregate_units"] > 0
        assert result["duration_seconds"] >= 0


def test_membership_design_pays_at_write_time() -> None:
    results = run_benchmark(BenchConfig(records=RECORDS, goals=GOALS))

    by_name = {r["index"]: r for r in results}
    assert by_name["membership"]["write_writes"] > by_name["derived"]["write_writes"]
    assert by_name["membership"]["write_units"] > by_name["derived"]["write_units"]


def test_benchmark_is_deterministic_for_a_seed() -> None:
    first = run_benchmark(BenchConfig(index_names=["derived"], records=RECORDS, goals=GOALS, seed=3))
    second = run_benchmark(BenchConfig(index_names=["derived"], records=RECORDS, goals=GOALS, seed=3))

    assert first[0]["averages"] == second[0]["averages"]
    assert first[0]["write_units"] == second[0]["write_units"]


def test_benchmark_persists_results(tmp_path: Path) -> None:
    run_benchmark(
        BenchConfig(
            index_names=["membership"],
            records=5,
            goals=2,
            persist=True,
            results_dir=tmp_path,
        )
    )

    payload = json.loads((tmp_path / "latest.json").read_text(encoding="utf-8"))
    assert payload["records"] == 5
    assert payload["results"][0]["index"] == "membership"
    assert len(list(tmp_path.glob("run-*.json"))) == 1


def test_benchmark_rejects_unknown_design() -> None:
    with pytest.raises(ValueError, match="Unknown goal index"):
        run_benchmark(BenchConfig(index_names=["btree"], records=5))


def test_bench_config_validates_sizes() -> None:
    with pytest.raises(ValueError):
        BenchConfig(records=0)
    with pytest.raises(ValueError):
        BenchConfig(goals=0)
