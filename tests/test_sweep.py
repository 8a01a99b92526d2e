"""
Unit tests for the destruction sweep.

Tests cover:
- Percentage range generation (endpoint inclusion, validation)
- Seed generation per (percentage, run)
- Sequential execution and result ordering
- Aggregation (mean/std, persistence rates)
- Parallel and sequential runs agree
- Progress callback
- CSV / JSON export
"""

import csv
import json

import pytest

from habitat_sim.core.config import SimConfig
from habitat_sim.simulation.census import CellCounts
from habitat_sim.simulation.sweep import (
    RESULT_COLUMNS,
    DestructionSweep,
    PercentageResult,
    SweepRunResult,
    generate_percentages,
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def config() -> SimConfig:
    """Tiny sweep: three percentages, two runs each."""
    cfg = SimConfig()
    cfg.world.width = 10
    cfg.world.height = 10
    cfg.destruction.pattern = "random"
    cfg.destruction.rounds = 0
    cfg.run.updates = 5
    cfg.run.record_every = 5
    cfg.sweep.start = 0.2
    cfg.sweep.stop = 0.4
    cfg.sweep.step = 0.1
    cfg.sweep.runs_per_set = 2
    cfg.sweep.base_seed = 10
    cfg.sweep.parallel_workers = 2
    return cfg


@pytest.fixture
def sweep(config) -> DestructionSweep:
    return DestructionSweep(config)


# ---------------------------------------------------------------------------
# Percentage range
# ---------------------------------------------------------------------------

class TestGeneratePercentages:
    def test_default_range_includes_endpoint(self):
        values = generate_percentages(0.25, 0.75, 0.01)
        assert len(values) == 51
        assert values[0] == 0.25
        assert values[-1] == 0.75
        assert values[1] == 0.26

    def test_quarters(self):
        assert generate_percentages(0.0, 1.0, 0.25) == [0.0, 0.25, 0.5, 0.75, 1.0]

    def test_single_value(self):
        assert generate_percentages(0.4, 0.4, 0.1) == [0.4]

    def test_step_past_stop(self):
        assert generate_percentages(0.1, 0.35, 0.1) == [0.1, 0.2, 0.3]

    @pytest.mark.parametrize("start, stop, step", [(0.2, 0.4, 0.0), (0.2, 0.4, -0.1), (0.5, 0.4, 0.1)])
    def test_invalid(self, start, stop, step):
        with pytest.raises(ValueError):
            generate_percentages(start, stop, step)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

class TestSweepSetup:
    def test_percentages(self, sweep):
        assert sweep.percentages == [0.2, 0.3, 0.4]
        assert sweep.total_runs == 6

    def test_seeds(self, sweep):
        seeds = [job["seed"] for job in sweep._build_jobs()]
        assert seeds == [10, 11, 1010, 1011, 2010, 2011]

    def test_invalid_config(self, config):
        config.sweep.step = 0
        with pytest.raises(ValueError):
            DestructionSweep(config)

    def test_default_config(self):
        sweep = DestructionSweep()
        assert len(sweep.percentages) == 51

    def test_repr(self, sweep):
        assert "total_runs=6" in repr(sweep)


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------

class TestSweepRun:
    def test_sequential(self, sweep):
        result = sweep.run(parallel=False)
        assert result.total_runs == 6
        assert [p.destruction for p in result.percentages] == [0.2, 0.3, 0.4]
        for entry, expected in zip(result.percentages, [20, 30, 40]):
            assert [r.run_index for r in entry.runs] == [0, 1]
            for run in entry.runs:
                assert run.counts.destroyed == expected
                assert run.counts.total == 100
            assert entry.mean_counts["destroyed"] == expected
            assert entry.std_counts["destroyed"] == 0.0

    def test_progress_callback(self, sweep):
        calls = []
        sweep.run(parallel=False, progress_callback=lambda done, total: calls.append((done, total)))
        assert calls[-1] == (6, 6)
        assert len(calls) == 6

    def test_reproducible(self, config):
        r1 = DestructionSweep(config).run(parallel=False)
        r2 = DestructionSweep(config).run(parallel=False)
        assert [r.counts for r in r1.all_runs()] == [r.counts for r in r2.all_runs()]

    def test_parallel_matches_sequential(self, sweep):
        sequential = sweep.run(parallel=False)
        parallel = sweep.run(parallel=True)
        assert [(r.seed, r.counts) for r in parallel.all_runs()] == \
            [(r.seed, r.counts) for r in sequential.all_runs()]


class TestAggregation:
    def test_persistence_rates(self):
        entry = PercentageResult(percentage_index=0, destruction=0.5, runs=[
            SweepRunResult(0, 0.5, 1, 0, CellCounts(species_c=2, species_d=0, empty=2, destroyed=0)),
            SweepRunResult(0, 0.5, 2, 1, CellCounts(species_c=0, species_d=3, empty=1, destroyed=0)),
            SweepRunResult(0, 0.5, 3, 2, CellCounts(species_c=1, species_d=1, empty=2, destroyed=0)),
            SweepRunResult(0, 0.5, 4, 3, CellCounts(species_c=0, species_d=0, empty=4, destroyed=0)),
        ])
        entry.aggregate()
        assert entry.total_runs == 4
        assert entry.c_persistence_rate == pytest.approx(0.5)
        assert entry.d_persistence_rate == pytest.approx(0.5)
        assert entry.mean_counts["species_c"] == pytest.approx(0.75)
        assert entry.mean_counts["empty"] == pytest.approx(2.25)

    def test_empty(self):
        entry = PercentageResult(percentage_index=0, destruction=0.5)
        entry.aggregate()
        assert entry.total_runs == 0
        assert entry.mean_counts == {}

    def test_row(self):
        run = SweepRunResult(1, 0.3, 1011, 1, CellCounts(1, 2, 3, 4))
        assert list(run.as_row()) == RESULT_COLUMNS


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------

class TestExport:
    def test_files(self, sweep, tmp_path):
        result = sweep.run(parallel=False)
        paths = sweep.export_results(result, tmp_path / "sweep")

        assert set(paths) == {"results", "summary", "config"}
        for path in paths.values():
            assert path.exists()

        with open(paths["results"], newline="", encoding="utf-8") as f:
            rows = list(csv.DictReader(f))
        assert len(rows) == 6
        assert list(rows[0]) == RESULT_COLUMNS
        assert [int(r["destroyed"]) for r in rows] == [20, 20, 30, 30, 40, 40]

        with open(paths["summary"], newline="", encoding="utf-8") as f:
            summary = list(csv.DictReader(f))
        assert [float(r["destruction"]) for r in summary] == [0.2, 0.3, 0.4]
        assert float(summary[1]["mean_destroyed"]) == 30.0

        with open(paths["config"], encoding="utf-8") as f:
            assert json.load(f)["sweep"]["runs_per_set"] == 2
