"""
Destruction sweep for the Habitat Destruction Simulator.

Runs the simulation at every destruction percentage in a range, each
repeated with several seeds, and aggregates the final census per percentage.

Supports parallel execution via concurrent.futures.ProcessPoolExecutor.
Each run owns its own seeded generator, so results do not depend on
whether the sweep runs sequentially or in parallel.
"""

from __future__ import annotations

import json
import time
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

import numpy as np

from habitat_sim.core.config import SimConfig, SweepConfig, get_default_config
from habitat_sim.logging.csv_logger import write_rows
from habitat_sim.simulation.census import CellCounts
from habitat_sim.simulation.engine import run_from_config


RESULT_COLUMNS = ["destruction", "run_index", "seed", *CellCounts.column_names()]
SUMMARY_COLUMNS = (
    ["destruction", "total_runs"]
    + [f"mean_{n}" for n in CellCounts.column_names()]
    + [f"std_{n}" for n in CellCounts.column_names()]
    + ["c_persistence_rate", "d_persistence_rate"]
)


# ---------------------------------------------------------------------------
# Data classes for sweep results
# ---------------------------------------------------------------------------

@dataclass
class SweepRunResult:
    """Final census of one run within a sweep."""
    percentage_index: int
    destruction: float
    seed: int
    run_index: int
    counts: CellCounts = field(default_factory=CellCounts)

    def as_row(self) -> dict:
        return {
            "destruction": self.destruction,
            "run_index": self.run_index,
            "seed": self.seed,
            **self.counts.as_dict(),
        }


@dataclass
class PercentageResult:
    """Aggregated results for one destruction percentage."""
    percentage_index: int
    destruction: float
    runs: list[SweepRunResult] = field(default_factory=list)

    # Aggregated stats (computed by aggregate())
    total_runs: int = 0
    mean_counts: dict[str, float] = field(default_factory=dict)
    std_counts: dict[str, float] = field(default_factory=dict)
    c_persistence_rate: float = 0.0
    d_persistence_rate: float = 0.0

    def aggregate(self) -> None:
        """Compute mean/std of each count and the persistence rate of each species."""
        self.total_runs = len(self.runs)
        if self.total_runs == 0:
            return

        for name in CellCounts.column_names():
            values = np.array([getattr(r.counts, name) for r in self.runs], dtype=float)
            self.mean_counts[name] = float(np.mean(values))
            self.std_counts[name] = float(np.std(values))

        self.c_persistence_rate = sum(1 for r in self.runs if r.counts.species_c > 0) / self.total_runs
        self.d_persistence_rate = sum(1 for r in self.runs if r.counts.species_d > 0) / self.total_runs

    def as_summary_row(self) -> dict:
        row = {
            "destruction": self.destruction,
            "total_runs": self.total_runs,
            "c_persistence_rate": round(self.c_persistence_rate, 4),
            "d_persistence_rate": round(self.d_persistence_rate, 4),
        }
        for name in CellCounts.column_names():
            row[f"mean_{name}"] = round(self.mean_counts.get(name, 0.0), 2)
            row[f"std_{name}"] = round(self.std_counts.get(name, 0.0), 2)
        return row


@dataclass
class SweepResult:
    """Complete results of a destruction sweep."""
    percentages: list[PercentageResult] = field(default_factory=list)
    total_runs: int = 0
    elapsed_seconds: float = 0.0

    def all_runs(self) -> list[SweepRunResult]:
        """Every run, ordered by percentage then run index."""
        return [run for p in self.percentages for run in p.runs]


# ---------------------------------------------------------------------------
# Percentage range
# ---------------------------------------------------------------------------

def generate_percentages(start: float, stop: float, step: float) -> list[float]:
    """
    Percentages start, start + step, ... up to and including stop.

    Values are computed by index (not accumulated) and rounded to 10
    decimals, so the endpoint survives floating-point drift.

    Raises:
        ValueError: If step <= 0 or stop < start.
    """
    if step <= 0:
        raise ValueError(f"step must be > 0, got {step}")
    if stop < start:
        raise ValueError(f"stop ({stop}) must be >= start ({start})")

    count = int(np.floor((stop - start) / step + 1e-9)) + 1
    return [round(start + i * step, 10) for i in range(count)]


# ---------------------------------------------------------------------------
# Worker (top-level so worker processes can unpickle it)
# ---------------------------------------------------------------------------

def _run_single_simulation(
    base_config_dict: dict,
    percentage_index: int,
    destruction: float,
    seed: int,
    run_index: int,
) -> SweepRunResult:
    """
    Run one simulation at one destruction percentage.

    Rebuilds the config from a plain dict so it can run in a worker process.

    Args:
        base_config_dict: Base config as produced by SimConfig.to_dict().
        percentage_index: Index of the percentage in the sweep.
        destruction: Destruction percentage for this run.
        seed: Random seed for this run.
        run_index: Index of this run within the percentage.

    Returns:
        SweepRunResult with the final census.
    """
    config = SimConfig.from_dict(base_config_dict)
    config.destruction.percentage = destruction
    config.world.seed = seed

    _, run_result = run_from_config(config)

    return SweepRunResult(
        percentage_index=percentage_index,
        destruction=destruction,
        seed=seed,
        run_index=run_index,
        counts=run_result.final_counts,
    )


# ---------------------------------------------------------------------------
# DestructionSweep class
# ---------------------------------------------------------------------------

class DestructionSweep:
    """
    Runs simulations across a range of destruction percentages.

    Usage:
        sweep = DestructionSweep(config)
        result = sweep.run()
        sweep.export_results(result, output_dir)

    Attributes:
        config: Base simulation config (destruction pattern, rounds, run length...).
        settings: The config's sweep section.
        percentages: Destruction percentages to run.
    """

    def __init__(self, config: Optional[SimConfig] = None):
        """
        Initialize the sweep.

        Args:
            config: Base simulation config. None = default config.

        Raises:
            ValueError: If the config is invalid.
        """
        self.config = (config or get_default_config()).check()
        self.settings: SweepConfig = self.config.sweep
        self.percentages = generate_percentages(
            self.settings.start, self.settings.stop, self.settings.step,
        )

    @property
    def total_runs(self) -> int:
        """Percentages times runs per percentage."""
        return len(self.percentages) * self.settings.runs_per_set

    def run(
        self,
        parallel: bool = True,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> SweepResult:
        """
        Execute the full sweep.

        Args:
            parallel: Whether to use parallel execution. False = sequential.
            progress_callback: Optional callback(completed, total) for progress.

        Returns:
            SweepResult with one PercentageResult per percentage.
        """
        start_time = time.time()

        jobs = self._build_jobs()

        if parallel and self.settings.parallel_workers > 1 and len(jobs) > 1:
            run_results = self._run_parallel(jobs, progress_callback)
        else:
            run_results = self._run_sequential(jobs, progress_callback)

        sweep_result = self._aggregate_results(run_results)
        sweep_result.elapsed_seconds = time.time() - start_time

        return sweep_result

    def _build_jobs(self) -> list[dict]:
        """One job per (percentage, run) pair, seeded base_seed + index * 1000 + run."""
        base_config_dict = self.config.to_dict()
        jobs = []

        for index, destruction in enumerate(self.percentages):
            for run_idx in range(self.settings.runs_per_set):
                seed = self.settings.base_seed + index * 1000 + run_idx
                jobs.append({
                    "base_config_dict": base_config_dict,
                    "percentage_index": index,
                    "destruction": destruction,
                    "seed": seed,
                    "run_index": run_idx,
                })

        return jobs

    def _run_sequential(
        self,
        jobs: list[dict],
        progress_callback: Optional[Callable[[int, int], None]],
    ) -> list[SweepRunResult]:
        """Run jobs one after another in this process."""
        results = []
        for i, job in enumerate(jobs):
            results.append(_run_single_simulation(**job))
            if progress_callback is not None:
                progress_callback(i + 1, len(jobs))
        return results

    def _run_parallel(
        self,
        jobs: list[dict],
        progress_callback: Optional[Callable[[int, int], None]],
    ) -> list[SweepRunResult]:
        """Run jobs in worker processes; results arrive in completion order."""
        results = []
        completed = 0

        with ProcessPoolExecutor(max_workers=self.settings.parallel_workers) as executor:
            futures = [executor.submit(_run_single_simulation, **job) for job in jobs]

            for future in as_completed(futures):
                results.append(future.result())
                completed += 1
                if progress_callback is not None:
                    progress_callback(completed, len(jobs))

        return results

    def _aggregate_results(self, run_results: list[SweepRunResult]) -> SweepResult:
        """Group run results by percentage and compute aggregates."""
        by_index: dict[int, list[SweepRunResult]] = {}
        for r in run_results:
            by_index.setdefault(r.percentage_index, []).append(r)

        percentages = []
        for index, destruction in enumerate(self.percentages):
            runs = sorted(by_index.get(index, []), key=lambda r: r.run_index)
            entry = PercentageResult(percentage_index=index, destruction=destruction, runs=runs)
            entry.aggregate()
            percentages.append(entry)

        return SweepResult(
            percentages=percentages,
            total_runs=sum(len(p.runs) for p in percentages),
        )

    # ------------------------------------------------------------------
    # Export results
    # ------------------------------------------------------------------

    def export_results(
        self,
        result: SweepResult,
        output_dir: str | Path,
    ) -> dict[str, Path]:
        """
        Export sweep results to files.

        Creates:
          - results.csv: one row per run (destruction and final census)
          - summary.csv: one row per percentage with mean/std counts
          - sweep_config.json: copy of the config used

        Args:
            result: The sweep result to export.
            output_dir: Output directory.

        Returns:
            Dict of file type → path.
        """
        out = Path(output_dir)
        out.mkdir(parents=True, exist_ok=True)

        paths = {
            "results": write_rows(
                out / "results.csv", RESULT_COLUMNS,
                (run.as_row() for run in result.all_runs()),
            ),
            "summary": write_rows(
                out / "summary.csv", SUMMARY_COLUMNS,
                (entry.as_summary_row() for entry in result.percentages),
            ),
        }

        config_path = out / "sweep_config.json"
        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(self.config.to_dict(), f, indent=2)
        paths["config"] = config_path

        return paths

    def __repr__(self) -> str:
        return (
            f"DestructionSweep(percentages={len(self.percentages)}, "
            f"runs_per_set={self.settings.runs_per_set}, "
            f"total_runs={self.total_runs})"
        )
