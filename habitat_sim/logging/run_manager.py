"""
Run output for the Habitat Destruction Simulator.

One directory per single run, named by start time (or an explicit name):

    {output_dir}/{run_name}/
        config.json   - the config the run used
        census.csv    - one census row per recorded update
        summary.json  - final counts and destruction settings

An existing directory is never reused; a numbered sibling is created instead.
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Optional

from habitat_sim.core.config import SimConfig, save_config
from habitat_sim.logging.csv_logger import CSVLogger, unique_path
from habitat_sim.simulation.engine import CensusRecord, RunResult


def run_summary(config: SimConfig, result: RunResult, elapsed_seconds: float = 0.0) -> dict:
    """JSON-ready summary of a finished run."""
    d = config.destruction
    return {
        "seed": result.seed,
        "grid": [config.world.width, config.world.height],
        "updates": result.updates,
        "destruction_percentage": d.percentage,
        "destruction_pattern": d.pattern,
        "destruction_rounds": d.rounds,
        "cells_destroyed_during_run": result.cells_destroyed_during_run,
        "final_counts": result.final_counts.as_dict(),
        "extinct": result.extinct,
        "elapsed_seconds": round(elapsed_seconds, 2),
    }


class RunManager:
    """
    Owns the output directory of a single run.

    Attributes:
        config: The run's configuration.
        run_dir: This run's output directory (created on construction).
        csv_logger: Census CSV writer.
    """

    def __init__(
        self,
        config: SimConfig,
        base_dir: Optional[str | Path] = None,
        run_name: Optional[str] = None,
    ):
        """
        Create the run directory and save the config into it.

        Args:
            config: Simulation configuration.
            base_dir: Parent directory. None = config.output.output_dir.
            run_name: Directory name. None = current timestamp.
        """
        self.config = config
        base = Path(base_dir if base_dir is not None else config.output.output_dir)
        name = run_name or datetime.now().strftime("%Y%m%d_%H%M%S")

        self.run_dir = unique_path(base / name)
        self.run_dir.mkdir(parents=True)
        save_config(config, self.config_path)
        self.csv_logger = CSVLogger(self.run_dir / "census.csv")

    @property
    def config_path(self) -> Path:
        return self.run_dir / "config.json"

    @property
    def census_path(self) -> Path:
        return self.csv_logger.file_path

    @property
    def summary_path(self) -> Path:
        return self.run_dir / "summary.json"

    def log_census(self, record: CensusRecord) -> None:
        """Append one census record."""
        self.csv_logger.log_row(record.as_row())

    def record_run(self, result: RunResult, elapsed_seconds: float = 0.0) -> dict:
        """
        Write the full census history and the summary of a finished run.

        Returns:
            The summary written to summary.json.
        """
        self.csv_logger.log_all(record.as_row() for record in result.history)
        summary = run_summary(self.config, result, elapsed_seconds)
        self.finalize(summary)
        return summary

    def finalize(self, summary: Optional[dict] = None) -> None:
        """Write summary.json when a summary is given."""
        if summary is None:
            return
        with open(self.summary_path, "w", encoding="utf-8") as f:
            json.dump(summary, f, indent=2, ensure_ascii=False)

    @staticmethod
    def list_runs(base_dir: str | Path) -> list[str]:
        """Names of run directories (those holding a config.json), sorted."""
        base = Path(base_dir)
        if not base.is_dir():
            return []
        return sorted(p.parent.name for p in base.glob("*/config.json"))

    def __repr__(self) -> str:
        return f"RunManager(run_dir='{self.run_dir}')"
