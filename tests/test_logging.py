"""
Unit tests for run output (CSV logger and run manager).

Tests cover:
- Unique file and directory names
- Incremental CSV appends, bulk writes, no-overwrite naming
- Run directory layout (config, census, summary)
- Run summaries and full-run recording
- Listing previous runs
"""

import json

import pytest

from habitat_sim.core.config import SimConfig, load_config
from habitat_sim.logging.csv_logger import CENSUS_COLUMNS, CSVLogger, unique_path, write_rows
from habitat_sim.logging.run_manager import RunManager, run_summary
from habitat_sim.simulation.census import CellCounts
from habitat_sim.simulation.engine import CensusRecord, RunResult, run_from_config


@pytest.fixture
def config() -> SimConfig:
    cfg = SimConfig()
    cfg.world.width = 8
    cfg.world.height = 8
    return cfg


def make_record(update: int) -> CensusRecord:
    return CensusRecord(update=update, counts=CellCounts(10, 20, 30, 4), cells_destroyed=2)


# ---------------------------------------------------------------------------
# unique_path
# ---------------------------------------------------------------------------

class TestUniquePath:
    def test_free_name_kept(self, tmp_path):
        assert unique_path(tmp_path / "out.csv") == tmp_path / "out.csv"

    def test_numbered_suffixes(self, tmp_path):
        (tmp_path / "out.csv").touch()
        assert unique_path(tmp_path / "out.csv") == tmp_path / "out_1.csv"
        (tmp_path / "out_1.csv").touch()
        assert unique_path(tmp_path / "out.csv") == tmp_path / "out_2.csv"

    def test_directories(self, tmp_path):
        (tmp_path / "run").mkdir()
        assert unique_path(tmp_path / "run") == tmp_path / "run_1"


# ---------------------------------------------------------------------------
# CSVLogger
# ---------------------------------------------------------------------------

class TestCSVLogger:
    def test_log_row_writes_header_once(self, tmp_path):
        logger = CSVLogger(tmp_path / "census.csv")
        logger.log_row(make_record(1).as_row())
        logger.log_row(make_record(2).as_row())

        lines = (tmp_path / "census.csv").read_text(encoding="utf-8").splitlines()
        assert lines[0] == ",".join(CENSUS_COLUMNS)
        assert len(lines) == 3

    def test_read_back(self, tmp_path):
        logger = CSVLogger(tmp_path / "census.csv")
        logger.log_row(make_record(5).as_row())
        rows = logger.read_back()
        assert rows == [{
            "update": "5", "species_c": "10", "species_d": "20",
            "empty": "30", "destroyed": "4", "cells_destroyed": "2",
        }]

    def test_log_all_overwrites(self, tmp_path):
        logger = CSVLogger(tmp_path / "census.csv")
        logger.log_row(make_record(1).as_row())
        logger.log_all([make_record(i).as_row() for i in (7, 8)])
        assert [r["update"] for r in logger.read_back()] == ["7", "8"]

    def test_custom_columns(self, tmp_path):
        logger = CSVLogger(tmp_path / "x.csv", columns=["a", "b"])
        logger.log_row({"a": 1, "b": 2, "c": 3})
        assert logger.read_back() == [{"a": "1", "b": "2"}]

    def test_creates_parent_dir(self, tmp_path):
        CSVLogger(tmp_path / "deep" / "dir" / "census.csv")
        assert (tmp_path / "deep" / "dir").is_dir()

    def test_read_back_missing(self, tmp_path):
        assert CSVLogger(tmp_path / "none.csv").read_back() == []

    def test_no_overwrite_picks_new_name(self, tmp_path):
        (tmp_path / "results.csv").write_text("keep\n", encoding="utf-8")
        logger = CSVLogger(tmp_path / "results.csv", overwrite=False)
        logger.log_row(make_record(1).as_row())
        assert logger.file_path == tmp_path / "results_1.csv"
        assert (tmp_path / "results.csv").read_text(encoding="utf-8") == "keep\n"

    def test_rows_written(self, tmp_path):
        logger = CSVLogger(tmp_path / "census.csv")
        logger.log_row(make_record(1).as_row())
        logger.log_row(make_record(2).as_row())
        assert logger.rows_written == 2


class TestWriteRows:
    def test_header_and_rows(self, tmp_path):
        path = write_rows(tmp_path / "out" / "rows.csv", ["x", "y"], [{"x": 1, "y": 2}, {"x": 3, "y": 4}])
        lines = path.read_text(encoding="utf-8").splitlines()
        assert lines == ["x,y", "1,2", "3,4"]

    def test_empty_rows_write_header(self, tmp_path):
        path = write_rows(tmp_path / "rows.csv", ["x"], [])
        assert path.read_text(encoding="utf-8").splitlines() == ["x"]


# ---------------------------------------------------------------------------
# RunManager
# ---------------------------------------------------------------------------

class TestRunManager:
    def test_layout(self, config, tmp_path):
        manager = RunManager(config, base_dir=tmp_path, run_name="run_a")
        assert manager.run_dir == tmp_path / "run_a"
        assert manager.config_path.exists()
        assert load_config(manager.config_path) == config

        manager.log_census(make_record(1))
        assert manager.census_path.exists()
        assert len(manager.csv_logger.read_back()) == 1

    def test_summary(self, config, tmp_path):
        manager = RunManager(config, base_dir=tmp_path, run_name="run_a")
        manager.finalize({"final_counts": {"species_c": 3}})
        data = json.loads((manager.run_dir / "summary.json").read_text(encoding="utf-8"))
        assert data["final_counts"]["species_c"] == 3

    def test_finalize_without_summary(self, config, tmp_path):
        manager = RunManager(config, base_dir=tmp_path, run_name="run_a")
        manager.finalize()
        assert not (manager.run_dir / "summary.json").exists()

    def test_existing_run_not_reused(self, config, tmp_path):
        first = RunManager(config, base_dir=tmp_path, run_name="same")
        second = RunManager(config, base_dir=tmp_path, run_name="same")
        assert first.run_dir != second.run_dir
        assert second.run_dir.name == "same_1"

    def test_default_base_dir_from_config(self, config, tmp_path):
        config.output.output_dir = str(tmp_path / "outputs")
        manager = RunManager(config)
        assert manager.run_dir.parent == tmp_path / "outputs"

    def test_list_runs(self, config, tmp_path):
        RunManager(config, base_dir=tmp_path, run_name="b")
        RunManager(config, base_dir=tmp_path, run_name="a")
        (tmp_path / "not_a_run").mkdir()
        assert RunManager.list_runs(tmp_path) == ["a", "b"]

    def test_list_runs_missing_dir(self, tmp_path):
        assert RunManager.list_runs(tmp_path / "missing") == []

    def test_repr(self, config, tmp_path):
        assert "run_a" in repr(RunManager(config, base_dir=tmp_path, run_name="run_a"))

    def test_record_run(self, config, tmp_path):
        config.run.updates = 6
        config.run.record_every = 2
        _, result = run_from_config(config)

        manager = RunManager(config, base_dir=tmp_path, run_name="full")
        summary = manager.record_run(result, elapsed_seconds=1.234)

        rows = manager.csv_logger.read_back()
        assert [r["update"] for r in rows] == ["2", "4", "6"]
        on_disk = json.loads(manager.summary_path.read_text(encoding="utf-8"))
        assert on_disk == summary
        assert sum(on_disk["final_counts"].values()) == 64
        assert on_disk["elapsed_seconds"] == 1.23


class TestRunSummary:
    def test_fields(self, config):
        result = RunResult(seed=5, updates=10, final_counts=CellCounts(0, 0, 60, 4))
        summary = run_summary(config, result)
        assert summary["seed"] == 5
        assert summary["grid"] == [8, 8]
        assert summary["destruction_pattern"] == "gradient"
        assert summary["extinct"] is True
        assert summary["final_counts"] == {"species_c": 0, "species_d": 0, "empty": 60, "destroyed": 4}
