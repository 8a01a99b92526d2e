"""
CSV output for the Habitat Destruction Simulator.

Census rows and sweep rows are plain dicts written with csv.DictWriter.
Result files are never overwritten: unique_path() picks the first free
name in the sequence name.csv, name_1.csv, name_2.csv, ...
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterable, Optional

from habitat_sim.simulation.census import CellCounts


CENSUS_COLUMNS = ["update", *CellCounts.column_names(), "cells_destroyed"]


def unique_path(path: str | Path) -> Path:
    """
    First path in the sequence name.ext, name_1.ext, name_2.ext, ...
    that does not exist yet. Works for files and directories.
    """
    path = Path(path)
    candidate = path
    number = 1
    while candidate.exists():
        candidate = path.with_name(f"{path.stem}_{number}{path.suffix}")
        number += 1
    return candidate


def write_rows(path: str | Path, columns: list[str], rows: Iterable[dict]) -> Path:
    """Write a header and every row to path, replacing its contents."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=columns, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(rows)
    return path


class CSVLogger:
    """
    Appends record dicts to one CSV file.

    The header goes out with the first row. Keys outside `columns` are
    dropped.

    Usage:
        logger = CSVLogger("runs/my_run/census.csv")
        logger.log_row(record.as_row())
        logger.log_all(rows)

    Attributes:
        file_path: Path to the CSV file.
        columns: Ordered column names.
        rows_written: Rows written through this logger.
    """

    def __init__(
        self,
        file_path: str | Path,
        columns: Optional[list[str]] = None,
        overwrite: bool = True,
    ):
        """
        Args:
            file_path: Output CSV path. Its directory is created if needed.
            columns: Ordered column names. None = census columns.
            overwrite: False = pick a fresh numbered name when file_path exists.
        """
        file_path = Path(file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        self.file_path = file_path if overwrite else unique_path(file_path)
        self.columns = list(columns) if columns else list(CENSUS_COLUMNS)
        self.rows_written = 0

    def log_row(self, row: dict) -> None:
        """Append a single row, starting the file with a header if needed."""
        if self.rows_written == 0:
            write_rows(self.file_path, self.columns, [row])
        else:
            with open(self.file_path, "a", newline="", encoding="utf-8") as f:
                csv.DictWriter(f, fieldnames=self.columns, extrasaction="ignore").writerow(row)
        self.rows_written += 1

    def log_all(self, rows: Iterable[dict]) -> None:
        """Replace the file with a header and all rows."""
        rows = list(rows)
        write_rows(self.file_path, self.columns, rows)
        self.rows_written = len(rows)

    def read_back(self) -> list[dict]:
        """All rows as dicts of strings. Empty if the file does not exist."""
        if not self.file_path.exists():
            return []
        with open(self.file_path, "r", newline="", encoding="utf-8") as f:
            return list(csv.DictReader(f))
