"""
Configuration system for the Habitat Destruction Simulator.

Settings are grouped into one dataclass per concern (world, species,
destruction, population, run, sweep, output). Each section validates itself;
JSON files only need the keys that differ from the defaults.
"""

from __future__ import annotations

import json
import math
import warnings
from copy import deepcopy
from dataclasses import asdict, dataclass, field, fields, is_dataclass
from pathlib import Path
from typing import Any


DESTRUCTION_PATTERNS = ("random", "gradient")
POPULATION_MODES = ("both", "species_d")


def _is_probability(value: float) -> bool:
    return isinstance(value, (int, float)) and not math.isnan(value) and 0.0 <= value <= 1.0


# ---------------------------------------------------------------------------
# Sub-config dataclasses (grouped by domain)
# ---------------------------------------------------------------------------

@dataclass
class WorldConfig:
    """Grid size and seed."""
    width: int = 50
    height: int = 50
    seed: int = 1

    def validate(self) -> list[str]:
        errors = []
        if self.width < 1:
            errors.append(f"world.width must be >= 1, got {self.width}")
        if self.height < 1:
            errors.append(f"world.height must be >= 1, got {self.height}")
        if self.width > 10_000:
            errors.append(f"world.width must be <= 10000, got {self.width}")
        if self.height > 10_000:
            errors.append(f"world.height must be <= 10000, got {self.height}")
        return errors


@dataclass
class SpeciesConfig:
    """Per-species colonization and extinction rates."""
    c_colonization_rate: float = 0.2   # superior competitor
    c_extinction_rate: float = 0.1
    d_colonization_rate: float = 0.5   # superior disperser
    d_extinction_rate: float = 0.1

    def validate(self) -> list[str]:
        errors = []
        for f in fields(self):
            value = getattr(self, f.name)
            if not _is_probability(value):
                errors.append(f"species.{f.name} must be in [0, 1], got {value}")
        return errors


@dataclass
class DestructionConfig:
    """Habitat destruction settings."""
    pattern: str = "gradient"  # "random" or "gradient"
    percentage: float = 0.5
    rounds: int = 0            # 0 = destroy everything before the run

    def validate(self) -> list[str]:
        errors = []
        if self.pattern not in DESTRUCTION_PATTERNS:
            errors.append(
                f"destruction.pattern must be one of {DESTRUCTION_PATTERNS}, got '{self.pattern}'"
            )
        if not _is_probability(self.percentage):
            errors.append(f"destruction.percentage must be in [0, 1], got {self.percentage}")
        if self.rounds < 0:
            errors.append(f"destruction.rounds must be >= 0, got {self.rounds}")
        return errors


@dataclass
class PopulationConfig:
    """Initial population settings."""
    mode: str = "both"              # "both" = 25% C + 25% D; "species_d" = D only
    initial_occupancy: float = 0.5  # fraction of available cells occupied

    def validate(self) -> list[str]:
        errors = []
        if self.mode not in POPULATION_MODES:
            errors.append(f"population.mode must be one of {POPULATION_MODES}, got '{self.mode}'")
        if not _is_probability(self.initial_occupancy):
            errors.append(
                f"population.initial_occupancy must be in [0, 1], got {self.initial_occupancy}"
            )
        return errors


@dataclass
class RunConfig:
    """Run length and census recording."""
    updates: int = 1000
    record_every: int = 1

    def validate(self) -> list[str]:
        errors = []
        if self.updates < 0:
            errors.append(f"run.updates must be >= 0, got {self.updates}")
        if self.record_every < 1:
            errors.append(f"run.record_every must be >= 1, got {self.record_every}")
        return errors


@dataclass
class SweepConfig:
    """Destruction-percentage sweep settings."""
    start: float = 0.25
    stop: float = 0.75
    step: float = 0.01
    runs_per_set: int = 1
    base_seed: int = 1
    parallel_workers: int = 4

    def validate(self) -> list[str]:
        errors = []
        if not _is_probability(self.start):
            errors.append(f"sweep.start must be in [0, 1], got {self.start}")
        if not _is_probability(self.stop):
            errors.append(f"sweep.stop must be in [0, 1], got {self.stop}")
        if _is_probability(self.start) and _is_probability(self.stop) and self.stop < self.start:
            errors.append("sweep.stop must be >= sweep.start")
        if not self.step > 0:
            errors.append(f"sweep.step must be > 0, got {self.step}")
        if self.runs_per_set < 1:
            errors.append(f"sweep.runs_per_set must be >= 1, got {self.runs_per_set}")
        if self.parallel_workers < 1:
            errors.append(f"sweep.parallel_workers must be >= 1, got {self.parallel_workers}")
        return errors


@dataclass
class OutputConfig:
    """Output location."""
    output_dir: str = "runs"

    def validate(self) -> list[str]:
        errors = []
        if not self.output_dir:
            errors.append("output.output_dir must not be empty")
        return errors


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------

@dataclass
class SimConfig:
    """
    Every tunable of a run or a sweep, one dataclass per concern.

    Build from JSON with `load_config()`; `validate()` lists problems and
    `check()` raises on them.
    """
    world: WorldConfig = field(default_factory=WorldConfig)
    species: SpeciesConfig = field(default_factory=SpeciesConfig)
    destruction: DestructionConfig = field(default_factory=DestructionConfig)
    population: PopulationConfig = field(default_factory=PopulationConfig)
    run: RunConfig = field(default_factory=RunConfig)
    sweep: SweepConfig = field(default_factory=SweepConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    def validate(self) -> list[str]:
        """Error messages from every section (empty = valid)."""
        errors = []
        for section in fields(self):
            errors.extend(getattr(self, section.name).validate())
        return errors

    def check(self) -> SimConfig:
        """
        Raise if any section is invalid.

        Returns:
            self, for chaining.

        Raises:
            ValueError: Listing every validation error.
        """
        errors = self.validate()
        if errors:
            raise ValueError("Invalid configuration:\n" + "\n".join(f"  - {e}" for e in errors))
        return self

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SimConfig:
        """Defaults overlaid with whatever `data` provides."""
        config = cls()
        _merge_into_dataclass(config, data)
        return config

    def copy(self) -> SimConfig:
        return deepcopy(self)


# ---------------------------------------------------------------------------
# JSON I/O helpers
# ---------------------------------------------------------------------------

def _merge_into_dataclass(target: Any, source: dict[str, Any]) -> None:
    """
    Overlay a (possibly nested) dict onto a dataclass in place.

    Keys the dataclass does not define are skipped with a UserWarning.
    """
    if not isinstance(source, dict):
        return

    names = {f.name for f in fields(target)}
    for key, value in source.items():
        if key not in names:
            warnings.warn(
                f"Unknown config key '{key}' in section {type(target).__name__}, ignored.",
                UserWarning,
                stacklevel=3,
            )
            continue

        section = getattr(target, key)
        if is_dataclass(section) and isinstance(value, dict):
            _merge_into_dataclass(section, value)
        else:
            setattr(target, key, value)


def load_config(path: str | Path) -> SimConfig:
    """
    Read a JSON config file on top of the defaults.

    Raises:
        FileNotFoundError: If the file is missing.
        json.JSONDecodeError: If the file is not valid JSON.
        ValueError: If any value fails validation.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return SimConfig.from_dict(data).check()


def save_config(config: SimConfig, path: str | Path) -> None:
    """Write config as indented JSON, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(config.to_dict(), f, indent=2, ensure_ascii=False)


def get_default_config() -> SimConfig:
    return SimConfig().check()


def apply_param_override(config: SimConfig, dotted_key: str, value: Any) -> None:
    """
    Set one value addressed by a dotted path, e.g. "destruction.percentage".

    Raises:
        KeyError: If any component of the path does not exist.
    """
    *sections, name = dotted_key.split(".")
    target: Any = config
    for part in sections:
        if not hasattr(target, part):
            raise KeyError(f"Config path '{dotted_key}' invalid: '{part}' not found in {type(target).__name__}")
        target = getattr(target, part)

    if not hasattr(target, name):
        raise KeyError(f"Config path '{dotted_key}' invalid: '{name}' not found in {type(target).__name__}")
    setattr(target, name, value)
