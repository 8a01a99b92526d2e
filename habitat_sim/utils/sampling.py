"""
Random-source helpers for the Habitat Destruction Simulator.

Every run draws from a single seeded numpy Generator that is passed
explicitly through grid, destruction and ecology operations. These helpers
fix the exact draw each primitive consumes, so a run is reproducible from
its seed and its sequence of operations.
"""

from __future__ import annotations

from typing import Optional

import numpy as np


def make_rng(seed: Optional[int] = None) -> np.random.Generator:
    """Create the run's seeded random generator."""
    return np.random.default_rng(seed)


def bernoulli(rng: np.random.Generator, p: float) -> bool:
    """
    Draw one Bernoulli trial with success probability p.

    Consumes exactly one uniform double. p <= 0 never succeeds,
    p >= 1 always succeeds.
    """
    return bool(rng.random() < p)


def uniform_index(rng: np.random.Generator, n: int) -> int:
    """Draw a uniform integer in [0, n)."""
    return int(rng.integers(0, n))


def shuffle_in_place(rng: np.random.Generator, items: list) -> None:
    """Apply an unbiased random permutation to a list in place."""
    rng.shuffle(items)
