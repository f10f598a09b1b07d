"""
Random Stream Helpers

Every stochastic function in the analytics package takes its randomness from
an explicit numpy Generator so that a fixed seed reproduces results exactly.
"""

from __future__ import annotations

from typing import List, Union

import numpy as np

SeedLike = Union[int, np.random.SeedSequence, np.random.Generator, None]


def make_rng(seed: SeedLike = None) -> np.random.Generator:
    """Return a Generator for *seed*.

    Passing an existing Generator returns it unchanged so callers can thread one
    stream through several functions.  ``None`` draws fresh OS entropy.
    """
    if isinstance(seed, np.random.Generator):
        return seed
    return np.random.default_rng(seed)


def spawn_seeds(seed: SeedLike, n: int) -> List[np.random.SeedSequence]:
    """Split *seed* into *n* statistically independent child sequences.

    A Generator argument is reduced to a fresh SeedSequence drawn from it, which
    consumes one value from that stream.
    """
    if isinstance(seed, np.random.SeedSequence):
        root = seed
    elif isinstance(seed, np.random.Generator):
        root = np.random.SeedSequence(int(seed.integers(0, 2**63 - 1)))
    else:
        root = np.random.SeedSequence(seed)
    return root.spawn(n)
