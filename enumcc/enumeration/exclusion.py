"""Exclusion constraints fed to the exact solver on each jump.

The working set is extended with every accepted neighborhood batch and,
after a jump returns an already-visited partition, narrowed to exactly
that duplicate's vector. ExclusionStrategy.FULL bypasses the working set
and excludes the whole registry on every jump instead.
"""

from collections.abc import Iterable
from enum import StrEnum

import numpy as np

from enumcc.partition.clustering import Partition


class ExclusionStrategy(StrEnum):
    """Which vectors a jump query excludes."""

    NARROW = "narrow"  # working set, narrowed to the duplicate after a repeat
    FULL = "full"  # every visited partition


class ExclusionConstraintBuilder:
    """Maps partitions to the edge-indicator vectors the solver excludes."""

    def from_batch(self, partitions: Iterable[Partition]) -> list[np.ndarray]:
        return [p.edge_indicator_vector() for p in partitions]

    def from_single(self, partition: Partition) -> list[np.ndarray]:
        return [partition.edge_indicator_vector()]


class ExclusionWorkingSet:
    """Vectors currently passed to the solver as must-differ constraints."""

    def __init__(self) -> None:
        self._vectors: list[np.ndarray] = []

    def extend(self, vectors: Iterable[np.ndarray]) -> None:
        self._vectors.extend(vectors)

    def narrow_to(self, vectors: Iterable[np.ndarray]) -> None:
        """Discard the current vectors and keep only ``vectors``."""
        self._vectors = list(vectors)

    @property
    def vectors(self) -> list[np.ndarray]:
        return list(self._vectors)

    def __len__(self) -> int:
        return len(self._vectors)
