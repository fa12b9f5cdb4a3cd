"""Signed graph data structure for correlation clustering."""

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class SignedGraph:
    """Immutable container for a signed weighted undirected graph.

    The weight matrix is dense, symmetric and zero on the diagonal. The
    sign of W[i, j] encodes agreement (+) or disagreement (-), its
    magnitude the confidence. Uses frozen=True but omits slots=True
    since numpy arrays don't interact well with __slots__.
    """

    weights: np.ndarray  # float64 (n x n), symmetric, zero diagonal, read-only
    n: int  # number of vertices

    @property
    def num_pairs(self) -> int:
        """Number of unordered vertex pairs, i.e. edge-indicator length."""
        return self.n * (self.n - 1) // 2

    def pair_indices(self) -> tuple[np.ndarray, np.ndarray]:
        """Row-major (i < j) pair ordering shared by partitions and solvers."""
        return np.triu_indices(self.n, k=1)

    def pair_weights(self) -> np.ndarray:
        """Weights of all unordered pairs in pair_indices() order."""
        return self.weights[self.pair_indices()]
