"""Per-vertex, per-cluster weight aggregates for O(1) move evaluation.

For one Partition, three n x (k + n) matrices hold, for every vertex v and
cluster c (column c - 1), the sum over u in c, u != v, of:

- max(W[v, u], 0)   (pos_sum)
- W[v, u]           (weight_sum)
- |W[v, u]|         (abs_sum)

The n slack columns beyond the k existing clusters stay zero and stand
for clusters a move may open. The index belongs to exactly one Partition
and is rebuilt, never patched, when the partition changes.
"""

import numpy as np

from enumcc.graph.types import SignedGraph
from enumcc.partition.clustering import Partition


class ClusterAggregateIndex:
    """Read-only aggregate index built once for (graph, partition).

    Args:
        graph: The signed graph.
        partition: The partition whose clusters define the columns.
    """

    def __init__(self, graph: SignedGraph, partition: Partition) -> None:
        if graph.n != partition.n:
            raise ValueError(
                f"partition has {partition.n} vertices but graph has {graph.n}"
            )
        self.graph = graph
        self.partition = partition
        self.n = graph.n
        self.k = int(partition.membership.max())

        cols = self.k + self.n
        self.pos_sum = np.zeros((self.n, cols), dtype=np.float64)
        self.weight_sum = np.zeros((self.n, cols), dtype=np.float64)
        self.abs_sum = np.zeros((self.n, cols), dtype=np.float64)

        # diagonal of W is zero, so u == v never contributes
        w = graph.weights
        membership = partition.membership
        for label in np.unique(membership):
            members = membership == label
            block = w[:, members]
            self.pos_sum[:, label - 1] = np.clip(block, 0.0, None).sum(axis=1)
            self.weight_sum[:, label - 1] = block.sum(axis=1)
            self.abs_sum[:, label - 1] = np.abs(block).sum(axis=1)

        for matrix in (self.pos_sum, self.weight_sum, self.abs_sum):
            matrix.setflags(write=False)

    def _neg_sum(self, vertex: int, cluster: int) -> float:
        """|negative weight| from vertex into cluster."""
        return self.abs_sum[vertex, cluster - 1] - self.pos_sum[vertex, cluster - 1]

    def _check_cluster(self, cluster: int) -> None:
        if not 1 <= cluster <= self.k + self.n:
            raise ValueError(
                f"cluster {cluster} outside reserved range 1..{self.k + self.n}"
            )

    def delta_for_move(self, vertex: int, from_cluster: int, to_cluster: int) -> float:
        """Change in imbalance if ``vertex`` moves from ``from_cluster`` to ``to_cluster``.

        Leaving from_cluster stops paying for negative edges inside it and
        starts paying for its positive edges; joining to_cluster does the
        reverse.

        Raises:
            ValueError: If from_cluster isn't the vertex's current cluster
                or a cluster lies outside the reserved columns.
        """
        current = int(self.partition.membership[vertex])
        if from_cluster != current:
            raise ValueError(
                f"vertex {vertex} is in cluster {current}, not {from_cluster}"
            )
        self._check_cluster(to_cluster)
        if to_cluster == from_cluster:
            return 0.0

        a, b = from_cluster - 1, to_cluster - 1
        return float(
            (self.pos_sum[vertex, a] - self.pos_sum[vertex, b])
            + (self._neg_sum(vertex, to_cluster) - self._neg_sum(vertex, from_cluster))
        )

    def vertex_cost(self, vertex: int) -> float:
        """Imbalance incurred by pairs containing ``vertex``.

        Summing vertex_cost over all vertices counts each pair twice.
        """
        own = int(self.partition.membership[vertex])
        cut_positive = self.pos_sum[vertex].sum() - self.pos_sum[vertex, own - 1]
        return float(cut_positive + self._neg_sum(vertex, own))

    def new_cluster_label(self) -> int:
        """First label whose column is guaranteed empty."""
        return self.k + 1
