"""Partition (clustering) model with imbalance, equivalence and edge encoding.

A Partition maps vertex ids 0..n-1 to cluster labels 1..n. Labels are
arbitrary identifiers: two partitions are equivalent iff they induce the
same set-partition of the vertices, which is decided by comparing a
canonical form (labels renumbered in order of first appearance).
"""

from collections.abc import Sequence

import numpy as np
import scipy.sparse
from scipy.sparse.csgraph import connected_components

from enumcc.graph.types import SignedGraph


class InvalidMembershipError(ValueError):
    """Raised when a membership vector (or file) is not a valid partition."""


def canonical_labels(membership: np.ndarray) -> np.ndarray:
    """Relabel clusters 1..k in order of first appearance.

    Equivalent memberships (same set-partition, any label numbering)
    map to the same array.
    """
    _, first_index, inverse = np.unique(
        membership, return_index=True, return_inverse=True
    )
    # rank of each cluster's first vertex among all first vertices
    rank = np.empty(len(first_index), dtype=np.int64)
    rank[np.argsort(first_index, kind="stable")] = np.arange(len(first_index))
    return rank[inverse.reshape(-1)] + 1


class Partition:
    """One candidate or known solution as an immutable membership vector.

    The membership array is read-only, so a cached imbalance can never
    diverge from the membership it was computed for. Moves produce new
    Partition objects (see with_move).

    Args:
        membership: Sequence of integer cluster labels, one per vertex.
        n_vertices: Expected number of vertices. Defaults to len(membership).

    Raises:
        InvalidMembershipError: If the length differs from n_vertices, a
            label is not an integer, or a label lies outside 1..n.
    """

    __slots__ = ("_membership", "_canonical", "_imbalance_graph", "_imbalance")

    def __init__(
        self, membership: Sequence[int] | np.ndarray, n_vertices: int | None = None
    ) -> None:
        arr = np.asarray(membership)
        if arr.ndim != 1:
            raise InvalidMembershipError(
                f"membership must be one-dimensional, got shape {arr.shape}"
            )
        n = len(arr) if n_vertices is None else n_vertices
        if len(arr) != n:
            raise InvalidMembershipError(
                f"membership has {len(arr)} entries, expected {n}"
            )
        if n == 0:
            raise InvalidMembershipError("membership is empty")
        if not np.issubdtype(arr.dtype, np.integer):
            if not (np.issubdtype(arr.dtype, np.floating)
                    and np.all(np.mod(arr, 1) == 0)):
                raise InvalidMembershipError(
                    f"membership labels must be integers, got dtype {arr.dtype}"
                )
        labels = arr.astype(np.int64)
        if labels.min() < 1 or labels.max() > n:
            raise InvalidMembershipError(
                f"membership labels must lie in 1..{n}, "
                f"got range {labels.min()}..{labels.max()}"
            )
        labels.setflags(write=False)
        self._membership = labels
        self._canonical: np.ndarray | None = None
        self._imbalance_graph: SignedGraph | None = None
        self._imbalance: float | None = None

    # -- construction -------------------------------------------------

    @classmethod
    def from_edge_indicator(cls, n: int, vector: np.ndarray) -> "Partition":
        """Decode an edge-indicator vector into a Partition.

        Clusters are the connected components of the co-clustered pairs.
        For a transitive vector (every solver solution) this inverts
        edge_indicator_vector().

        Args:
            n: Number of vertices.
            vector: 0/1 array over pairs i < j in row-major order.

        Raises:
            InvalidMembershipError: If the vector length isn't n*(n-1)/2.
        """
        vector = np.asarray(vector)
        expected = n * (n - 1) // 2
        if vector.shape != (expected,):
            raise InvalidMembershipError(
                f"edge-indicator vector has shape {vector.shape}, "
                f"expected ({expected},)"
            )
        rows, cols = np.triu_indices(n, k=1)
        linked = vector > 0
        adjacency = scipy.sparse.csr_matrix(
            (np.ones(int(linked.sum())), (rows[linked], cols[linked])),
            shape=(n, n),
        )
        _, labels = connected_components(adjacency, directed=False)
        return cls(canonical_labels(labels))

    def with_move(self, vertex: int, to_cluster: int) -> "Partition":
        """Return the canonical partition with ``vertex`` moved to ``to_cluster``.

        ``to_cluster`` may be an unused label (up to n) to open a new cluster.
        """
        moved = self._membership.copy()
        moved[vertex] = to_cluster
        return Partition(canonical_labels(moved))

    # -- basic attributes ---------------------------------------------

    @property
    def membership(self) -> np.ndarray:
        """Read-only int64 label array of length n."""
        return self._membership

    @property
    def n(self) -> int:
        return len(self._membership)

    @property
    def cluster_count(self) -> int:
        return len(np.unique(self._membership))

    def canonical(self) -> np.ndarray:
        """Canonical label array (clusters numbered by first appearance)."""
        if self._canonical is None:
            canonical = canonical_labels(self._membership)
            canonical.setflags(write=False)
            self._canonical = canonical
        return self._canonical

    def canonical_key(self) -> bytes:
        """Hashable identity shared by all equivalent partitions."""
        return self.canonical().tobytes()

    def clusters(self) -> list[list[int]]:
        """Clusters as vertex lists, largest first, ties by smallest member."""
        groups: dict[int, list[int]] = {}
        for vertex, label in enumerate(self._membership.tolist()):
            groups.setdefault(label, []).append(vertex)
        return sorted(groups.values(), key=lambda c: (-len(c), c[0]))

    # -- objective ----------------------------------------------------

    def compute_imbalance(self, graph: SignedGraph) -> float:
        """Correlation clustering imbalance of this partition on ``graph``.

        Sum of positive weights between different clusters plus the sum
        of |negative weights| inside clusters. O(n^2); cached per graph.
        """
        if graph.n != self.n:
            raise InvalidMembershipError(
                f"partition has {self.n} vertices but graph has {graph.n}"
            )
        if self._imbalance_graph is graph and self._imbalance is not None:
            return self._imbalance

        rows, cols = graph.pair_indices()
        w = graph.weights[rows, cols]
        same = self._membership[rows] == self._membership[cols]
        imbalance = float(w[(w > 0) & ~same].sum() - w[(w < 0) & same].sum())

        self._imbalance_graph = graph
        self._imbalance = imbalance
        return imbalance

    @property
    def imbalance(self) -> float | None:
        """Last computed imbalance, or None if never computed."""
        return self._imbalance

    # -- identity -----------------------------------------------------

    def equivalent_to(self, other: "Partition") -> bool:
        """True iff both partitions induce the same set-partition."""
        if self.n != other.n:
            return False
        return bool(np.array_equal(self.canonical(), other.canonical()))

    def edge_indicator_vector(self) -> np.ndarray:
        """int8 co-clustering indicator over pairs i < j in row-major order.

        Equivalent partitions produce identical vectors, aligned with the
        solver's edge-variable ordering.
        """
        rows, cols = np.triu_indices(self.n, k=1)
        return (self._membership[rows] == self._membership[cols]).astype(np.int8)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Partition):
            return NotImplemented
        return self.equivalent_to(other)

    def __hash__(self) -> int:
        return hash(self.canonical_key())

    def __repr__(self) -> str:
        imbalance = "?" if self._imbalance is None else f"{self._imbalance:g}"
        return (
            f"Partition(n={self.n}, clusters={self.cluster_count}, "
            f"imbalance={imbalance}, groups={self.clusters()})"
        )
