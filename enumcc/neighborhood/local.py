"""In-process recurrent neighborhood search over single-vertex moves.

Starting from the frontier, every partition within max_edit_distance
moves is visited depth-first. Moves are scored in O(1) with a
ClusterAggregateIndex built for the partition being expanded, so the
imbalance of each reached partition is the parent's plus a delta.
Reached partitions with the optimal imbalance that are not yet known are
reported and queued as new starting points; the search stops when the
queue drains, the deadline passes or the solution cap is reached.
"""

import logging
import math
import time
from collections import deque
from collections.abc import Callable

import numpy as np

from enumcc.enumeration.ports import (
    DiscoveredSolution,
    NeighborhoodRequest,
    NeighborhoodSearch,
)
from enumcc.graph.types import SignedGraph
from enumcc.partition.aggregates import ClusterAggregateIndex
from enumcc.partition.clustering import Partition

log = logging.getLogger(__name__)


class _SearchStopped(Exception):
    """Deadline passed or solution cap reached."""


class LocalNeighborhoodSearch(NeighborhoodSearch):
    """NeighborhoodSearch running entirely inside this process.

    Args:
        graph: Signed graph being clustered.
        tolerance: Absolute tolerance when comparing imbalances.
        clock: Monotonic clock used for the deadline.
    """

    def __init__(
        self,
        graph: SignedGraph,
        tolerance: float = 1e-6,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.graph = graph
        self.tolerance = tolerance
        self._clock = clock

    def explore(self, request: NeighborhoodRequest) -> list[DiscoveredSolution]:
        frontier = request.frontier
        target = frontier.compute_imbalance(self.graph)
        deadline = (
            None
            if request.remaining_time is None
            else self._clock() + request.remaining_time
        )
        cap = request.remaining_solutions

        known = {p.canonical_key() for p in request.known}
        known.add(frontier.canonical_key())
        discoveries: list[DiscoveredSolution] = []
        if cap is not None and cap <= 0:
            return discoveries

        queue: deque[Partition] = deque([frontier])
        starts = 0
        try:
            while queue:
                start = queue.popleft()
                starts += 1
                self._explore_from(
                    start, target, request.max_edit_distance,
                    known, discoveries, queue, deadline, cap,
                )
        except _SearchStopped:
            log.debug("Neighborhood search stopped early after %d starts", starts)

        log.debug(
            "Neighborhood search: %d discoveries from %d starting partitions",
            len(discoveries),
            starts,
        )
        return discoveries

    def _explore_from(
        self,
        start: Partition,
        target: float,
        max_depth: int,
        known: set[bytes],
        discoveries: list[DiscoveredSolution],
        queue: deque[Partition],
        deadline: float | None,
        cap: int | None,
    ) -> None:
        # shallowest depth at which each partition was reached from start
        depth_seen: dict[bytes, int] = {start.canonical_key(): 0}
        stack: list[tuple[Partition, int, float]] = [(start, 0, target)]

        while stack:
            if deadline is not None and self._clock() >= deadline:
                raise _SearchStopped
            partition, depth, cost = stack.pop()
            if depth >= max_depth:
                continue

            index = ClusterAggregateIndex(self.graph, partition)
            membership = partition.membership
            labels = np.unique(membership).tolist()
            sizes = np.bincount(membership)
            new_label = index.new_cluster_label()

            for vertex in range(partition.n):
                current = int(membership[vertex])
                targets = [label for label in labels if label != current]
                if sizes[current] > 1:
                    targets.append(new_label)
                for to_cluster in targets:
                    child_cost = cost + index.delta_for_move(vertex, current, to_cluster)
                    child = partition.with_move(vertex, to_cluster)
                    key = child.canonical_key()
                    if depth_seen.get(key, max_depth + 1) <= depth + 1:
                        continue
                    depth_seen[key] = depth + 1

                    if key not in known and math.isclose(
                        child_cost, target, rel_tol=1e-9, abs_tol=self.tolerance
                    ):
                        known.add(key)
                        discoveries.append(
                            DiscoveredSolution(child, diversity_lower_bound=depth + 1)
                        )
                        queue.append(child)
                        if cap is not None and len(discoveries) >= cap:
                            raise _SearchStopped
                    stack.append((child, depth + 1, child_cost))
