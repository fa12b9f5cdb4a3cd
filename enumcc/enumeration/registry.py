"""Append-only registry of every optimal partition visited during a run."""

from collections.abc import Iterator

from enumcc.partition.clustering import Partition


class VisitedSolutionRegistry:
    """Growing set of visited partitions with equivalence semantics.

    Membership is decided on canonical keys, which is the same test as
    Partition.equivalent_to against every held partition but costs O(n)
    per query instead of O(size * n). Iteration follows discovery order.
    """

    def __init__(self, initial: Partition | None = None) -> None:
        self._partitions: list[Partition] = []
        self._keys: dict[bytes, int] = {}
        if initial is not None:
            self.add(initial)

    def contains(self, partition: Partition) -> bool:
        return partition.canonical_key() in self._keys

    def index_of(self, partition: Partition) -> int | None:
        """Discovery index of the equivalent held partition, or None."""
        return self._keys.get(partition.canonical_key())

    def add(self, partition: Partition) -> bool:
        """Append ``partition``; returns False (no-op) if already present."""
        key = partition.canonical_key()
        if key in self._keys:
            return False
        self._keys[key] = len(self._partitions)
        self._partitions.append(partition)
        return True

    def size(self) -> int:
        return len(self._partitions)

    @property
    def partitions(self) -> tuple[Partition, ...]:
        return tuple(self._partitions)

    def __len__(self) -> int:
        return len(self._partitions)

    def __contains__(self, partition: object) -> bool:
        return isinstance(partition, Partition) and self.contains(partition)

    def __iter__(self) -> Iterator[Partition]:
        return iter(self._partitions)
