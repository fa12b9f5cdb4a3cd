"""Partition model, membership I/O, and cluster aggregate index."""

from enumcc.partition.aggregates import ClusterAggregateIndex
from enumcc.partition.clustering import (
    InvalidMembershipError,
    Partition,
    canonical_labels,
)
from enumcc.partition.membership import (
    load_partition,
    read_membership,
    write_membership,
)

__all__ = [
    "ClusterAggregateIndex",
    "InvalidMembershipError",
    "Partition",
    "canonical_labels",
    "load_partition",
    "read_membership",
    "write_membership",
]
