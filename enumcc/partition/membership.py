"""Membership file I/O: one 1-indexed cluster label per line."""

import logging
from pathlib import Path

import numpy as np

from enumcc.partition.clustering import InvalidMembershipError, Partition

log = logging.getLogger(__name__)


def read_membership(path: str | Path, n: int) -> np.ndarray:
    """Read exactly n integer labels from a membership file.

    Trailing blank lines are tolerated; any other trailing content means
    the file doesn't correspond to an n-vertex graph.

    Args:
        path: Membership file path.
        n: Number of vertices in the graph.

    Returns:
        int64 array of length n.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        InvalidMembershipError: If the file is short, has trailing content,
            or holds a non-integer line.
    """
    path = Path(path)
    lines = path.read_text().splitlines()

    if len(lines) < n:
        raise InvalidMembershipError(
            f"{path}: {len(lines)} lines, expected {n} (one label per vertex)"
        )
    trailing = [line for line in lines[n:] if line.strip()]
    if trailing:
        raise InvalidMembershipError(
            f"{path}: {len(trailing)} unexpected line(s) after {n} labels"
        )

    labels = np.empty(n, dtype=np.int64)
    for i, line in enumerate(lines[:n]):
        try:
            labels[i] = int(line.strip())
        except ValueError as e:
            raise InvalidMembershipError(f"{path}: line {i + 1}: {e}") from e
    return labels


def load_partition(path: str | Path, n: int) -> Partition:
    """Read a membership file and validate it as an n-vertex Partition."""
    labels = read_membership(path, n)
    try:
        return Partition(labels, n_vertices=n)
    except InvalidMembershipError as e:
        raise InvalidMembershipError(f"{path}: {e}") from e


def write_membership(path: str | Path, partition: Partition) -> Path:
    """Write a partition's labels, one per line, creating parent dirs."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("".join(f"{label}\n" for label in partition.membership.tolist()))
    log.debug("Membership written to %s", path)
    return path
