"""Loading signed graphs from tab-separated edge lists.

File format: the first line holds the vertex count (first tab-separated
token), every following line one undirected edge ``i<TAB>j<TAB>weight``
with 0-indexed vertex ids. Pairs that never appear have weight zero and
a repeated pair keeps the last weight read.
"""

import logging
from collections.abc import Iterable
from pathlib import Path

import numpy as np

from enumcc.graph.types import SignedGraph

log = logging.getLogger(__name__)


class GraphParseError(Exception):
    """Raised when a graph file or one of its edge lines is malformed."""


def graph_from_edges(
    n: int, edges: Iterable[tuple[int, int, float]]
) -> SignedGraph:
    """Build a SignedGraph from (i, j, weight) triples.

    Self-loops are dropped so the diagonal stays zero.

    Args:
        n: Number of vertices.
        edges: Iterable of (i, j, weight) with 0 <= i, j < n.

    Returns:
        SignedGraph with a read-only symmetric weight matrix.

    Raises:
        GraphParseError: If n < 1 or a vertex id is out of range.
    """
    if n < 1:
        raise GraphParseError(f"vertex count must be >= 1, got {n}")

    weights = np.zeros((n, n), dtype=np.float64)
    for i, j, w in edges:
        if not (0 <= i < n and 0 <= j < n):
            raise GraphParseError(
                f"edge ({i}, {j}) references a vertex outside 0..{n - 1}"
            )
        if i == j:
            log.warning("Ignoring self-loop on vertex %d (weight %g)", i, w)
            continue
        weights[i, j] = w
        weights[j, i] = w

    weights.setflags(write=False)
    return SignedGraph(weights=weights, n=n)


def _parse_edge_line(line: str, line_num: int) -> tuple[int, int, float]:
    parts = line.split("\t")
    if len(parts) < 3:
        raise GraphParseError(
            f"line {line_num}: expected 'i<TAB>j<TAB>weight', got {line!r}"
        )
    try:
        return int(parts[0]), int(parts[1]), float(parts[2])
    except ValueError as e:
        raise GraphParseError(f"line {line_num}: {e}") from e


def load_signed_graph(path: str | Path) -> SignedGraph:
    """Load a signed graph from a tab-separated edge list file.

    Args:
        path: Path to the graph file.

    Returns:
        The loaded SignedGraph.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        GraphParseError: If the header or any non-blank edge line is malformed.
    """
    path = Path(path)
    lines = path.read_text().splitlines()
    if not lines or not lines[0].strip():
        raise GraphParseError(f"{path}: missing vertex count on first line")

    try:
        n = int(lines[0].split("\t")[0])
    except ValueError as e:
        raise GraphParseError(f"{path}: bad vertex count line {lines[0]!r}") from e

    edges = [
        _parse_edge_line(line.rstrip("\r"), line_num)
        for line_num, line in enumerate(lines[1:], start=2)
        if line.strip()
    ]
    graph = graph_from_edges(n, edges)

    log.info(
        "Graph loaded from %s: n=%d, edges=%d",
        path,
        graph.n,
        int(np.count_nonzero(graph.pair_weights())),
    )
    return graph
