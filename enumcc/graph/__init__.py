"""Signed graph store: the ground truth for imbalance computation."""

from enumcc.graph.io import GraphParseError, graph_from_edges, load_signed_graph
from enumcc.graph.types import SignedGraph

__all__ = [
    "GraphParseError",
    "SignedGraph",
    "graph_from_edges",
    "load_signed_graph",
]
