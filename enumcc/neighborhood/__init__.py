"""Neighborhood search adapters and the backend factory."""

from enumcc.config.experiment import EnumerationConfig
from enumcc.enumeration.ports import (
    DiscoveredSolution,
    NeighborhoodRequest,
    NeighborhoodSearch,
)
from enumcc.graph.types import SignedGraph
from enumcc.neighborhood.external import ExternalNeighborhoodSearch
from enumcc.neighborhood.local import LocalNeighborhoodSearch


class NullNeighborhoodSearch(NeighborhoodSearch):
    """Jump-only enumeration: every batch is empty."""

    def explore(self, request: NeighborhoodRequest) -> list[DiscoveredSolution]:
        return []


def build_neighborhood(
    config: EnumerationConfig, graph: SignedGraph
) -> NeighborhoodSearch:
    """Instantiate the backend named by config.neighborhood.backend."""
    backend = config.neighborhood.backend
    if backend == "local":
        return LocalNeighborhoodSearch(graph, tolerance=config.imbalance_tolerance)
    if backend == "external":
        return ExternalNeighborhoodSearch(config.graph_path, config.neighborhood)
    return NullNeighborhoodSearch()


__all__ = [
    "ExternalNeighborhoodSearch",
    "LocalNeighborhoodSearch",
    "NullNeighborhoodSearch",
    "build_neighborhood",
]
