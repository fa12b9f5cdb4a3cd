"""Collaborator interfaces consumed by the enumeration controller.

The controller only talks to the exact solver and the neighborhood search
through these ports, so either can be swapped for another implementation
(or a scripted double in tests) without touching the search loop.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

import numpy as np

from enumcc.partition.clustering import Partition


class SolverStatus(StrEnum):
    """Outcome of one jump query."""

    OPTIMAL = "optimal"
    SOLUTION_LIMIT = "solution_limit"
    INFEASIBLE = "infeasible"
    TIMED_OUT = "timed_out"
    ERROR = "error"

    @property
    def has_solution(self) -> bool:
        return self in (SolverStatus.OPTIMAL, SolverStatus.SOLUTION_LIMIT)


@dataclass(frozen=True)
class JumpRequest:
    """One exact-solver query.

    Attributes:
        exclusions: Edge-indicator vectors the solution must differ from.
        time_limit: Seconds available, or None when unbounded.
        solution_cap: Number of feasible solutions after which to stop.
        threads: Worker threads the solver may use.
        first_pass: Tactic hint; True only during the first pass.
        log_path: File the solver appends its search log to, if any.
    """

    exclusions: list[np.ndarray]
    time_limit: float | None = None
    solution_cap: int = 1
    threads: int = 1
    first_pass: bool = False
    log_path: Path | None = None


@dataclass(frozen=True)
class SolveResult:
    """Solver answer: status plus a membership when a solution was found."""

    status: SolverStatus
    membership: np.ndarray | None = None
    wall_time: float = 0.0


@dataclass(frozen=True)
class NeighborhoodRequest:
    """One recurrent neighborhood exploration around the frontier.

    Attributes:
        pass_index: 1-based pass counter, names the pass output directory.
        frontier: Partition to start from.
        max_edit_distance: Maximum number of single-vertex moves.
        known: Every partition already visited, in discovery order.
        remaining_time: Seconds left, or None when unbounded.
        remaining_solutions: Solutions still allowed, or None when unbounded.
        threads: Worker threads the collaborator may use.
        frontier_path: Persisted membership file of the frontier, if any.
        manifest_path: Manifest of all visited solution files, if any.
        output_dir: Directory where the collaborator may write its batch.
    """

    pass_index: int
    frontier: Partition
    max_edit_distance: int
    known: tuple[Partition, ...] = ()
    remaining_time: float | None = None
    remaining_solutions: int | None = None
    threads: int = 1
    frontier_path: Path | None = None
    manifest_path: Path | None = None
    output_dir: Path | None = None


@dataclass(frozen=True)
class DiscoveredSolution:
    """A partition found by the neighborhood search.

    diversity_lower_bound is produced by the collaborator and passed
    through unmodified. source_path is set when the collaborator already
    persisted the membership file.
    """

    partition: Partition
    diversity_lower_bound: int = 0
    source_path: Path | None = field(default=None)


class ExactSolver(ABC):
    """Finds one optimal partition outside a set of excluded edge patterns."""

    @abstractmethod
    def configure_optimality(self, reference: Partition, imbalance: float) -> None:
        """Restrict the feasible region to partitions as good as ``reference``."""
        raise NotImplementedError

    @abstractmethod
    def solve(self, request: JumpRequest) -> SolveResult:
        """Run one jump query."""
        raise NotImplementedError


class NeighborhoodSearch(ABC):
    """Produces batches of new optimal partitions near a frontier."""

    @abstractmethod
    def explore(self, request: NeighborhoodRequest) -> list[DiscoveredSolution]:
        """Return newly discovered optimal partitions (possibly none)."""
        raise NotImplementedError
