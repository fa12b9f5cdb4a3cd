"""Enumeration of all optimal partitions: registry, exclusions, controller."""

from enumcc.enumeration.controller import (
    EnumerationController,
    EnumerationResult,
    EnumerationState,
    PassRecord,
    TerminationReason,
)
from enumcc.enumeration.errors import CollaboratorFailure, SolverInconsistencyError
from enumcc.enumeration.exclusion import (
    ExclusionConstraintBuilder,
    ExclusionStrategy,
    ExclusionWorkingSet,
)
from enumcc.enumeration.ports import (
    DiscoveredSolution,
    ExactSolver,
    JumpRequest,
    NeighborhoodRequest,
    NeighborhoodSearch,
    SolveResult,
    SolverStatus,
)
from enumcc.enumeration.registry import VisitedSolutionRegistry

__all__ = [
    "CollaboratorFailure",
    "DiscoveredSolution",
    "EnumerationController",
    "EnumerationResult",
    "EnumerationState",
    "ExactSolver",
    "ExclusionConstraintBuilder",
    "ExclusionStrategy",
    "ExclusionWorkingSet",
    "JumpRequest",
    "NeighborhoodRequest",
    "NeighborhoodSearch",
    "PassRecord",
    "SolveResult",
    "SolverInconsistencyError",
    "SolverStatus",
    "TerminationReason",
    "VisitedSolutionRegistry",
]
