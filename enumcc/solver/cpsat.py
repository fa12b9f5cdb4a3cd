"""Exact jump solver on OR-Tools CP-SAT.

Correlation clustering as a 0/1 program over pair variables: x_ij = 1 iff
i and j share a cluster, with the three triangle inequalities per vertex
triple enforcing transitivity. The imbalance of an assignment is

    sum_{w_ij > 0} w_ij * (1 - x_ij) + sum_{w_ij < 0} |w_ij| * x_ij

over integer weights round(w * scale). The scale starts at weight_scale
and is raised by powers of 10 (up to max_weight_scale) until every weight
becomes an integer. When that succeeds, the optimality constraint pins the
integer imbalance to the reference partition's. Otherwise the integer
imbalance is kept inside the band that total rounding error allows around
the scaled float optimum, and each returned partition is re-checked on the
float weights. Partitions that miss the optimum are excluded and the query
is repeated. Every excluded edge-indicator vector e adds the clause
OR_p (x_p != e_p).
"""

import logging
import math
import time
from itertools import combinations
from typing import TextIO

import numpy as np
from ortools.sat.python import cp_model

from enumcc.config.experiment import SolverConfig
from enumcc.enumeration.ports import ExactSolver, JumpRequest, SolveResult, SolverStatus
from enumcc.graph.types import SignedGraph
from enumcc.partition.clustering import Partition

log = logging.getLogger(__name__)

_STATUS_MAP = {
    cp_model.OPTIMAL: SolverStatus.OPTIMAL,
    cp_model.FEASIBLE: SolverStatus.SOLUTION_LIMIT,
    cp_model.INFEASIBLE: SolverStatus.INFEASIBLE,
    cp_model.UNKNOWN: SolverStatus.TIMED_OUT,
    cp_model.MODEL_INVALID: SolverStatus.ERROR,
}

# Shortest time limit handed to CP-SAT; zero would make it return UNKNOWN
# without searching.
MIN_TIME_LIMIT = 1e-3


def quantize_weights(weights: np.ndarray, scale: int) -> tuple[np.ndarray, bool]:
    """Scale and round pair weights to integers.

    Returns:
        (integer weights, exact) where exact is False if rounding lost
        precision.
    """
    scaled = np.asarray(weights, dtype=np.float64) * scale
    rounded = np.rint(scaled)
    exact = bool(np.allclose(scaled, rounded, rtol=0.0, atol=1e-9))
    return rounded.astype(np.int64), exact


def choose_weight_scale(
    weights: np.ndarray, scale: int, max_scale: int
) -> tuple[int, np.ndarray, bool]:
    """Smallest scale * 10**k <= max_scale that quantizes every weight exactly.

    Returns:
        (scale, integer weights, exact). When no such scale exists the
        largest tried scale is returned with exact=False.
    """
    while True:
        int_weights, exact = quantize_weights(weights, scale)
        if exact or scale * 10 > max_scale:
            return scale, int_weights, exact
        scale *= 10


def scaled_imbalance(int_weights: np.ndarray, indicator: np.ndarray) -> int:
    """Integer imbalance of an edge-indicator vector under quantized weights."""
    indicator = np.asarray(indicator, dtype=np.int64)
    positive = int_weights > 0
    pos_cost = int((int_weights[positive] * (1 - indicator[positive])).sum())
    neg_cost = int((-int_weights[~positive] * indicator[~positive]).sum())
    return pos_cost + neg_cost


class CpSatJumpSolver(ExactSolver):
    """ExactSolver backed by a CP-SAT feasibility model.

    CP-SAT models cannot drop constraints, so each solve() builds a fresh
    model from the graph, the optimality bounds and the exclusions. With
    persist_exclusions, every vector ever excluded stays excluded on later
    calls, even after the caller narrows its own working set. Partitions
    rejected by the float re-check are always kept excluded.

    Args:
        graph: Signed graph to cluster.
        config: Solver settings (weight scale, seed, persistence, logging).
        imbalance_tolerance: Absolute tolerance of the float re-check.
    """

    def __init__(
        self,
        graph: SignedGraph,
        config: SolverConfig | None = None,
        imbalance_tolerance: float = 1e-6,
    ) -> None:
        self.graph = graph
        self.config = config or SolverConfig()
        self.imbalance_tolerance = imbalance_tolerance
        self.rows, self.cols = graph.pair_indices()
        weights = graph.pair_weights()
        self.scale, self.int_weights, self.exact = choose_weight_scale(
            weights,
            self.config.weight_scale,
            max(self.config.max_weight_scale, self.config.weight_scale),
        )
        # bound on |integer imbalance - scale * float imbalance| for any partition
        self.rounding_error = float(np.abs(weights * self.scale - self.int_weights).sum())
        if not self.exact:
            log.warning(
                "Edge weights are not multiples of 1/%d; the optimality "
                "constraint uses rounded weights within a band of +/-%.3g and "
                "solutions are re-checked on the float weights",
                self.scale,
                self.rounding_error,
            )
        self.target: int | None = None
        self.bounds: tuple[int, int] | None = None
        self.optimal_imbalance: float | None = None
        self._persisted: dict[bytes, np.ndarray] = {}
        self._rejected: dict[bytes, np.ndarray] = {}
        self.solve_calls = 0

    def configure_optimality(self, reference: Partition, imbalance: float) -> None:
        self.optimal_imbalance = imbalance
        self.target = scaled_imbalance(
            self.int_weights, reference.edge_indicator_vector()
        )
        if self.exact:
            self.bounds = (self.target, self.target)
        else:
            center = imbalance * self.scale
            slack = self.rounding_error + 1e-9 * max(1.0, abs(center))
            self.bounds = (
                min(self.target, math.ceil(center - slack)),
                max(self.target, math.floor(center + slack)),
            )
        log.debug(
            "Optimality bounds %s (imbalance %g, scale %d)",
            self.bounds,
            imbalance,
            self.scale,
        )

    @property
    def persisted_exclusions(self) -> list[np.ndarray]:
        return list(self._persisted.values())

    @property
    def rejected_exclusions(self) -> list[np.ndarray]:
        """Partitions inside the rounding band that failed the float re-check."""
        return list(self._rejected.values())

    def _exclusions_for(self, request: JumpRequest) -> list[np.ndarray]:
        if not self.config.persist_exclusions:
            unique: dict[bytes, np.ndarray] = {}
            for vector in request.exclusions:
                vector = np.asarray(vector, dtype=np.int8)
                unique.setdefault(vector.tobytes(), vector)
            return list(unique.values())
        for vector in request.exclusions:
            vector = np.asarray(vector, dtype=np.int8)
            self._persisted.setdefault(vector.tobytes(), vector)
        return self.persisted_exclusions

    def build_model(
        self, exclusions: list[np.ndarray]
    ) -> tuple[cp_model.CpModel, list[cp_model.IntVar]]:
        """Build the feasibility model for one jump."""
        if self.bounds is None:
            raise RuntimeError("configure_optimality() must be called before solving")
        n = self.graph.n
        model = cp_model.CpModel()
        x = [
            model.NewBoolVar(f"x_{i}_{j}")
            for i, j in zip(self.rows.tolist(), self.cols.tolist())
        ]

        # pair (i, j), i < j, sits at this offset in row-major triu order
        def var(i: int, j: int) -> cp_model.IntVar:
            return x[i * n - i * (i + 1) // 2 + (j - i - 1)]

        for i, j, k in combinations(range(n), 3):
            x_ij, x_ik, x_jk = var(i, j), var(i, k), var(j, k)
            model.Add(x_ij + x_jk - x_ik <= 1)
            model.Add(x_ij + x_ik - x_jk <= 1)
            model.Add(x_ik + x_jk - x_ij <= 1)

        terms = []
        constant = 0
        for weight, x_p in zip(self.int_weights.tolist(), x):
            if weight > 0:
                constant += weight
                terms.append(-weight * x_p)
            elif weight < 0:
                terms.append(-weight * x_p)
        if terms:
            lower, upper = self.bounds
            if lower == upper:
                model.Add(sum(terms) + constant == lower)
            else:
                model.AddLinearConstraint(sum(terms) + constant, lower, upper)

        for vector in exclusions:
            model.AddBoolOr(
                [x_p.Not() if bit else x_p for bit, x_p in zip(vector.tolist(), x)]
            )
        return model, x

    def solve(self, request: JumpRequest) -> SolveResult:
        exclusions = self._exclusions_for(request)
        if self.graph.num_pairs == 0 and exclusions:
            # a single vertex has exactly one partition
            self.solve_calls += 1
            return SolveResult(status=SolverStatus.INFEASIBLE)
        if request.log_path is None:
            return self._solve_until_optimal(request, exclusions, None)
        with open(request.log_path, "a") as log_file:
            return self._solve_until_optimal(request, exclusions, log_file)

    def _is_optimal(self, imbalance: float) -> bool:
        return math.isclose(
            imbalance, self.optimal_imbalance, rel_tol=1e-9,
            abs_tol=self.imbalance_tolerance,
        )

    def _solve_until_optimal(
        self,
        request: JumpRequest,
        exclusions: list[np.ndarray],
        log_file: TextIO | None,
    ) -> SolveResult:
        deadline = None
        if request.time_limit is not None:
            deadline = time.monotonic() + max(float(request.time_limit), MIN_TIME_LIMIT)
        wall_time = 0.0

        while True:
            time_limit = None if deadline is None else deadline - time.monotonic()
            if time_limit is not None and time_limit <= 0:
                return SolveResult(status=SolverStatus.TIMED_OUT, wall_time=wall_time)

            status, indicator, elapsed = self._run_cpsat(
                exclusions + self.rejected_exclusions, request, time_limit, log_file
            )
            wall_time += elapsed
            if indicator is None:
                return SolveResult(status=status, wall_time=wall_time)

            partition = Partition.from_edge_indicator(self.graph.n, indicator)
            imbalance = partition.compute_imbalance(self.graph)
            if self._is_optimal(imbalance):
                return SolveResult(
                    status=status, membership=partition.membership, wall_time=wall_time
                )
            log.debug(
                "Rejecting partition with imbalance %g (optimum %g) admitted by "
                "rounded weights",
                imbalance,
                self.optimal_imbalance,
            )
            self._rejected.setdefault(indicator.tobytes(), indicator)

    def _run_cpsat(
        self,
        exclusions: list[np.ndarray],
        request: JumpRequest,
        time_limit: float | None,
        log_file: TextIO | None,
    ) -> tuple[SolverStatus, np.ndarray | None, float]:
        model, x = self.build_model(exclusions)

        solver = cp_model.CpSolver()
        if time_limit is not None:
            solver.parameters.max_time_in_seconds = max(time_limit, MIN_TIME_LIMIT)
        solver.parameters.num_workers = max(1, int(request.threads))
        solver.parameters.random_seed = self.config.random_seed
        solver.parameters.stop_after_first_solution = request.solution_cap == 1
        solver.parameters.linearization_level = 2 if request.first_pass else 1
        if log_file is not None:
            solver.parameters.log_search_progress = True
            solver.parameters.log_to_stdout = False
            solver.log_callback = lambda message: log_file.write(f"{message}\n")
        else:
            solver.parameters.log_search_progress = self.config.log_search_progress

        status = solver.Solve(model)
        self.solve_calls += 1
        mapped = _STATUS_MAP.get(status, SolverStatus.ERROR)
        log.debug(
            "CP-SAT %s after %.3fs with %d exclusions",
            solver.StatusName(status),
            solver.WallTime(),
            len(exclusions),
        )
        if not mapped.has_solution:
            return mapped, None, solver.WallTime()

        indicator = np.array([solver.BooleanValue(x_p) for x_p in x], dtype=np.int8)
        return mapped, indicator, solver.WallTime()
