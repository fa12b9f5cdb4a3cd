"""Enumeration controller: alternates neighborhood batches and exact jumps.

Each pass runs the neighborhood search around the frontier, folds the
batch into the registry and the exclusion working set, then asks the
exact solver for an optimal partition outside the working set. A new
jump result becomes the next frontier. A repeated one narrows the working
set to that duplicate and the jump is retried. The run ends when the
solver proves no optimal partition is left (exhausted) or a time or
solution budget runs out.
"""

import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from enumcc.config.experiment import EnumerationConfig
from enumcc.enumeration.errors import CollaboratorFailure, SolverInconsistencyError
from enumcc.enumeration.exclusion import (
    ExclusionConstraintBuilder,
    ExclusionStrategy,
    ExclusionWorkingSet,
)
from enumcc.enumeration.ports import (
    ExactSolver,
    JumpRequest,
    NeighborhoodRequest,
    NeighborhoodSearch,
    SolverStatus,
)
from enumcc.enumeration.registry import VisitedSolutionRegistry
from enumcc.graph.types import SignedGraph
from enumcc.partition.clustering import InvalidMembershipError, Partition

if TYPE_CHECKING:
    from enumcc.results.store import RunStore

log = logging.getLogger(__name__)


class EnumerationState(StrEnum):
    INIT = "init"
    NEIGHBORHOOD = "neighborhood"
    JUMP = "jump"
    ACCEPTED = "accepted"
    DUPLICATE = "duplicate"
    EXHAUSTED = "exhausted"
    BUDGET_EXCEEDED = "budget_exceeded"

    @property
    def is_terminal(self) -> bool:
        return self in (EnumerationState.EXHAUSTED, EnumerationState.BUDGET_EXCEEDED)


class TerminationReason(StrEnum):
    EXHAUSTED = "exhausted"
    BUDGET_EXCEEDED = "budget_exceeded"


@dataclass
class PassRecord:
    """Per-pass counters.

    Attributes:
        pass_index: 1-based pass number.
        neighborhood_solutions: New partitions accepted from the batch.
        jump_queries: Solver calls made in this pass (retries included).
        duplicates: Jump results that were already visited.
        jump_status: Status of the last jump of the pass, if any ran.
        jump_accepted: Whether the pass ended with a new jump solution.
        jump_time: Seconds spent inside the solver during this pass.
        elapsed: Run time elapsed when the pass closed.
        registry_size: Visited partitions when the pass closed.
    """

    pass_index: int
    neighborhood_solutions: int = 0
    jump_queries: int = 0
    duplicates: int = 0
    jump_status: str | None = None
    jump_accepted: bool = False
    jump_time: float = 0.0
    elapsed: float = 0.0
    registry_size: int = 0


@dataclass
class EnumerationResult:
    """Outcome of EnumerationController.run().

    Attributes:
        reason: Why the run stopped.
        solutions: Every visited optimal partition, in discovery order.
        optimal_imbalance: Imbalance of the starting partition.
        passes: One PassRecord per neighborhood pass.
        jump_queries: Total solver calls.
        elapsed: Wall-clock seconds of the run.
        exceeded_budget: "time" or "solutions" when reason is
            BUDGET_EXCEEDED, else None.
    """

    reason: TerminationReason
    solutions: list[Partition]
    optimal_imbalance: float
    passes: list[PassRecord] = field(default_factory=list)
    jump_queries: int = 0
    elapsed: float = 0.0
    exceeded_budget: str | None = None

    @property
    def certified_complete(self) -> bool:
        """True only when the solver proved no other optimum exists."""
        return self.reason == TerminationReason.EXHAUSTED


class EnumerationController:
    """Drives one enumeration run over two injected collaborators.

    Args:
        graph: Signed graph being clustered.
        initial: Optimal starting partition; fixes the optimal imbalance.
        solver: Exact jump solver.
        neighborhood: Recurrent neighborhood search.
        max_edit_distance: Move budget handed to the neighborhood search.
        time_limit: Wall-clock budget in seconds; <= 0 means unbounded.
        solution_limit: Maximum visited partitions; <= 0 means unbounded.
        threads: Thread count handed to both collaborators.
        exclusion_strategy: Which vectors each jump excludes.
        imbalance_tolerance: Absolute tolerance of the optimality checks.
        store: Optional on-disk run layout.
        clock: Monotonic clock returning seconds.
    """

    def __init__(
        self,
        graph: SignedGraph,
        initial: Partition,
        solver: ExactSolver,
        neighborhood: NeighborhoodSearch,
        *,
        max_edit_distance: int = 3,
        time_limit: float = -1.0,
        solution_limit: int = -1,
        threads: int = 1,
        exclusion_strategy: ExclusionStrategy | str = ExclusionStrategy.NARROW,
        imbalance_tolerance: float = 1e-6,
        store: "RunStore | None" = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if initial.n != graph.n:
            raise InvalidMembershipError(
                f"initial partition has {initial.n} vertices but graph has {graph.n}"
            )
        self.graph = graph
        self.initial = initial
        self.solver = solver
        self.neighborhood = neighborhood
        self.max_edit_distance = max_edit_distance
        self.time_limit = time_limit
        self.solution_limit = solution_limit
        self.threads = threads
        self.exclusion_strategy = ExclusionStrategy(exclusion_strategy)
        self.imbalance_tolerance = imbalance_tolerance
        self.store = store
        self._clock = clock

        self.registry = VisitedSolutionRegistry()
        self.working_set = ExclusionWorkingSet()
        self.builder = ExclusionConstraintBuilder()
        self.state = EnumerationState.INIT
        self.frontier = initial
        self.optimal_imbalance: float | None = None
        self.pass_index = 0
        self.jump_queries = 0
        self.passes: list[PassRecord] = []
        self._start = 0.0
        self._exceeded: str | None = None

    @classmethod
    def from_config(
        cls,
        config: EnumerationConfig,
        graph: SignedGraph,
        initial: Partition,
        solver: ExactSolver,
        neighborhood: NeighborhoodSearch,
        store: "RunStore | None" = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> "EnumerationController":
        return cls(
            graph,
            initial,
            solver,
            neighborhood,
            max_edit_distance=config.neighborhood.max_edit_distance,
            time_limit=config.budget.time_limit,
            solution_limit=config.budget.solution_limit,
            threads=config.threads,
            exclusion_strategy=config.exclusion_strategy,
            imbalance_tolerance=config.imbalance_tolerance,
            store=store,
            clock=clock,
        )

    # -- budgets ------------------------------------------------------

    def elapsed(self) -> float:
        return self._clock() - self._start

    def remaining_time(self) -> float | None:
        if self.time_limit <= 0:
            return None
        return max(0.0, self.time_limit - self.elapsed())

    def remaining_solutions(self) -> int | None:
        if self.solution_limit <= 0:
            return None
        return max(0, self.solution_limit - len(self.registry))

    def _time_exceeded(self) -> bool:
        return self.time_limit > 0 and self.elapsed() >= self.time_limit

    def _solutions_exceeded(self) -> bool:
        return self.solution_limit > 0 and len(self.registry) >= self.solution_limit

    def _check_budgets(self) -> bool:
        """Move to BUDGET_EXCEEDED if either budget is spent."""
        if self._solutions_exceeded():
            self._exceeded = "solutions"
        elif self._time_exceeded():
            self._exceeded = "time"
        else:
            return False
        self.state = EnumerationState.BUDGET_EXCEEDED
        return True

    def _is_optimal(self, imbalance: float) -> bool:
        return math.isclose(
            imbalance, self.optimal_imbalance, rel_tol=1e-9,
            abs_tol=self.imbalance_tolerance,
        )

    # -- main loop ----------------------------------------------------

    def run(self) -> EnumerationResult:
        """Enumerate until exhausted or out of budget.

        Raises:
            SolverInconsistencyError: A jump returned a non-optimal partition.
            CollaboratorFailure: A collaborator failed or returned unusable data.
            RuntimeError: If run() is called twice.
        """
        if self.state != EnumerationState.INIT:
            raise RuntimeError("EnumerationController.run() can only be called once")
        self._start = self._clock()
        self._initialize()

        while not self.state.is_terminal:
            if self.state in (EnumerationState.NEIGHBORHOOD, EnumerationState.ACCEPTED):
                self._neighborhood_phase()
            else:
                self._jump_phase()

        if self.state == EnumerationState.EXHAUSTED:
            reason = TerminationReason.EXHAUSTED
        else:
            reason = TerminationReason.BUDGET_EXCEEDED
        elapsed = self.elapsed()
        log.info(
            "Enumeration finished: %s%s, %d optimal partitions, "
            "%d passes, %d jump queries, %.2fs",
            reason,
            f" ({self._exceeded})" if self._exceeded else "",
            len(self.registry),
            self.pass_index,
            self.jump_queries,
            elapsed,
        )
        return EnumerationResult(
            reason=reason,
            solutions=list(self.registry.partitions),
            optimal_imbalance=self.optimal_imbalance,
            passes=list(self.passes),
            jump_queries=self.jump_queries,
            elapsed=elapsed,
            exceeded_budget=self._exceeded,
        )

    def _initialize(self) -> None:
        self.optimal_imbalance = self.initial.compute_imbalance(self.graph)
        log.info(
            "Optimal imbalance %g from starting partition with %d clusters",
            self.optimal_imbalance,
            self.initial.cluster_count,
        )
        self.solver.configure_optimality(self.initial, self.optimal_imbalance)
        self.registry.add(self.initial)
        self.working_set.extend(self.builder.from_single(self.initial))
        if self.store is not None:
            self.store.prepare(self.initial)

        self.state = EnumerationState.NEIGHBORHOOD
        self._check_budgets()

    def _close_pass(self, record: PassRecord) -> None:
        record.elapsed = self.elapsed()
        record.registry_size = len(self.registry)

    def _neighborhood_phase(self) -> None:
        self.pass_index += 1
        record = PassRecord(pass_index=self.pass_index)
        self.passes.append(record)
        log.info(
            "Pass %d: neighborhood search (max edit %d), %d partitions known",
            self.pass_index,
            self.max_edit_distance,
            len(self.registry),
        )

        store = self.store
        request = NeighborhoodRequest(
            pass_index=self.pass_index,
            frontier=self.frontier,
            max_edit_distance=self.max_edit_distance,
            known=self.registry.partitions,
            remaining_time=self.remaining_time(),
            remaining_solutions=self.remaining_solutions(),
            threads=self.threads,
            frontier_path=store.frontier_path if store else None,
            manifest_path=store.manifest_path if store else None,
            output_dir=store.pass_dir(self.pass_index) if store else None,
        )
        batch = self.neighborhood.explore(request)

        accepted: list[Partition] = []
        for position, solution in enumerate(batch):
            if self.remaining_solutions() == 0:
                log.info(
                    "Solution budget reached, dropping %d remaining batch entries",
                    len(batch) - position,
                )
                break
            partition = solution.partition
            try:
                imbalance = partition.compute_imbalance(self.graph)
            except InvalidMembershipError as exc:
                raise CollaboratorFailure(
                    f"neighborhood returned an invalid partition: {exc}"
                ) from exc
            if not self._is_optimal(imbalance):
                raise CollaboratorFailure(
                    f"neighborhood returned a partition with imbalance {imbalance:g}, "
                    f"expected {self.optimal_imbalance:g}"
                )
            if not self.registry.add(partition):
                log.warning(
                    "Pass %d: skipping already visited neighborhood solution",
                    self.pass_index,
                )
                continue
            accepted.append(partition)
            if store is not None:
                store.record_neighborhood_solution(
                    self.pass_index, len(accepted), solution
                )

        self.working_set.extend(self.builder.from_batch(accepted))
        record.neighborhood_solutions = len(accepted)
        self._close_pass(record)
        log.info(
            "Pass %d: %d new neighborhood solutions (%d total)",
            self.pass_index,
            len(accepted),
            len(self.registry),
        )

        self.state = EnumerationState.JUMP
        self._check_budgets()

    def _jump_exclusions(self) -> list:
        if self.exclusion_strategy == ExclusionStrategy.FULL:
            return self.builder.from_batch(self.registry)
        return self.working_set.vectors

    def _jump_phase(self) -> None:
        record = self.passes[-1]
        request = JumpRequest(
            exclusions=self._jump_exclusions(),
            time_limit=self.remaining_time(),
            solution_cap=1,
            threads=self.threads,
            first_pass=self.pass_index == 1,
            log_path=(
                self.store.jump_log_path(self.pass_index)
                if self.store is not None else None
            ),
        )
        started = self._clock()
        result = self.solver.solve(request)
        record.jump_time += self._clock() - started
        self.jump_queries += 1
        record.jump_queries += 1
        record.jump_status = str(result.status)
        if self.store is not None:
            self.store.record_jump_status(self.pass_index, result.status, record.jump_time)
        log.info(
            "Pass %d jump %d: %s (%d exclusions, %.2fs)",
            self.pass_index,
            record.jump_queries,
            result.status,
            len(request.exclusions),
            result.wall_time,
        )

        status = result.status
        if status == SolverStatus.INFEASIBLE:
            self.state = EnumerationState.EXHAUSTED
        elif status == SolverStatus.TIMED_OUT:
            if not self._check_budgets():
                self.state = EnumerationState.NEIGHBORHOOD
        elif status == SolverStatus.ERROR:
            raise CollaboratorFailure(f"solver failed on pass {self.pass_index}")
        else:
            self._handle_solution(result.membership, record)
        self._close_pass(record)

    def _handle_solution(self, membership, record: PassRecord) -> None:
        if membership is None:
            raise CollaboratorFailure("solver reported a solution without a membership")
        try:
            partition = Partition(membership, self.graph.n)
        except InvalidMembershipError as exc:
            raise CollaboratorFailure(f"solver returned an invalid membership: {exc}") from exc

        imbalance = partition.compute_imbalance(self.graph)
        if not self._is_optimal(imbalance):
            raise SolverInconsistencyError(
                f"jump returned imbalance {imbalance:g}, "
                f"expected {self.optimal_imbalance:g}"
            )

        if self.registry.contains(partition):
            record.duplicates += 1
            log.info(
                "Pass %d: jump returned an already visited partition, retrying",
                self.pass_index,
            )
            self.working_set.narrow_to(self.builder.from_single(partition))
            self.state = EnumerationState.DUPLICATE
            if self._time_exceeded():
                self._exceeded = "time"
                self.state = EnumerationState.BUDGET_EXCEEDED
            return

        self.registry.add(partition)
        self.frontier = partition
        if self.store is not None:
            self.store.record_jump_solution(self.pass_index, partition)
        self.working_set.extend(self.builder.from_single(partition))
        record.jump_accepted = True
        log.info(
            "Pass %d: accepted new partition with %d clusters (%d total)",
            self.pass_index,
            partition.cluster_count,
            len(self.registry),
        )
        self.state = EnumerationState.ACCEPTED
        self._check_budgets()
