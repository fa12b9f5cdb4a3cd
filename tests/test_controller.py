"""Tests for EnumerationController with scripted collaborators."""

import logging

import numpy as np
import pytest

from enumcc.config import BudgetConfig, EnumerationConfig, NeighborhoodConfig
from enumcc.enumeration import (
    CollaboratorFailure,
    DiscoveredSolution,
    EnumerationController,
    EnumerationState,
    ExactSolver,
    NeighborhoodSearch,
    SolveResult,
    SolverInconsistencyError,
    SolverStatus,
    TerminationReason,
)
from enumcc.graph import graph_from_edges
from enumcc.partition import Partition
from enumcc.results import RunStore

# On an edgeless graph every partition has imbalance 0, so every
# partition is optimal.
FLAT = graph_from_edges(3, [])
ALL_TOGETHER = Partition([1, 1, 1])
PAIR_A = Partition([1, 1, 2])
PAIR_B = Partition([1, 2, 1])
ALL_APART = Partition([1, 2, 3])


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class ScriptedSolver(ExactSolver):
    """Replays a fixed list of results and records every request."""

    def __init__(self, results, clock=None, step=0.0):
        self.results = list(results)
        self.requests = []
        self.configured = None
        self.clock = clock
        self.step = step

    def configure_optimality(self, reference, imbalance):
        self.configured = (reference, imbalance)

    def solve(self, request):
        self.requests.append(request)
        if self.clock is not None:
            self.clock.now += self.step
        return self.results.pop(0)


class ScriptedNeighborhood(NeighborhoodSearch):
    """Returns one scripted batch per pass, then empty batches."""

    def __init__(self, batches=(), clock=None, step=0.0):
        self.batches = list(batches)
        self.requests = []
        self.clock = clock
        self.step = step

    def explore(self, request):
        self.requests.append(request)
        if self.clock is not None:
            self.clock.now += self.step
        if not self.batches:
            return []
        return [DiscoveredSolution(p, diversity_lower_bound=1) for p in self.batches.pop(0)]


def found(partition: Partition) -> SolveResult:
    return SolveResult(SolverStatus.SOLUTION_LIMIT, membership=partition.membership)


INFEASIBLE = SolveResult(SolverStatus.INFEASIBLE)


def _vectors(request):
    return [v.tolist() for v in request.exclusions]


class TestSingleOptimum:
    """A unique optimum ends after the first jump."""

    def test_exhausted_after_first_jump(self):
        graph = graph_from_edges(3, [(0, 1, 1.0), (0, 2, 1.0), (1, 2, 1.0)])
        solver = ScriptedSolver([INFEASIBLE])
        controller = EnumerationController(
            graph, ALL_TOGETHER, solver, ScriptedNeighborhood()
        )
        result = controller.run()

        assert result.reason == TerminationReason.EXHAUSTED
        assert result.certified_complete
        assert result.solutions == [ALL_TOGETHER]
        assert result.jump_queries == 1
        assert _vectors(solver.requests[0]) == [[1, 1, 1]]
        assert solver.configured == (ALL_TOGETHER, 0.0)

    def test_first_pass_hint(self):
        solver = ScriptedSolver([found(PAIR_A), INFEASIBLE])
        EnumerationController(FLAT, ALL_TOGETHER, solver, ScriptedNeighborhood()).run()
        assert solver.requests[0].first_pass is True
        assert solver.requests[1].first_pass is False
        assert all(r.solution_cap == 1 for r in solver.requests)


class TestDuplicateRetry:
    """A duplicate jump result narrows the working set and retries."""

    def test_two_duplicates_then_new(self):
        solver = ScriptedSolver(
            [found(PAIR_A), found(ALL_TOGETHER), found(ALL_APART), INFEASIBLE]
        )
        neighborhood = ScriptedNeighborhood([[PAIR_A]])
        controller = EnumerationController(FLAT, ALL_TOGETHER, solver, neighborhood)
        result = controller.run()

        assert result.passes[0].jump_queries == 3
        assert result.passes[0].duplicates == 2
        assert result.passes[0].jump_accepted
        # first jump: starting partition plus the neighborhood batch
        assert _vectors(solver.requests[0]) == [[1, 1, 1], [1, 0, 0]]
        # retries: narrowed to the duplicate just returned
        assert _vectors(solver.requests[1]) == [[1, 0, 0]]
        assert _vectors(solver.requests[2]) == [[1, 1, 1]]
        # after acceptance the new partition is folded in
        assert _vectors(solver.requests[3]) == [[1, 1, 1], [0, 0, 0]]
        assert result.solutions == [ALL_TOGETHER, PAIR_A, ALL_APART]
        assert result.reason == TerminationReason.EXHAUSTED

    def test_full_strategy_sends_registry(self):
        solver = ScriptedSolver([found(PAIR_A), found(ALL_APART), INFEASIBLE])
        neighborhood = ScriptedNeighborhood([[PAIR_A]])
        controller = EnumerationController(
            FLAT, ALL_TOGETHER, solver, neighborhood, exclusion_strategy="full"
        )
        controller.run()
        assert _vectors(solver.requests[1]) == [[1, 1, 1], [1, 0, 0]]
        assert _vectors(solver.requests[2]) == [[1, 1, 1], [1, 0, 0], [0, 0, 0]]


class TestNoDuplicates:
    """Every reported partition is distinct."""

    def test_neighborhood_duplicates_skipped(self, caplog):
        solver = ScriptedSolver([INFEASIBLE])
        neighborhood = ScriptedNeighborhood([[PAIR_A, Partition([2, 2, 1]), ALL_TOGETHER]])
        controller = EnumerationController(FLAT, ALL_TOGETHER, solver, neighborhood)
        with caplog.at_level(logging.WARNING):
            result = controller.run()
        assert result.solutions == [ALL_TOGETHER, PAIR_A]
        assert result.passes[0].neighborhood_solutions == 1
        assert "already visited" in caplog.text

    def test_solutions_pairwise_distinct(self):
        solver = ScriptedSolver([found(PAIR_B), found(ALL_APART), INFEASIBLE])
        neighborhood = ScriptedNeighborhood([[PAIR_A], [PAIR_B]])
        result = EnumerationController(FLAT, ALL_TOGETHER, solver, neighborhood).run()
        keys = {p.canonical_key() for p in result.solutions}
        assert len(keys) == len(result.solutions)


class TestBudgets:
    """Time and solution budgets end the run normally."""

    def test_solution_limit_one_stops_at_init(self):
        solver = ScriptedSolver([])
        neighborhood = ScriptedNeighborhood()
        result = EnumerationController(
            FLAT, ALL_TOGETHER, solver, neighborhood, solution_limit=1
        ).run()
        assert result.reason == TerminationReason.BUDGET_EXCEEDED
        assert result.exceeded_budget == "solutions"
        assert result.solutions == [ALL_TOGETHER]
        assert neighborhood.requests == []
        assert solver.requests == []

    def test_batch_truncated_to_solution_limit(self):
        solver = ScriptedSolver([])
        neighborhood = ScriptedNeighborhood([[PAIR_A, PAIR_B, ALL_APART]])
        result = EnumerationController(
            FLAT, ALL_TOGETHER, solver, neighborhood, solution_limit=3
        ).run()
        assert len(result.solutions) == 3
        assert result.exceeded_budget == "solutions"
        assert not result.certified_complete
        assert neighborhood.requests[0].remaining_solutions == 2

    def test_jump_acceptance_fills_budget(self):
        solver = ScriptedSolver([found(PAIR_A)])
        result = EnumerationController(
            FLAT, ALL_TOGETHER, solver, ScriptedNeighborhood(), solution_limit=2
        ).run()
        assert len(result.solutions) == 2
        assert result.reason == TerminationReason.BUDGET_EXCEEDED

    def test_time_limit_after_jump(self):
        clock = FakeClock()
        solver = ScriptedSolver([found(PAIR_A)], clock=clock, step=20.0)
        result = EnumerationController(
            FLAT, ALL_TOGETHER, solver, ScriptedNeighborhood(),
            time_limit=15.0, clock=clock,
        ).run()
        # a solution found as time runs out is still kept
        assert result.solutions == [ALL_TOGETHER, PAIR_A]
        assert result.exceeded_budget == "time"
        assert solver.requests[0].time_limit == 15.0

    def test_unbounded_time_passed_as_none(self):
        solver = ScriptedSolver([INFEASIBLE])
        neighborhood = ScriptedNeighborhood()
        EnumerationController(FLAT, ALL_TOGETHER, solver, neighborhood).run()
        assert solver.requests[0].time_limit is None
        assert neighborhood.requests[0].remaining_time is None
        assert neighborhood.requests[0].remaining_solutions is None

    def test_time_limit_during_neighborhood_skips_jump(self):
        clock = FakeClock()
        solver = ScriptedSolver([])
        neighborhood = ScriptedNeighborhood([[PAIR_A]], clock=clock, step=10.0)
        result = EnumerationController(
            FLAT, ALL_TOGETHER, solver, neighborhood, time_limit=5.0, clock=clock
        ).run()
        assert result.reason == TerminationReason.BUDGET_EXCEEDED
        assert result.exceeded_budget == "time"
        assert solver.requests == []
        assert result.solutions == [ALL_TOGETHER, PAIR_A]
        assert neighborhood.requests[0].remaining_time == 5.0

    def test_timed_out_with_time_left_returns_to_neighborhood(self):
        clock = FakeClock()
        solver = ScriptedSolver(
            [SolveResult(SolverStatus.TIMED_OUT), INFEASIBLE], clock=clock, step=1.0
        )
        neighborhood = ScriptedNeighborhood()
        result = EnumerationController(
            FLAT, ALL_TOGETHER, solver, neighborhood, time_limit=100.0, clock=clock
        ).run()
        assert len(neighborhood.requests) == 2
        assert result.reason == TerminationReason.EXHAUSTED

    def test_timed_out_without_time_left(self):
        clock = FakeClock()
        solver = ScriptedSolver(
            [SolveResult(SolverStatus.TIMED_OUT)], clock=clock, step=10.0
        )
        result = EnumerationController(
            FLAT, ALL_TOGETHER, solver, ScriptedNeighborhood(),
            time_limit=5.0, clock=clock,
        ).run()
        assert result.reason == TerminationReason.BUDGET_EXCEEDED
        assert result.exceeded_budget == "time"

    def test_from_config(self):
        config = EnumerationConfig(
            budget=BudgetConfig(solution_limit=1),
            neighborhood=NeighborhoodConfig(max_edit_distance=2),
        )
        controller = EnumerationController.from_config(
            config, FLAT, ALL_TOGETHER, ScriptedSolver([]), ScriptedNeighborhood()
        )
        assert controller.max_edit_distance == 2
        assert controller.run().exceeded_budget == "solutions"


class TestFailures:
    """Inconsistent collaborator output is fatal."""

    def test_non_optimal_jump_result(self):
        graph = graph_from_edges(3, [(0, 1, 1.0)])
        solver = ScriptedSolver([found(ALL_APART)])
        controller = EnumerationController(graph, PAIR_A, solver, ScriptedNeighborhood())
        with pytest.raises(SolverInconsistencyError):
            controller.run()

    def test_non_optimal_neighborhood_solution(self):
        graph = graph_from_edges(3, [(0, 1, 1.0)])
        neighborhood = ScriptedNeighborhood([[ALL_APART]])
        controller = EnumerationController(graph, PAIR_A, ScriptedSolver([]), neighborhood)
        with pytest.raises(CollaboratorFailure):
            controller.run()

    def test_neighborhood_partition_of_wrong_size(self):
        neighborhood = ScriptedNeighborhood([[Partition([1, 1])]])
        controller = EnumerationController(
            FLAT, ALL_TOGETHER, ScriptedSolver([]), neighborhood
        )
        with pytest.raises(CollaboratorFailure, match="invalid partition"):
            controller.run()

    def test_solver_error_status(self):
        solver = ScriptedSolver([SolveResult(SolverStatus.ERROR)])
        controller = EnumerationController(FLAT, ALL_TOGETHER, solver, ScriptedNeighborhood())
        with pytest.raises(CollaboratorFailure):
            controller.run()

    def test_solution_without_membership(self):
        solver = ScriptedSolver([SolveResult(SolverStatus.OPTIMAL)])
        controller = EnumerationController(FLAT, ALL_TOGETHER, solver, ScriptedNeighborhood())
        with pytest.raises(CollaboratorFailure):
            controller.run()

    def test_run_twice(self):
        controller = EnumerationController(
            FLAT, ALL_TOGETHER, ScriptedSolver([INFEASIBLE]), ScriptedNeighborhood()
        )
        controller.run()
        assert controller.state == EnumerationState.EXHAUSTED
        with pytest.raises(RuntimeError):
            controller.run()


class TestPersistence:
    """With a RunStore the run layout is written as it progresses."""

    def test_layout(self, tmp_path):
        store = RunStore(tmp_path / "run")
        solver = ScriptedSolver([found(ALL_APART), INFEASIBLE])
        neighborhood = ScriptedNeighborhood([[PAIR_A]])
        EnumerationController(
            FLAT, ALL_TOGETHER, solver, neighborhood, store=store
        ).run()

        out = tmp_path / "run"
        assert (out / "membership0.txt").read_text() == "1\n1\n1\n"
        assert (out / "membership1.txt").read_text() == "1\n2\n3\n"
        assert (out / "1" / "membership1.txt").exists()
        assert (out / "1" / "assoc.txt").read_text().startswith("1:")
        assert (out / "jump-status1.txt").read_text().strip() == "solution_limit"
        assert (out / "jump-status2.txt").read_text().strip() == "infeasible"
        assert (out / "jump-exec-time2.txt").exists()
        manifest = (out / "allResults.txt").read_text().splitlines()
        assert len(manifest) == 3

    def test_neighborhood_request_paths(self, tmp_path):
        store = RunStore(tmp_path)
        neighborhood = ScriptedNeighborhood()
        EnumerationController(
            FLAT, ALL_TOGETHER, ScriptedSolver([INFEASIBLE]), neighborhood, store=store
        ).run()
        request = neighborhood.requests[0]
        assert request.frontier_path == tmp_path / "membership0.txt"
        assert request.manifest_path == tmp_path / "allResults.txt"
        assert request.output_dir == tmp_path / "1"
        assert np.array_equal(request.frontier.membership, ALL_TOGETHER.membership)

    def test_jump_log_path(self, tmp_path):
        solver = ScriptedSolver([found(PAIR_A), INFEASIBLE])
        EnumerationController(
            FLAT, ALL_TOGETHER, solver, ScriptedNeighborhood(), store=RunStore(tmp_path)
        ).run()
        assert [r.log_path for r in solver.requests] == [
            tmp_path / "jump-log1.txt", tmp_path / "jump-log2.txt"
        ]

    def test_no_jump_log_without_store(self):
        solver = ScriptedSolver([INFEASIBLE])
        EnumerationController(FLAT, ALL_TOGETHER, solver, ScriptedNeighborhood()).run()
        assert solver.requests[0].log_path is None
