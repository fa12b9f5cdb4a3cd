"""Tests for the neighborhood search adapters."""

import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from enumcc.config import EnumerationConfig, NeighborhoodConfig
from enumcc.enumeration import CollaboratorFailure, NeighborhoodRequest
from enumcc.graph import graph_from_edges
from enumcc.neighborhood import (
    ExternalNeighborhoodSearch,
    LocalNeighborhoodSearch,
    NullNeighborhoodSearch,
    build_neighborhood,
)
from enumcc.partition import Partition, write_membership

# 0 and 1 must share a cluster and vertex 2 is free: two optima.
PINNED = graph_from_edges(3, [(0, 1, 1.0)])
FLAT = graph_from_edges(4, [])


def _request(frontier, **kwargs):
    defaults = dict(pass_index=1, frontier=frontier, max_edit_distance=1)
    defaults.update(kwargs)
    return NeighborhoodRequest(**defaults)


class FakeClock:
    def __init__(self, step: float) -> None:
        self.now = 0.0
        self.step = step

    def __call__(self) -> float:
        self.now += self.step
        return self.now


class TestLocalNeighborhoodSearch:
    """Recurrent bounded-edit exploration."""

    def test_finds_other_optimum(self):
        search = LocalNeighborhoodSearch(PINNED)
        found = search.explore(_request(Partition([1, 1, 1]), known=(Partition([1, 1, 1]),)))
        assert [s.partition for s in found] == [Partition([1, 1, 2])]
        assert found[0].diversity_lower_bound == 1
        assert found[0].source_path is None

    def test_known_partitions_not_reported(self):
        search = LocalNeighborhoodSearch(PINNED)
        found = search.explore(_request(
            Partition([1, 1, 1]), known=(Partition([1, 1, 1]), Partition([1, 1, 2]))
        ))
        assert found == []

    def test_recurrence_reaches_beyond_edit_distance(self):
        # every partition of 4 vertices is optimal; starting from all
        # together, chained single moves reach all 15 partitions
        search = LocalNeighborhoodSearch(FLAT)
        start = Partition([1, 1, 1, 1])
        found = search.explore(_request(start, known=(start,)))
        assert len(found) == 14
        assert len({s.partition.canonical_key() for s in found}) == 14
        assert max(s.diversity_lower_bound for s in found) == 1

    def test_free_vertex_placements(self):
        # 0-1 and 2-3 positive, everything else strongly negative, plus a
        # free vertex 4; the only optima differ by vertex 4's placement
        graph = graph_from_edges(5, [
            (0, 1, 1.0), (2, 3, 1.0),
            (0, 2, -5.0), (0, 3, -5.0), (1, 2, -5.0), (1, 3, -5.0),
        ])
        start = Partition([1, 1, 2, 2, 3])
        found = LocalNeighborhoodSearch(graph).explore(
            _request(start, known=(start,), max_edit_distance=2)
        )
        assert {tuple(s.partition.canonical().tolist()) for s in found} == {
            (1, 1, 2, 2, 1),
            (1, 1, 2, 2, 2),
        }

    def test_solution_cap(self):
        search = LocalNeighborhoodSearch(FLAT)
        start = Partition([1, 1, 1, 1])
        found = search.explore(_request(start, known=(start,), remaining_solutions=3))
        assert len(found) == 3

    def test_zero_cap_returns_nothing(self):
        search = LocalNeighborhoodSearch(FLAT)
        start = Partition([1, 1, 1, 1])
        assert search.explore(_request(start, remaining_solutions=0)) == []

    def test_deadline_stops_search(self):
        search = LocalNeighborhoodSearch(FLAT, clock=FakeClock(step=1.0))
        start = Partition([1, 1, 1, 1])
        found = search.explore(_request(start, known=(start,), remaining_time=0.5))
        assert found == []


class TestNullNeighborhoodSearch:
    def test_always_empty(self):
        assert NullNeighborhoodSearch().explore(_request(Partition([1, 1]))) == []


class TestBuildNeighborhood:
    """Backend factory follows the config."""

    def test_local(self):
        assert isinstance(build_neighborhood(EnumerationConfig(), FLAT), LocalNeighborhoodSearch)

    def test_none(self):
        config = EnumerationConfig(neighborhood=NeighborhoodConfig(backend="none"))
        assert isinstance(build_neighborhood(config, FLAT), NullNeighborhoodSearch)

    def test_external(self):
        config = EnumerationConfig(
            graph_path="g.G",
            neighborhood=NeighborhoodConfig(backend="external", jar_path="RNSCC.jar"),
        )
        search = build_neighborhood(config, FLAT)
        assert isinstance(search, ExternalNeighborhoodSearch)
        assert search.graph_path == Path("g.G")


@pytest.fixture
def external_setup(tmp_path):
    """Pass directory with a frontier file and a manifest path."""
    frontier = Partition([1, 1, 2])
    frontier_path = write_membership(tmp_path / "membership0.txt", frontier)
    manifest_path = tmp_path / "allResults.txt"
    manifest_path.write_text(f"{frontier_path}\n")
    pass_dir = tmp_path / "1"
    pass_dir.mkdir()
    request = _request(
        frontier,
        max_edit_distance=3,
        remaining_time=12.3,
        remaining_solutions=7,
        threads=4,
        frontier_path=frontier_path,
        manifest_path=manifest_path,
        output_dir=pass_dir,
    )
    config = NeighborhoodConfig(backend="external", jar_path="lib/RNSCC.jar")
    return ExternalNeighborhoodSearch(tmp_path / "g.G", config), request, pass_dir


def _completed(returncode=0, stderr=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout="", stderr=stderr)


class TestExternalNeighborhoodSearch:
    """Command construction and manifest parsing with a mocked subprocess."""

    def test_command(self, external_setup):
        search, request, pass_dir = external_setup
        cmd = search.build_command(request)
        assert cmd[0] == "java"
        assert cmd[-2:] == ["-jar", "lib/RNSCC.jar"]
        assert f"-DoutDir={pass_dir}" in cmd
        assert f"-DinitMembershipFilePath={request.frontier_path}" in cmd
        assert f"-DallPreviousResultsFilePath={request.manifest_path}" in cmd
        assert "-DmaxNbEdit=3" in cmd
        assert "-Dtilim=13" in cmd
        assert "-DsolLim=7" in cmd
        assert "-DnbThread=4" in cmd
        assert "-DisBruteForce=false" in cmd
        assert "-DisIncrementalEditBFS=false" in cmd

    def test_unbounded_budgets(self, external_setup):
        search, request, _ = external_setup
        unbounded = _request(
            request.frontier,
            frontier_path=request.frontier_path,
            manifest_path=request.manifest_path,
            output_dir=request.output_dir,
        )
        cmd = search.build_command(unbounded)
        assert "-Dtilim=-1" in cmd
        assert "-DsolLim=-1" in cmd

    def test_requires_run_store_paths(self, external_setup):
        search, request, _ = external_setup
        with pytest.raises(CollaboratorFailure):
            search.build_command(_request(request.frontier))

    def test_reads_manifest(self, external_setup):
        search, request, pass_dir = external_setup
        path = write_membership(pass_dir / "membership1.txt", Partition([1, 2, 2]))
        (pass_dir / "assoc.txt").write_text(f"2:{path}\n\n")
        with patch("enumcc.neighborhood.external.subprocess.run",
                   return_value=_completed()) as run:
            found = search.explore(request)
        run.assert_called_once()
        assert len(found) == 1
        assert found[0].partition == Partition([1, 2, 2])
        assert found[0].diversity_lower_bound == 2
        assert found[0].source_path == path

    def test_nonzero_exit(self, external_setup):
        search, request, _ = external_setup
        with patch("enumcc.neighborhood.external.subprocess.run",
                   return_value=_completed(returncode=1, stderr="boom")):
            with pytest.raises(CollaboratorFailure, match="boom"):
                search.explore(request)

    def test_missing_executable(self, external_setup):
        search, request, _ = external_setup
        with patch("enumcc.neighborhood.external.subprocess.run",
                   side_effect=FileNotFoundError("java")):
            with pytest.raises(CollaboratorFailure, match="could not start"):
                search.explore(request)

    def test_missing_manifest(self, external_setup):
        search, request, _ = external_setup
        with patch("enumcc.neighborhood.external.subprocess.run",
                   return_value=_completed()):
            with pytest.raises(CollaboratorFailure, match="manifest"):
                search.explore(request)

    def test_malformed_manifest_line(self, external_setup):
        search, request, pass_dir = external_setup
        (pass_dir / "assoc.txt").write_text("no separator here\n")
        with patch("enumcc.neighborhood.external.subprocess.run",
                   return_value=_completed()):
            with pytest.raises(CollaboratorFailure, match="bound:path"):
                search.explore(request)

    def test_invalid_membership_file(self, external_setup):
        search, request, pass_dir = external_setup
        bad = pass_dir / "membership1.txt"
        bad.write_text("1\n")
        (pass_dir / "assoc.txt").write_text(f"1:{bad}\n")
        with patch("enumcc.neighborhood.external.subprocess.run",
                   return_value=_completed()):
            with pytest.raises(CollaboratorFailure):
                search.explore(request)
