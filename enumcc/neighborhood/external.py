"""Neighborhood search delegated to the external RNSCC jar.

The tool is started once per pass with its parameters as Java system
properties. It writes one membership file per solution into the pass
directory together with an ``assoc.txt`` manifest whose lines read
``diversityLowerBound:membershipFilePath``.
"""

import logging
import math
import subprocess
from pathlib import Path

from enumcc.config.experiment import NeighborhoodConfig
from enumcc.enumeration.errors import CollaboratorFailure
from enumcc.enumeration.ports import (
    DiscoveredSolution,
    NeighborhoodRequest,
    NeighborhoodSearch,
)
from enumcc.partition.clustering import InvalidMembershipError
from enumcc.partition.membership import load_partition

log = logging.getLogger(__name__)

MANIFEST_FILENAME = "assoc.txt"


def _java_bool(value: bool) -> str:
    return "true" if value else "false"


class ExternalNeighborhoodSearch(NeighborhoodSearch):
    """NeighborhoodSearch that shells out to a Java implementation.

    Requires a run store: the tool reads the frontier and the manifest of
    visited solutions from disk and writes its batch into the pass directory.

    Args:
        graph_path: Input graph file handed to the tool.
        config: Neighborhood settings (jar, java executable, flags).
    """

    def __init__(self, graph_path: str | Path, config: NeighborhoodConfig) -> None:
        self.graph_path = Path(graph_path)
        self.config = config

    def build_command(self, request: NeighborhoodRequest) -> list[str]:
        """Command line for one pass, as an argument list."""
        if None in (request.frontier_path, request.manifest_path, request.output_dir):
            raise CollaboratorFailure(
                "external neighborhood search needs frontier, manifest and "
                "output paths; run it with a RunStore"
            )
        if request.remaining_time is None:
            tilim = -1
        else:
            tilim = max(1, math.ceil(request.remaining_time))
        sol_lim = -1 if request.remaining_solutions is None else request.remaining_solutions
        return [
            self.config.java_executable,
            f"-DinputFilePath={self.graph_path}",
            f"-DoutDir={request.output_dir}",
            f"-DinitMembershipFilePath={request.frontier_path}",
            f"-DallPreviousResultsFilePath={request.manifest_path}",
            f"-DmaxNbEdit={request.max_edit_distance}",
            f"-Dtilim={tilim}",
            f"-DsolLim={sol_lim}",
            f"-DisBruteForce={_java_bool(self.config.brute_force)}",
            f"-DnbThread={request.threads}",
            f"-DisIncrementalEditBFS={_java_bool(self.config.incremental_edit_bfs)}",
            "-jar",
            self.config.jar_path,
        ]

    def explore(self, request: NeighborhoodRequest) -> list[DiscoveredSolution]:
        command = self.build_command(request)
        log.debug("Running %s", " ".join(command))
        try:
            completed = subprocess.run(command, capture_output=True, text=True)
        except OSError as exc:
            raise CollaboratorFailure(
                f"could not start neighborhood tool {command[0]!r}: {exc}"
            ) from exc
        if completed.returncode != 0:
            raise CollaboratorFailure(
                f"neighborhood tool exited with status {completed.returncode}: "
                f"{completed.stderr.strip()[-500:]}"
            )
        return self.read_manifest(Path(request.output_dir) / MANIFEST_FILENAME, request.frontier.n)

    def read_manifest(self, manifest: Path, n: int) -> list[DiscoveredSolution]:
        """Load every solution listed in a pass manifest."""
        try:
            lines = manifest.read_text().splitlines()
        except OSError as exc:
            raise CollaboratorFailure(f"cannot read manifest {manifest}: {exc}") from exc

        solutions = []
        for lineno, line in enumerate(lines, start=1):
            if not line.strip():
                continue
            bound, sep, path = line.strip().partition(":")
            if not sep or not path:
                raise CollaboratorFailure(
                    f"{manifest}:{lineno}: expected 'bound:path', got {line!r}"
                )
            try:
                partition = load_partition(path, n)
                lower_bound = int(bound)
            except (OSError, ValueError) as exc:
                # InvalidMembershipError is a ValueError
                raise CollaboratorFailure(f"{manifest}:{lineno}: {exc}") from exc
            solutions.append(
                DiscoveredSolution(
                    partition, diversity_lower_bound=lower_bound, source_path=Path(path)
                )
            )
        log.debug("Read %d solutions from %s", len(solutions), manifest)
        return solutions
