"""On-disk layout of one enumeration run.

Layout under ``output_dir``::

    membership0.txt            starting partition
    membership{pass}.txt       solution accepted by the jump of that pass
    allResults.txt             path of every visited solution, one per line
    assoc.txt                  root manifest (created empty)
    {pass}/membership{i}.txt   neighborhood batch of that pass
    {pass}/assoc.txt           lines "diversityLowerBound:membershipFilePath"
    jump-status{pass}.txt      last jump status of that pass
    jump-exec-time{pass}.txt   seconds spent in the jumps of that pass
    jump-log{pass}.txt         CP-SAT search log of the jumps of that pass
"""

import logging
from pathlib import Path

from enumcc.enumeration.ports import DiscoveredSolution, SolverStatus
from enumcc.partition.clustering import Partition
from enumcc.partition.membership import write_membership

log = logging.getLogger(__name__)

ALL_RESULTS_FILENAME = "allResults.txt"
MANIFEST_FILENAME = "assoc.txt"


def membership_filename(index: int) -> str:
    return f"membership{index}.txt"


class RunStore:
    """Writes membership files and manifests for one run.

    Holds the output paths and the current frontier path so that the
    controller has no filesystem state of its own.

    Args:
        output_dir: Root directory of the run. Created by prepare().
    """

    def __init__(self, output_dir: str | Path) -> None:
        self.output_dir = Path(output_dir)
        self._frontier_path: Path | None = None

    @property
    def manifest_path(self) -> Path:
        """Manifest listing every visited solution file."""
        return self.output_dir / ALL_RESULTS_FILENAME

    @property
    def frontier_path(self) -> Path | None:
        """Membership file of the current frontier, once prepared."""
        return self._frontier_path

    def prepare(self, initial: Partition) -> Path:
        """Create the run directory and persist the starting partition.

        Existing manifests are truncated so a reused directory starts clean.

        Returns:
            Path of membership0.txt.
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.manifest_path.write_text("")
        (self.output_dir / MANIFEST_FILENAME).write_text("")
        # jump logs are opened in append mode
        for stale in self.output_dir.glob("jump-log*.txt"):
            stale.unlink()

        path = self.output_dir / membership_filename(0)
        write_membership(path, initial)
        self._append_manifest(path)
        self._frontier_path = path
        log.info("Prepared run directory %s", self.output_dir)
        return path

    def pass_dir(self, pass_index: int) -> Path:
        """Directory holding the neighborhood batch of ``pass_index``."""
        directory = self.output_dir / str(pass_index)
        directory.mkdir(parents=True, exist_ok=True)
        return directory

    def record_neighborhood_solution(
        self, pass_index: int, ordinal: int, solution: DiscoveredSolution
    ) -> Path:
        """Persist one accepted neighborhood solution.

        Solutions already written by the collaborator keep their file;
        only the run manifest is updated for them.
        """
        if solution.source_path is not None:
            path = Path(solution.source_path)
        else:
            directory = self.pass_dir(pass_index)
            path = directory / membership_filename(ordinal)
            write_membership(path, solution.partition)
            with open(directory / MANIFEST_FILENAME, "a") as f:
                f.write(f"{solution.diversity_lower_bound}:{path}\n")
        self._append_manifest(path)
        return path

    def record_jump_solution(self, pass_index: int, partition: Partition) -> Path:
        """Persist the jump-accepted solution; it becomes the frontier."""
        path = self.output_dir / membership_filename(pass_index)
        write_membership(path, partition)
        self._append_manifest(path)
        self._frontier_path = path
        return path

    def jump_log_path(self, pass_index: int) -> Path:
        return self.output_dir / f"jump-log{pass_index}.txt"

    def record_jump_status(
        self, pass_index: int, status: SolverStatus, elapsed: float
    ) -> None:
        (self.output_dir / f"jump-status{pass_index}.txt").write_text(f"{status}\n")
        (self.output_dir / f"jump-exec-time{pass_index}.txt").write_text(
            f"{elapsed:.6f}\n"
        )

    def _append_manifest(self, path: Path) -> None:
        with open(self.manifest_path, "a") as f:
            f.write(f"{path}\n")
