"""Enumeration run configuration dataclasses, all frozen and slotted for immutability."""

from dataclasses import dataclass, field

EXCLUSION_STRATEGIES: tuple[str, ...] = ("narrow", "full")
NEIGHBORHOOD_BACKENDS: tuple[str, ...] = ("local", "external", "none")


@dataclass(frozen=True, slots=True)
class BudgetConfig:
    """Resource budgets shared by both discovery phases (<= 0 means unbounded)."""

    time_limit: float = -1.0  # seconds of wall-clock time
    solution_limit: int = -1  # max optimal solutions, starting partition included


@dataclass(frozen=True, slots=True)
class NeighborhoodConfig:
    """Recurrent neighborhood search parameters."""

    backend: str = "local"  # local, external, or none (jump-only)
    max_edit_distance: int = 3
    jar_path: str = ""  # external backend only
    java_executable: str = "java"
    brute_force: bool = False
    incremental_edit_bfs: bool = False


@dataclass(frozen=True, slots=True)
class SolverConfig:
    """CP-SAT jump solver parameters."""

    weight_scale: int = 1000  # float weights are rounded to integers after scaling
    max_weight_scale: int = 1_000_000  # scale is raised by powers of 10 up to this
    random_seed: int = 0
    persist_exclusions: bool = True
    log_search_progress: bool = False


@dataclass(frozen=True, slots=True)
class EnumerationConfig:
    """Top-level configuration composing all sub-configs.

    All fields are frozen and typed. Cross-parameter validation runs
    in __post_init__ to reject invalid configurations early.
    """

    graph_path: str = ""
    initial_membership_path: str = ""
    output_dir: str = "out"
    threads: int = 1
    exclusion_strategy: str = "narrow"
    imbalance_tolerance: float = 1e-6
    budget: BudgetConfig = field(default_factory=BudgetConfig)
    neighborhood: NeighborhoodConfig = field(default_factory=NeighborhoodConfig)
    solver: SolverConfig = field(default_factory=SolverConfig)
    description: str = ""
    tags: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.threads < 1:
            raise ValueError(f"threads must be >= 1, got {self.threads}")
        if self.exclusion_strategy not in EXCLUSION_STRATEGIES:
            raise ValueError(
                f"exclusion_strategy must be one of {EXCLUSION_STRATEGIES}, "
                f"got {self.exclusion_strategy!r}"
            )
        if self.imbalance_tolerance <= 0:
            raise ValueError(
                f"imbalance_tolerance must be > 0, got {self.imbalance_tolerance}"
            )
        if self.neighborhood.backend not in NEIGHBORHOOD_BACKENDS:
            raise ValueError(
                f"neighborhood.backend must be one of {NEIGHBORHOOD_BACKENDS}, "
                f"got {self.neighborhood.backend!r}"
            )
        if self.neighborhood.max_edit_distance < 1:
            raise ValueError(
                f"max_edit_distance must be >= 1, "
                f"got {self.neighborhood.max_edit_distance}"
            )
        if self.neighborhood.backend == "external" and not self.neighborhood.jar_path:
            raise ValueError("external neighborhood backend requires jar_path")
        if self.solver.weight_scale < 1:
            raise ValueError(
                f"weight_scale must be >= 1, got {self.solver.weight_scale}"
            )
        if self.solver.max_weight_scale < self.solver.weight_scale:
            raise ValueError(
                f"max_weight_scale must be >= weight_scale, "
                f"got {self.solver.max_weight_scale} < {self.solver.weight_scale}"
            )
