#!/usr/bin/env python3
"""Entry point for enumerating all optimal correlation clustering partitions.

Chains all pipeline stages into a single executable command:
graph loading -> initial partition -> output layout -> enumeration ->
summary -> visualization.

Usage:
    python run_enumeration.py --config config.json
    python run_enumeration.py --graph net.G --init-membership opt.txt --out-dir out
    python run_enumeration.py --config config.json --dry-run
"""

import argparse
import dataclasses
import logging
import sys
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from enumcc.config import (
    DEFAULT_CONFIG,
    EXCLUSION_STRATEGIES,
    NEIGHBORHOOD_BACKENDS,
    EnumerationConfig,
    config_from_json,
    config_hash,
    config_to_json,
)

log = logging.getLogger(__name__)


@contextmanager
def stage_timer(name: str) -> Generator[None, None, None]:
    """Context manager that prints stage banners with elapsed time."""
    print(f"\n=== {name} ===")
    log.info("Starting: %s", name)
    t0 = time.monotonic()
    yield
    elapsed = time.monotonic() - t0
    print(f"... done in {elapsed:.1f}s")
    log.info("Completed: %s in %.1fs", name, elapsed)


def apply_overrides(config: EnumerationConfig, args: argparse.Namespace) -> EnumerationConfig:
    """Return ``config`` with every command-line override applied.

    Raises:
        ValueError: If the resulting configuration is invalid.
    """
    top: dict = {}
    budget: dict = {}
    neighborhood: dict = {}
    if args.graph is not None:
        top["graph_path"] = args.graph
    if args.init_membership is not None:
        top["initial_membership_path"] = args.init_membership
    if args.out_dir is not None:
        top["output_dir"] = args.out_dir
    if args.threads is not None:
        top["threads"] = args.threads
    if args.exclusion_strategy is not None:
        top["exclusion_strategy"] = args.exclusion_strategy
    if args.time_limit is not None:
        budget["time_limit"] = float(args.time_limit)
    if args.solution_limit is not None:
        budget["solution_limit"] = args.solution_limit
    if args.max_edit is not None:
        neighborhood["max_edit_distance"] = args.max_edit
    if args.neighborhood is not None:
        neighborhood["backend"] = args.neighborhood
    if args.jar is not None:
        neighborhood["jar_path"] = args.jar

    if budget:
        top["budget"] = dataclasses.replace(config.budget, **budget)
    if neighborhood:
        top["neighborhood"] = dataclasses.replace(config.neighborhood, **neighborhood)
    return dataclasses.replace(config, **top) if top else config


def run_pipeline(config: EnumerationConfig, render: bool = True) -> Path:
    """Execute the full enumeration pipeline.

    Args:
        config: Validated enumeration config.
        render: Whether to render figures after the summary.

    Returns:
        Path to the output directory.
    """
    # Lazy imports to keep --dry-run fast
    from enumcc.enumeration import EnumerationController
    from enumcc.graph import load_signed_graph
    from enumcc.neighborhood import build_neighborhood
    from enumcc.partition import load_partition
    from enumcc.results import RunStore, write_summary
    from enumcc.solver import CpSatJumpSolver

    pipeline_start = time.monotonic()
    output_dir = Path(config.output_dir)

    # ── Stage 1: Graph ─────────────────────────────────────────────
    with stage_timer("Graph Loading"):
        graph = load_signed_graph(config.graph_path)
        log.info("Graph: n=%d, pairs=%d", graph.n, graph.num_pairs)

    # ── Stage 2: Initial partition ─────────────────────────────────
    with stage_timer("Initial Partition"):
        initial = load_partition(config.initial_membership_path, graph.n)
        log.info(
            "Initial partition: %d clusters, imbalance %g",
            initial.cluster_count, initial.compute_imbalance(graph),
        )

    # ── Stage 3: Output layout ─────────────────────────────────────
    with stage_timer("Output Layout"):
        output_dir.mkdir(parents=True, exist_ok=True)
        (output_dir / "config.json").write_text(config_to_json(config))
        store = RunStore(output_dir)
        log.info("Output directory: %s", output_dir)

    # ── Stage 4: Enumeration ───────────────────────────────────────
    with stage_timer("Enumeration"):
        solver = CpSatJumpSolver(graph, config.solver, config.imbalance_tolerance)
        neighborhood = build_neighborhood(config, graph)
        controller = EnumerationController.from_config(
            config, graph, initial, solver, neighborhood, store=store,
        )
        result = controller.run()

    # ── Stage 5: Summary ───────────────────────────────────────────
    with stage_timer("Summary"):
        summary_path = write_summary(config, result, output_dir)
        log.info("Summary written to %s", summary_path)

    # ── Stage 6: Visualization ─────────────────────────────────────
    figures: list[Path] = []
    if render:
        from enumcc.visualization import render_figures

        with stage_timer("Visualization"):
            figures = render_figures(output_dir)
            log.info("Generated %d figure files", len(figures))

    total_elapsed = time.monotonic() - pipeline_start
    print(f"\n{'=' * 60}")
    print(f"Pipeline complete in {total_elapsed:.1f}s")
    print(f"  Termination: {result.reason}"
          + (f" ({result.exceeded_budget})" if result.exceeded_budget else ""))
    print(f"  Solutions:   {len(result.solutions)}")
    print(f"  Imbalance:   {result.optimal_imbalance:g}")
    print(f"  Passes:      {len(result.passes)}")
    print(f"  Jumps:       {result.jump_queries}")
    print(f"  Complete:    {'yes' if result.certified_complete else 'no'}")
    print(f"  Output:      {output_dir}")
    print(f"  Figures:     {len(figures)} files")
    print(f"{'=' * 60}")

    return output_dir


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Enumerate all optimal correlation clustering partitions"
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to enumeration config JSON file (defaults apply otherwise)",
    )
    parser.add_argument("--graph", type=str, default=None, help="Input graph file")
    parser.add_argument(
        "--init-membership",
        type=str,
        default=None,
        help="Membership file of an optimal starting partition",
    )
    parser.add_argument("--out-dir", type=str, default=None, help="Output directory")
    parser.add_argument(
        "--max-edit", type=int, default=None, help="Maximum neighborhood edit distance"
    )
    parser.add_argument(
        "--time-limit",
        type=float,
        default=None,
        help="Wall-clock budget in seconds (<= 0 for unbounded)",
    )
    parser.add_argument(
        "--solution-limit",
        type=int,
        default=None,
        help="Maximum number of optimal partitions (<= 0 for unbounded)",
    )
    parser.add_argument("--threads", type=int, default=None, help="Solver threads")
    parser.add_argument(
        "--exclusion-strategy",
        choices=EXCLUSION_STRATEGIES,
        default=None,
        help="Which visited partitions each jump excludes",
    )
    parser.add_argument(
        "--neighborhood",
        choices=NEIGHBORHOOD_BACKENDS,
        default=None,
        help="Neighborhood search backend",
    )
    parser.add_argument(
        "--jar", type=str, default=None, help="Jar of the external neighborhood tool"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show pipeline plan without running the enumeration",
    )
    parser.add_argument(
        "--no-figures", action="store_true", help="Skip figure rendering"
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable DEBUG-level logging",
    )
    return parser


def main() -> None:
    args = build_parser().parse_args()

    # Configure logging
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Load config
    config = DEFAULT_CONFIG
    if args.config is not None:
        config_path = Path(args.config)
        if not config_path.exists():
            print(f"Error: config file not found: {config_path}", file=sys.stderr)
            sys.exit(1)
        try:
            config = config_from_json(config_path.read_text())
        except Exception as e:
            print(f"Error: invalid config {config_path}: {e}", file=sys.stderr)
            sys.exit(1)
    try:
        config = apply_overrides(config, args)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    # Print config summary
    print(f"Config hash: {config_hash(config)}")
    print()
    print(f"Graph:        {config.graph_path or '(not set)'}")
    print(f"Start:        {config.initial_membership_path or '(not set)'}")
    print(f"Neighborhood: {config.neighborhood.backend}, "
          f"max_edit={config.neighborhood.max_edit_distance}")
    print(f"Budget:       time_limit={config.budget.time_limit}, "
          f"solution_limit={config.budget.solution_limit}")
    print(f"Jumps:        strategy={config.exclusion_strategy}, threads={config.threads}")

    if args.dry_run:
        print("\nPipeline plan:")
        print(f"  1. Load graph: {config.graph_path or '(not set)'}")
        print(f"  2. Load initial partition: {config.initial_membership_path or '(not set)'}")
        print(f"  3. Prepare output layout: {config.output_dir}")
        print(f"  4. Enumerate: {config.neighborhood.backend} neighborhood + CP-SAT jumps")
        print("  5. Write summary.json")
        print(f"  6. Visualization: {'skipped' if args.no_figures else 'figures/ (PNG + SVG)'}")
        print("\n[dry-run] Config loaded successfully. Exiting.")
        return

    if not config.graph_path or not config.initial_membership_path:
        print(
            "Error: a graph and an initial membership are required "
            "(--graph/--init-membership or config file)",
            file=sys.stderr,
        )
        sys.exit(1)

    from enumcc.graph import GraphParseError
    from enumcc.partition import InvalidMembershipError

    try:
        run_pipeline(config, render=not args.no_figures)
    except (GraphParseError, InvalidMembershipError, OSError) as e:
        log.error("Invalid input: %s", e)
        sys.exit(1)
    except Exception:
        log.exception("Pipeline failed")
        sys.exit(1)


if __name__ == "__main__":
    main()
