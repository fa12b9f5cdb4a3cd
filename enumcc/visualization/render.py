"""Orchestrator: render all figures for one enumeration run.

Reads summary.json, calls every plot function and saves the figures to
{output_dir}/figures/ as PNG + SVG.
"""

import logging
from pathlib import Path

from enumcc.results.summary import SUMMARY_FILENAME, load_summary
from enumcc.visualization.style import apply_style, save_figure

log = logging.getLogger(__name__)


def render_figures(output_dir: str | Path) -> list[Path]:
    """Generate all figures for a run directory.

    Each plot type is wrapped in try/except so one failure doesn't block
    the others.

    Args:
        output_dir: Run directory containing summary.json.

    Returns:
        List of paths to generated figure files.
    """
    apply_style()

    output_dir = Path(output_dir)
    summary = load_summary(output_dir / SUMMARY_FILENAME)
    figures_dir = output_dir / "figures"
    timeline = summary["metrics"].get("timeline", [])
    solutions = summary.get("solutions", [])
    generated_files: list[Path] = []

    try:
        from enumcc.visualization.discovery import plot_discovery_timeline

        fig = plot_discovery_timeline(timeline)
        generated_files.extend(save_figure(fig, figures_dir, "discovery_timeline"))
        log.info("Generated: discovery_timeline")
    except Exception as e:
        log.warning("Failed to generate discovery_timeline: %s", e)

    try:
        from enumcc.visualization.discovery import plot_pass_breakdown

        fig = plot_pass_breakdown(timeline)
        generated_files.extend(save_figure(fig, figures_dir, "pass_breakdown"))
        log.info("Generated: pass_breakdown")
    except Exception as e:
        log.warning("Failed to generate pass_breakdown: %s", e)

    if solutions:
        try:
            from enumcc.visualization.coclustering import plot_coclustering_heatmap

            fig = plot_coclustering_heatmap(solutions)
            generated_files.extend(save_figure(fig, figures_dir, "coclustering"))
            log.info("Generated: coclustering")
        except Exception as e:
            log.warning("Failed to generate coclustering: %s", e)

    log.info("Rendered %d figure files into %s", len(generated_files), figures_dir)
    return generated_files
