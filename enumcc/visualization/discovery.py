"""Discovery progress plots built from the per-pass timeline."""

from typing import Any

import matplotlib.pyplot as plt
import numpy as np

from enumcc.visualization.style import DUPLICATE_COLOR, JUMP_COLOR, NEIGHBORHOOD_COLOR


def _empty_figure(title: str) -> plt.Figure:
    fig, ax = plt.subplots(figsize=(6, 4))
    ax.text(
        0.5, 0.5, "No passes recorded",
        transform=ax.transAxes, ha="center", va="center",
        fontsize=12, color="gray",
    )
    ax.set_title(title)
    return fig


def plot_discovery_timeline(timeline: list[dict[str, Any]]) -> plt.Figure:
    """Cumulative number of optimal partitions against elapsed time.

    Passes whose jump found a new partition are marked with a red dot.

    Args:
        timeline: summary.json metrics.timeline entries.
    """
    title = "Optimal partitions discovered"
    if not timeline:
        return _empty_figure(title)

    elapsed = np.array([0.0] + [float(e["elapsed"]) for e in timeline])
    # the registry holds only the starting partition before pass 1
    sizes = np.array([1] + [int(e["registry_size"]) for e in timeline])

    fig, ax = plt.subplots()
    ax.step(elapsed, sizes, where="post", color=NEIGHBORHOOD_COLOR, linewidth=1.5,
            label="Visited partitions")
    accepted = [i + 1 for i, e in enumerate(timeline) if e["jump_accepted"]]
    if accepted:
        ax.scatter(elapsed[accepted], sizes[accepted], color=JUMP_COLOR, zorder=3,
                   s=18, label="Jump accepted")
    ax.set_xlabel("Elapsed time (s)")
    ax.set_ylabel("Optimal partitions")
    ax.set_title(title)
    ax.legend()
    fig.tight_layout()
    return fig


def plot_pass_breakdown(timeline: list[dict[str, Any]]) -> plt.Figure:
    """Per-pass bars: neighborhood solutions next to jump queries.

    Duplicate jump results are drawn stacked under the jump bar.
    """
    title = "Per-pass discovery breakdown"
    if not timeline:
        return _empty_figure(title)

    passes = np.array([int(e["pass_index"]) for e in timeline])
    neighborhood = np.array([int(e["neighborhood_solutions"]) for e in timeline])
    jumps = np.array([int(e["jump_queries"]) for e in timeline])
    duplicates = np.array([int(e["duplicates"]) for e in timeline])

    width = 0.4
    fig, ax = plt.subplots(figsize=(max(6, len(passes) * 0.5), 5))
    ax.bar(passes - width / 2, neighborhood, width, color=NEIGHBORHOOD_COLOR,
           label="Neighborhood solutions")
    ax.bar(passes + width / 2, jumps - duplicates, width, bottom=duplicates,
           color=JUMP_COLOR, label="Jump queries")
    ax.bar(passes + width / 2, duplicates, width, color=DUPLICATE_COLOR,
           label="Duplicate jump results")
    ax.set_xlabel("Pass")
    ax.set_ylabel("Count")
    ax.set_xticks(passes)
    ax.set_title(title)
    ax.legend()
    fig.tight_layout()
    return fig
