"""Co-clustering frequency heatmap across all enumerated optimal partitions.

Cell (i, j) is the fraction of optimal partitions placing vertices i and j
in the same cluster. Pairs at 0 or 1 are settled by every optimum; values
in between show where the optima disagree.
"""

import matplotlib.pyplot as plt
import numpy as np
import seaborn as sns


def coclustering_frequency(solutions: list[list[int]]) -> np.ndarray:
    """n x n matrix of co-clustering frequencies (diagonal is 1)."""
    memberships = np.asarray(solutions, dtype=np.int64)
    if memberships.ndim != 2 or memberships.shape[0] == 0:
        raise ValueError("need at least one membership vector")
    same = memberships[:, :, None] == memberships[:, None, :]
    return same.mean(axis=0)


def plot_coclustering_heatmap(solutions: list[list[int]]) -> plt.Figure:
    """Plot the co-clustering frequency matrix.

    Args:
        solutions: Membership vectors, one per optimal partition.
    """
    frequency = coclustering_frequency(solutions)
    n = frequency.shape[0]

    fig, ax = plt.subplots(figsize=(max(5, n * 0.3), max(4, n * 0.25)))
    sns.heatmap(
        frequency,
        vmin=0.0,
        vmax=1.0,
        cmap="YlGnBu",
        square=True,
        annot=n <= 12,
        fmt=".2f",
        cbar_kws={"label": "Fraction of optimal partitions"},
        ax=ax,
    )
    ax.set_xlabel("Vertex")
    ax.set_ylabel("Vertex")
    ax.set_title(f"Co-clustering across {len(solutions)} optimal partitions")
    fig.tight_layout()
    return fig
