"""Figures for enumeration runs: discovery progress and co-clustering."""

from enumcc.visualization.render import render_figures
from enumcc.visualization.style import apply_style, save_figure

__all__ = [
    "apply_style",
    "render_figures",
    "save_figure",
]
