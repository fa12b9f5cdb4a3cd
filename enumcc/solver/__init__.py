"""Exact jump solver adapters."""

from enumcc.solver.cpsat import (
    CpSatJumpSolver,
    choose_weight_scale,
    quantize_weights,
    scaled_imbalance,
)

__all__ = [
    "CpSatJumpSolver",
    "choose_weight_scale",
    "quantize_weights",
    "scaled_imbalance",
]
