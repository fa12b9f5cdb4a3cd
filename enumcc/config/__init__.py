"""Enumeration configuration system with frozen, hashable, serializable dataclasses."""

from enumcc.config.experiment import (
    EXCLUSION_STRATEGIES,
    NEIGHBORHOOD_BACKENDS,
    BudgetConfig,
    EnumerationConfig,
    NeighborhoodConfig,
    SolverConfig,
)
from enumcc.config.defaults import DEFAULT_CONFIG
from enumcc.config.hashing import config_hash, search_config_hash
from enumcc.config.serialization import (
    config_from_dict,
    config_from_json,
    config_to_json,
)

__all__ = [
    "EXCLUSION_STRATEGIES",
    "NEIGHBORHOOD_BACKENDS",
    "BudgetConfig",
    "EnumerationConfig",
    "NeighborhoodConfig",
    "SolverConfig",
    "DEFAULT_CONFIG",
    "config_hash",
    "search_config_hash",
    "config_from_dict",
    "config_from_json",
    "config_to_json",
]
