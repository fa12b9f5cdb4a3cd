"""Default configuration, the single source of truth for run parameters."""

from enumcc.config.experiment import EnumerationConfig

# All-default values: local neighborhood search with max_edit_distance=3,
# narrow exclusion strategy, one thread, unbounded time and solution budgets.
DEFAULT_CONFIG = EnumerationConfig()
