"""Run ID generation with scannable parameter slug format."""

import re
from datetime import datetime, timezone
from pathlib import Path

from enumcc.config.experiment import EnumerationConfig


def generate_run_id(config: EnumerationConfig) -> str:
    """Generate a scannable run ID from config parameters.

    Format: {graph stem}_d{max edit}_{strategy}_{backend}_{YYYYMMDD}_{HHMMSS}
    Example: slovene_d3_narrow_local_20261019_143012
    """
    stem = Path(config.graph_path).stem or "graph"
    stem = re.sub(r"[^A-Za-z0-9]+", "-", stem).strip("-") or "graph"
    ts = datetime.now(timezone.utc)
    return (
        f"{stem}"
        f"_d{config.neighborhood.max_edit_distance}"
        f"_{config.exclusion_strategy}"
        f"_{config.neighborhood.backend}"
        f"_{ts.strftime('%Y%m%d_%H%M%S')}"
    )
